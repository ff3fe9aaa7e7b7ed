# planner/core/logging.py
import logging
import sys
from datetime import datetime

# Module-level default log level, can be changed by set_default_level()
_default_level: int = logging.INFO


class ColoredFormatter(logging.Formatter):
    """Colored formatter for planner logging"""

    COLORS = {
        'RESET': '\033[0m',
        'LIGHT_BLUE': '\033[94m',
        'WHITE': '\033[97m',
        'GRAY': '\033[90m',
        'GREEN': '\033[92m',
        'YELLOW': '\033[93m',
        'RED': '\033[91m',
        'BRIGHT_RED': '\033[1;91m',
    }

    LEVEL_COLORS = {
        'DEBUG': COLORS['GRAY'],
        'INFO': COLORS['GREEN'],
        'WARNING': COLORS['YELLOW'],
        'ERROR': COLORS['RED'],
        'CRITICAL': COLORS['BRIGHT_RED'],
    }

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')

        # 'planner.scheduler.lane' -> 'lane'
        component = record.name.rsplit('.', 1)[-1]

        # [scheduler] = 11 chars, [parallel] = 10
        component_padded = f'[{component}]'.ljust(13)
        level_padded = f'[{record.levelname}]'.ljust(10)
        level_color = self.LEVEL_COLORS.get(record.levelname, self.COLORS['WHITE'])

        formatted = (
            f"{self.COLORS['LIGHT_BLUE']}[{time_str}]{self.COLORS['RESET']} "
            f"{self.COLORS['WHITE']}{component_padded}{self.COLORS['RESET']}"
            f"{level_color}{level_padded}{self.COLORS['RESET']}"
            f"{self.COLORS['WHITE']}{record.getMessage()}{self.COLORS['RESET']}"
        )

        if record.exc_info:
            formatted += '\n' + self.formatException(record.exc_info)

        return formatted


def set_default_level(level: int) -> None:
    """Set the default log level for new loggers."""
    global _default_level
    _default_level = level


def get_logger(component_name: str) -> logging.Logger:
    """Get a logger for the specified component."""
    logger = logging.getLogger(f'planner.{component_name}')

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ColoredFormatter())
        handler.setLevel(_default_level)
        logger.addHandler(handler)
        logger.setLevel(_default_level)

        # Prevent duplicate logs from parent loggers
        logger.propagate = False

    return logger


def set_level(level: int) -> None:
    """Set the default level and apply it to every planner logger created so far."""
    set_default_level(level)
    for name, existing in list(logging.root.manager.loggerDict.items()):
        if not name.startswith('planner.') or not isinstance(existing, logging.Logger):
            continue
        existing.setLevel(level)
        for handler in existing.handlers:
            handler.setLevel(level)
