"""Rust-style error display for planner configuration errors."""

from __future__ import annotations

import inspect
import linecache
import os
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Absolute path to the planner package directory.
# Used by _find_user_frame to tell library frames apart from user code.
_PLANNER_PKG_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class ErrorCode(str, Enum):
    """Error codes for configuration errors.

    - E100-E199: scheduler/task configuration errors
    """

    CONFIG_INVALID_GAP = 'E100'
    CONFIG_CUSTOM_HANDLER_MISSING = 'E101'
    CONFIG_INVALID_LANE = 'E102'
    CONFIG_INVALID_SCHEDULER = 'E103'


class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    DIM = '\033[2m'


class _NoColors:
    """No-op color codes for non-TTY output."""

    RESET = ''
    BOLD = ''
    RED = ''
    BLUE = ''
    CYAN = ''
    GREEN = ''
    DIM = ''


def _env_flag(name: str) -> bool:
    return os.environ.get(name, '').lower() in ('1', 'true', 'yes')


def _should_use_colors() -> bool:
    """Determine if colors should be used in output."""
    if _env_flag('PLANNER_FORCE_COLOR'):
        return True

    # NO_COLOR standard (https://no-color.org/)
    if os.environ.get('NO_COLOR') is not None:
        return False

    return hasattr(sys.stderr, 'isatty') and sys.stderr.isatty()


def _should_show_verbose() -> bool:
    """Determine if the full traceback should be shown."""
    return _env_flag('PLANNER_VERBOSE')


def _should_use_plain_errors() -> bool:
    """Determine if plain Python errors should be used instead of Rust-style."""
    return _env_flag('PLANNER_PLAIN_ERRORS')


@dataclass
class SourceLocation:
    """Source code location information."""

    file: str
    line: int

    @classmethod
    def from_frame(cls, frame: Any) -> SourceLocation:
        return cls(file=frame.f_code.co_filename, line=frame.f_lineno)

    def get_source_line(self) -> str | None:
        line = linecache.getline(self.file, self.line)
        return line.rstrip('\n') if line else None

    def format_short(self) -> str:
        return f'{self.file}:{self.line}'


@dataclass
class PlannerError(Exception):
    """Base exception for planner configuration errors.

    Rendered like a compiler diagnostic: error code, the user line that
    triggered it, then notes and help text.
    """

    message: str
    code: ErrorCode | None = None
    location: SourceLocation | None = None
    notes: list[str] = field(default_factory=lambda: [])
    help_text: str | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

        if self.location is None:
            user_frame = _find_user_frame()
            if user_frame is not None:
                self.location = SourceLocation.from_frame(user_frame)

    def with_note(self, note: str) -> PlannerError:
        """Add a note to the error (fluent API)."""
        self.notes.append(note)
        return self

    def with_help(self, help_text: str) -> PlannerError:
        """Set help text (fluent API)."""
        self.help_text = help_text
        return self

    def format_rust_style(self, use_colors: bool | None = None) -> str:
        if use_colors is None:
            use_colors = _should_use_colors()

        c = _Colors if use_colors else _NoColors
        code_part = f'[{self.code.value}]' if self.code else ''
        lines: list[str] = [
            '',
            f'{c.BOLD}{c.RED}error{code_part}:{c.RESET} {self.message}',
        ]

        if self.location:
            lines.append(
                f'  {c.BLUE}-->{c.RESET} {c.CYAN}{self.location.format_short()}{c.RESET}'
            )
            source_line = self.location.get_source_line()
            if source_line:
                line_num = str(self.location.line)
                padding = ' ' * len(line_num)
                stripped = source_line.lstrip()
                underline = ' ' * (len(source_line) - len(stripped)) + '^' * len(stripped)
                lines.append(f'   {c.BLUE}{padding}|{c.RESET}')
                lines.append(f'   {c.BLUE}{line_num}|{c.RESET} {source_line}')
                lines.append(f'   {c.BLUE}{padding}|{c.RESET} {c.RED}{underline}{c.RESET}')

        for note in self.notes:
            first, *rest = note.split('\n')
            lines.append(f'   {c.BLUE}={c.RESET} {c.BOLD}{c.BLUE}note{c.RESET}: {first}')
            lines.extend(f'          {extra}' for extra in rest)

        if self.help_text:
            lines.append('')
            lines.append(f'   {c.BLUE}={c.RESET} {c.BOLD}{c.GREEN}help{c.RESET}:')
            lines.extend(f'        {help_line}' for help_line in self.help_text.split('\n'))

        return '\n'.join(lines)

    def __str__(self) -> str:
        """Plain text (no ANSI colors), safe for logs and serialization."""
        return self.format_rust_style(use_colors=False)


_original_excepthook = sys.excepthook


def _planner_excepthook(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_tb: Any,
) -> None:
    """Custom exception hook for PlannerError exceptions."""
    if _should_use_plain_errors() or not isinstance(exc_value, PlannerError):
        _original_excepthook(exc_type, exc_value, exc_tb)
        return

    print(exc_value.format_rust_style(), file=sys.stderr)

    if _should_show_verbose():
        c = _Colors if _should_use_colors() else _NoColors
        print(file=sys.stderr)
        print(f'{c.DIM}Full traceback (PLANNER_VERBOSE=1):{c.RESET}', file=sys.stderr)
        traceback.print_exception(exc_type, exc_value, exc_tb, file=sys.stderr)


def install_error_handler() -> None:
    """Install the custom exception hook for Rust-style error display."""
    sys.excepthook = _planner_excepthook


def uninstall_error_handler() -> None:
    """Restore the original exception hook."""
    sys.excepthook = _original_excepthook


# =============================================================================
# Specific Error Classes
# =============================================================================


@dataclass
class ConfigurationError(PlannerError):
    """Raised when tasks, rules or scheduler configuration are invalid."""

    pass


@dataclass
class MisconfiguredRepetitionError(ConfigurationError):
    """Raised when a custom-repetition task is reached without a real handler.

    This is a programmer error: it is never converted into a run result.
    """

    pass


# =============================================================================
# Phase-Gated Error Collection
# =============================================================================


class ValidationReport:
    """Collects multiple PlannerError instances within a validation phase."""

    def __init__(self, phase_name: str) -> None:
        self.phase_name: str = phase_name
        self.errors: list[PlannerError] = []

    def add(self, error: PlannerError) -> None:
        self.errors.append(error)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def format_rust_style(self, use_colors: bool | None = None) -> str:
        """Format all collected errors, then append an aborting summary."""
        if use_colors is None:
            use_colors = _should_use_colors()

        c = _Colors if use_colors else _NoColors
        parts = [error.format_rust_style(use_colors=use_colors) for error in self.errors]
        parts.append(
            f'\n{c.BOLD}{c.RED}error{c.RESET}: aborting due to {len(self.errors)} previous errors'
        )
        return '\n'.join(parts)

    def __str__(self) -> str:
        return self.format_rust_style(use_colors=False)


@dataclass
class MultipleValidationErrors(PlannerError):
    """Wraps a ValidationReport containing 2+ errors."""

    report: ValidationReport = field(default_factory=lambda: ValidationReport(''))

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f'aborting due to {len(self.report.errors)} previous errors'
        # Location is per-error in the report
        super(PlannerError, self).__init__(self.message)

    def format_rust_style(self, use_colors: bool | None = None) -> str:
        return self.report.format_rust_style(use_colors=use_colors)

    def __str__(self) -> str:
        return self.format_rust_style(use_colors=False)


def raise_collected(report: ValidationReport) -> None:
    """Raise collected errors.

    - 0 errors: no-op
    - 1 error: raises the original error (preserves except clauses)
    - 2+ errors: raises MultipleValidationErrors wrapping the report
    """
    count = len(report.errors)
    if count == 0:
        return
    if count == 1:
        raise report.errors[0]
    raise MultipleValidationErrors(
        message=f'aborting due to {count} previous errors',
        report=report,
    )


def _find_user_frame() -> Any | None:
    """Find the first frame outside of planner internals and installed packages."""
    frame = inspect.currentframe()
    while frame is not None:
        filename = frame.f_code.co_filename
        if (
            not filename.startswith('<')
            and not filename.startswith(_PLANNER_PKG_DIR)
            and '/site-packages/' not in filename
        ):
            return frame
        frame = frame.f_back
    return None
