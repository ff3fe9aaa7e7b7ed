# planner/core/codec/serde.py
from __future__ import annotations
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    Union,
    cast,
)
import dataclasses
import datetime as dt
import json
from importlib import import_module
from pydantic import BaseModel, ValidationError
from planner.core.logging import get_logger
from planner.core.models.config import SchedulerConfig
from planner.core.models.task import ScheduledTask
from planner.core.scheduler.custom import RepetitionHandler
from planner.core.scheduler.service import Clock, Scheduler, Sleeper

logger = get_logger('serde')


Json = Union[None, bool, int, float, str, List['Json'], Dict[str, 'Json']]
"""
Union type for JSON-serializable values.
"""


class SerializationError(Exception):
    """
    Raised when a value cannot be serialized to or rebuilt from JSON.
    """

    pass


_CLASS_CACHE: Dict[
    str, Type[BaseModel]
] = {}  # cache of resolved Pydantic classes by module name and qualname

_DATACLASS_CACHE: Dict[
    str, type
] = {}  # cache of resolved dataclass types by module name and qualname


def clear_serde_caches() -> None:
    """Clear module-level rehydration caches."""
    _CLASS_CACHE.clear()
    _DATACLASS_CACHE.clear()


def _qualified_class_path(cls: type) -> tuple[str, str]:
    """
    Get the module and qualname of a payload class, checking it can be imported back.

    Raises SerializationError if the class is:
    - Defined in __main__ (entrypoint script)
    - Defined inside a function (local class with <locals> in qualname)
    """
    module_name = cls.__module__
    qualname = cls.__qualname__

    if module_name in ('__main__', '__mp_main__'):
        raise SerializationError(
            f"Cannot serialize '{qualname}' because it is defined in '__main__'. "
            'Move this class to a separate module so it can be imported when the snapshot is loaded.'
        )

    if '<locals>' in qualname:
        raise SerializationError(
            f"Cannot serialize '{qualname}' because it is a local class defined inside a function. "
            'Move this class to module level so it can be imported when the snapshot is loaded.'
        )

    return (module_name, qualname)


def _resolve_class(module_name: str, qualname: str) -> Any:
    try:
        module = import_module(module_name)
    except ImportError as e:
        raise SerializationError(
            f"Could not import module '{module_name}'. "
            f'Did you move the file without leaving a re-export shim? Error: {e}'
        )

    resolved: Any = module
    # Nested classes (e.g. ClassA.ClassB)
    for part in qualname.split('.'):
        resolved = getattr(resolved, part)
    return resolved


def to_jsonable(value: Any) -> Json:
    """
    Convert a task payload to JSON, keeping enough type metadata to rebuild it.

    Args:
        value: The value to convert to JSON.

    Returns:
        A JSON-serializable value. For more information, see `Json` Union type.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    # datetime.datetime is a subclass of datetime.date, so check datetime first.
    if isinstance(value, dt.datetime):
        return {'__datetime__': True, 'value': value.isoformat()}

    if isinstance(value, dt.date):
        return {'__date__': True, 'value': value.isoformat()}

    if isinstance(value, dt.time):
        return {'__time__': True, 'value': value.isoformat()}

    if isinstance(value, BaseModel):
        module, qualname = _qualified_class_path(type(value))
        return {
            '__pydantic_model__': True,
            'module': module,
            'qualname': qualname,
            'data': value.model_dump(mode='json'),
        }

    # Field-by-field instead of asdict() to keep nested type metadata
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        module, qualname = _qualified_class_path(type(value))
        field_data: Dict[str, Json] = {
            field.name: to_jsonable(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
        return {
            '__dataclass__': True,
            'module': module,
            'qualname': qualname,
            'data': field_data,
        }

    if isinstance(value, Mapping):
        mapping = cast(Mapping[object, object], value)
        return {str(key): to_jsonable(item) for key, item in mapping.items()}

    # str, bytes and bytearray are not sequences of items here
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        seq = cast(Sequence[object], value)
        return [to_jsonable(item) for item in seq]

    raise SerializationError(f'Cannot serialize value of type {type(value).__name__}')


def _rehydrate_model(value: Dict[str, Any]) -> BaseModel:
    module_name = cast(str, value.get('module'))
    qualname = cast(str, value.get('qualname'))
    cache_key = f'{module_name}:{qualname}'

    try:
        if cache_key in _CLASS_CACHE:
            cls = _CLASS_CACHE[cache_key]
        else:
            resolved = _resolve_class(module_name, qualname)
            if not (isinstance(resolved, type) and issubclass(resolved, BaseModel)):
                raise SerializationError(f'{cache_key} is not a BaseModel')
            cls = resolved
            _CLASS_CACHE[cache_key] = cls

        return cls.model_validate(value.get('data'))

    except SerializationError:
        raise
    except Exception as e:
        logger.error(
            f'Failed to rehydrate Pydantic model {cache_key}: {type(e).__name__}: {e}'
        )
        raise SerializationError(f'Failed to rehydrate {cache_key}: {str(e)}')


def _rehydrate_dataclass(value: Dict[str, Any]) -> Any:
    module_name = cast(str, value.get('module'))
    qualname = cast(str, value.get('qualname'))
    data = value.get('data')
    cache_key = f'{module_name}:{qualname}'

    try:
        if cache_key in _DATACLASS_CACHE:
            dc_cls = _DATACLASS_CACHE[cache_key]
        else:
            resolved = _resolve_class(module_name, qualname)
            if not isinstance(resolved, type) or not dataclasses.is_dataclass(resolved):
                raise SerializationError(f'{cache_key} is not a dataclass')
            dc_cls = resolved
            _DATACLASS_CACHE[cache_key] = dc_cls

        if not isinstance(data, dict):
            raise SerializationError(f'Dataclass data must be a dict, got {type(data)}')

        dc_fields = {f.name: f for f in dataclasses.fields(dc_cls)}
        init_kwargs: Dict[str, Any] = {}
        non_init_fields: Dict[str, Any] = {}
        for field_name, field_value in data.items():
            field_def = dc_fields.get(field_name)
            if field_def is None:
                # Field removed from the dataclass since the snapshot was written
                continue
            if field_def.init:
                init_kwargs[field_name] = rehydrate_value(field_value)
            else:
                non_init_fields[field_name] = rehydrate_value(field_value)

        instance = dc_cls(**init_kwargs)
        for fname, fvalue in non_init_fields.items():
            object.__setattr__(instance, fname, fvalue)
        return instance

    except SerializationError:
        raise
    except Exception as e:
        logger.error(f'Failed to rehydrate dataclass {cache_key}: {type(e).__name__}: {e}')
        raise SerializationError(f'Failed to rehydrate dataclass {cache_key}: {str(e)}')


def rehydrate_value(value: Json) -> Any:
    """
    Recursively rebuild a payload produced by `to_jsonable`.

    Raises:
        SerializationError: If a model or dataclass cannot be rebuilt.
    """
    if isinstance(value, dict):
        if value.get('__pydantic_model__'):
            return _rehydrate_model(value)
        if value.get('__dataclass__'):
            return _rehydrate_dataclass(value)
        if value.get('__datetime__'):
            return dt.datetime.fromisoformat(cast(str, value['value']))
        if value.get('__date__'):
            return dt.date.fromisoformat(cast(str, value['value']))
        if value.get('__time__'):
            return dt.time.fromisoformat(cast(str, value['value']))
        return {k: rehydrate_value(v) for k, v in value.items()}

    if isinstance(value, list):
        return [rehydrate_value(item) for item in value]

    return value


# =============================================================================
# Tasks and scheduler snapshots
# =============================================================================


def task_to_json(task: ScheduledTask[Any]) -> Dict[str, Json]:
    """
    Convert a ScheduledTask to JSON.

    Returns:
        A dict with following key-value pairs:
        - "payload": Json (see `to_jsonable`)
        - "due_date": ISO 8601 string with UTC offset
        - "repetition": tagged repetition rule
        - "sleep_strategy": tagged sleep strategy
    """
    data = cast(Dict[str, Json], task.model_dump(mode='json', exclude={'payload'}))
    return {'payload': to_jsonable(task.payload), **data}


def task_from_json(j: Json) -> ScheduledTask[Any]:
    """
    Rebuild a ScheduledTask from `task_to_json` output.

    Raises:
        SerializationError: If the JSON is not a task or fails validation.
    """
    if not isinstance(j, dict) or 'due_date' not in j:
        raise SerializationError('Not a ScheduledTask JSON')

    payload = rehydrate_value(j.get('payload'))
    try:
        return ScheduledTask.model_validate({**j, 'payload': payload})
    except ValidationError as e:
        raise SerializationError(f'Invalid ScheduledTask JSON: {e}')


def _lanes_to_json(lanes: Mapping[str, Sequence[ScheduledTask[Any]]]) -> Dict[str, Json]:
    return {name: [task_to_json(task) for task in tasks] for name, tasks in lanes.items()}


def _lanes_from_json(j: Json, field_name: str) -> Dict[str, List[ScheduledTask[Any]]]:
    if j is None:
        return {}
    if not isinstance(j, dict):
        raise SerializationError(f"'{field_name}' must be a JSON object of lanes")

    lanes: Dict[str, List[ScheduledTask[Any]]] = {}
    for name, tasks in j.items():
        if not isinstance(tasks, list):
            raise SerializationError(f"'{field_name}.{name}' must be a JSON list of tasks")
        lanes[name] = [task_from_json(task) for task in tasks]
    return lanes


def scheduler_to_json(scheduler: Scheduler[Any]) -> Dict[str, Json]:
    """Snapshot of a scheduler's lanes and history."""
    return {
        'lanes': _lanes_to_json(scheduler.lanes),
        'history': _lanes_to_json(scheduler.history),
    }


def scheduler_from_json(
    j: Json,
    *,
    repetition_handler: Optional[RepetitionHandler] = None,
    config: Optional[SchedulerConfig] = None,
    clock: Optional[Clock] = None,
    sleeper: Optional[Sleeper] = None,
) -> Scheduler[Any]:
    """
    Rebuild a Scheduler from `scheduler_to_json` output.

    Lanes missing from the snapshot's history get an empty history entry.
    Collaborators (handler, config, clock, sleeper) are not part of the
    snapshot and are passed again here.
    """
    if not isinstance(j, dict) or 'lanes' not in j:
        raise SerializationError('Not a Scheduler JSON')

    return Scheduler(
        _lanes_from_json(j['lanes'], 'lanes'),
        _lanes_from_json(j.get('history'), 'history'),
        repetition_handler=repetition_handler,
        config=config,
        clock=clock,
        sleeper=sleeper,
    )


def dumps_scheduler(scheduler: Scheduler[Any]) -> str:
    """Serialize a scheduler snapshot to a JSON string."""
    return json.dumps(
        scheduler_to_json(scheduler),
        ensure_ascii=False,
        separators=(',', ':'),
        allow_nan=False,  # Prevent NaN values in JSON
    )


def loads_scheduler(s: str, **collaborators: Any) -> Scheduler[Any]:
    """
    Deserialize a scheduler snapshot from a JSON string.

    Keyword arguments are forwarded to `scheduler_from_json`.
    """
    try:
        j = json.loads(s)
    except json.JSONDecodeError as e:
        raise SerializationError(f'Invalid JSON: {e}')
    return scheduler_from_json(j, **collaborators)
