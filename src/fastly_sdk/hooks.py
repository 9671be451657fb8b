"""Field descriptor tables and the decode hook chain.

Response bodies from the Fastly API are not consistently typed: numbers may
arrive as strings, booleans as ``"1"``/``"0"``, timestamps in two formats and
header collections as flat maps. Before pydantic validates a body, the raw
JSON value is walked against the target type and every value is passed
through a chain of hooks that coerce it into the shape the field expects.
"""

from __future__ import annotations

import functools
import re
import types
import typing
from collections import abc
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from .errors import DecodeError
from .models import COMPATIBOOL, HEADER_MAP, RELATION

_NONE_TYPE = type(None)
_LIST_ORIGINS = (list, tuple, set, frozenset, abc.Sequence)
_DICT_ORIGINS = (dict, abc.Mapping)

LEGACY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# fromisoformat before 3.11 only takes 3 or 6 fractional digits.
_FRACTION_RE = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


def _pad_fraction(match: "re.Match[str]") -> str:
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


@dataclass(frozen=True)
class TypeSpec:
    """A field annotation reduced to what the hooks need to know."""

    origin: Any
    item: Optional["TypeSpec"] = None
    markers: Tuple[Any, ...] = ()
    optional: bool = False

    def has(self, marker: Any) -> bool:
        return marker in self.markers

    @property
    def is_model(self) -> bool:
        return isinstance(self.origin, type) and issubclass(self.origin, BaseModel)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    key: str
    spec: TypeSpec
    excluded: bool = False

    @property
    def is_relation(self) -> bool:
        return self.spec.has(RELATION)


def resolve(annotation: Any, markers: Sequence[Any] = ()) -> TypeSpec:
    collected = list(markers)
    optional = False
    while True:
        origin = typing.get_origin(annotation)
        if origin is typing.Annotated:
            annotation, *metadata = typing.get_args(annotation)
            collected.extend(metadata)
            continue
        if origin is Union or origin is types.UnionType:
            args = [arg for arg in typing.get_args(annotation) if arg is not _NONE_TYPE]
            optional = optional or len(args) < len(typing.get_args(annotation))
            if len(args) == 1:
                annotation = args[0]
                continue
            return TypeSpec(origin=Any, markers=tuple(collected), optional=optional)
        break

    origin = typing.get_origin(annotation)
    if origin in _LIST_ORIGINS or annotation in (list, tuple, set, frozenset):
        args = typing.get_args(annotation)
        item = resolve(args[0]) if args else TypeSpec(origin=Any)
        return TypeSpec(origin=list, item=item, markers=tuple(collected), optional=optional)
    if origin in _DICT_ORIGINS or annotation is dict:
        args = typing.get_args(annotation)
        item = resolve(args[1]) if len(args) == 2 else TypeSpec(origin=Any)
        return TypeSpec(origin=dict, item=item, markers=tuple(collected), optional=optional)
    return TypeSpec(origin=annotation, markers=tuple(collected), optional=optional)


@functools.lru_cache(maxsize=None)
def field_table(model: type) -> Tuple[FieldSpec, ...]:
    """Return the descriptor table for ``model``, built once per class."""
    specs = []
    for name, info in model.model_fields.items():
        specs.append(
            FieldSpec(
                name=name,
                key=info.alias or name,
                spec=resolve(info.annotation, info.metadata),
                excluded=bool(info.exclude),
            )
        )
    return tuple(specs)


DecodeHook = Callable[[Any, TypeSpec], Any]


def string_to_time(data: Any, spec: TypeSpec) -> Any:
    if spec.origin is not datetime or not isinstance(data, str):
        return data
    if data == "":
        return None
    try:
        parsed = datetime.fromisoformat(_FRACTION_RE.sub(_pad_fraction, data.replace("Z", "+00:00"), count=1))
    except ValueError:
        try:
            parsed = datetime.strptime(data, LEGACY_TIME_FORMAT)
        except ValueError:
            raise DecodeError(f"unable to parse time string: {data!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def map_to_headers(data: Any, spec: TypeSpec) -> Any:
    if not spec.has(HEADER_MAP) or not isinstance(data, dict):
        return data
    headers: Dict[str, List[str]] = {}
    for key, value in data.items():
        if isinstance(value, str):
            headers[key] = [value]
        elif isinstance(value, list) and all(isinstance(v, str) for v in value):
            headers[key] = list(value)
        elif isinstance(value, bool):
            raise DecodeError(f"cannot convert {type(value).__name__} to a header collection")
        elif isinstance(value, int):
            headers[key] = [str(value)]
        elif isinstance(value, float):
            headers[key] = [f"{value:f}"]
        else:
            raise DecodeError(f"cannot convert {type(value).__name__} to a header collection")
    return headers


_TRUE_STRINGS = frozenset({"1", "t", "true"})
_FALSE_STRINGS = frozenset({"", "0", "f", "false"})


def weak_typing(data: Any, spec: TypeSpec) -> Any:
    """Coerce mismatched JSON primitives into the field's native type."""
    if data is None or spec.has(COMPATIBOOL):
        return data
    origin = spec.origin
    if origin is bool:
        if isinstance(data, str):
            lowered = data.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            raise DecodeError(f"cannot parse {data!r} as a boolean")
        elif isinstance(data, (int, float)) and not isinstance(data, bool):
            return data != 0
        return data
    if origin is int:
        if isinstance(data, bool):
            return int(data)
        if isinstance(data, float):
            return int(data)
        if isinstance(data, str):
            text = data.strip()
            if text == "":
                return 0
            try:
                return int(text)
            except ValueError:
                pass
            try:
                return int(text, 0)
            except ValueError:
                raise DecodeError(f"cannot parse {data!r} as an integer") from None
        return data
    if origin is float:
        if isinstance(data, bool):
            return float(data)
        if isinstance(data, str):
            text = data.strip()
            if text == "":
                return 0.0
            try:
                return float(text)
            except ValueError:
                raise DecodeError(f"cannot parse {data!r} as a number") from None
        return data
    if origin is str:
        if isinstance(data, bool):
            return "1" if data else "0"
        if isinstance(data, float):
            return str(int(data)) if data.is_integer() else repr(data)
        if isinstance(data, int):
            return str(data)
        return data
    if origin is list:
        if isinstance(data, dict) and not data:
            return []
        if isinstance(data, dict) and all(isinstance(key, str) and key.isdigit() for key in data):
            # Indexed form keys: items[0][name]=a&items[1][name]=b
            return [data[key] for key in sorted(data, key=int)]
        if not isinstance(data, list):
            return [data]
        return data
    if origin is dict and isinstance(data, list) and not data:
        return {}
    return data


DEFAULT_HOOKS: Tuple[DecodeHook, ...] = (map_to_headers, string_to_time, weak_typing)


def apply_hooks(data: Any, spec: TypeSpec, hooks: Sequence[DecodeHook] = DEFAULT_HOOKS) -> Any:
    """Run ``hooks`` over ``data`` and recurse into models, lists and maps."""
    for hook in hooks:
        data = hook(data, spec)

    if spec.is_model and isinstance(data, dict):
        return apply_model_hooks(data, spec.origin, hooks)
    if spec.origin is list and isinstance(data, list) and spec.item is not None:
        return [apply_hooks(item, spec.item, hooks) for item in data]
    if (
        spec.origin is dict
        and isinstance(data, dict)
        and spec.item is not None
        and not spec.has(HEADER_MAP)
    ):
        return {key: apply_hooks(value, spec.item, hooks) for key, value in data.items()}
    return data


def apply_model_hooks(data: Dict[str, Any], model: type, hooks: Sequence[DecodeHook] = DEFAULT_HOOKS) -> Dict[str, Any]:
    out = dict(data)
    for field in field_table(model):
        for key in {field.key, field.name}:
            if key in out:
                out[key] = apply_hooks(out[key], field.spec, hooks)
    return out


__all__ = [
    "DEFAULT_HOOKS",
    "DecodeHook",
    "FieldSpec",
    "TypeSpec",
    "apply_hooks",
    "apply_model_hooks",
    "field_table",
    "map_to_headers",
    "resolve",
    "string_to_time",
    "weak_typing",
]
