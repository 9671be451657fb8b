"""Request body encoders and response body decoders.

Three wire formats are supported in both directions: URL-form, plain JSON and
JSON:API documents. Decoding always goes through the hook chain in
:mod:`fastly_sdk.hooks` before pydantic validates the result.
"""

from __future__ import annotations

import functools
import json
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import DecodeError
from .hooks import apply_hooks, field_table, resolve

FORM_MIME_TYPE = "application/x-www-form-urlencoded"
JSON_MIME_TYPE = "application/json"
JSONAPI_MIME_TYPE = "application/vnd.api+json"
JSONAPI_BULK_MIME_TYPE = JSONAPI_MIME_TYPE + "; ext=bulk"
PROBLEM_JSON_MIME_TYPE = "application/problem+json"


class Format(str, Enum):
    FORM = "form"
    JSON = "json"
    JSONAPI = "jsonapi"


# -- encoding ---------------------------------------------------------------


def to_jsonable(value: Any) -> Any:
    """Convert models, datetimes and containers into plain JSON values.

    ``None`` model fields are dropped; ``None`` inside plain dicts and lists is
    kept as JSON ``null``.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def encode_json(value: Any) -> bytes:
    return json.dumps(to_jsonable(value), separators=(",", ":")).encode("utf-8")


def _form_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten_form(data: Dict[str, Any], prefix: str = "") -> Iterator[Tuple[str, str]]:
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else key
        if value is None:
            continue
        if isinstance(value, dict):
            yield from _flatten_form(value, name)
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if item is None:
                    continue
                if isinstance(item, dict):
                    yield from _flatten_form(item, f"{name}[{index}]")
                else:
                    yield name, _form_scalar(item)
        else:
            yield name, _form_scalar(value)


def rewrite_health_check_headers(body: str) -> str:
    """Collapse repeated ``headers=`` entries into ``headers=["Name:Value",...]``.

    The health check endpoint expects its custom headers as one list value,
    which plain form encoding cannot express.
    """
    headers: List[str] = []
    result: List[str] = []
    for segment in body.split("&"):
        if segment.lower().startswith("headers="):
            parts = segment.split("=")
            if len(parts) == 2:
                headers.append(json.dumps(parts[1].replace("%3A+", ":")))
        else:
            result.append(segment)
    if headers:
        result.append("headers=%5B" + ",".join(headers) + "%5D")
    return "&".join(result)


def encode_form(value: Any, *, health_check_headers: bool = False) -> bytes:
    data = to_jsonable(value)
    if not isinstance(data, dict):
        raise TypeError(f"form encoding needs a model or mapping, got {type(value).__name__}")
    pairs = sorted(_flatten_form(data), key=lambda pair: pair[0])
    body = urlencode(pairs)
    if health_check_headers:
        body = rewrite_health_check_headers(body)
    return body.encode("utf-8")


def _jsonapi_linkage(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [_jsonapi_linkage(item) for item in value]
    if isinstance(value, BaseModel):
        return {"type": _jsonapi_type(type(value)), "id": str(getattr(value, "id", ""))}
    raise TypeError(f"cannot use {type(value).__name__} as a JSON:API relationship")


def _jsonapi_type(model: type) -> str:
    type_name = getattr(model, "jsonapi_type", "")
    if not type_name:
        raise ValueError(f"{model.__name__} does not declare a jsonapi_type")
    return type_name


def _jsonapi_resource(value: BaseModel) -> Dict[str, Any]:
    resource: Dict[str, Any] = {"type": _jsonapi_type(type(value))}
    dumped = value.model_dump(mode="json", by_alias=True, exclude_none=True)
    attributes: Dict[str, Any] = {}
    relationships: Dict[str, Any] = {}
    for field in field_table(type(value)):
        if field.excluded or field.key not in dumped:
            continue
        if field.name == "id":
            resource["id"] = str(dumped[field.key])
        elif field.is_relation:
            relationships[field.key] = {"data": _jsonapi_linkage(getattr(value, field.name))}
        else:
            attributes[field.key] = dumped[field.key]
    resource["attributes"] = attributes
    if relationships:
        resource["relationships"] = relationships
    return resource


def encode_jsonapi(value: Any) -> bytes:
    if isinstance(value, (list, tuple)):
        document = {"data": [_jsonapi_resource(item) for item in value]}
    elif isinstance(value, BaseModel):
        document = {"data": _jsonapi_resource(value)}
    else:
        raise TypeError(f"JSON:API encoding needs a model or list of models, got {type(value).__name__}")
    return json.dumps(document, separators=(",", ":")).encode("utf-8")


def encode(fmt: Union[Format, str], value: Any, *, health_check_headers: bool = False) -> bytes:
    fmt = Format(fmt)
    if fmt is Format.FORM:
        return encode_form(value, health_check_headers=health_check_headers)
    if fmt is Format.JSONAPI:
        return encode_jsonapi(value)
    return encode_json(value)


# -- decoding ---------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def _parse_json(body: Union[bytes, str]) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError(f"malformed JSON body: {exc}") from exc


def _unwrap(data: Any, key: Optional[str]) -> Any:
    if key is None:
        return data
    if not isinstance(data, dict) or key not in data:
        raise DecodeError(f"response body has no {key!r} key")
    return data[key]


def validate(data: Any, target: Any, *, into: Optional[BaseModel] = None) -> Any:
    """Run the hook chain over ``data`` and validate it as ``target``.

    With ``into``, only the fields present in ``data`` replace the values of a
    copy of ``into``; everything else keeps its prior value.
    """
    data = apply_hooks(data, resolve(target))
    try:
        result = _adapter(target).validate_python(data)
    except ValidationError as exc:
        raise DecodeError(str(exc)) from exc
    if into is None:
        return result
    if not isinstance(result, BaseModel):
        raise TypeError("into= is only supported when decoding a single model")
    updates = {name: getattr(result, name) for name in result.model_fields_set}
    return into.model_copy(update=updates)


def decode_json(
    body: Union[bytes, str],
    target: Any,
    *,
    key: Optional[str] = None,
    into: Optional[BaseModel] = None,
) -> Any:
    return validate(_unwrap(_parse_json(body), key), target, into=into)


_FORM_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_FORM_INDEX_RE = re.compile(r"\[([^\[\]]*)\]")


def _split_form_key(key: str) -> List[str]:
    match = _FORM_KEY_RE.match(key)
    if not match:
        return [key]
    return [match.group(1), *_FORM_INDEX_RE.findall(match.group(2))]


def decode_form(
    body: Union[bytes, str],
    target: Any,
    *,
    key: Optional[str] = None,
    into: Optional[BaseModel] = None,
) -> Any:
    text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
    tree: Dict[str, Any] = {}
    for raw_key, value in parse_qsl(text, keep_blank_values=True):
        *parents, leaf = _split_form_key(raw_key)
        node = tree
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise DecodeError(f"form key {raw_key!r} conflicts with a scalar value")
            node = child
        if leaf in node:
            existing = node[leaf]
            node[leaf] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            node[leaf] = value
    return validate(_unwrap(tree, key), target, into=into)


def _jsonapi_model(target: Any) -> Optional[type]:
    spec = resolve(target)
    if spec.origin is list and spec.item is not None:
        spec = spec.item
    return spec.origin if spec.is_model else None


def _flatten_resource(
    resource: Any,
    included: Dict[Tuple[str, str], Dict[str, Any]],
    expected_type: str = "",
) -> Dict[str, Any]:
    if not isinstance(resource, dict):
        raise DecodeError("JSON:API resource object must be a JSON object")
    type_name = resource.get("type")
    if not type_name:
        raise DecodeError("JSON:API resource object is missing 'type'")
    if expected_type and type_name != expected_type:
        raise DecodeError(f"JSON:API resource has type {type_name!r}, expected {expected_type!r}")
    flat = dict(resource.get("attributes") or {})
    if "id" in resource:
        flat["id"] = resource["id"]
    for name, relationship in (resource.get("relationships") or {}).items():
        linkage = relationship.get("data") if isinstance(relationship, dict) else None
        flat[name] = _hydrate(linkage, included)
    return flat


def _hydrate(linkage: Any, included: Dict[Tuple[str, str], Dict[str, Any]]) -> Any:
    if linkage is None:
        return None
    if isinstance(linkage, list):
        return [_hydrate(item, included) for item in linkage]
    if not isinstance(linkage, dict):
        raise DecodeError("JSON:API relationship linkage must be an object or list")
    found = included.get((linkage.get("type"), linkage.get("id")))
    if found is not None:
        return _flatten_resource(found, {})
    return {"id": linkage.get("id")}


def decode_jsonapi(
    body: Union[bytes, str],
    target: Any,
    *,
    into: Optional[BaseModel] = None,
) -> Any:
    document = _parse_json(body)
    if not isinstance(document, dict) or "data" not in document:
        raise DecodeError("JSON:API document has no 'data' member")
    included = {
        (item.get("type"), item.get("id")): item
        for item in document.get("included") or ()
        if isinstance(item, dict)
    }
    model = _jsonapi_model(target)
    expected_type = getattr(model, "jsonapi_type", "") if model is not None else ""
    data = document["data"]
    if isinstance(data, list):
        flat: Any = [_flatten_resource(item, included, expected_type) for item in data]
    elif data is None:
        flat = None
    else:
        flat = _flatten_resource(data, included, expected_type)
    return validate(flat, target, into=into)


def decode(
    fmt: Union[Format, str],
    body: Union[bytes, str],
    target: Any,
    *,
    key: Optional[str] = None,
    into: Optional[BaseModel] = None,
) -> Any:
    fmt = Format(fmt)
    if fmt is Format.FORM:
        return decode_form(body, target, key=key, into=into)
    if fmt is Format.JSONAPI:
        return decode_jsonapi(body, target, into=into)
    return decode_json(body, target, key=key, into=into)


__all__ = [
    "FORM_MIME_TYPE",
    "Format",
    "JSONAPI_BULK_MIME_TYPE",
    "JSONAPI_MIME_TYPE",
    "JSON_MIME_TYPE",
    "PROBLEM_JSON_MIME_TYPE",
    "decode",
    "decode_form",
    "decode_json",
    "decode_jsonapi",
    "encode",
    "encode_form",
    "encode_json",
    "encode_jsonapi",
    "rewrite_health_check_headers",
    "to_jsonable",
    "validate",
]
