"""Pydantic base types shared by every decoded Fastly resource."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer, field_validator


@dataclass(frozen=True)
class FieldMarker:
    """Annotated metadata read by the encoders and the decode hook chain."""

    name: str


COMPATIBOOL = FieldMarker("compatibool")
HEADER_MAP = FieldMarker("header_map")
# Use as Annotated[Optional[Other], RELATION] on JSON:API relationship fields.
RELATION = FieldMarker("relation")


def _compatibool_in(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode()
    if isinstance(value, str):
        return value.strip() == "1"
    return value


def _compatibool_out(value: bool) -> str:
    return "1" if value else "0"


# Fastly's older endpoints speak booleans as "1"/"0" rather than true/false.
Compatibool = Annotated[
    bool,
    COMPATIBOOL,
    BeforeValidator(_compatibool_in),
    PlainSerializer(_compatibool_out, return_type=str, when_used="json"),
]

HeaderMap = Annotated[Dict[str, List[str]], HEADER_MAP]


class Entity(BaseModel):
    """Base for request and response structs.

    Fields are declared ``Optional[...] = None`` so that a field missing from a
    response stays ``None`` and out of ``model_fields_set``, while an explicit
    ``0`` or ``""`` is kept as that value. Unknown keys are ignored.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    jsonapi_type: ClassVar[str] = ""

    @field_validator("*")
    @classmethod
    def naive_times_are_utc(cls, value: Any) -> Any:
        # Decoded timestamps are always aware; constructed ones must match.
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set


class ErrorObject(Entity):
    """A single error entry attached to an HTTPError."""

    model_config = ConfigDict(frozen=True)

    code: Optional[str] = None
    detail: Optional[str] = None
    id: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    status: Optional[str] = None
    title: Optional[str] = None


class StatusResponse(Entity):
    """The ``{"status": "ok"}`` body returned by action endpoints."""

    msg: Optional[str] = None
    status: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


__all__ = [
    "COMPATIBOOL",
    "Compatibool",
    "Entity",
    "ErrorObject",
    "FieldMarker",
    "HEADER_MAP",
    "HeaderMap",
    "RELATION",
    "StatusResponse",
]
