"""Error taxonomy for the Fastly Python SDK."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Iterable, Tuple

if TYPE_CHECKING:
    from .models import ErrorObject


class FastlyError(Exception):
    """Base class for every error raised by the SDK."""


class ConfigurationError(FastlyError):
    """The client cannot issue requests with the configuration it was given."""


class TransportError(FastlyError):
    """The HTTP transport failed before a response was received.

    The underlying httpx exception is kept as ``__cause__`` and its message is
    reused unchanged.
    """

    def __init__(self, message: str, *, method: str = "", url: str = "") -> None:
        self.method = method
        self.url = url
        super().__init__(message)


class DecodeError(FastlyError):
    """A response body could not be decoded into the requested type."""


class HTTPError(FastlyError):
    """A response came back with a status code outside the success set.

    Created once per failed response and never mutated. ``errors`` holds one
    entry for legacy and problem-detail bodies and possibly several for
    JSON:API bodies.
    """

    def __init__(
        self,
        status_code: int,
        errors: Iterable["ErrorObject"] = (),
        body: bytes = b"",
    ) -> None:
        self._status_code = status_code
        self._errors: Tuple["ErrorObject", ...] = tuple(errors)
        self._body = body
        super().__init__(self._render())

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def errors(self) -> Tuple["ErrorObject", ...]:
        return self._errors

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def is_not_found(self) -> bool:
        return self._status_code == HTTPStatus.NOT_FOUND

    @property
    def status_text(self) -> str:
        try:
            return HTTPStatus(self._status_code).phrase
        except ValueError:
            return ""

    def _render(self) -> str:
        lines = [f"{self._status_code} - {self.status_text}:"]
        for error in self._errors:
            lines.append("")
            if error.id:
                lines.append(f"    ID:     {error.id}")
            if error.title:
                lines.append(f"    Title:  {error.title}")
            if error.detail:
                lines.append(f"    Detail: {error.detail}")
            if error.code:
                lines.append(f"    Code:   {error.code}")
            if error.meta is not None:
                lines.append(f"    Meta:   {error.meta}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"HTTPError(status_code={self._status_code}, errors={len(self._errors)})"


class FieldError(FastlyError):
    """A request input is missing a required field or carries a bad value.

    Raised by per-resource callers before they reach the dispatch core.
    """

    def __init__(self, kind: str, message: str = "") -> None:
        self.kind = kind
        self._message = message
        super().__init__(str(self))

    def message(self, text: str) -> "FieldError":
        return FieldError(self.kind, text)

    def __str__(self) -> str:
        if self._message:
            return f"problem with field '{self.kind}': {self._message}"
        return f"missing required field '{self.kind}'"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldError):
            return NotImplemented
        return (self.kind, self._message) == (other.kind, other._message)

    def __hash__(self) -> int:
        return hash((self.kind, self._message))


__all__ = [
    "ConfigurationError",
    "DecodeError",
    "FastlyError",
    "FieldError",
    "HTTPError",
    "TransportError",
]
