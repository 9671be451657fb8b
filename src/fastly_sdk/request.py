"""Outgoing request construction."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import IO, Any, Dict, Iterable, Optional, Union

import httpx

from .config import API_KEY_HEADER, ClientConfig
from .errors import ConfigurationError

VERBS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"})

RequestBody = Union[bytes, str, Iterable[bytes], IO[bytes]]


@dataclass
class RequestOptions:
    """Per-call request settings.

    ``parallel`` is advisory: it records that the caller considers the call
    safe to run concurrently with others on the same client. Nothing in the
    dispatch path enforces or serialises on it.
    """

    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)
    body: Optional[RequestBody] = None
    body_length: int = 0
    parallel: bool = False
    health_check_headers: bool = False

    def with_headers(self, **headers: str) -> "RequestOptions":
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)

    def with_body(self, body: RequestBody, length: int) -> "RequestOptions":
        return replace(self, body=body, body_length=length)


def join_url(base: str, path: str) -> str:
    """Join an already escaped ``path`` onto ``base`` with exactly one slash."""
    return base.rstrip("/") + "/" + path.lstrip("/")


def build_request(
    config: ClientConfig,
    verb: str,
    path: str,
    options: Optional[RequestOptions] = None,
    *,
    files: Optional[Dict[str, Any]] = None,
) -> httpx.Request:
    """Build the outgoing request for ``verb`` and ``path``. No I/O happens here.

    ``path`` is used as given: percent-escapes supplied by the caller are kept
    intact and never escaped a second time. Query parameters from ``options``
    are added to any query string already present in ``path``.
    """
    options = options or RequestOptions()
    method = verb.upper()
    if method not in VERBS:
        raise ValueError(f"unsupported HTTP verb {verb!r}")

    headers: Dict[str, str] = {}
    headers.update(config.headers)
    if config.api_key:
        headers[API_KEY_HEADER] = config.api_key
    headers["User-Agent"] = config.user_agent
    headers.update(options.headers)

    content = options.body
    if isinstance(content, str):
        content = content.encode("utf-8")
    if options.body_length > 0 and not isinstance(content, (bytes, bytearray)) and content is not None:
        headers["Content-Length"] = str(options.body_length)

    url = join_url(config.base_url, path)
    try:
        return httpx.Request(
            method,
            url,
            params=options.params or None,
            headers=headers,
            content=content,
            files=files,
        )
    except httpx.InvalidURL as exc:
        raise ConfigurationError(f"cannot build request URL {url!r}: {exc}") from exc


__all__ = ["RequestBody", "RequestOptions", "VERBS", "build_request", "join_url"]
