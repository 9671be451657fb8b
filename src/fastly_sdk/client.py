"""Python client core for the Fastly API."""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from datetime import datetime
from typing import IO, Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from .config import (
    API_KEY_HEADER,
    DEFAULT_REALTIME_STATS_ENDPOINT,
    REALTIME_STATS_ENDPOINT_ENV_VAR,
    ClientConfig,
)
from .encoding import (
    FORM_MIME_TYPE,
    JSON_MIME_TYPE,
    JSONAPI_BULK_MIME_TYPE,
    JSONAPI_MIME_TYPE,
    Format,
    decode,
    encode_form,
    encode_json,
    encode_jsonapi,
)
from .errors import HTTPError, TransportError
from .paginator import ListOptions, Paginator
from .ratelimit import RateLimitObserver
from .request import RequestOptions, build_request
from .response import check_response

T = TypeVar("T")

logger = logging.getLogger("fastly_sdk.client")


class Client:
    def __init__(self, config: ClientConfig, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._config = config
        self._client = httpx.Client(timeout=config.timeout, transport=transport)
        self._rate_limit = RateLimitObserver()

    @classmethod
    def from_env(cls, *, transport: Optional[httpx.BaseTransport] = None) -> "Client":
        return cls(ClientConfig.from_env(), transport=transport)

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    def rate_limit_remaining(self) -> int:
        """Requests left before the API starts answering 429."""
        return self._rate_limit.remaining()

    def rate_limit_reset(self) -> datetime:
        return self._rate_limit.reset_time()

    # -- dispatch ---------------------------------------------------------

    def build_request(self, verb: str, path: str, options: Optional[RequestOptions] = None) -> httpx.Request:
        return build_request(self._config, verb, path, options)

    def request(self, verb: str, path: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        """Send ``verb`` to ``path`` and classify the response.

        Raises HTTPError for any status outside the success set and
        TransportError when no response was received.
        """
        options = options or RequestOptions()
        return self._send(self.build_request(verb, path, options), parallel=options.parallel)

    def _send(self, request: httpx.Request, *, parallel: bool = False) -> httpx.Response:
        # Requests built outside httpx.Client carry no timeout of their own.
        request.extensions.setdefault("timeout", httpx.Timeout(self._config.timeout).as_dict())
        if self._config.debug:
            self._dump_request(request, parallel)
        try:
            response = self._client.send(request)
        except httpx.RequestError as exc:
            if self._config.debug:
                logger.debug("http.Response (error): %s", exc)
            raise TransportError(str(exc), method=request.method, url=str(request.url)) from exc

        self._rate_limit.observe(response.headers)
        try:
            check_response(response)
        except HTTPError as exc:
            if self._config.debug:
                logger.debug("http.Response (HTTPError): %s", exc)
            raise
        if self._config.debug:
            self._dump_response(response)
        return response

    def _dump_request(self, request: httpx.Request, parallel: bool) -> None:
        headers = {k: v for k, v in request.headers.items() if k.lower() != API_KEY_HEADER.lower()}
        try:
            body = request.content
        except httpx.RequestNotRead:
            body = b"<streamed>"
        logger.debug(
            "http.Request (dump): %s %s parallel=%s headers=%r body=%r",
            request.method,
            request.url,
            parallel,
            headers,
            body,
        )

    def _dump_response(self, response: httpx.Response) -> None:
        logger.debug(
            "http.Response (length, dump): %d - %s headers=%r body=%r",
            len(response.content),
            response.status_code,
            dict(response.headers),
            response.content,
        )

    def simple_get(self, target: str) -> httpx.Response:
        """GET an absolute URL handed out by the API, without rewriting it."""
        headers = {"User-Agent": self._config.user_agent}
        if self._config.api_key:
            headers[API_KEY_HEADER] = self._config.api_key
        return self._send(httpx.Request("GET", target, headers=headers), parallel=True)

    # -- encoded requests -------------------------------------------------

    def request_form(self, verb: str, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        options = (options or RequestOptions()).with_headers(**{"Content-Type": FORM_MIME_TYPE})
        body = encode_form(value, health_check_headers=options.health_check_headers)
        return self.request(verb, path, options.with_body(body, len(body)))

    def request_json(self, verb: str, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        options = (options or RequestOptions()).with_headers(**{"Content-Type": JSON_MIME_TYPE, "Accept": JSON_MIME_TYPE})
        if value is not None:
            body = encode_json(value)
            options = options.with_body(body, len(body))
        return self.request(verb, path, options)

    def request_jsonapi(self, verb: str, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self._request_jsonapi(verb, path, value, options, JSONAPI_MIME_TYPE)

    def request_jsonapi_bulk(self, verb: str, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self._request_jsonapi(verb, path, value, options, JSONAPI_BULK_MIME_TYPE)

    def _request_jsonapi(
        self,
        verb: str,
        path: str,
        value: Any,
        options: Optional[RequestOptions],
        media_type: str,
    ) -> httpx.Response:
        options = (options or RequestOptions()).with_headers(**{"Content-Type": media_type, "Accept": media_type})
        if value is not None:
            body = encode_jsonapi(value)
            options = options.with_body(body, len(body))
        return self.request(verb, path, options)

    def request_form_file(
        self,
        verb: str,
        path: str,
        file_path: str,
        field_name: str,
        options: Optional[RequestOptions] = None,
    ) -> httpx.Response:
        with open(file_path, "rb") as fh:
            return self.request_form_file_from_reader(verb, path, os.path.basename(file_path), fh, field_name, options)

    def request_form_file_from_reader(
        self,
        verb: str,
        path: str,
        file_name: str,
        reader: IO[bytes],
        field_name: str,
        options: Optional[RequestOptions] = None,
    ) -> httpx.Response:
        """Upload ``reader`` as a multipart/form-data file part named ``field_name``."""
        options = (options or RequestOptions()).with_headers(Accept=JSON_MIME_TYPE)
        request = build_request(
            self._config,
            verb,
            path,
            replace(options, body=None, body_length=0),
            files={field_name: (file_name, reader.read())},
        )
        return self._send(request, parallel=options.parallel)

    # -- verb helpers -----------------------------------------------------

    def get(self, path: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        options = replace(options or RequestOptions(), parallel=True)
        return self.request("GET", path, options)

    def get_json(self, path: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        options = replace(options or RequestOptions(), parallel=True).with_headers(Accept=JSON_MIME_TYPE)
        return self.request("GET", path, options)

    def head(self, path: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        options = replace(options or RequestOptions(), parallel=True)
        return self.request("HEAD", path, options)

    def post(self, path: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request("POST", path, options)

    def post_form(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_form("POST", path, value, options)

    def post_json(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_json("POST", path, value, options)

    def post_jsonapi(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_jsonapi("POST", path, value, options)

    def post_jsonapi_bulk(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_jsonapi_bulk("POST", path, value, options)

    def put(self, path: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request("PUT", path, options)

    def put_form(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_form("PUT", path, value, options)

    def put_form_file(
        self,
        path: str,
        file_path: str,
        field_name: str,
        options: Optional[RequestOptions] = None,
    ) -> httpx.Response:
        return self.request_form_file("PUT", path, file_path, field_name, options)

    def put_form_file_from_reader(
        self,
        path: str,
        file_name: str,
        reader: IO[bytes],
        field_name: str,
        options: Optional[RequestOptions] = None,
    ) -> httpx.Response:
        return self.request_form_file_from_reader("PUT", path, file_name, reader, field_name, options)

    def put_json(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_json("PUT", path, value, options)

    def put_jsonapi(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_jsonapi("PUT", path, value, options)

    def patch(self, path: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request("PATCH", path, options)

    def patch_form(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_form("PATCH", path, value, options)

    def patch_json(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_json("PATCH", path, value, options)

    def patch_jsonapi(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_jsonapi("PATCH", path, value, options)

    def delete(self, path: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request("DELETE", path, options)

    def delete_jsonapi(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_jsonapi("DELETE", path, value, options)

    def delete_jsonapi_bulk(self, path: str, value: Any, options: Optional[RequestOptions] = None) -> httpx.Response:
        return self.request_jsonapi_bulk("DELETE", path, value, options)

    # -- decoding and pagination ------------------------------------------

    def decode(
        self,
        response: httpx.Response,
        target: Any,
        *,
        fmt: Format = Format.JSON,
        key: Optional[str] = None,
        into: Optional[BaseModel] = None,
    ) -> Any:
        return decode(fmt, response.content, target, key=key, into=into)

    def paginate(
        self,
        path: str,
        model: Type[T],
        options: Optional[ListOptions] = None,
        *,
        fmt: Format = Format.JSON,
        key: Optional[str] = None,
    ) -> Paginator[T]:
        return Paginator(self, path, model, options, fmt=fmt, key=key)

    def close(self) -> None:
        self._client.close()


class RealtimeStatsClient(Client):
    """Client bound to the real-time stats endpoint."""

    @classmethod
    def from_env(cls, *, transport: Optional[httpx.BaseTransport] = None) -> "RealtimeStatsClient":
        config = ClientConfig.from_env(
            endpoint_env_var=REALTIME_STATS_ENDPOINT_ENV_VAR,
            default_endpoint=DEFAULT_REALTIME_STATS_ENDPOINT,
        )
        return cls(config, transport=transport)


__all__ = ["Client", "RealtimeStatsClient"]
