"""Fastly Python SDK core."""

from .client import Client, RealtimeStatsClient
from .config import VERSION, ClientConfig
from .encoding import Format, decode, encode
from .errors import (
    ConfigurationError,
    DecodeError,
    FastlyError,
    FieldError,
    HTTPError,
    TransportError,
)
from .models import RELATION, Compatibool, Entity, ErrorObject, HeaderMap, StatusResponse
from .paginator import ListOptions, Paginator
from .request import RequestOptions

__version__ = VERSION

__all__ = [
    "Client",
    "ClientConfig",
    "Compatibool",
    "ConfigurationError",
    "DecodeError",
    "Entity",
    "ErrorObject",
    "FastlyError",
    "FieldError",
    "Format",
    "HTTPError",
    "HeaderMap",
    "ListOptions",
    "Paginator",
    "RELATION",
    "RealtimeStatsClient",
    "RequestOptions",
    "StatusResponse",
    "TransportError",
    "decode",
    "encode",
]
