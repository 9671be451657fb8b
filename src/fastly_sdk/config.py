"""Configuration objects for the Fastly Python SDK."""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from .errors import ConfigurationError

VERSION = "0.1.0"

API_KEY_ENV_VAR = "FASTLY_API_KEY"
API_KEY_HEADER = "Fastly-Key"
ENDPOINT_ENV_VAR = "FASTLY_API_URL"
REALTIME_STATS_ENDPOINT_ENV_VAR = "FASTLY_RTS_URL"
DEBUG_ENV_VAR = "FASTLY_DEBUG_MODE"
USER_AGENT_ENV_VAR = "FASTLY_USER_AGENT"

DEFAULT_ENDPOINT = "https://api.fastly.com"
DEFAULT_REALTIME_STATS_ENDPOINT = "https://rt.fastly.com"

USER_AGENT = f"fastly-sdk-python/{VERSION} (python {platform.python_version()})"


def parse_base_url(address: str) -> httpx.URL:
    try:
        url = httpx.URL(address)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(f"invalid API address {address!r}: {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(f"API address must be an absolute http(s) URL, got {address!r}")
    return url


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_ENDPOINT
    api_key: str = ""
    timeout: Optional[float] = 30.0
    user_agent: str = USER_AGENT
    headers: Dict[str, str] = field(default_factory=dict)
    debug: bool = False

    def __post_init__(self) -> None:
        parse_base_url(self.base_url)

    @classmethod
    def from_env(
        cls,
        *,
        endpoint_env_var: str = ENDPOINT_ENV_VAR,
        default_endpoint: str = DEFAULT_ENDPOINT,
    ) -> "ClientConfig":
        """Build a config from the FASTLY_* environment variables.

        A missing API key is not an error: some endpoints accept anonymous
        requests and the rest answer 403.
        """
        endpoint = os.environ.get(endpoint_env_var, default_endpoint)
        user_agent = USER_AGENT
        custom_agent = os.environ.get(USER_AGENT_ENV_VAR)
        if custom_agent is not None:
            user_agent = f"{custom_agent}, {USER_AGENT}"
        return cls(
            base_url=endpoint,
            api_key=os.environ.get(API_KEY_ENV_VAR, ""),
            user_agent=user_agent,
            debug=os.environ.get(DEBUG_ENV_VAR) == "true",
        )


__all__ = [
    "API_KEY_ENV_VAR",
    "API_KEY_HEADER",
    "ClientConfig",
    "DEBUG_ENV_VAR",
    "DEFAULT_ENDPOINT",
    "DEFAULT_REALTIME_STATS_ENDPOINT",
    "ENDPOINT_ENV_VAR",
    "REALTIME_STATS_ENDPOINT_ENV_VAR",
    "USER_AGENT",
    "USER_AGENT_ENV_VAR",
    "VERSION",
    "parse_base_url",
]
