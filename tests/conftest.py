from __future__ import annotations

from typing import Callable, List

import httpx
import pytest

from fastly_sdk import Client, ClientConfig

Handler = Callable[[httpx.Request], httpx.Response]

API_KEY = "test-key"
BASE_URL = "https://api.example.com"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "FASTLY_API_KEY",
        "FASTLY_API_URL",
        "FASTLY_RTS_URL",
        "FASTLY_DEBUG_MODE",
        "FASTLY_USER_AGENT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def config() -> ClientConfig:
    return ClientConfig(base_url=BASE_URL, api_key=API_KEY)


@pytest.fixture()
def sent() -> List[httpx.Request]:
    return []


@pytest.fixture()
def make_client(config: ClientConfig, sent: List[httpx.Request]) -> Callable[..., Client]:
    """Build a Client whose transport records every request before handing it to ``handler``."""

    def factory(handler: Handler, cfg: ClientConfig = config) -> Client:
        def recording(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return handler(request)

        return Client(cfg, transport=httpx.MockTransport(recording))

    return factory
