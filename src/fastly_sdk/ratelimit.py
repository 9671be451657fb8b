"""Tracks the rate-limit headers reported by the Fastly API."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Mapping, Optional

REMAINING_HEADER = "Fastly-RateLimit-Remaining"
RESET_HEADER = "Fastly-RateLimit-Reset"


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class RateLimitObserver:
    """Last observed remaining-request count and reset time for one client.

    Responses without the headers leave the previous snapshot in place, since
    not every endpoint reports them.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._remaining = 0
        self._reset = 0

    def observe(self, headers: Mapping[str, str]) -> None:
        remaining = _parse_int(headers.get(REMAINING_HEADER))
        reset = _parse_int(headers.get(RESET_HEADER))
        if remaining is None and reset is None:
            return
        with self._lock:
            if remaining is not None:
                self._remaining = remaining
            if reset is not None:
                self._reset = reset

    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    def reset_time(self) -> datetime:
        with self._lock:
            reset = self._reset
        return datetime.fromtimestamp(reset, tz=timezone.utc)


__all__ = ["REMAINING_HEADER", "RESET_HEADER", "RateLimitObserver"]
