"""Page-number pagination driven by ``Link`` response headers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Generic, Iterator, List, Optional, Type, TypeVar

import httpx

from .encoding import Format
from .request import RequestOptions

if TYPE_CHECKING:
    from .client import Client

T = TypeVar("T")

MAX_PER_PAGE = 100

logger = logging.getLogger("fastly_sdk.paginator")


@dataclass
class ListOptions:
    page: int = 0
    per_page: int = 0
    sort: str = ""
    direction: str = ""
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def page_size(self) -> int:
        if self.per_page <= 0:
            return MAX_PER_PAGE
        return min(self.per_page, MAX_PER_PAGE)


def link_pages(response: httpx.Response) -> Dict[str, int]:
    """Map each ``Link`` relation to the integer ``page`` query value it points at."""
    pages: Dict[str, int] = {}
    for rel, link in response.links.items():
        target = link.get("url")
        if not target:
            continue
        try:
            page = httpx.URL(target).params.get("page")
        except httpx.InvalidURL:
            continue
        if page is None:
            continue
        try:
            pages[rel] = int(page)
        except ValueError:
            continue
    return pages


class Paginator(Generic[T]):
    """Pull-based pager over a list endpoint.

    ``get_next`` fetches one page per call; ``has_next`` reports whether the
    server advertised more. Page state only advances after a page has been
    fetched and decoded, so calling ``get_next`` again after an error asks for
    the same page. A paginator belongs to a single consumer.
    """

    def __init__(
        self,
        client: "Client",
        path: str,
        model: Type[T],
        options: Optional[ListOptions] = None,
        *,
        fmt: Format = Format.JSON,
        key: Optional[str] = None,
    ) -> None:
        self._client = client
        self._path = path
        self._model = model
        self._options = options or ListOptions()
        self._fmt = fmt
        self._key = key
        self.current_page = 0
        self.last_page = 0
        self.next_page = 0
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def has_next(self) -> bool:
        return not self._consumed or self.remaining() != 0

    def remaining(self) -> int:
        if self.last_page == 0:
            # No "last" relation: only an explicit "next" keeps the pager going.
            return 1 if self.next_page > self.current_page else 0
        return max(self.last_page - self.current_page, 0)

    def _target_page(self) -> int:
        if not self._consumed:
            return self._options.page if self._options.page > 0 else 1
        return self.current_page + 1

    def _params(self, page: int) -> Dict[str, str]:
        params = dict(self._options.params)
        params["page"] = str(page)
        params["per_page"] = str(self._options.page_size)
        if self._options.sort:
            params["sort"] = self._options.sort
        if self._options.direction:
            params["direction"] = self._options.direction
        return params

    def get_next(self) -> List[T]:
        page = self._target_page()
        response = self._client.get(self._path, RequestOptions(params=self._params(page)))
        items = self._client.decode(response, List[self._model], fmt=self._fmt, key=self._key)  # type: ignore[valid-type]

        pages = link_pages(response)
        self.current_page = page
        if "last" in pages:
            self.last_page = pages["last"]
        self.next_page = pages.get("next", 0)
        self._consumed = True
        logger.debug(
            "fetched page %s of %s from %s (%s items)",
            page,
            self.last_page or "?",
            self._path,
            len(items),
        )
        return items

    def __iter__(self) -> Iterator[T]:
        while self.has_next():
            yield from self.get_next()


__all__ = ["ListOptions", "MAX_PER_PAGE", "Paginator", "link_pages"]
