"""Gateways the API uses to reach the search and words services.

They hand calls to the services and translate service failures into the
domain errors the API understands.
"""

from __future__ import annotations

from typing import Protocol

from .models import BadArgumentsError, Comic, SearchComic, SearchResult, UnavailableError
from .words import WordsService

_UNREACHABLE = (UnavailableError, TimeoutError, ConnectionError)


class _Search(Protocol):
    def find(self, phrase: str, limit: int) -> list[Comic]: ...

    def indexed_search(self, phrase: str, limit: int) -> tuple[list[Comic], int]: ...

    def ping(self) -> None: ...


class _Words(Protocol):
    def norm(self, phrase: str) -> list[str]: ...

    def ping(self) -> None: ...


def _result(comics: list[Comic], total: int) -> SearchResult:
    return SearchResult(
        comics=[SearchComic(id=comic.id, url=comic.url) for comic in comics], total=total
    )


class SearchGateway:
    """Reaches the search service and reports results as SearchResult."""

    def __init__(self, service: _Search) -> None:
        self._service = service

    def ping(self) -> None:
        """Raise UnavailableError if the search service cannot answer."""
        try:
            self._service.ping()
        except Exception as exc:
            raise UnavailableError(str(exc)) from exc

    def find(self, phrase: str, limit: int = 0) -> SearchResult:
        """Search the store; total is the number of comics returned."""
        try:
            comics = self._service.find(phrase, limit)
        except BadArgumentsError as exc:
            raise BadArgumentsError(str(exc)) from exc
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc
        return _result(comics, len(comics))

    def indexed_search(self, phrase: str, limit: int = 0) -> SearchResult:
        """Search the index; total is the number of all matching comics."""
        try:
            comics, total = self._service.indexed_search(phrase, limit)
        except BadArgumentsError as exc:
            raise BadArgumentsError(str(exc)) from exc
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc
        return _result(comics, total)


class WordsGateway:
    """Reaches the words service for phrase normalization."""

    def __init__(self, service: _Words | None = None) -> None:
        self._service = service if service is not None else WordsService()

    def ping(self) -> None:
        """Raise UnavailableError if the words service cannot be reached."""
        try:
            self._service.ping()
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc

    def norm(self, phrase: str) -> list[str]:
        """Normalize ``phrase``; too large phrases raise BadArgumentsError."""
        try:
            return list(self._service.norm(phrase))
        except BadArgumentsError as exc:
            raise BadArgumentsError(str(exc)) from exc
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc