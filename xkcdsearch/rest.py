"""WSGI handlers of the HTTP API: ping, search, and update management."""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable, Mapping
from typing import Protocol

from werkzeug.wrappers import Request, Response

from .models import (
    AlreadyExistsError,
    BadArgumentsError,
    SearchResult,
    UnavailableError,
    UpdateStats,
    UpdateStatus,
)

log = logging.getLogger(__name__)

MAX_LIMIT_VALUE = 0xFFFFFFFF

_DIGITS = re.compile(r"[0-9]+")


class _Pinger(Protocol):
    def ping(self) -> None: ...


class _Searcher(Protocol):
    def find(self, phrase: str, limit: int) -> SearchResult: ...

    def indexed_search(self, phrase: str, limit: int) -> SearchResult: ...

    def ping(self) -> None: ...


class _Updater(Protocol):
    def update(self) -> None: ...

    def stats(self) -> UpdateStats: ...

    def status(self) -> UpdateStatus: ...

    def drop(self) -> None: ...


def json_response(data: object, status: int = 200) -> Response:
    """Return ``data`` encoded as a JSON body, followed by a newline."""
    body = json.dumps(data, ensure_ascii=False) + "\n"
    return Response(body, status=status, content_type="application/json")


def parse_limit(text: str) -> int:
    """Parse a non-negative 32-bit decimal limit; an empty string means 0.

    Raises ValueError for anything else, including signs and spaces.
    """
    if not text:
        return 0
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"bad limit {text!r}")
    value = int(text)
    if value > MAX_LIMIT_VALUE:
        raise ValueError(f"limit out of range: {text!r}")
    return value


def _error(message: str, status: int) -> Response:
    return json_response({"error": message}, status)


def _failure(exc: Exception, action: str) -> Response:
    if isinstance(exc, UnavailableError):
        return _error("dependency unavailable", 503)
    log.error("%s failed: %s", action, exc)
    return _error("internal error", 500)


def _elapsed(start: float) -> str:
    return f"{time.perf_counter() - start:.6f}s"


def ping_handler(pingers: Mapping[str, _Pinger]):
    """WSGI app reporting "ok" or "unavailable" for each named dependency."""

    @Request.application
    def app(request: Request) -> Response:
        start = time.perf_counter()
        replies: dict[str, str] = {}
        for name, pinger in pingers.items():
            try:
                pinger.ping()
            except Exception as exc:
                replies[name] = "unavailable"
                log.warning("ping failed: service=%s error=%s", name, exc)
            else:
                replies[name] = "ok"
        response = json_response({"replies": replies}, 200)
        log.info("ping handled: replies=%s duration=%s", replies, _elapsed(start))
        return response

    return app


def _search_app(search: Callable[[str, int], SearchResult], action: str):
    @Request.application
    def app(request: Request) -> Response:
        start = time.perf_counter()
        phrase = request.args.get("phrase", "")
        try:
            limit = parse_limit(request.args.get("limit", ""))
        except ValueError:
            return _error("bad limit", 400)

        try:
            result = search(phrase, limit)
        except BadArgumentsError:
            return _error("bad request", 400)
        except Exception as exc:
            return _failure(exc, action)

        comics = [{"id": comic.id, "url": comic.url} for comic in result.comics]
        response = json_response({"comics": comics, "total": result.total}, 200)
        log.info(
            "%s ok: phrase=%r limit=%d total=%d duration=%s",
            action,
            phrase,
            limit,
            result.total,
            _elapsed(start),
        )
        return response

    return app


def search_handler(searcher: _Searcher):
    """WSGI app searching comics by the ``phrase`` and ``limit`` query arguments."""
    return _search_app(searcher.find, "search")


def indexed_search_handler(searcher: _Searcher):
    """WSGI app searching the index by the ``phrase`` and ``limit`` query arguments."""
    return _search_app(searcher.indexed_search, "indexed search")


def update_handler(updater: _Updater):
    """WSGI app running an update; answers 202 if one is already running."""

    @Request.application
    def app(request: Request) -> Response:
        start = time.perf_counter()
        try:
            updater.update()
        except AlreadyExistsError:
            return json_response({"status": "already running"}, 202)
        except Exception as exc:
            return _failure(exc, "update")
        response = json_response({"status": "started"}, 200)
        log.info("update started: duration=%s", _elapsed(start))
        return response

    return app


def update_stats_handler(updater: _Updater):
    """WSGI app reporting word and comic counters."""

    @Request.application
    def app(request: Request) -> Response:
        start = time.perf_counter()
        try:
            stats = updater.stats()
        except Exception as exc:
            return _failure(exc, "stats")
        payload = {
            "words_total": stats.words_total,
            "words_unique": stats.words_unique,
            "comics_fetched": stats.comics_fetched,
            "comics_total": stats.comics_total,
        }
        response = json_response(payload, 200)
        log.info("stats ok: %s duration=%s", payload, _elapsed(start))
        return response

    return app


def update_status_handler(updater: _Updater):
    """WSGI app reporting whether an update is running."""

    @Request.application
    def app(request: Request) -> Response:
        start = time.perf_counter()
        try:
            state = updater.status()
        except Exception as exc:
            return _failure(exc, "status")
        value = getattr(state, "value", state)
        response = json_response({"status": str(value)}, 200)
        log.info("status ok: status=%s duration=%s", value, _elapsed(start))
        return response

    return app


def drop_handler(updater: _Updater):
    """WSGI app deleting every stored comic; answers 200 with an empty body."""

    @Request.application
    def app(request: Request) -> Response:
        start = time.perf_counter()
        try:
            updater.drop()
        except Exception as exc:
            return _failure(exc, "drop")
        log.info("drop ok: duration=%s", _elapsed(start))
        return Response(status=200)

    return app