"""Fetching missing comics, normalizing their text and storing them."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import CancelledError
from typing import Protocol

from .models import (
    AlreadyExistsError,
    Comic,
    DBStats,
    NotFoundError,
    ServiceStats,
    ServiceStatus,
    XKCDInfo,
)

MAX_WORKERS = 64

_POLL_SECONDS = 0.05


class _ComicStore(Protocol):
    def add(self, comic: Comic) -> None: ...

    def stats(self) -> DBStats: ...

    def drop(self) -> None: ...

    def ids(self) -> list[int]: ...


class _ComicSource(Protocol):
    def get(self, comic_id: int) -> XKCDInfo: ...

    def last_id(self) -> int: ...


class _Normalizer(Protocol):
    def norm(self, phrase: str) -> list[str]: ...


class UpdateService:
    """Keeps the comics store in step with the comic site.

    Only one update or drop runs at a time; a second one raises
    AlreadyExistsError while the first is in progress.
    """

    def __init__(
        self,
        db: _ComicStore,
        xkcd: _ComicSource,
        words: _Normalizer,
        concurrency: int = 1,
        log: logging.Logger | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"wrong concurrency specified: {concurrency}")
        self._db = db
        self._xkcd = xkcd
        self._words = words
        self._concurrency = concurrency
        self._log = log or logging.getLogger(__name__)
        self._running = threading.Lock()

    def update(self, cancel: threading.Event | None = None) -> None:
        """Fetch and store every comic the store does not hold yet.

        Raises AlreadyExistsError if an update or drop is running, and
        concurrent.futures.CancelledError if ``cancel`` is set before all
        comics were handed out.
        """
        if cancel is None:
            cancel = threading.Event()
        if not self._running.acquire(blocking=False):
            raise AlreadyExistsError()
        try:
            self._run(cancel)
        finally:
            self._running.release()

    def _run(self, cancel: threading.Event) -> None:
        latest = self._xkcd.last_id()
        existing = set(self._db.ids())

        workers = min(self._concurrency, MAX_WORKERS)
        jobs: queue.Queue[int] = queue.Queue(maxsize=workers * 2)
        closed = threading.Event()
        threads = [
            threading.Thread(
                target=self._work, args=(jobs, closed, cancel), name="update-worker", daemon=True
            )
            for _ in range(workers)
        ]
        for thread in threads:
            thread.start()

        try:
            for comic_id in range(1, latest + 1):
                if comic_id in existing:
                    continue
                if not self._submit(jobs, comic_id, cancel):
                    raise CancelledError("update cancelled")
        finally:
            closed.set()
            for thread in threads:
                thread.join()

    @staticmethod
    def _submit(jobs: queue.Queue[int], comic_id: int, cancel: threading.Event) -> bool:
        while not cancel.is_set():
            try:
                jobs.put(comic_id, timeout=_POLL_SECONDS)
            except queue.Full:
                continue
            return True
        return False

    def _work(
        self, jobs: queue.Queue[int], closed: threading.Event, cancel: threading.Event
    ) -> None:
        while not cancel.is_set():
            try:
                comic_id = jobs.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                if closed.is_set() and jobs.empty():
                    return
                continue
            self._fetch(comic_id)

    def _fetch(self, comic_id: int) -> None:
        try:
            info = self._xkcd.get(comic_id)
        except NotFoundError:
            # Not every number exists; remember it so it is not fetched again.
            try:
                self._db.add(Comic(id=comic_id))
            except Exception:
                pass
            return
        except Exception as exc:
            self._log.warning("xkcd get failed: id=%d err=%s", comic_id, exc)
            return

        title = self._norm(info.title, comic_id, "title")
        alt = self._norm(info.alt, comic_id, "alt")
        words = self._norm(info.description, comic_id, "description")

        try:
            self._db.add(Comic(id=info.id, url=info.url, title=title, alt=alt, words=words))
        except Exception as exc:
            self._log.warning("db add failed: id=%d err=%s", comic_id, exc)

    def _norm(self, text: str, comic_id: int, field_name: str) -> list[str]:
        try:
            return list(self._words.norm(text))
        except Exception as exc:
            self._log.warning(
                "normalize %s failed, storing empty: id=%d err=%s", field_name, comic_id, exc
            )
            return []

    def stats(self) -> ServiceStats:
        """Return the store's counters and the number of published comics."""
        db_stats = self._db.stats()
        total = self._xkcd.last_id()
        return ServiceStats(
            words_total=db_stats.words_total,
            words_unique=db_stats.words_unique,
            comics_fetched=db_stats.comics_fetched,
            comics_total=total,
        )

    def status(self) -> ServiceStatus:
        """Return RUNNING while an update or drop is in progress, else IDLE."""
        return ServiceStatus.RUNNING if self._running.locked() else ServiceStatus.IDLE

    def drop(self) -> None:
        """Delete every stored comic; raises AlreadyExistsError during an update."""
        if not self._running.acquire(blocking=False):
            raise AlreadyExistsError()
        try:
            self._db.drop()
        finally:
            self._running.release()