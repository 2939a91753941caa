"""Periodic rebuilding of the search index."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

log = logging.getLogger(__name__)


class _IndexUpdater(Protocol):
    def rebuild_index(self) -> None: ...


class IndexInitiator:
    """Builds the index once at start, then again every ``ttl`` seconds."""

    def __init__(self, service: _IndexUpdater, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError("index ttl must be positive")
        self._service = service
        self._ttl = ttl

    def start(self, stop: threading.Event) -> threading.Thread:
        """Run the rebuild loop in a background thread until ``stop`` is set."""
        thread = threading.Thread(
            target=self.run, args=(stop,), name="index-initiator", daemon=True
        )
        thread.start()
        return thread

    def run(self, stop: threading.Event) -> None:
        """Rebuild now and on every period until ``stop`` is set; errors are logged."""
        self._rebuild("initial index build failed")
        while not stop.wait(self._ttl):
            self._rebuild("periodic index rebuild failed")
        log.info("index initiator stopped")

    def _rebuild(self, failure_message: str) -> None:
        try:
            self._service.rebuild_index()
        except Exception:
            log.exception(failure_message)