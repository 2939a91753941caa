"""In-process message broker with a database-updated publisher and subscriber."""

from __future__ import annotations

import logging
import queue
import threading
from collections import defaultdict
from typing import Protocol

log = logging.getLogger(__name__)

DB_UPDATED_MESSAGE = b"XKCD DB has been updated"
DEFAULT_QUEUE_SIZE = 10

_POLL_SECONDS = 0.05


class _IndexUpdater(Protocol):
    def rebuild_index(self) -> None: ...


class Broker:
    """Delivers published messages to the queues subscribed to a subject."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, list[queue.Queue]] = defaultdict(list)

    def publish(self, subject: str, data: bytes) -> int:
        """Deliver ``data`` to every subscriber of ``subject``.

        A subscriber whose queue is full misses the message. Returns the number
        of subscribers that received it.
        """
        with self._lock:
            targets = list(self._subscriptions.get(subject, ()))
        delivered = 0
        for target in targets:
            try:
                target.put_nowait(data)
            except queue.Full:
                log.warning("slow consumer, message dropped: subject=%s", subject)
                continue
            delivered += 1
        return delivered

    def subscribe(self, subject: str, maxsize: int = DEFAULT_QUEUE_SIZE) -> queue.Queue:
        """Return a new queue that receives messages published to ``subject``."""
        target: queue.Queue = queue.Queue(maxsize=maxsize)
        with self._lock:
            self._subscriptions[subject].append(target)
        return target

    def unsubscribe(self, subject: str, queue: queue.Queue) -> None:
        """Stop delivering ``subject`` to ``queue``; raise ValueError if not subscribed."""
        with self._lock:
            targets = self._subscriptions.get(subject, [])
            if not any(target is queue for target in targets):
                raise ValueError(f"queue is not subscribed to {subject!r}")
            self._subscriptions[subject] = [t for t in targets if t is not queue]


class Publisher:
    """Announces that the comics database has changed."""

    def __init__(self, broker: Broker, subject: str) -> None:
        self._broker = broker
        self._subject = subject
        self._closed = False
        log.info("connected to broker: subject=%s", subject)

    def notify_db_updated(self) -> None:
        """Publish the database-updated event; failures are logged, not raised."""
        if self._closed:
            log.error("failed to publish updated data: publisher is closed")
            return
        self._broker.publish(self._subject, DB_UPDATED_MESSAGE)
        log.info("db updated event published")

    def close(self) -> None:
        """Stop publishing."""
        self._closed = True


class Subscriber:
    """Rebuilds the search index whenever a database-updated event arrives."""

    def __init__(self, broker: Broker, subject: str, service: _IndexUpdater) -> None:
        self._broker = broker
        self._subject = subject
        self._service = service
        self._closed = threading.Event()
        log.info("connected to broker: subject=%s", subject)

    def start(self, stop: threading.Event) -> threading.Thread:
        """Subscribe and handle events in a background thread until ``stop`` is set."""
        if self._closed.is_set():
            raise RuntimeError("subscriber is closed")
        inbox = self._broker.subscribe(self._subject, DEFAULT_QUEUE_SIZE)
        thread = threading.Thread(
            target=self._loop, args=(inbox, stop), name="index-subscriber", daemon=True
        )
        thread.start()
        return thread

    def _loop(self, inbox: queue.Queue, stop: threading.Event) -> None:
        try:
            while not (stop.is_set() or self._closed.is_set()):
                try:
                    data = inbox.get(timeout=_POLL_SECONDS)
                except queue.Empty:
                    continue
                log.info(
                    "got db updated event, rebuilding index: subject=%s data=%r",
                    self._subject,
                    data,
                )
                try:
                    self._service.rebuild_index()
                except Exception:
                    log.exception("rebuild index failed")
        finally:
            try:
                self._broker.unsubscribe(self._subject, inbox)
            except ValueError as exc:
                log.error("failed to unsubscribe: subject=%s error=%s", self._subject, exc)
            log.info("subscriber stopped: subject=%s", self._subject)

    def close(self) -> None:
        """Stop handling events; running loops exit shortly after."""
        self._closed.set()