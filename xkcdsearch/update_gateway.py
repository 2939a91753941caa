"""Gateway the API uses to reach the update service.

Calls go to the service. Failures to reach it become UnavailableError. A
successful update or drop is announced to the notifier, so that the search
index is rebuilt.
"""

from __future__ import annotations

from typing import Protocol

from .models import ServiceStats, ServiceStatus, UnavailableError, UpdateStats, UpdateStatus

_UNREACHABLE = (UnavailableError, TimeoutError, ConnectionError)

_STATUSES = {
    ServiceStatus.RUNNING: UpdateStatus.RUNNING,
    ServiceStatus.IDLE: UpdateStatus.IDLE,
}


class _Updater(Protocol):
    def update(self) -> None: ...

    def stats(self) -> ServiceStats: ...

    def status(self) -> ServiceStatus: ...

    def drop(self) -> None: ...


class _Notifier(Protocol):
    def notify_db_updated(self) -> None: ...


class UpdateGateway:
    """Reaches the update service and reports database changes to ``notifier``."""

    def __init__(self, service: _Updater, notifier: _Notifier | None = None) -> None:
        self._service = service
        self._notifier = notifier

    def ping(self) -> None:
        """Raise UnavailableError if the update service cannot answer."""
        try:
            self._service.status()
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc

    def status(self) -> UpdateStatus:
        """Return the update state; states the API does not know map to UNKNOWN."""
        try:
            state = self._service.status()
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc
        return _STATUSES.get(state, UpdateStatus.UNKNOWN)

    def stats(self) -> UpdateStats:
        """Return word and comic counters of the update service."""
        try:
            stats = self._service.stats()
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc
        return UpdateStats(
            words_total=stats.words_total,
            words_unique=stats.words_unique,
            comics_fetched=stats.comics_fetched,
            comics_total=stats.comics_total,
        )

    def update(self) -> None:
        """Run an update and announce it; AlreadyExistsError if one is running."""
        try:
            self._service.update()
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc
        self._notify()

    def drop(self) -> None:
        """Delete every stored comic and announce it."""
        try:
            self._service.drop()
        except _UNREACHABLE as exc:
            raise UnavailableError(str(exc)) from exc
        self._notify()

    def _notify(self) -> None:
        if self._notifier is not None:
            self._notifier.notify_db_updated()