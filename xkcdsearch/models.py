"""Domain errors and data records shared by the search, update and API services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ServiceError(Exception):
    """Base class for every domain error raised by the services."""

    default_message = "service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class BadArgumentsError(ServiceError):
    """The caller passed arguments the service cannot accept."""

    default_message = "arguments are not acceptable"


class EmptyPhraseError(BadArgumentsError):
    """A search phrase was empty after trimming whitespace."""

    default_message = "empty phrase"


class LimitTooLargeError(BadArgumentsError):
    """A search limit exceeded the allowed maximum."""

    default_message = "too large limit"


class NonePhraseError(ServiceError):
    """A phrase normalized to no searchable tokens."""

    default_message = "this is too philosophical, try something less abstract))"


class AlreadyExistsError(ServiceError):
    """A resource or task already exists (for example, a running update)."""

    default_message = "resource or task already exists"


class NotFoundError(ServiceError):
    """The requested resource does not exist."""

    default_message = "resource is not found"


class UnavailableError(ServiceError):
    """A dependency of the service could not be reached."""

    default_message = "dependency unavailable"


@dataclass
class Comic:
    """A stored comic with its normalized title, alt text and transcript words."""

    id: int
    url: str = ""
    title: list[str] = field(default_factory=list)
    alt: list[str] = field(default_factory=list)
    words: list[str] = field(default_factory=list)


@dataclass
class XKCDInfo:
    """Raw comic metadata as fetched from the comic site."""

    id: int
    url: str = ""
    title: str = ""
    alt: str = ""
    description: str = ""


@dataclass
class DBStats:
    """Aggregated counters over the comics table."""

    words_total: int = 0
    words_unique: int = 0
    comics_fetched: int = 0


@dataclass
class ServiceStats(DBStats):
    """Database counters together with the number of comics published."""

    comics_total: int = 0


class ServiceStatus(str, Enum):
    """State of the update service."""

    RUNNING = "running"
    IDLE = "idle"


class UpdateStatus(str, Enum):
    """Update state as seen by the API gateway."""

    UNKNOWN = "unknown"
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class UpdateStats:
    """Update statistics as reported to API clients."""

    words_total: int = 0
    words_unique: int = 0
    comics_fetched: int = 0
    comics_total: int = 0


@dataclass
class SearchComic:
    """One search hit: a comic identifier and its image URL."""

    id: int
    url: str = ""


@dataclass
class SearchResult:
    """Search hits and the total number of matching comics."""

    comics: list[SearchComic] = field(default_factory=list)
    total: int = 0