"""Ranked comic search over the database or the in-memory index."""

from __future__ import annotations

from typing import Protocol

from .index import InvertedIndex
from .models import Comic, EmptyPhraseError, LimitTooLargeError, NonePhraseError

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

COVERAGE_WEIGHT = 100
WEIGHT_TITLE = 5
WEIGHT_ALT = 3
WEIGHT_WORDS = 1


class _ComicStore(Protocol):
    def find(self, tokens: list[str]) -> list[Comic]: ...

    def all(self) -> list[Comic]: ...

    def ping(self) -> None: ...


class _Normalizer(Protocol):
    def norm(self, phrase: str) -> list[str]: ...


def score_comic(comic: Comic, tokens: list[str]) -> int:
    """Score how well ``comic`` matches ``tokens``; 0 means no match."""
    fields = (
        ({t for t in comic.title if t}, WEIGHT_TITLE),
        ({t for t in comic.alt if t}, WEIGHT_ALT),
        ({t for t in comic.words if t}, WEIGHT_WORDS),
    )
    covered: set[str] = set()
    weighted = 0
    for token in tokens:
        for field_set, weight in fields:
            if token in field_set:
                weighted += weight
                covered.add(token)
    if not covered:
        return 0
    return len(covered) * COVERAGE_WEIGHT + weighted


def rank_comics(comics: list[Comic], tokens: list[str], limit: int) -> tuple[list[Comic], int]:
    """Return the best ``limit`` matching comics and the count of all matches.

    Comics are ordered by descending score, then ascending id.
    """
    scored = [(score, comic) for comic in comics if (score := score_comic(comic, tokens)) > 0]
    scored.sort(key=lambda item: (-item[0], item[1].id))
    return [comic for _, comic in scored[:limit]], len(scored)


class SearchService:
    """Searches comics by phrase, directly in the store or through the index."""

    def __init__(self, db: _ComicStore, words: _Normalizer) -> None:
        self._db = db
        self._words = words
        self._index = InvertedIndex()

    def rebuild_index(self) -> None:
        """Rebuild the in-memory index from every comic in the store."""
        self._index.build(self._db.all())

    def ping(self) -> None:
        """Check that the store is reachable."""
        self._db.ping()

    def _tokens(self, phrase: str, limit: int) -> tuple[list[str], int]:
        phrase = phrase.strip()
        if not phrase:
            raise EmptyPhraseError()
        if limit == 0:
            limit = DEFAULT_LIMIT
        if limit > MAX_LIMIT:
            raise LimitTooLargeError()
        tokens = self._words.norm(phrase)
        if not tokens:
            raise NonePhraseError()
        return tokens, limit

    def find(self, phrase: str, limit: int = 0) -> list[Comic]:
        """Return the best comics for ``phrase`` using the store's candidates."""
        tokens, limit = self._tokens(phrase, limit)
        ranked, _ = rank_comics(self._db.find(tokens), tokens, limit)
        return ranked

    def indexed_search(self, phrase: str, limit: int = 0) -> tuple[list[Comic], int]:
        """Return the best comics for ``phrase`` and the total match count, using the index."""
        tokens, limit = self._tokens(phrase, limit)
        ids = self._index.docs_for_tokens(tokens)
        if not ids:
            return [], 0
        return rank_comics(self._index.docs_by_ids(ids), tokens, limit)