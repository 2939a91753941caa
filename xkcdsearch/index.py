"""In-memory inverted index from tokens to comics."""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Iterable

from .models import Comic


class InvertedIndex:
    """Maps each token to the comics containing it; safe to use across threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_token: dict[str, list[int]] = {}
        self._docs: dict[int, Comic] = {}

    def build(self, comics: Iterable[Comic]) -> None:
        """Replace the index contents with ``comics``."""
        by_token: dict[str, list[int]] = defaultdict(list)
        docs: dict[int, Comic] = {}

        for comic in comics:
            docs[comic.id] = comic
            seen: set[str] = set()
            for token in (*comic.title, *comic.alt, *comic.words):
                if not token or token in seen:
                    continue
                seen.add(token)
                by_token[token].append(comic.id)

        with self._lock:
            self._by_token = dict(by_token)
            self._docs = docs

    def docs_for_tokens(self, tokens: Iterable[str]) -> list[int]:
        """Return the sorted ids of comics containing any of ``tokens``."""
        with self._lock:
            ids = {
                comic_id
                for token in tokens
                for comic_id in self._by_token.get(token, ())
            }
        return sorted(ids)

    def docs_by_ids(self, ids: Iterable[int]) -> list[Comic]:
        """Return the indexed comics for ``ids`` in order, skipping unknown ids."""
        with self._lock:
            return [self._docs[i] for i in ids if i in self._docs]