"""Comic storage in a SQLite database shared by the update and search services."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterable

from .models import Comic, DBStats

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS comics (
    id         INTEGER PRIMARY KEY,
    img_url    TEXT NOT NULL DEFAULT '',
    title      TEXT NOT NULL DEFAULT '[]',
    alt        TEXT NOT NULL DEFAULT '[]',
    words      TEXT NOT NULL DEFAULT '[]',
    fetched_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""

_UPSERT = """
INSERT INTO comics (id, img_url, title, alt, words)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT (id) DO UPDATE SET
    img_url    = excluded.img_url,
    title      = excluded.title,
    alt        = excluded.alt,
    words      = excluded.words,
    fetched_at = CURRENT_TIMESTAMP
"""


class Storage:
    """Stores comics with their normalized tokens; safe to share across threads."""

    def __init__(self, address: str) -> None:
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(address, check_same_thread=False)
        except sqlite3.Error as exc:
            log.error("connection problem: address=%s error=%s", address, exc)
            raise

    def __enter__(self) -> Storage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _execute(self, sql: str, params: Iterable[object] = ()) -> list[tuple]:
        with self._lock, self._conn:
            return self._conn.execute(sql, tuple(params)).fetchall()

    def migrate(self) -> None:
        """Create the comics table if it does not exist yet."""
        log.debug("running migration")
        self._execute(_SCHEMA)
        log.debug("migration finished")

    def add(self, comic: Comic) -> None:
        """Insert ``comic`` or replace the stored comic with the same id."""
        self._execute(
            _UPSERT,
            (
                comic.id,
                comic.url or "",
                json.dumps(list(comic.title or [])),
                json.dumps(list(comic.alt or [])),
                json.dumps(list(comic.words or [])),
            ),
        )

    def stats(self) -> DBStats:
        """Return total words, distinct words and the number of stored comics."""
        rows = self._execute("SELECT words FROM comics")
        word_lists = [json.loads(words) for (words,) in rows]
        return DBStats(
            words_total=sum(len(words) for words in word_lists),
            words_unique=len(set().union(*word_lists)),
            comics_fetched=len(rows),
        )

    def ids(self) -> list[int]:
        """Return the ids of all stored comics in ascending order."""
        return [comic_id for (comic_id,) in self._execute("SELECT id FROM comics ORDER BY id")]

    def drop(self) -> None:
        """Delete every stored comic."""
        self._execute("DELETE FROM comics")

    def all(self) -> list[Comic]:
        """Return every stored comic ordered by id."""
        rows = self._execute("SELECT id, img_url, title, alt, words FROM comics ORDER BY id")
        return [
            Comic(
                id=comic_id,
                url=url,
                title=json.loads(title),
                alt=json.loads(alt),
                words=json.loads(words),
            )
            for comic_id, url, title, alt, words in rows
        ]

    def find(self, tokens: Iterable[str]) -> list[Comic]:
        """Return comics whose title, alt or words share at least one token."""
        wanted = set(tokens)
        if not wanted:
            return []
        try:
            comics = self.all()
        except sqlite3.Error as exc:
            log.error("find comics failed: tokens=%s error=%s", sorted(wanted), exc)
            raise
        return [
            comic
            for comic in comics
            if wanted.intersection(comic.title)
            or wanted.intersection(comic.alt)
            or wanted.intersection(comic.words)
        ]

    def ping(self) -> None:
        """Check that the database answers queries."""
        self._execute("SELECT 1")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()