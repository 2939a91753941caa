"""Phrase normalization: tokenizing, stop-word removal and stemming."""

from __future__ import annotations

import logging
import re

from .models import BadArgumentsError
from .stemmer import is_stop_word, stem

log = logging.getLogger(__name__)

MAX_PHRASE_BYTES = 4096

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class PhraseTooLargeError(BadArgumentsError):
    """The phrase is longer than the normalizer accepts."""

    default_message = "phrase too large (>4KiB)"


def normalize(phrase: str) -> list[str]:
    """Split ``phrase`` into unique stemmed tokens, keeping their first-seen order."""
    tokens = _NON_ALNUM.sub(" ", phrase.lower()).split()
    out: list[str] = []
    seen: set[str] = set()

    for token in tokens:
        if token.isdigit():
            if token not in seen:
                seen.add(token)
                out.append(token)
                log.debug("norm add digits: %r", token)
            continue

        if is_stop_word(token):
            log.debug("norm drop stop word: %r", token)
            continue

        stemmed = stem(token) or token
        if stemmed not in seen:
            seen.add(stemmed)
            out.append(stemmed)
            log.debug("norm add: %r", token)

    log.debug("norm done: in=%d out=%d", len(tokens), len(out))
    return out


class WordsService:
    """The words service: normalizes phrases up to a fixed byte size."""

    def ping(self) -> None:
        """Answer a liveness check."""
        log.info("ping-pong")

    def norm(self, phrase: str) -> list[str]:
        """Normalize ``phrase``; raise PhraseTooLargeError above 4 KiB of UTF-8."""
        log.info("norm start: len_runes=%d", len(phrase))
        if len(phrase.encode("utf-8")) > MAX_PHRASE_BYTES:
            log.info("norm too large: len_runes=%d", len(phrase))
            raise PhraseTooLargeError()
        return normalize(phrase)