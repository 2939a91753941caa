"""English (Porter2) stemming and the English stop-word list."""

from __future__ import annotations

import re

_VOWELS = frozenset("aeiouy")
_DOUBLES = ("bb", "dd", "ff", "gg", "mm", "nn", "pp", "rr", "tt")
_LI_ENDINGS = frozenset("cdeghkmnrt")
_REGION = re.compile(r"[aeiouy][^aeiouy]")
_SPECIAL_PREFIXES = ("gener", "commun", "arsen")

_STOP_WORDS = frozenset(
    """
    a about above after again against all am an and any are as at be because
    been before being below between both but by can did do does doing don down
    during each few for from further had has have having he her here hers
    herself him himself his how i if in into is it its itself just me more most
    my myself no nor not now of off on once only or other our ours ourselves
    out over own s same she should so some such t than that the their theirs
    them themselves then there these they this those through to too under
    until up very was we were what when where which while who whom why will
    with you your yours yourself yourselves
    """.split()
)

_EXCEPTIONS = {
    "skis": "ski",
    "skies": "sky",
    "dying": "die",
    "lying": "lie",
    "tying": "tie",
    "idly": "idl",
    "gently": "gentl",
    "ugly": "ugli",
    "early": "earli",
    "only": "onli",
    "singly": "singl",
    "sky": "sky",
    "news": "news",
    "howe": "howe",
    "atlas": "atlas",
    "cosmos": "cosmos",
    "bias": "bias",
    "andes": "andes",
}

_AFTER_STEP1A = frozenset(
    {"inning", "outing", "canning", "herring", "earring", "proceed", "exceed", "succeed"}
)

_STEP2 = {
    "tional": "tion",
    "enci": "ence",
    "anci": "ance",
    "abli": "able",
    "entli": "ent",
    "izer": "ize",
    "ization": "ize",
    "ational": "ate",
    "ation": "ate",
    "ator": "ate",
    "alism": "al",
    "aliti": "al",
    "alli": "al",
    "fulness": "ful",
    "ousli": "ous",
    "ousness": "ous",
    "iveness": "ive",
    "iviti": "ive",
    "biliti": "ble",
    "bli": "ble",
    "ogi": "og",
    "fulli": "ful",
    "lessli": "less",
    "li": "",
}

_STEP3 = {
    "tional": "tion",
    "ational": "ate",
    "alize": "al",
    "icate": "ic",
    "iciti": "ic",
    "ical": "ic",
    "ful": "",
    "ness": "",
    "ative": "",
}

_STEP4 = (
    "al", "ance", "ence", "er", "ic", "able", "ible", "ant", "ement", "ment",
    "ent", "ism", "ate", "iti", "ous", "ive", "ize", "ion",
)


def is_stop_word(word: str) -> bool:
    """Return True if ``word`` is a common English stop word."""
    return word in _STOP_WORDS


def _has_vowel(text: str) -> bool:
    return any(ch in _VOWELS for ch in text)


def _longest(word: str, suffixes) -> str:
    return max((s for s in suffixes if word.endswith(s)), key=len, default="")


def _mark_y(word: str) -> str:
    marked = []
    previous_is_vowel = True  # an initial y is marked too
    for ch in word:
        if ch == "y" and previous_is_vowel:
            ch = "Y"
        marked.append(ch)
        previous_is_vowel = ch in _VOWELS
    return "".join(marked)


def _regions(word: str) -> tuple[int, int]:
    prefix = next((p for p in _SPECIAL_PREFIXES if word.startswith(p)), None)
    if prefix is not None:
        r1 = len(prefix)
    else:
        match = _REGION.search(word)
        r1 = match.end() if match else len(word)
    match = _REGION.search(word, r1)
    r2 = match.end() if match else len(word)
    return r1, r2


def _ends_short_syllable(word: str) -> bool:
    if len(word) == 2:
        return word[0] in _VOWELS and word[1] not in _VOWELS
    if len(word) >= 3:
        return (
            word[-3] not in _VOWELS
            and word[-2] in _VOWELS
            and word[-1] not in _VOWELS
            and word[-1] not in "wxY"
        )
    return False


def _is_short(word: str, r1: int) -> bool:
    return r1 >= len(word) and _ends_short_syllable(word)


def _step0(word: str) -> str:
    suffix = _longest(word, ("'s'", "'s", "'"))
    return word[: len(word) - len(suffix)]


def _step1a(word: str) -> str:
    suffix = _longest(word, ("sses", "ied", "ies", "us", "ss", "s"))
    if suffix == "sses":
        return word[:-2]
    if suffix in ("ied", "ies"):
        return word[:-3] + ("i" if len(word) > 4 else "ie")
    if suffix == "s" and _has_vowel(word[:-2]):
        return word[:-1]
    return word


def _step1b(word: str, r1: int) -> str:
    suffix = _longest(word, ("eed", "eedly", "ed", "edly", "ing", "ingly"))
    if not suffix:
        return word
    start = len(word) - len(suffix)
    if suffix in ("eed", "eedly"):
        return word[:start] + "ee" if start >= r1 else word
    base = word[:start]
    if not _has_vowel(base):
        return word
    if base.endswith(("at", "bl", "iz")):
        return base + "e"
    if base.endswith(_DOUBLES):
        return base[:-1]
    if _is_short(base, r1):
        return base + "e"
    return base


def _step1c(word: str) -> str:
    if len(word) > 2 and word[-1] in "yY" and word[-2] not in _VOWELS:
        return word[:-1] + "i"
    return word


def _step2(word: str, r1: int) -> str:
    suffix = _longest(word, _STEP2)
    if not suffix:
        return word
    start = len(word) - len(suffix)
    if start < r1:
        return word
    base = word[:start]
    if suffix == "ogi" and not base.endswith("l"):
        return word
    if suffix == "li" and (not base or base[-1] not in _LI_ENDINGS):
        return word
    return base + _STEP2[suffix]


def _step3(word: str, r1: int, r2: int) -> str:
    suffix = _longest(word, _STEP3)
    if not suffix:
        return word
    start = len(word) - len(suffix)
    if start < r1 or (suffix == "ative" and start < r2):
        return word
    return word[:start] + _STEP3[suffix]


def _step4(word: str, r2: int) -> str:
    suffix = _longest(word, _STEP4)
    if not suffix:
        return word
    start = len(word) - len(suffix)
    if start < r2:
        return word
    if suffix == "ion" and not word[:start].endswith(("s", "t")):
        return word
    return word[:start]


def _step5(word: str, r1: int, r2: int) -> str:
    start = len(word) - 1
    if word.endswith("e"):
        if start >= r2 or (start >= r1 and not _ends_short_syllable(word[:-1])):
            return word[:-1]
    elif word.endswith("l") and start >= r2 and word[:-1].endswith("l"):
        return word[:-1]
    return word


def stem(word: str) -> str:
    """Return the English stem of ``word``; stop words and short words are kept."""
    word = word.strip().lower()
    if len(word) <= 2 or is_stop_word(word):
        return word
    if word in _EXCEPTIONS:
        return _EXCEPTIONS[word]

    if word.startswith("'"):
        word = word[1:]
    word = _mark_y(word)
    r1, r2 = _regions(word)

    word = _step1a(_step0(word))
    if word in _AFTER_STEP1A:
        return word.replace("Y", "y")

    word = _step1c(_step1b(word, r1))
    word = _step2(word, r1)
    word = _step3(word, r1, r2)
    word = _step4(word, r2)
    word = _step5(word, r1, r2)
    return word.replace("Y", "y")