# quran_search/normalizer.py
"""
Arabic text normalization shared by indexing and querying.

Every indexed field and every query goes through `tokenize`, which goes
through `normalize_arabic`. Both paths must keep using these exact
functions: a serialized index records `NORMALIZATION_SIGNATURE` and is
refused on restore if the signature changed.
"""
import hashlib
import re
from typing import List

# [h:9421[ٱ] and [l[ل] wrappers used by the tajweed edition
TAJWEED_MARKUP = re.compile(r"\[[a-z](?::\d+)?\[(.*?)\]")

# Tashkeel, dagger alef, Quranic small signs and tatweel
DIACRITICS = re.compile(r"[\u064B-\u065F\u0670\u06D6-\u06ED\u0640]")

LETTER_UNIFICATION = {
    "آ": "ا",
    "أ": "ا",
    "إ": "ا",
    "ٱ": "ا",
    "ؤ": "و",
    "ئ": "ي",
    "ة": "ه",
    "ى": "ي",
}

_UNIFY_TABLE = str.maketrans(LETTER_UNIFICATION)

# Whitespace, punctuation and underscore
TOKEN_SEPARATOR = re.compile(r"[\W_]+")


def _signature() -> str:
    payload = "|".join([
        "casefold",
        DIACRITICS.pattern,
        "".join(f"{k}{v}" for k, v in sorted(LETTER_UNIFICATION.items())),
        TAJWEED_MARKUP.pattern,
        "strip",
    ])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


NORMALIZATION_SIGNATURE = _signature()


def strip_tajweed(text: str) -> str:
    """Replace tajweed annotation wrappers with the text they annotate."""
    if not text or not isinstance(text, str):
        return ""
    # Unwrapping one layer can expose another
    while True:
        text, count = TAJWEED_MARKUP.subn(r"\1", text)
        if not count:
            return text


def normalize_arabic(text) -> str:
    """
    Canonical search form of a piece of text.

    - Case folds
    - Removes diacritics and tatweel
    - Unifies alef / hamza carriers, taa marbuta and alef maksura
    - Drops tajweed markup, nested or exposed by the steps above
    - Strips surrounding whitespace

    Args:
        text: Raw verse text or a query; anything that is not a
            non-empty string normalizes to ""

    Returns:
        Normalized text
    """
    if not text or not isinstance(text, str):
        return ""

    text = text.casefold()
    text = DIACRITICS.sub("", text)
    text = text.translate(_UNIFY_TABLE)
    return strip_tajweed(text).strip()


def tokenize(text) -> List[str]:
    """Normalize text and split it into search terms."""
    return [t for t in TOKEN_SEPARATOR.split(normalize_arabic(text)) if t]
