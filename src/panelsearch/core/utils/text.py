"""Text processing utilities: tokenization shared by index build and query time."""

import re
from collections.abc import Iterator

MIN_TOKEN_LENGTH = 3

_NON_WORD = re.compile(r"[^\w\s]")


def normalize_text(text: str) -> str:
    """Lowercase and replace every non-word, non-space character with a space."""
    if not text or not isinstance(text, str):
        return ""
    return _NON_WORD.sub(" ", text.lower())


def extract_keywords(text: str, min_word_length: int = MIN_TOKEN_LENGTH) -> list[str]:
    """Extract tokens (words of at least ``min_word_length`` chars, punctuation stripped).

    Duplicates are kept in order of appearance. Query parsing and index
    generation must both go through this function so their token sets agree.
    """
    return [w for w in normalize_text(text).split() if len(w) >= min_word_length]


def unique_keywords(text: str, min_word_length: int = MIN_TOKEN_LENGTH) -> list[str]:
    """Like ``extract_keywords`` but with duplicates removed, first occurrence wins."""
    return list(dict.fromkeys(extract_keywords(text, min_word_length)))


def iter_occurrences(text: str, query: str, *, overlapping: bool = True) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` offsets of case-insensitive literal matches of ``query``.

    Offsets refer to ``text`` itself, so slicing ``text[start:end]`` returns the
    matched characters in their original case. With ``overlapping=False``
    each search resumes after the previous match.
    """
    if not text or not query:
        return
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    pos = 0
    while pos <= len(text):
        match = pattern.search(text, pos)
        if match is None or match.end() == match.start():
            return
        yield match.start(), match.end()
        pos = match.start() + 1 if overlapping else match.end()

