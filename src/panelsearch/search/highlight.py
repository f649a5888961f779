"""Highlight literal query matches in display text."""

from __future__ import annotations

import re

from ..core.utils.text import iter_occurrences

MARK_OPEN = "<mark>"
MARK_CLOSE = "</mark>"


def highlight(text: str, query: str | None, *, open_tag: str = MARK_OPEN, close_tag: str = MARK_CLOSE) -> str:
    """Wrap every non-overlapping, case-insensitive occurrence of ``query`` in ``text``.

    Non-matching text is preserved verbatim and matched text keeps its
    original case. An empty or missing query (or text) returns ``text``
    unchanged.

    >>> highlight("I love mondays", "LOVE")
    'I <mark>love</mark> mondays'
    """
    if not query or not text:
        return text

    parts: list[str] = []
    last = 0
    for start, end in iter_occurrences(text, query, overlapping=False):
        parts.append(text[last:start])
        parts.append(f"{open_tag}{text[start:end]}{close_tag}")
        last = end
    if last == 0:
        return text
    parts.append(text[last:])
    return "".join(parts)


def strip_highlight(text: str, query: str | None, *, open_tag: str = MARK_OPEN, close_tag: str = MARK_CLOSE) -> str:
    """Undo ``highlight(text, query)``.

    Only markers wrapping a case-insensitive match of ``query`` are removed,
    so marker text already present in the original survives.

    >>> strip_highlight("a <mark> b", "zzz")
    'a <mark> b'
    """
    if not query or not text:
        return text
    pattern = re.compile(f"{re.escape(open_tag)}((?i:{re.escape(query)})){re.escape(close_tag)}")
    return pattern.sub(lambda m: m.group(1), text)
