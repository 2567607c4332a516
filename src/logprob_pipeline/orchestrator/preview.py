"""Trimming generated continuations into short previews."""

from __future__ import annotations

import re

_SENTENCE_END = re.compile(r"[.!?…]")
_WHITESPACE = re.compile(r"\s+")


def truncate_preview(text: str) -> str:
    """Cut a continuation at its first line break or sentence end.

    The sentence-ending character is kept. Runs of whitespace collapse to
    single spaces. The token-count bound is enforced by the request, not
    here.

    Args:
        text: Raw continuation returned by the source.

    Returns:
        The preview string, possibly empty.
    """
    first_line = text.lstrip().split("\n", 1)[0]
    match = _SENTENCE_END.search(first_line)
    if match is not None:
        first_line = first_line[: match.end()]
    return _WHITESPACE.sub(" ", first_line).strip()
