"""Display filtering and canonical merging of raw tokens.

Raw endpoint tokens carry artifacts that should never reach a person:
control markers, byte-fallback pieces, chat-template delimiters. They are
dropped first. Remaining tokens are grouped by a case- and
whitespace-insensitive key so that ``"cat"`` and ``" Cat"`` become one
choice.

Dropped tokens take their probability mass with them; the merged output
therefore sums to slightly less than 1.0 whenever something was dropped.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import numpy as np

from logprob_pipeline.canonical.types import MergedCandidate
from logprob_pipeline.distribution.types import Candidate

# Fixed merge key of the residual category. Contains a NUL so it can never
# equal the key of displayable text.
RESIDUAL_KEY: str = "\x00residual"

_DENY_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Gemini-style control tokens: <ctrl100>
    re.compile(r"^<ctrl\d+>$"),
    # Chat-template and special tokens: <|endoftext|>, <|im_start|>
    re.compile(r"<\|[^|]*\|>"),
    # SentencePiece / HF specials: <s>, </s>, <unk>, <pad>
    re.compile(r"^</?(?:s|unk|pad|mask|bos|eos|sep|cls)>$", re.IGNORECASE),
    # Turn delimiters: <start_of_turn>, <end_of_turn>
    re.compile(r"^<(?:start|end)_of_(?:turn|text)>$"),
    # BERT-style specials: [PAD], [UNK]
    re.compile(r"^\[(?:PAD|UNK|CLS|SEP|MASK)\]$"),
    # Byte-fallback pieces: <0x0A>
    re.compile(r"<0x[0-9A-Fa-f]{2}>"),
    # OpenAI partial-UTF-8 tokens: bytes:\xe2\x80
    re.compile(r"^bytes:"),
    # Literal escape notation: \xe2, \u200b
    re.compile(r"\\(?:x[0-9A-Fa-f]{2}|u[0-9A-Fa-f]{4})"),
)


def is_displayable(text: str) -> bool:
    """Return whether a raw token may be shown to and chosen by a person.

    Deny-list classifier: the token is rejected when it is empty or
    whitespace-only, has a non-printable character or U+FFFD between its
    outer whitespace, or matches a known control/formatting pattern.
    Leading and trailing newlines or tabs do not count, so a period
    followed by a newline is displayable.

    Args:
        text: Raw token text.

    Returns:
        ``True`` if the token is displayable.
    """
    stripped = text.strip()
    if not stripped:
        return False
    if "\ufffd" in text or not stripped.isprintable():
        return False
    return not any(pattern.search(text) for pattern in _DENY_PATTERNS)


def canonical_key(text: str) -> str:
    """Return the merge key of a token: stripped and case-folded.

    Args:
        text: Raw token text.

    Returns:
        The canonical key.
    """
    return text.strip().casefold()


def _candidate_key(candidate: Candidate) -> str:
    if candidate.is_residual:
        return RESIDUAL_KEY
    return canonical_key(candidate.text)


def merge_candidates(candidates: Iterable[Candidate]) -> tuple[list[MergedCandidate], float]:
    """Drop non-displayable candidates and merge the rest by canonical key.

    The residual candidate is never dropped and never merged.

    Args:
        candidates: Candidates in acquisition order.

    Returns:
        Tuple of (merged candidates ordered by descending probability with
        ties kept in first-acquisition order, total dropped probability).
    """
    groups: dict[str, list[Candidate]] = {}
    dropped_mass = 0.0

    for candidate in candidates:
        if not candidate.is_residual and not is_displayable(candidate.text):
            dropped_mass += candidate.probability
            continue
        groups.setdefault(_candidate_key(candidate), []).append(candidate)

    merged = [_merge_group(key, members) for key, members in groups.items()]
    # dicts keep insertion order and sort() is stable, so equal
    # probabilities stay in first-acquisition order.
    merged.sort(key=lambda m: m.probability, reverse=True)
    return merged, dropped_mass


def _merge_group(key: str, members: list[Candidate]) -> MergedCandidate:
    """Collapse one canonical-key group into a MergedCandidate."""
    # max() returns the first maximal element, so ties favor earlier members.
    representative = max(members, key=lambda c: c.probability)

    log_probs = [c.log_probability for c in members if c.log_probability is not None]
    log_probability: float | None = None
    if log_probs and len(log_probs) == len(members):
        log_probability = float(np.logaddexp.reduce(np.asarray(log_probs, dtype=np.float64)))

    return MergedCandidate(
        text=representative.text,
        key=key,
        probability=float(sum(c.probability for c in members)),
        log_probability=log_probability,
        token_ids=tuple(c.token_id for c in members),
        variants=tuple(c.text for c in members),
    )

