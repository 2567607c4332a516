"""The growing text context of an autoregressive run."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass

from logprob_pipeline.exceptions import InvalidInputError


def is_pure_punctuation(text: str) -> bool:
    """Whether every character of *text* is Unicode punctuation (``P*``)."""
    return bool(text) and all(unicodedata.category(ch).startswith("P") for ch in text)


def join_token(text: str, token: str) -> str:
    """Append a committed token to rendered text.

    A single space separates them unless *text* is empty, already ends in
    whitespace, or *token* is pure punctuation.
    """
    if not text or text[-1].isspace() or is_pure_punctuation(token):
        return text + token
    return f"{text} {token}"


@dataclass(frozen=True, slots=True)
class Context:
    """Seed text plus the ordered tokens committed so far.

    Immutable: ``append()`` returns a new Context, so a value handed to a
    caller never changes under them and separate sessions never share
    state.

    Attributes:
        seed: Original text the run started from.
        tokens: Committed tokens, stripped of surrounding whitespace.
    """

    seed: str = ""
    tokens: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        """The context rendered as a prefix string."""
        rendered = self.seed
        for token in self.tokens:
            rendered = join_token(rendered, token)
        return rendered

    @property
    def is_empty(self) -> bool:
        """``True`` when there is neither seed text nor a committed token."""
        return not self.seed and not self.tokens

    def append(self, token: str) -> Context:
        """Return a new Context with *token* committed.

        Args:
            token: Display text of the chosen candidate.

        Returns:
            A Context one token longer.

        Raises:
            InvalidInputError: If the token is empty after stripping.
        """
        stripped = token.strip()
        if not stripped:
            raise InvalidInputError("Cannot commit an empty token")
        return Context(seed=self.seed, tokens=(*self.tokens, stripped))

    def __len__(self) -> int:
        return len(self.tokens)
