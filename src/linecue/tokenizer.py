# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Tokenizer for script segments and spoken transcript text.

Latin-style text is grouped into words (maximal alphanumeric runs) while
ideographic and syllabic characters (Chinese, Japanese kana, Korean Hangul)
become one token each. Ideographic writing has no spaces between words, so
per-character tokens let the matcher make partial progress through a line
at a granularity comparable to a spoken English word.
"""

import re
from dataclasses import dataclass
from re import Pattern

from rapidfuzz import fuzz

# Character ranges treated as ideographic/syllabic (one token per character)
IDEOGRAPHIC_RANGES: tuple[tuple[str, str], ...] = (
    ("\u4e00", "\u9fa5"),  # CJK Unified Ideographs
    ("\u3040", "\u30ff"),  # Hiragana and Katakana
    ("\uac00", "\ud7af"),  # Hangul syllables
)

_IDEOGRAPHIC_CLASS: str = "".join(f"{lo}-{hi}" for lo, hi in IDEOGRAPHIC_RANGES)

# Either a run of ASCII letters/digits or a single ideographic character
TOKEN_PATTERN: Pattern[str] = re.compile(
    rf"[A-Za-z0-9]+|[{_IDEOGRAPHIC_CLASS}]"
)


def is_ideographic(char: str) -> bool:
    """Check whether a single character is tokenized on its own."""
    return any(lo <= char <= hi for lo, hi in IDEOGRAPHIC_RANGES)


@dataclass(frozen=True)
class Token:
    """A minimal comparable unit of text."""
    text: str
    is_ideographic: bool = False

    @property
    def normalized(self) -> str:
        """Form used for comparison (Latin tokens are case-folded)."""
        return self.text if self.is_ideographic else self.text.lower()

    def matches(self, other: 'Token', threshold: float = 100.0) -> bool:
        """Check whether two tokens count as the same word.

        Ideographic tokens always compare by exact character. Latin tokens
        compare case-insensitively; a threshold below 100 additionally
        accepts near misses scored with rapidfuzz.
        """
        if self.is_ideographic or other.is_ideographic:
            return self.text == other.text

        mine: str = self.normalized
        theirs: str = other.normalized
        if mine == theirs:
            return True
        if threshold >= 100.0:
            return False
        return fuzz.ratio(mine, theirs) >= threshold

    def __repr__(self) -> str:
        kind: str = "ideo" if self.is_ideographic else "word"
        return f"Token({kind}: '{self.text}')"


def tokenize(text: str) -> list[Token]:
    """Split text into tokens, discarding punctuation and whitespace.

    Examples:
        "Hello, world!" -> [Token('Hello'), Token('world')]
        "你好 AI" -> [Token('你'), Token('好'), Token('AI')]
    """
    tokens: list[Token] = []
    for match in TOKEN_PATTERN.finditer(text):
        piece: str = match.group(0)
        tokens.append(Token(text=piece, is_ideographic=is_ideographic(piece[0])))
    return tokens


def token_texts(tokens: list[Token]) -> list[str]:
    """Get the raw texts of a token list (for logging and display)."""
    return [t.text for t in tokens]


def word_start(text: str, index: int) -> int:
    """Move an index back to the start of the Latin word it falls inside.

    Used when re-matching a revised transcript so a partially changed word
    is re-tokenized whole rather than from its middle.
    """
    index = max(0, min(index, len(text)))
    while index > 0 and index < len(text) and _is_word_char(text[index - 1]) \
            and _is_word_char(text[index]):
        index -= 1
    return index


def _is_word_char(char: str) -> bool:
    return char.isascii() and char.isalnum()
