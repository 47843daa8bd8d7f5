# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Splits a script into sentence-like display segments.

Segments break after terminal punctuation in both Latin (. ! ?) and
East-Asian full-width (。！？) styles. The punctuation stays attached to the
segment it ends, whitespace around each segment is trimmed and empty
segments are dropped. Each segment carries its own token table, built once
and never modified.
"""

import re
from dataclasses import dataclass
from re import Pattern

from .tokenizer import Token, tokenize

TERMINAL_PUNCTUATION: frozenset[str] = frozenset(".!?。！？")

# A run of terminal marks followed by any whitespace; splits happen after it
_BOUNDARY_PATTERN: Pattern[str] = re.compile(
    rf"[{re.escape(''.join(sorted(TERMINAL_PUNCTUATION)))}]+\s*"
)


@dataclass(frozen=True)
class Segment:
    """One display-sized unit of the script (roughly one sentence)."""
    index: int
    raw_text: str
    tokens: tuple[Token, ...]

    @property
    def token_count(self) -> int:
        """Number of tokens the speaker has to say to finish this segment."""
        return len(self.tokens)

    def __repr__(self) -> str:
        return f"Segment({self.index}: '{self.raw_text}', tokens={len(self.tokens)})"


def split_segments(script_text: str) -> list[str]:
    """Split script text into trimmed, non-empty sentence strings."""
    pieces: list[str] = []
    start: int = 0
    for boundary in _BOUNDARY_PATTERN.finditer(script_text):
        pieces.append(script_text[start:boundary.end()])
        start = boundary.end()
    pieces.append(script_text[start:])

    return [p.strip() for p in pieces if p.strip()]


def segment_script(script_text: str) -> tuple[Segment, ...]:
    """Build the immutable segment table for a script.

    Args:
        script_text: The full script text

    Returns:
        Segments in script order with contiguous 0-based indices. An empty
        or whitespace-only script yields an empty tuple.
    """
    return tuple(
        Segment(index=i, raw_text=text, tokens=tuple(tokenize(text)))
        for i, text in enumerate(split_segments(script_text))
    )
