# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Builds the view a renderer needs to draw the prompter.

The view holds the active segment with its tokens split into spoken and
unspoken parts, plus a few neighbouring segments for context and a
"current / total" progress label.
"""

from dataclasses import dataclass, field

from .aligner import SegmentAligner
from .segmenter import Segment
from .tokenizer import Token


@dataclass
class DisplayToken:
    """A token with its highlight state."""
    text: str
    matched: bool
    is_ideographic: bool = False


@dataclass
class DisplayLine:
    """One segment as shown on screen."""
    index: int
    text: str
    tokens: list[DisplayToken] = field(default_factory=list)
    is_active: bool = False


@dataclass
class DisplayWindow:
    """Segments around the current position."""
    lines: list[DisplayLine]
    active_line: int | None  # Index into lines, None at the end of the script
    segment_count: int
    finished: bool

    @property
    def progress_label(self) -> str:
        """Progress as shown in the prompter header, e.g. "3 / 10"."""
        if self.segment_count == 0:
            return "0 / 0"
        if self.finished:
            return f"{self.segment_count} / {self.segment_count}"
        assert self.active_line is not None
        return f"{self.lines[self.active_line].index + 1} / {self.segment_count}"


def _display_tokens(tokens: tuple[Token, ...], matched_count: int) -> list[DisplayToken]:
    return [
        DisplayToken(text=t.text, matched=i < matched_count, is_ideographic=t.is_ideographic)
        for i, t in enumerate(tokens)
    ]


def render_text(line: DisplayLine) -> str:
    """Rebuild readable text from display tokens.

    Latin words are separated by spaces; ideographic characters are joined
    directly. Matched tokens are wrapped in square brackets.
    """
    parts: list[str] = []
    previous: DisplayToken | None = None
    for token in line.tokens:
        if previous is not None and not (token.is_ideographic and previous.is_ideographic):
            parts.append(" ")
        parts.append(f"[{token.text}]" if token.matched else token.text)
        previous = token
    return "".join(parts)


def get_display_window(
    aligner: SegmentAligner,
    past_segments: int = 1,
    future_segments: int = 1
) -> DisplayWindow:
    """
    Get segments to display around the current position.

    Args:
        aligner: The aligner to read the position from
        past_segments: Number of segments before the active one to show
        future_segments: Number of segments after the active one to show

    Returns:
        DisplayWindow; at the end of the script it holds only past segments
    """
    segments: tuple[Segment, ...] = aligner.segments
    index: int = aligner.state.active_segment_index
    matched: int = aligner.state.matched_token_count

    start: int = max(0, index - past_segments)
    end: int = min(len(segments), index + future_segments + 1)

    lines: list[DisplayLine] = []
    active_line: int | None = None
    for segment in segments[start:end]:
        if segment.index < index:
            tokens = _display_tokens(segment.tokens, segment.token_count)
        elif segment.index == index:
            tokens = _display_tokens(segment.tokens, matched)
            active_line = len(lines)
        else:
            tokens = _display_tokens(segment.tokens, 0)
        lines.append(DisplayLine(
            index=segment.index,
            text=segment.raw_text,
            tokens=tokens,
            is_active=segment.index == index
        ))

    return DisplayWindow(
        lines=lines,
        active_line=active_line,
        segment_count=len(segments),
        finished=aligner.is_finished
    )
