# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Segment alignment module that follows a speaker through a script.

The aligner keeps one position in the script: the active segment and how
many of its tokens have been spoken. Each time the recognizer delivers a
longer transcript, only the newly spoken text is tokenized and matched:

1. Local match: look a few tokens ahead in the active segment
2. Jump: once most of the line is spoken, accept an opening token of the
   next line as evidence that the speaker moved on
3. Otherwise the token is treated as noise

A fully spoken segment advances after a short debounce so the display does
not flicker. Manual navigation (advance/retreat) always wins over pending
automatic moves.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from . import debug_log
from .config import DEFAULT_CONFIG, TrackingSettings
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .segmenter import Segment, segment_script
from .tokenizer import Token, token_texts, tokenize, word_start

logger = logging.getLogger(__name__)

REVISION_POLICIES: frozenset[str] = frozenset(["drop", "resync"])


class EventKind(Enum):
    """Kinds of position change reported to listeners."""
    COMPLETED = "completed"  # Every token of the active segment was spoken
    JUMPED = "jumped"  # Moved to the next segment on one of its opening tokens
    ADVANCED = "advanced"  # Debounced auto-advance after completion
    NAVIGATED = "navigated"  # Manual advance/retreat
    RESET = "reset"  # Script change or feature (de)activation


@dataclass
class AlignmentState:
    """Encapsulates the current position in the script."""
    active_segment_index: int = 0
    matched_token_count: int = 0
    consumed_transcript_length: int = 0

    def clone(self) -> 'AlignmentState':
        """Create a copy of this state."""
        return AlignmentState(
            active_segment_index=self.active_segment_index,
            matched_token_count=self.matched_token_count,
            consumed_transcript_length=self.consumed_transcript_length
        )

    @property
    def position(self) -> tuple[int, int]:
        """(active_segment_index, matched_token_count) pair."""
        return self.active_segment_index, self.matched_token_count


@dataclass(frozen=True)
class AlignmentEvent:
    """A notable position change."""
    kind: EventKind
    from_index: int
    to_index: int
    matched_token_count: int = 0


@dataclass
class AlignmentUpdate:
    """Result of feeding the aligner a transcript or a navigation command."""
    state: AlignmentState
    event: AlignmentEvent | None = None
    matched_tokens: list[Token] = field(default_factory=list)

    @property
    def jumped(self) -> bool:
        """Whether this update moved to the next segment via a jump."""
        return self.event is not None and self.event.kind is EventKind.JUMPED


AlignmentListener = Callable[[AlignmentEvent, AlignmentState], None]


class SegmentAligner:
    """
    Aligns a growing transcript against a segmented script.

    The aligner is single-threaded: consume(), advance(), retreat(), reset()
    and the debounce callback must all run on the same event loop. The
    scheduler decides where the debounce callback runs.
    """

    lookahead_window: int
    jump_window: int
    jump_completion_ratio: float
    advance_delay: float
    match_threshold: float
    carry_over_after_jump: bool
    revision_policy: str

    segments: tuple[Segment, ...]
    scheduler: Scheduler

    _state: AlignmentState
    _seen_transcript: str
    _carry_over: list[Token]
    _completion_reported: bool
    _advance_handle: TimerHandle | None
    _timer_generation: int
    _listeners: list[AlignmentListener]

    def __init__(
        self,
        script_text: str = "",
        scheduler: Scheduler | None = None,
        lookahead_window: int = 4,
        jump_window: int = 3,
        jump_completion_ratio: float = 0.6,
        advance_delay: float = 0.05,
        match_threshold: float = 100.0,
        carry_over_after_jump: bool = True,
        revision_policy: str = "drop"
    ) -> None:
        """
        Initialize the aligner.

        Args:
            script_text: The full script text
            scheduler: Runs the auto-advance debounce (defaults to the
                running asyncio loop)
            lookahead_window: Extra tokens checked past the next expected one
            jump_window: Opening tokens of the next segment that can trigger
                a jump
            jump_completion_ratio: Share of the active segment that must be
                matched before a jump is allowed
            advance_delay: Seconds between completing a segment and moving on
            match_threshold: Minimum rapidfuzz score for Latin tokens (100
                means exact, case-insensitive comparison)
            carry_over_after_jump: Keep tokens spoken after a jump token and
                match them against the new segment on the next update
            revision_policy: "drop" ignores transcripts that rewrite
                already-consumed text; "resync" re-matches the changed tail
        """
        if revision_policy not in REVISION_POLICIES:
            raise ValueError(
                f"Unknown revision policy '{revision_policy}' "
                f"(expected one of {sorted(REVISION_POLICIES)})")

        self.lookahead_window = lookahead_window
        self.jump_window = jump_window
        self.jump_completion_ratio = jump_completion_ratio
        self.advance_delay = advance_delay
        self.match_threshold = match_threshold
        self.carry_over_after_jump = carry_over_after_jump
        self.revision_policy = revision_policy

        self.scheduler = scheduler if scheduler is not None else AsyncioScheduler()

        self._advance_handle = None
        self._timer_generation = 0
        self._listeners = []

        self.segments = segment_script(script_text)
        self._clear_position()

    @classmethod
    def from_settings(
        cls,
        script_text: str,
        settings: TrackingSettings | None = None,
        scheduler: Scheduler | None = None
    ) -> 'SegmentAligner':
        """Create an aligner from the tracking section of the config."""
        tracking: TrackingSettings = {**DEFAULT_CONFIG["tracking"], **(settings or {})}
        return cls(
            script_text,
            scheduler=scheduler,
            lookahead_window=tracking["lookahead_window"],
            jump_window=tracking["jump_window"],
            jump_completion_ratio=tracking["jump_completion_ratio"],
            advance_delay=tracking["advance_delay_ms"] / 1000.0,
            match_threshold=tracking["match_threshold"],
            carry_over_after_jump=tracking["carry_over_after_jump"],
            revision_policy=tracking["revision_policy"]
        )

    # -- Listeners --

    def add_listener(self, listener: AlignmentListener) -> None:
        """Register a callback for every event, including timer-driven ones."""
        self._listeners.append(listener)

    def remove_listener(self, listener: AlignmentListener) -> None:
        """Unregister a callback added with add_listener()."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: AlignmentEvent) -> None:
        debug_log.log_event(event.kind.value, event.from_index,
                            event.to_index, event.matched_token_count)
        snapshot: AlignmentState = self._state.clone()
        for listener in list(self._listeners):
            listener(event, snapshot)

    # -- Lifecycle --

    def _clear_position(self) -> None:
        self._cancel_pending_advance()
        self._state = AlignmentState()
        self._seen_transcript = ""
        self._carry_over = []
        self._completion_reported = False

    def reset(self) -> AlignmentUpdate:
        """Return to the start of the script and forget the transcript.

        Used when the feature is activated or deactivated.
        """
        old_index: int = self._state.active_segment_index
        self._clear_position()
        logger.info("Aligner reset (%d segments)", len(self.segments))

        event: AlignmentEvent = AlignmentEvent(EventKind.RESET, old_index, 0)
        self._notify(event)
        return AlignmentUpdate(self.state, event)

    def load_script(self, script_text: str) -> AlignmentUpdate:
        """Rebuild the segment tables for a new script and reset."""
        self.segments = segment_script(script_text)
        logger.info("Script loaded: %d segments, %d tokens",
                    len(self.segments),
                    sum(s.token_count for s in self.segments))
        return self.reset()

    # -- Transcript matching --

    def consume(self, full_transcript: str) -> AlignmentUpdate:
        """
        Update the position from the recognizer's full transcript so far.

        Only text beyond the already-consumed prefix is matched. A transcript
        that is not longer than what was already consumed changes nothing.

        Args:
            full_transcript: Everything recognized since activation

        Returns:
            AlignmentUpdate with the new state and an optional COMPLETED or
            JUMPED event
        """
        if not isinstance(full_transcript, str):
            raise TypeError(
                f"Transcript must be a str, not {type(full_transcript).__name__}")

        delta: str | None = self._take_delta(full_transcript)
        if delta is None:
            return AlignmentUpdate(self.state)

        spoken: list[Token] = self._carry_over + tokenize(delta)
        self._carry_over = []
        debug_log.log_transcript(full_transcript, token_texts(spoken))

        if self.is_finished:
            logger.debug("End of script: ignoring %d tokens", len(spoken))
            return AlignmentUpdate(self.state)

        if not spoken:
            return AlignmentUpdate(self.state)

        return self._match_tokens(spoken)

    def _take_delta(self, full_transcript: str) -> str | None:
        """Work out which part of the transcript has not been matched yet.

        Moves the consumed cursor as a side effect.
        """
        state: AlignmentState = self._state

        if self.revision_policy == "drop":
            if len(full_transcript) <= state.consumed_transcript_length:
                logger.debug(
                    "Ignoring transcript of length %d (already consumed %d)",
                    len(full_transcript), state.consumed_transcript_length)
                return None
            delta: str = full_transcript[state.consumed_transcript_length:]
            state.consumed_transcript_length = len(full_transcript)
            self._seen_transcript = full_transcript
            return delta

        # resync: re-match from where the new transcript departs from the old
        previous: str = self._seen_transcript
        if full_transcript == previous:
            return None

        start: int
        if full_transcript.startswith(previous):
            start = len(previous)
        else:
            common: int = len(os.path.commonprefix([previous, full_transcript]))
            start = word_start(full_transcript, common)
            logger.info("Transcript revised at offset %d; re-matching '%s'",
                        start, full_transcript[start:])

        self._seen_transcript = full_transcript
        state.consumed_transcript_length = max(
            state.consumed_transcript_length, len(full_transcript))
        delta = full_transcript[start:]
        return delta or None

    def _match_tokens(self, spoken: list[Token]) -> AlignmentUpdate:
        """Match spoken tokens against the active segment, in order."""
        matched: list[Token] = []

        for position, token in enumerate(spoken):
            if self._match_local(token):
                matched.append(token)
                continue

            jump_offset: int | None = self._find_jump(token)
            if jump_offset is not None:
                matched.append(token)
                event: AlignmentEvent = self._jump(jump_offset)
                remaining: list[Token] = spoken[position + 1:]
                if remaining and self.carry_over_after_jump:
                    self._carry_over = remaining
                    logger.debug("Carrying over %d tokens after jump: %s",
                                 len(remaining), token_texts(remaining))
                self._notify(event)
                return AlignmentUpdate(self.state, event, matched)

            logger.debug("No match for '%s' at segment %d token %d",
                         token.text, self._state.active_segment_index,
                         self._state.matched_token_count)

        event_or_none: AlignmentEvent | None = self._check_completion()
        return AlignmentUpdate(self.state, event_or_none, matched)

    def _match_local(self, token: Token) -> bool:
        """Try to match a token within the lookahead window of the active segment."""
        tokens: tuple[Token, ...] = self.segments[self._state.active_segment_index].tokens
        start: int = self._state.matched_token_count
        end: int = min(start + self.lookahead_window + 1, len(tokens))

        for index in range(start, end):
            if token.matches(tokens[index], self.match_threshold):
                if index > start:
                    logger.debug("Local match: '%s' skipped %d script tokens",
                                 token.text, index - start)
                self._state.matched_token_count = index + 1
                return True
        return False

    def _completion_ratio(self) -> float:
        segment: Segment = self.segments[self._state.active_segment_index]
        if segment.token_count == 0:
            return 1.0
        return self._state.matched_token_count / segment.token_count

    def _find_jump(self, token: Token) -> int | None:
        """Check whether a token opens the next segment.

        Returns:
            Offset of the matching token in the next segment, or None
        """
        next_index: int = self._state.active_segment_index + 1
        if next_index >= len(self.segments):
            return None

        ratio: float = self._completion_ratio()
        if ratio <= self.jump_completion_ratio:
            return None

        next_tokens: tuple[Token, ...] = self.segments[next_index].tokens
        for offset in range(min(self.jump_window, len(next_tokens))):
            if token.matches(next_tokens[offset], self.match_threshold):
                return offset
        return None

    def _jump(self, offset: int) -> AlignmentEvent:
        """Move into the next segment with its first offset + 1 tokens matched."""
        self._cancel_pending_advance()
        old_index: int = self._state.active_segment_index
        self._state.active_segment_index = old_index + 1
        self._state.matched_token_count = offset + 1
        self._completion_reported = False
        logger.debug("JUMP: segment %d -> %d (offset %d)",
                     old_index, old_index + 1, offset)
        return AlignmentEvent(EventKind.JUMPED, old_index, old_index + 1,
                              offset + 1)

    def _check_completion(self) -> AlignmentEvent | None:
        """Arm the auto-advance once every token of the active segment is matched."""
        index: int = self._state.active_segment_index
        segment: Segment = self.segments[index]
        if segment.token_count == 0 or self._state.matched_token_count < segment.token_count:
            return None

        self._schedule_advance()

        if self._completion_reported:
            return None
        self._completion_reported = True
        logger.debug("Segment %d complete", index)
        event: AlignmentEvent = AlignmentEvent(
            EventKind.COMPLETED, index, index, self._state.matched_token_count)
        self._notify(event)
        return event

    # -- Debounced auto-advance --

    @property
    def advance_pending(self) -> bool:
        """Whether an auto-advance is waiting to fire."""
        return self._advance_handle is not None

    def _schedule_advance(self) -> None:
        if self._advance_handle is not None:
            return
        self._timer_generation += 1
        generation: int = self._timer_generation
        self._advance_handle = self.scheduler.call_later(
            self.advance_delay, lambda: self._on_advance_timer(generation))

    def _cancel_pending_advance(self) -> None:
        if self._advance_handle is not None:
            self._advance_handle.cancel()
            self._advance_handle = None
            logger.debug("Cancelled pending auto-advance")

    def _on_advance_timer(self, generation: int) -> None:
        # A cancelled timer that still fires must not move the position
        if generation != self._timer_generation or self._advance_handle is None:
            return
        self._advance_handle = None

        old_index: int = self._state.active_segment_index
        self._state.active_segment_index = min(old_index + 1, len(self.segments))
        self._state.matched_token_count = 0
        self._completion_reported = False
        logger.debug("Auto-advance: segment %d -> %d",
                     old_index, self._state.active_segment_index)
        self._notify(AlignmentEvent(EventKind.ADVANCED, old_index,
                                    self._state.active_segment_index))

    # -- Manual navigation --

    def advance(self) -> AlignmentUpdate:
        """Move to the next segment (manual scroll down)."""
        return self._navigate(1)

    def retreat(self) -> AlignmentUpdate:
        """Move to the previous segment (manual scroll up)."""
        return self._navigate(-1)

    def _navigate(self, step: int) -> AlignmentUpdate:
        self._cancel_pending_advance()
        self._carry_over = []

        old_index: int = self._state.active_segment_index
        last_index: int = len(self.segments) - 1
        if last_index < 0:
            return AlignmentUpdate(self.state)

        new_index: int = max(0, min(old_index + step, last_index))

        if new_index == old_index:
            logger.debug("Navigation at boundary (segment %d) ignored", old_index)
            return AlignmentUpdate(self.state)

        self._state.active_segment_index = new_index
        self._state.matched_token_count = 0
        self._completion_reported = False
        logger.debug("Manual navigation: segment %d -> %d", old_index, new_index)

        event: AlignmentEvent = AlignmentEvent(EventKind.NAVIGATED, old_index, new_index)
        self._notify(event)
        return AlignmentUpdate(self.state, event)

    # -- Read-only views --

    @property
    def state(self) -> AlignmentState:
        """A copy of the current state."""
        return self._state.clone()

    @property
    def segment_count(self) -> int:
        """Total number of segments (for progress display)."""
        return len(self.segments)

    @property
    def is_finished(self) -> bool:
        """Whether the end of the script has been reached."""
        return self._state.active_segment_index >= len(self.segments)

    @property
    def active_segment(self) -> Segment | None:
        """The segment being spoken, or None at the end of the script."""
        if self.is_finished:
            return None
        return self.segments[self._state.active_segment_index]

    @property
    def pending_tokens(self) -> list[Token]:
        """Tokens held over from a jump, waiting for the next update."""
        return list(self._carry_over)

    @property
    def progress(self) -> float:
        """Overall progress through the script (0.0 to 1.0)."""
        if not self.segments:
            return 1.0
        return self._state.active_segment_index / len(self.segments)
