"""
Tests for in-segment matching with a bounded lookahead.
"""

import pytest
from linecue.aligner import AlignmentUpdate, SegmentAligner
from linecue.scheduler import VirtualScheduler

SCRIPT: str = "one two three four five six seven eight. nine ten."


def make_aligner(script: str = SCRIPT, **kwargs) -> SegmentAligner:
    return SegmentAligner(script, scheduler=VirtualScheduler(), **kwargs)


class TestSequentialMatching:
    """Tests for word-by-word progress through a segment."""

    def test_initial_state(self) -> None:
        """The aligner starts at the first token of the first segment."""
        aligner: SegmentAligner = make_aligner()
        assert aligner.state.position == (0, 0)
        assert aligner.state.consumed_transcript_length == 0

    def test_each_word_advances(self) -> None:
        """Every spoken word moves the matched count by one."""
        aligner: SegmentAligner = make_aligner()
        assert aligner.consume("one").state.position == (0, 1)
        assert aligner.consume("one two").state.position == (0, 2)
        assert aligner.consume("one two three").state.position == (0, 3)

    def test_case_and_punctuation_ignored(self) -> None:
        """Recognizer casing and punctuation do not affect matching."""
        aligner: SegmentAligner = make_aligner()
        assert aligner.consume("ONE, Two!").state.position == (0, 2)

    def test_matched_tokens_reported(self) -> None:
        """The update lists the transcript tokens that matched."""
        aligner: SegmentAligner = make_aligner()
        update: AlignmentUpdate = aligner.consume("one banana two")
        assert [t.text for t in update.matched_tokens] == ["one", "two"]

    def test_consumed_length_tracks_transcript(self) -> None:
        """The consumed cursor equals the transcript length after each call."""
        aligner: SegmentAligner = make_aligner()
        for transcript in ["one", "one two", "one two um", "one two um three"]:
            assert aligner.consume(transcript).state.consumed_transcript_length == len(transcript)


class TestLookahead:
    """Tests for skipping script words."""

    def test_skip_within_window(self) -> None:
        """A word up to four tokens ahead is accepted."""
        aligner: SegmentAligner = make_aligner()
        aligner.consume("one")
        assert aligner.consume("one four").state.position == (0, 4)

    def test_window_edge(self) -> None:
        """The fifth token from the cursor is the furthest accepted."""
        aligner: SegmentAligner = make_aligner()
        aligner.consume("one")
        assert aligner.consume("one six").state.position == (0, 6)

    def test_beyond_window(self) -> None:
        """Words further ahead than the window are ignored."""
        aligner: SegmentAligner = make_aligner()
        aligner.consume("one")
        assert aligner.consume("one seven").state.position == (0, 1)

    def test_configurable_window(self) -> None:
        """A smaller lookahead window accepts fewer skips."""
        aligner: SegmentAligner = make_aligner(lookahead_window=1)
        assert aligner.consume("three").state.position == (0, 0)
        assert aligner.consume("three two").state.position == (0, 2)

    def test_noise_discarded(self) -> None:
        """Unmatched words do not move the position."""
        aligner: SegmentAligner = make_aligner()
        update: AlignmentUpdate = aligner.consume("um uh one like two")
        assert update.state.position == (0, 2)
        assert update.event is None

    def test_repeated_word_not_double_counted(self) -> None:
        """Repeating an already-matched word is noise."""
        aligner: SegmentAligner = make_aligner()
        assert aligner.consume("one one two").state.position == (0, 2)

    def test_fuzzy_matching(self) -> None:
        """A threshold below 100 accepts misrecognized words."""
        aligner: SegmentAligner = make_aligner(
            "Please recognise this speech.", match_threshold=80.0)
        assert aligner.consume("please recognize").state.position == (0, 2)

    def test_exact_by_default(self) -> None:
        """The default threshold needs an exact word."""
        aligner: SegmentAligner = make_aligner("Please recognise this speech.")
        assert aligner.consume("please recognize").state.position == (0, 1)


class TestTranscriptInput:
    """Tests for the transcript contract."""

    def test_identical_transcript_is_noop(self) -> None:
        """Feeding the same transcript twice changes nothing."""
        aligner: SegmentAligner = make_aligner()
        first = aligner.consume("one two").state
        second: AlignmentUpdate = aligner.consume("one two")
        assert second.state == first
        assert second.event is None
        assert second.matched_tokens == []

    def test_shorter_transcript_is_noop(self) -> None:
        """A shorter transcript is ignored without error."""
        aligner: SegmentAligner = make_aligner()
        aligner.consume("one two three")
        update: AlignmentUpdate = aligner.consume("one")
        assert update.state.position == (0, 3)
        assert update.state.consumed_transcript_length == len("one two three")

    def test_empty_transcript(self) -> None:
        """An empty transcript is valid input."""
        aligner: SegmentAligner = make_aligner()
        assert aligner.consume("").state.position == (0, 0)

    def test_consumed_length_monotonic(self) -> None:
        """The consumed cursor never decreases."""
        aligner: SegmentAligner = make_aligner()
        lengths: list[int] = []
        for transcript in ["one two", "one", "one two three", "", "one two three four"]:
            lengths.append(aligner.consume(transcript).state.consumed_transcript_length)
        assert lengths == sorted(lengths)

    @pytest.mark.parametrize("bad", [None, b"one two", 42])
    def test_rejects_non_string(self, bad) -> None:
        """Non-string transcripts are a programming error."""
        aligner: SegmentAligner = make_aligner()
        with pytest.raises(TypeError):
            aligner.consume(bad)

    def test_invalid_revision_policy(self) -> None:
        """Unknown revision policies are rejected at construction."""
        with pytest.raises(ValueError):
            make_aligner(revision_policy="rewind")


class TestEmptyScript:
    """Tests for scripts with no segments."""

    def test_starts_finished(self) -> None:
        """An empty script is immediately at its end."""
        aligner: SegmentAligner = make_aligner("")
        assert aligner.is_finished
        assert aligner.active_segment is None
        assert aligner.segment_count == 0
        assert aligner.progress == 1.0

    def test_consume_only_moves_cursor(self) -> None:
        """Transcripts are consumed but never move the position."""
        aligner: SegmentAligner = make_aligner("   ")
        update: AlignmentUpdate = aligner.consume("hello there")
        assert update.state.position == (0, 0)
        assert update.state.consumed_transcript_length == len("hello there")
        assert update.event is None
