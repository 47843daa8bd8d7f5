"""
Tests for the prompter session that wires results, features and navigation.
"""

from collections.abc import AsyncIterator

import pytest
from linecue.aligner import AlignmentEvent, AlignmentState, EventKind
from linecue.config import DEFAULT_CONFIG, update_config_tracking
from linecue.scheduler import VirtualScheduler
from linecue.session import Feature, PrompterSession
from linecue.transcript import TranscriptionResult

SCRIPT: str = "Hello world. Testing one two."


def make_session(script: str = SCRIPT, **kwargs) -> tuple[PrompterSession, VirtualScheduler]:
    scheduler: VirtualScheduler = VirtualScheduler()
    return PrompterSession(script, scheduler=scheduler, **kwargs), scheduler


class TestResults:
    """Tests for feeding recognizer results."""

    def test_finals_drive_alignment(self) -> None:
        """Each final result extends the transcript and is aligned."""
        session, _ = make_session()
        session.on_result(TranscriptionResult("Hello"))
        update = session.on_result(TranscriptionResult("world"))
        assert update is not None
        assert update.state.position == (0, 2)
        assert session.transcript.text == "Hello world"

    def test_partials_ignored(self) -> None:
        """Partial results do not move the position."""
        session, _ = make_session()
        assert session.on_result(TranscriptionResult("Hello", is_partial=True)) is None
        assert session.aligner.state.position == (0, 0)

    def test_jump_across_results(self) -> None:
        """A new utterance opening the next line jumps to it."""
        session, scheduler = make_session()
        session.on_result(TranscriptionResult("Hello world."))
        update = session.on_result(TranscriptionResult("Testing"))
        assert update is not None and update.jumped
        scheduler.run_all()
        assert session.aligner.state.position == (1, 1)

    def test_config_applied(self) -> None:
        """Tracking settings from the config reach the aligner."""
        config = update_config_tracking(DEFAULT_CONFIG, {"advance_delay_ms": 500})
        session, scheduler = make_session(config=config)
        session.on_result(TranscriptionResult("Hello world"))
        scheduler.advance(0.1)
        assert session.aligner.state.position == (0, 2)
        scheduler.advance(0.5)
        assert session.aligner.state.position == (1, 0)


class TestFeatureToggle:
    """Tests for switching the overlay feature."""

    def test_inactive_feature_ignores_input(self) -> None:
        """Only the teleprompter feature aligns and navigates."""
        session, _ = make_session(feature=Feature.INTERVIEWER)
        assert not session.active
        assert session.on_result(TranscriptionResult("Hello world")) is None
        assert session.advance() is None
        assert session.on_wheel(100.0) is None
        assert session.aligner.state.position == (0, 0)

    def test_toggle_resets_position_and_transcript(self) -> None:
        """Switching features starts over."""
        session, _ = make_session()
        session.on_result(TranscriptionResult("Hello world"))
        session.advance()

        update = session.set_feature(Feature.NONE)
        assert update is not None
        assert update.event is not None and update.event.kind is EventKind.RESET
        assert session.transcript.text == ""

        session.set_feature(Feature.TELEPROMPTER)
        update = session.on_result(TranscriptionResult("Hello"))
        assert update is not None
        assert update.state.position == (0, 1)

    def test_same_feature_is_noop(self) -> None:
        """Setting the current feature changes nothing."""
        session, _ = make_session()
        session.on_result(TranscriptionResult("Hello"))
        assert session.set_feature(Feature.TELEPROMPTER) is None
        assert session.aligner.state.position == (0, 1)


class TestScriptChange:
    """Tests for replacing the script."""

    def test_new_script_resets(self) -> None:
        """A different script starts from its first segment."""
        session, _ = make_session()
        session.on_result(TranscriptionResult("Hello world"))
        session.set_script("你好世界。今天天气很好。")
        assert session.aligner.segment_count == 2
        assert session.aligner.state.position == (0, 0)

        update = session.on_result(TranscriptionResult("你好"))
        assert update is not None
        assert update.state.position == (0, 2)

    def test_unchanged_script_is_noop(self) -> None:
        """Re-setting the same text keeps the position."""
        session, _ = make_session()
        session.on_result(TranscriptionResult("Hello"))
        assert session.set_script(SCRIPT) is None
        assert session.aligner.state.position == (0, 1)


class TestReset:
    """Tests for starting the script over."""

    def test_reset_clears_position_transcript_and_throttle(self) -> None:
        """reset() returns to the start and accepts wheel input at once."""
        session, _ = make_session()
        session.on_result(TranscriptionResult("Hello"))
        session.on_wheel(100.0)
        assert session.navigator.throttled

        update = session.reset()
        assert update.event is not None and update.event.kind is EventKind.RESET
        assert update.state.position == (0, 0)
        assert session.transcript.text == ""
        assert not session.navigator.throttled

    def test_transcript_restarts_after_reset(self) -> None:
        """Speech after a reset is matched from the first segment."""
        session, _ = make_session()
        session.on_result(TranscriptionResult("Hello world"))
        session.reset()
        update = session.on_result(TranscriptionResult("Hello"))
        assert update is not None
        assert update.state.position == (0, 1)


class TestNavigation:
    """Tests for navigation through the session."""

    def test_advance_retreat(self) -> None:
        """Manual commands move one segment."""
        session, _ = make_session()
        assert session.advance().state.position == (1, 0)
        assert session.retreat().state.position == (0, 0)

    def test_wheel(self) -> None:
        """Wheel gestures use the configured threshold."""
        session, _ = make_session()
        assert session.on_wheel(10.0) is None
        update = session.on_wheel(40.0)
        assert update is not None
        assert update.state.position == (1, 0)

    def test_view(self) -> None:
        """The view reflects the current position."""
        session, _ = make_session()
        session.on_result(TranscriptionResult("Hello"))
        window = session.view()
        assert window.progress_label == "1 / 2"
        assert [t.matched for t in window.lines[0].tokens] == [True, False]


class TestRun:
    """Tests for consuming an async result stream."""

    @pytest.mark.asyncio
    async def test_run_consumes_stream(self) -> None:
        """Every result from the stream is processed in order."""
        session, scheduler = make_session()
        events: list[EventKind] = []

        def listener(event: AlignmentEvent, state: AlignmentState) -> None:
            events.append(event.kind)

        session.add_listener(listener)

        async def results() -> AsyncIterator[TranscriptionResult]:
            for text in ["Hello", "world", "Testing one", "two"]:
                yield TranscriptionResult(text)

        await session.run(results())
        scheduler.run_all()
        assert events == [EventKind.COMPLETED, EventKind.JUMPED,
                          EventKind.COMPLETED, EventKind.ADVANCED]
        assert session.aligner.is_finished
