# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Prompter session that coordinates the script, the transcript and the aligner.

The session is what a host application talks to: it receives script edits,
feature toggles, recognizer results and navigation gestures, and keeps the
aligner in step with them. Everything runs on one asyncio loop, so the
aligner never sees two updates at once.
"""

import logging
from collections.abc import AsyncIterator
from enum import Enum

from . import debug_log
from .aligner import AlignmentListener, AlignmentUpdate, SegmentAligner
from .config import (
    DEFAULT_CONFIG,
    Config,
    DisplaySettings,
    get_display_settings,
    get_navigation_settings,
    get_tracking_settings,
)
from .display import DisplayWindow, get_display_window
from .navigation import WheelNavigator
from .scheduler import Scheduler
from .transcript import TranscriptAccumulator, TranscriptionResult

logger = logging.getLogger(__name__)


class Feature(Enum):
    """What the overlay is currently used for."""
    NONE = "none"
    INTERVIEWER = "interviewer"
    TELEPROMPTER = "teleprompter"


class PrompterSession:
    """
    Main prompter session that wires recognizer output to the aligner.

    Transcripts are only aligned while the teleprompter feature is active.
    Changing the script or the feature resets the position and starts a new
    transcript.
    """

    def __init__(
        self,
        script_text: str = "",
        feature: Feature = Feature.TELEPROMPTER,
        config: Config | None = None,
        scheduler: Scheduler | None = None
    ) -> None:
        self.config: Config = config or DEFAULT_CONFIG
        self.display_settings: DisplaySettings = get_display_settings(self.config)

        self.script_text: str = script_text
        self.feature: Feature = feature
        self.transcript: TranscriptAccumulator = TranscriptAccumulator()

        self.aligner: SegmentAligner = SegmentAligner.from_settings(
            script_text,
            get_tracking_settings(self.config),
            scheduler=scheduler
        )
        self.navigator: WheelNavigator = WheelNavigator.from_settings(
            self.aligner,
            get_navigation_settings(self.config)
        )

    @property
    def active(self) -> bool:
        """Whether transcripts and navigation currently drive the prompter."""
        return self.feature is Feature.TELEPROMPTER

    def add_listener(self, listener: AlignmentListener) -> None:
        """Register a callback for alignment events."""
        self.aligner.add_listener(listener)

    def set_script(self, script_text: str) -> AlignmentUpdate | None:
        """Replace the script. Unchanged text is ignored."""
        if script_text == self.script_text:
            return None
        self.script_text = script_text
        self.transcript.clear()
        self.navigator.cancel()
        debug_log.clear_logs()
        return self.aligner.load_script(script_text)

    def set_feature(self, feature: Feature) -> AlignmentUpdate | None:
        """Switch the overlay feature, resetting position and transcript."""
        if feature is self.feature:
            return None
        logger.info("Feature changed: %s -> %s", self.feature.value, feature.value)
        self.feature = feature
        return self.reset()

    def reset(self) -> AlignmentUpdate:
        """Start the script over with an empty transcript."""
        self.transcript.clear()
        self.navigator.cancel()
        return self.aligner.reset()

    def on_result(self, result: TranscriptionResult) -> AlignmentUpdate | None:
        """
        Handle one recognizer result.

        Returns:
            The aligner update if the transcript grew, else None
        """
        if not self.active:
            return None
        if not self.transcript.add(result):
            return None
        return self.aligner.consume(self.transcript.text)

    def advance(self) -> AlignmentUpdate | None:
        """Manual move to the next segment."""
        if not self.active:
            return None
        return self.aligner.advance()

    def retreat(self) -> AlignmentUpdate | None:
        """Manual move to the previous segment."""
        if not self.active:
            return None
        return self.aligner.retreat()

    def on_wheel(self, delta_y: float) -> AlignmentUpdate | None:
        """Handle a raw wheel gesture."""
        if not self.active:
            return None
        return self.navigator.on_wheel(delta_y)

    def view(self) -> DisplayWindow:
        """Current display window using the configured context sizes."""
        return get_display_window(
            self.aligner,
            past_segments=self.display_settings.get("past_segments", 1),
            future_segments=self.display_settings.get("future_segments", 1)
        )

    async def run(self, results: AsyncIterator[TranscriptionResult]) -> None:
        """Feed recognizer results to the session until the source ends."""
        async for result in results:
            self.on_result(result)
