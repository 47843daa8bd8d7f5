# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Translates raw scroll-wheel gestures into manual navigation commands.

Trackpads and wheels emit bursts of small deltas for one physical gesture.
A gesture counts only when its vertical delta is large enough, and after
one command further gestures are ignored for a short throttle window so a
single flick moves exactly one segment.
"""

import logging

from .aligner import AlignmentUpdate, SegmentAligner
from .config import DEFAULT_CONFIG, NavigationSettings
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class WheelNavigator:
    """
    Throttled wheel-to-navigation adapter.

    Usage:
        navigator = WheelNavigator(aligner)
        navigator.on_wheel(delta_y=120)  # -> aligner.advance()
        navigator.on_wheel(delta_y=80)   # ignored while throttled
    """

    def __init__(
        self,
        aligner: SegmentAligner,
        scheduler: Scheduler | None = None,
        threshold: float = 20.0,
        throttle: float = 0.15
    ) -> None:
        """
        Initialize the navigator.

        Args:
            aligner: The aligner to move
            scheduler: Runs the throttle timer (defaults to the aligner's)
            threshold: Minimum absolute vertical delta that counts as a gesture
            throttle: Seconds during which further gestures are ignored
        """
        self.aligner: SegmentAligner = aligner
        self.scheduler: Scheduler = scheduler if scheduler is not None else aligner.scheduler
        self.threshold: float = threshold
        self.throttle: float = throttle
        self._throttle_handle: TimerHandle | None = None

    @classmethod
    def from_settings(
        cls,
        aligner: SegmentAligner,
        settings: NavigationSettings | None = None,
        scheduler: Scheduler | None = None
    ) -> 'WheelNavigator':
        """Create a navigator from the navigation section of the config."""
        navigation: NavigationSettings = {**DEFAULT_CONFIG["navigation"], **(settings or {})}
        return cls(
            aligner,
            scheduler=scheduler,
            threshold=navigation["wheel_threshold"],
            throttle=navigation["wheel_throttle_ms"] / 1000.0
        )

    @property
    def throttled(self) -> bool:
        """Whether gestures are currently being ignored."""
        return self._throttle_handle is not None

    def on_wheel(self, delta_y: float) -> AlignmentUpdate | None:
        """
        Handle one wheel event.

        Args:
            delta_y: Vertical scroll delta (positive scrolls down/forward)

        Returns:
            The aligner update if the gesture triggered navigation, else None
        """
        if self.throttled:
            return None
        if abs(delta_y) <= self.threshold:
            return None

        update: AlignmentUpdate
        if delta_y > 0:
            update = self.aligner.advance()
        else:
            update = self.aligner.retreat()
        logger.debug("Wheel delta %.1f -> segment %d", delta_y,
                     update.state.active_segment_index)

        self._throttle_handle = self.scheduler.call_later(self.throttle, self._release)
        return update

    def _release(self) -> None:
        self._throttle_handle = None

    def cancel(self) -> None:
        """Drop any active throttle (e.g. when the feature is switched off)."""
        if self._throttle_handle is not None:
            self._throttle_handle.cancel()
            self._throttle_handle = None
