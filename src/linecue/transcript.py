# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Transcript accumulation for speech recognizer output.

Recognizers deliver text in chunks: partial results that keep changing while
someone is speaking, and final results once an utterance ends. The aligner
wants one monotonically growing string, so final results are appended to a
running transcript and partial results are kept only as a preview.
"""

from dataclasses import dataclass


@dataclass
class TranscriptionResult:
    """Represents a transcription result from any recognizer."""

    text: str
    is_partial: bool = False
    confidence: float = 1.0

    def __repr__(self) -> str:
        status: str = "partial" if self.is_partial else "final"
        return f"TranscriptionResult({status}: '{self.text}')"


class TranscriptAccumulator:
    """
    Builds the full transcript from a stream of recognizer results.

    Final results are joined with a single space. The text only ever grows
    until clear() is called.
    """

    def __init__(self) -> None:
        self._text: str = ""
        self.partial: str = ""
        self.final_count: int = 0

    @property
    def text(self) -> str:
        """Everything finalized so far."""
        return self._text

    def add(self, result: TranscriptionResult) -> bool:
        """
        Add a recognizer result.

        Args:
            result: Partial or final transcription result

        Returns:
            True if the accumulated transcript grew
        """
        if result.is_partial:
            self.partial = result.text
            return False

        self.partial = ""
        text: str = result.text.strip()
        if not text:
            return False

        self._text = f"{self._text} {text}" if self._text else text
        self.final_count += 1
        return True

    def clear(self) -> None:
        """Forget everything (new session)."""
        self._text = ""
        self.partial = ""
        self.final_count = 0

