"""
linecue - Speech-following teleprompter alignment.

Follows a speaker through a pre-written script using the live transcript
from a speech recognizer, highlighting spoken words and moving on line by
line as each sentence is finished.
"""

__version__ = "0.1.0"

from .aligner import AlignmentEvent, AlignmentState, AlignmentUpdate, EventKind, SegmentAligner
from .navigation import WheelNavigator
from .scheduler import AsyncioScheduler, Scheduler, VirtualScheduler
from .segmenter import Segment, segment_script
from .session import Feature, PrompterSession
from .tokenizer import Token, tokenize

__all__ = [
    "AlignmentEvent",
    "AlignmentState",
    "AlignmentUpdate",
    "EventKind",
    "SegmentAligner",
    "WheelNavigator",
    "AsyncioScheduler",
    "Scheduler",
    "VirtualScheduler",
    "Segment",
    "segment_script",
    "Feature",
    "PrompterSession",
    "Token",
    "tokenize",
]
