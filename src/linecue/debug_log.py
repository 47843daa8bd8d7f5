"""
Debug logging for alignment decisions.

Creates one log file per session:
- alignment.log: Transcripts received, tokens extracted and every position
  event (completed, jumped, advanced, navigated, reset)

Logging is disabled by default. Call enable() to turn it on.
"""

from datetime import datetime
from pathlib import Path

# Log files location (in the current working directory)
LOG_DIR: Path = Path.cwd() / "logs"
ALIGNMENT_LOG: Path = LOG_DIR / "alignment.log"

# Global flag to control whether debug logging is enabled
_ENABLED: bool = False  # pylint: disable=invalid-name


def enable(log_dir: Path | None = None) -> None:
    """Enable debug logging, optionally to a different directory."""
    global _ENABLED, LOG_DIR, ALIGNMENT_LOG  # pylint: disable=global-statement
    if log_dir is not None:
        LOG_DIR = log_dir
        ALIGNMENT_LOG = log_dir / "alignment.log"
    _ENABLED = True


def disable() -> None:
    """Disable debug logging."""
    global _ENABLED  # pylint: disable=global-statement
    _ENABLED = False


def is_enabled() -> bool:
    """Check if debug logging is enabled."""
    return _ENABLED


def _ensure_log_dir() -> None:
    """Create log directory if it doesn't exist."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)


def _timestamp() -> str:
    """Get current timestamp."""
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


def clear_logs() -> None:
    """Clear the log file for a fresh session."""
    if not _ENABLED:
        return
    _ensure_log_dir()
    with open(ALIGNMENT_LOG, 'w', encoding='utf-8') as f:
        f.write(f"=== New session started at {datetime.now().isoformat()} ===\n\n")


def log_transcript(transcript: str, new_tokens: list[str]) -> None:
    """Log the transcript and the tokens extracted from its new tail."""
    if not _ENABLED:
        return
    _ensure_log_dir()
    with open(ALIGNMENT_LOG, 'a', encoding='utf-8') as f:
        f.write(
            f"[{_timestamp()}] transcript: \"{transcript[-60:]}\" new_tokens={new_tokens}\n")


def log_event(event: str, from_index: int, to_index: int, matched: int = 0) -> None:
    """
    Log a position event.

    Args:
        event: Type of event (completed, jumped, advanced, navigated, reset)
        from_index: Segment index before the event
        to_index: Segment index after the event
        matched: Tokens matched in the new segment
    """
    if not _ENABLED:
        return
    _ensure_log_dir()
    with open(ALIGNMENT_LOG, 'a', encoding='utf-8') as f:
        f.write(
            f"[{_timestamp()}] {event:10} segment {from_index:3d} -> {to_index:3d} "
            f"matched={matched}\n")
