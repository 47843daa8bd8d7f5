# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Debug tool for replaying a transcript through the aligner.

This CLI tool takes a script file and a transcript file, feeds each
transcript line to the aligner as a final recognizer result on a virtual
clock, and writes every alignment event to help debug tracking issues.
"""

import argparse
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TextIO

from .aligner import AlignmentEvent, AlignmentState, EventKind, SegmentAligner
from .config import TrackingSettings, get_tracking_settings, load_config
from .scheduler import VirtualScheduler
from .script_parser import load_script
from .tokenizer import token_texts
from .transcript import TranscriptAccumulator, TranscriptionResult

# Saved transcripts may carry header lines such as "=== Session ... ==="
METADATA_PREFIX: str = "==="


@dataclass
class ReplayEvent:
    """A single alignment event during transcript replay."""
    transcript_line: int
    time: float
    kind: EventKind
    from_index: int
    to_index: int
    matched: int


def load_transcript(path: Path) -> list[str]:
    """Read a saved transcript, one recognizer result per line.

    Blank lines and metadata lines are skipped.
    """
    text: str = path.read_text(encoding="utf-8")
    stripped: list[str] = [line.strip() for line in text.splitlines()]
    return [line for line in stripped if line and not line.startswith(METADATA_PREFIX)]


def _split_results(transcript_lines: list[str], word_by_word: bool) -> list[tuple[int, str]]:
    """Turn transcript lines into (line number, result text) pairs."""
    results: list[tuple[int, str]] = []
    for line_num, line in enumerate(transcript_lines, start=1):
        if word_by_word:
            results.extend((line_num, word) for word in line.split())
        else:
            results.append((line_num, line))
    return results


def replay_transcript(
    transcript_lines: list[str],
    script_text: str,
    output: TextIO,
    settings: TrackingSettings | None = None,
    gap: float = 0.5,
    word_by_word: bool = False,
    verbose: bool = False
) -> list[ReplayEvent]:
    """Replay transcript through the aligner and log events.

    Args:
        transcript_lines: Lines of transcript text (each one final result)
        script_text: The script content
        output: File handle to write log output
        settings: Tracking settings (defaults used if None)
        gap: Virtual seconds between consecutive results
        word_by_word: Deliver each word as its own result
        verbose: If True, log the position after every result

    Returns:
        List of all alignment events
    """
    scheduler: VirtualScheduler = VirtualScheduler()
    aligner: SegmentAligner = SegmentAligner.from_settings(
        script_text, settings, scheduler=scheduler)
    transcript: TranscriptAccumulator = TranscriptAccumulator()
    events: list[ReplayEvent] = []
    current_line: int = 0

    def on_event(event: AlignmentEvent, state: AlignmentState) -> None:
        events.append(ReplayEvent(
            transcript_line=current_line,
            time=scheduler.now(),
            kind=event.kind,
            from_index=event.from_index,
            to_index=event.to_index,
            matched=event.matched_token_count
        ))
        marker: str = "***" if event.kind is EventKind.JUMPED else "  *"
        output.write(
            f"{marker} [{scheduler.now():8.3f}s] {event.kind.value.upper():9} "
            f"segment {event.from_index} -> {event.to_index} "
            f"(matched {state.matched_token_count})\n")

    aligner.add_listener(on_event)

    # Write header
    output.write("=" * 80 + "\n")
    output.write("TRANSCRIPT REPLAY LOG" + (" (WORD-BY-WORD MODE)" if word_by_word else "") + "\n")
    output.write(f"Generated: {datetime.now().isoformat()}\n")
    output.write(f"Script segments: {aligner.segment_count}\n")
    output.write(f"Transcript lines: {len(transcript_lines)}\n")
    output.write("=" * 80 + "\n\n")

    # Write segment reference
    output.write("SCRIPT SEGMENTS:\n")
    output.write("-" * 40 + "\n")
    for segment in aligner.segments:
        output.write(f"  [{segment.index:3d}] {segment.raw_text}\n")
        output.write(f"        tokens: {token_texts(list(segment.tokens))}\n")
    output.write("\n" + "=" * 80 + "\n\n")

    output.write("ALIGNMENT LOG:\n")
    output.write("-" * 40 + "\n")

    for line_num, text in _split_results(transcript_lines, word_by_word):
        if line_num != current_line:
            current_line = line_num
            output.write(f"\n--- Line {line_num}: \"{transcript_lines[line_num - 1][:60]}\" ---\n")

        if transcript.add(TranscriptionResult(text=text)):
            update = aligner.consume(transcript.text)
            if verbose:
                output.write(
                    f"    \"{text}\" -> segment {update.state.active_segment_index} "
                    f"matched {update.state.matched_token_count} "
                    f"tokens={token_texts(update.matched_tokens)}\n")

        scheduler.advance(gap)

    scheduler.run_all()

    # Write summary
    final: AlignmentState = aligner.state
    output.write("\n" + "=" * 80 + "\n")
    output.write("SUMMARY:\n")
    output.write("-" * 40 + "\n")
    output.write(f"Total lines processed: {len(transcript_lines)}\n")
    output.write(
        f"Final position: segment {final.active_segment_index} / {aligner.segment_count}, "
        f"matched {final.matched_token_count}\n")
    for kind in (EventKind.COMPLETED, EventKind.JUMPED, EventKind.ADVANCED):
        count: int = sum(1 for e in events if e.kind is kind)
        output.write(f"{kind.value.capitalize()}: {count}\n")
    output.write(f"Finished: {'yes' if aligner.is_finished else 'no'}\n")

    return events


def main() -> None:
    """CLI entry point for the transcript replay tool."""
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Debug alignment by replaying a transcript through the aligner"
    )

    parser.add_argument(
        "script",
        type=Path,
        help="Path to script file (.txt or .md)"
    )

    parser.add_argument(
        "transcript",
        type=Path,
        help="Path to transcript file (one recognizer result per line)"
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output log file path (default: stdout)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log the position after every result, not just events"
    )

    parser.add_argument(
        "-w", "--word-by-word",
        action="store_true",
        help="Deliver the transcript one word at a time"
    )

    parser.add_argument(
        "--gap-ms",
        type=int,
        default=500,
        help="Virtual milliseconds between results (default: 500)"
    )

    args: argparse.Namespace = parser.parse_args()

    # Validate inputs
    if not args.transcript.exists():
        print(
            f"Error: Transcript file not found: {args.transcript}", file=sys.stderr)
        sys.exit(1)

    if not args.script.exists():
        print(f"Error: Script file not found: {args.script}", file=sys.stderr)
        sys.exit(1)

    # Load files
    try:
        transcript_lines: list[str] = load_transcript(args.transcript)
        script_text: str = load_script(args.script)
    except OSError as e:
        print(f"Error loading files: {e}", file=sys.stderr)
        sys.exit(1)

    if not transcript_lines:
        print("Error: No transcript lines found", file=sys.stderr)
        sys.exit(1)

    settings: TrackingSettings = get_tracking_settings(load_config())
    gap: float = args.gap_ms / 1000.0

    # Run replay
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            replay_transcript(transcript_lines, script_text, f, settings, gap,
                              args.word_by_word, args.verbose)
        print(f"Replay log written to: {args.output}")
    else:
        replay_transcript(transcript_lines, script_text, sys.stdout, settings, gap,
                          args.word_by_word, args.verbose)


if __name__ == "__main__":
    main()
