# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Main linecue application.
Reads recognizer results line by line and shows the prompter position.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TextIO

from . import debug_log
from .aligner import AlignmentEvent, AlignmentState, EventKind
from .config import (
    Config,
    get_config_path,
    load_config,
    save_config,
    update_config_tracking,
    validate_config,
)
from .display import DisplayWindow, render_text
from .scheduler import AsyncioScheduler
from .script_parser import load_script
from .segmenter import segment_script
from .session import PrompterSession
from .tokenizer import token_texts
from .transcript import TranscriptionResult

logger = logging.getLogger(__name__)


class PrompterApp:
    """
    Console prompter that coordinates input, the session and the display.

    Each input line is one final recognizer result, except for the
    commands :next, :prev, :reset and :quit.
    """

    def __init__(
        self,
        script_text: str,
        config: Config,
        source: TextIO,
        output: TextIO
    ) -> None:
        self.script_text: str = script_text
        self.config: Config = config
        self.source: TextIO = source
        self.output: TextIO = output
        self.session: PrompterSession | None = None
        self.running: bool = False

    def _on_event(self, event: AlignmentEvent, state: AlignmentState) -> None:
        if event.kind in (EventKind.ADVANCED, EventKind.JUMPED, EventKind.NAVIGATED):
            self.show()

    def show(self) -> None:
        """Print the active segment with spoken tokens bracketed."""
        assert self.session is not None, "Session must be initialized"
        window: DisplayWindow = self.session.view()
        if window.finished or window.active_line is None:
            self.output.write(f"[{window.progress_label}] <end of script>\n")
        else:
            line_text: str = render_text(window.lines[window.active_line])
            self.output.write(f"[{window.progress_label}] {line_text}\n")
        self.output.flush()

    def handle_line(self, line: str) -> None:
        """Process one input line (speech or command)."""
        assert self.session is not None, "Session must be initialized"
        command: str = line.strip().lower()
        if command.startswith(":"):
            logger.debug("Command: %s", command)

        if command == ":quit":
            self.running = False
        elif command == ":next":
            self.session.advance()
        elif command == ":prev":
            self.session.retreat()
        elif command == ":reset":
            self.session.reset()
            self.show()
        else:
            update = self.session.on_result(TranscriptionResult(text=line))
            if update is not None and not update.jumped:
                self.show()

    async def start(self) -> None:
        """Run until the input ends or :quit is entered."""
        self.session = PrompterSession(
            self.script_text,
            config=self.config,
            scheduler=AsyncioScheduler()
        )
        self.session.add_listener(self._on_event)
        self.running = True

        self.output.write(
            f"Script loaded: {self.session.aligner.segment_count} segments\n")
        self.show()

        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        while self.running:
            # Blocking readline runs in the thread pool so timers keep firing
            line: str = await loop.run_in_executor(None, self.source.readline)
            if not line:
                break
            if line.strip():
                self.handle_line(line.rstrip("\n"))

        # Let a pending auto-advance land before exiting
        if self.session.aligner.advance_pending:
            await asyncio.sleep(self.session.aligner.advance_delay * 2)

        self.running = False


def list_segments(script_text: str) -> None:
    """Print every segment with its tokens."""
    segments = segment_script(script_text)
    print(f"\n{len(segments)} segments:")
    print("-" * 80)
    for segment in segments:
        print(f"[{segment.index:3d}] {segment.raw_text}")
        print(f"      tokens: {token_texts(list(segment.tokens))}")


def main() -> None:
    """Main entry point."""
    # Load config first to use as defaults
    config: Config = load_config()
    tracking = config["tracking"]

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="linecue - follow a speaker through a script, line by line"
    )

    parser.add_argument(
        "script",
        nargs="?",
        type=Path,
        default=Path(config["script_path"]) if config.get("script_path") else None,
        help="Script file (.txt or .md; default: script_path from config)"
    )

    parser.add_argument(
        "--transcript", "-t",
        type=Path,
        default=None,
        help="Read recognizer results from a file instead of stdin"
    )

    parser.add_argument(
        "--list-segments",
        action="store_true",
        help="Print the script's segments and tokens and exit"
    )

    parser.add_argument(
        "--lookahead",
        type=int,
        default=tracking["lookahead_window"],
        help="Tokens to look ahead within a segment (default: from config or 4)"
    )

    parser.add_argument(
        "--jump-window",
        type=int,
        default=tracking["jump_window"],
        help="Opening tokens of the next segment that can trigger a jump (default: 3)"
    )

    parser.add_argument(
        "--jump-ratio",
        type=float,
        default=tracking["jump_completion_ratio"],
        help="Share of a segment spoken before jumps are allowed (default: 0.6)"
    )

    parser.add_argument(
        "--advance-delay-ms",
        type=int,
        default=tracking["advance_delay_ms"],
        help="Debounce before moving past a completed segment (default: 50)"
    )

    parser.add_argument(
        "--match-threshold",
        type=float,
        default=tracking["match_threshold"],
        help="Fuzzy match score for words, 100 = exact (default: 100)"
    )

    parser.add_argument(
        "--revision-policy",
        choices=["drop", "resync"],
        default=tracking["revision_policy"],
        help="How to treat transcripts that rewrite earlier text (default: drop)"
    )

    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Save current CLI options to config file and exit"
    )

    parser.add_argument(
        "--debug-log",
        action="store_true",
        help="Enable alignment debug logging to ./logs/"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show debug output from the aligner"
    )

    args: argparse.Namespace = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )

    config = update_config_tracking(config, {
        "lookahead_window": args.lookahead,
        "jump_window": args.jump_window,
        "jump_completion_ratio": args.jump_ratio,
        "advance_delay_ms": args.advance_delay_ms,
        "match_threshold": args.match_threshold,
        "revision_policy": args.revision_policy,
    })
    validate_config(config)

    if args.save_config:
        if args.script:
            config["script_path"] = str(args.script)
        if save_config(config):
            print(f"Configuration saved to {get_config_path()}")
        return

    if args.script is None:
        parser.error("a script file is required (or set script_path in the config)")

    try:
        script_text: str = load_script(args.script)
    except OSError as e:
        print(f"Error loading script: {e}", file=sys.stderr)
        sys.exit(1)

    if args.list_segments:
        list_segments(script_text)
        return

    # Enable debug logging if requested
    if args.debug_log:
        debug_log.enable()
        debug_log.clear_logs()
        print("Debug logging enabled (logs will be saved to ./logs/)")

    source: TextIO
    if args.transcript:
        try:
            source = open(args.transcript, encoding="utf-8")  # pylint: disable=consider-using-with
        except OSError as e:
            print(f"Error opening transcript: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        source = sys.stdin

    app: PrompterApp = PrompterApp(script_text, config, source, sys.stdout)
    try:
        asyncio.run(app.start())
    except KeyboardInterrupt:
        print("\nStopped.")
    finally:
        if source is not sys.stdin:
            source.close()


if __name__ == "__main__":
    main()
