"""Command-line entrypoint — replay recordings or print the effective settings."""

from __future__ import annotations

import argparse
import json
import sys

from pydantic import BaseModel

from flowsense.config import get_settings
from flowsense.logger import setup_logging
from flowsense.models import EventKind
from flowsense.replay import parse_records, run_replay


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="flowsense",
        description="Behavioural-state inference from wearable and editor signals.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── replay ────────────────────────────────────────────────
    replay_parser = sub.add_parser("replay", help="Replay a JSON Lines recording.")
    replay_parser.add_argument("path", help="Recording file, or '-' for stdin.")
    replay_parser.add_argument(
        "--snapshots",
        action="store_true",
        help="Also print the per-tick analysis snapshots.",
    )

    # ── settings ──────────────────────────────────────────────
    sub.add_parser("settings", help="Print the effective default configuration.")

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "replay":

        def emit(kind: EventKind, payload: BaseModel) -> None:
            if kind is EventKind.ANALYSIS_RESULT and not args.snapshots:
                return
            print(json.dumps({"event": kind.value, **payload.model_dump(mode="json")}))

        if args.path == "-":
            run_replay(parse_records(sys.stdin), emit, config=settings.motion_config())
        else:
            with open(args.path, encoding="utf-8") as fh:
                run_replay(parse_records(fh), emit, config=settings.motion_config())
    elif args.command == "settings":
        print(settings.model_dump_json(indent=2))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
