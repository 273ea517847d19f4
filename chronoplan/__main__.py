"""Command-line entry for chronoplan.

``serve`` runs the HTTP API with the reminder scanner; ``expand`` prints the
occurrences of the stored task list inside a window, with conflict flags.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional, Sequence

from . import _init_logging, run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the chronoplan CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="chronoplan",
        description="ChronoPlan - task planner with recurring tasks, conflicts and reminders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m chronoplan serve                      # Start server on default port (8080)
  python -m chronoplan serve --port 3000          # Start server on port 3000
  python -m chronoplan expand --start 2024-01-08 --end 2024-01-15
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="YAML/JSON config file (default: ./chronoplan.yaml)")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API and reminder scanner")
    serve.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or CHRONOPLAN_SERVER_PORT)",
    )

    expand = sub.add_parser("expand", help="Print occurrences inside a window as JSON")
    expand.add_argument("--start", required=True, help="Window start (ISO date or datetime)")
    expand.add_argument("--end", required=True, help="Window end, exclusive (ISO date or datetime)")
    expand.add_argument("--tasks-file", metavar="PATH", help="Task list JSON (overrides config)")

    return parser


def _expand(args: argparse.Namespace) -> int:
    import os

    from dateutil import parser as date_parser

    from chronoplan.core.config_loader import load_config
    from chronoplan.core.timezone_utils import ensure_aware
    from chronoplan.domain.conflicts import conflict_flags
    from chronoplan.domain.recurrence import expand_occurrences
    from chronoplan.storage.task_store import TaskStore

    _init_logging(os.environ.get("CHRONOPLAN_LOG_LEVEL", "WARNING"))
    cfg = load_config(path=args.config)

    try:
        window_start = ensure_aware(date_parser.isoparse(args.start))
        window_end = ensure_aware(date_parser.isoparse(args.end))
    except ValueError as exc:
        print(f"Error: invalid window: {exc}", file=sys.stderr)
        return 2

    store = TaskStore(args.tasks_file or cfg.tasks_file)
    tasks = store.load()
    occurrences = sorted(
        expand_occurrences(tasks, window_start, window_end, max_iterations=cfg.max_iterations),
        key=lambda occ: occ.start,
    )
    flags = conflict_flags(occurrences)
    output = [{**occ.to_api_dict(), "conflict": flags[occ.id]} for occ in occurrences]
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the chronoplan CLI and return the process exit code."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    if args.command == "expand":
        return _expand(args)

    # serve is the default command
    run_server(args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
