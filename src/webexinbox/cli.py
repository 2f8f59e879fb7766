"""Summary: Command-line interface for WebexInbox.

Importance: Provides the fetch, read-status, and send entry points used by agents.
Alternatives: Use a CLI framework like Typer or Click.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

from webexinbox.app import AppServices, build_services
from webexinbox.config import AppConfig, resolve_activity_hours, resolve_max_rooms
from webexinbox.services import first_non_empty, resolve_markdown, write_payload
from webexinbox.webex import WebexApiError


logger = logging.getLogger(__name__)

FATAL_ERRORS = (ValueError, KeyError, OSError, WebexApiError)


class UsageError(ValueError):
    """Raised instead of exiting when command-line arguments are invalid."""

    def __init__(self, message: str, envelope: dict[str, Any]) -> None:
        super().__init__(message)
        self.envelope = envelope


class CliArgumentParser(argparse.ArgumentParser):
    """Summary: Argument parser that reports usage errors through the JSON envelope.

    Importance: Callers branch on the printed structure even for bad flags.
    Alternatives: Let argparse exit with status 2 and usage on stderr only.
    """

    def __init__(self, *args: Any, envelope: dict[str, Any] | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.envelope = envelope or {}

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        raise UsageError(message, self.envelope)


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands and their short and long flags.
    Alternatives: Ship one script per command.
    """

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    common.add_argument(
        "--fixture", type=str, default=None, help="Serve data from a JSON fixture instead of Webex"
    )

    parser = CliArgumentParser(description="WebexInbox CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser(
        "fetch-unread",
        parents=[common],
        help="Fetch unread rooms with messages",
        envelope={"outputPath": None},
    )
    fetch.add_argument("--hours", "-H", type=str, default=None)
    fetch.add_argument("--max-rooms", "-n", type=str, default=None)
    fetch.add_argument("--output-dir", type=str, default=None)
    fetch.add_argument(
        "--stdout", action="store_true", help="Print the payload instead of writing a file"
    )

    status = subparsers.add_parser(
        "read-status",
        parents=[common],
        help="Show the read status of one room",
        envelope={"room": None},
    )
    status.add_argument("--room", "-r", type=str, required=True)

    send = subparsers.add_parser(
        "send",
        parents=[common],
        help="Send a markdown message to a room or person",
        envelope={"ok": False},
    )
    send.add_argument("--to", "-t", type=str, default=None, help="Room ID or person email")
    send.add_argument("--message", "-m", type=str, default=None, help="Markdown body")

    return parser


def emit(result: dict[str, Any], stream: TextIO) -> None:
    """Print a single JSON line for agent consumption."""

    print(json.dumps(result), file=stream)


def _services(args: argparse.Namespace) -> AppServices:
    config = AppConfig.from_env()
    fixture = Path(args.fixture) if args.fixture else None
    return build_services(config, fixture=fixture)


def run_fetch_unread(args: argparse.Namespace, stdout: TextIO) -> int:
    """Summary: Run the unread pipeline and emit the payload or the output path.

    Importance: Every failure still produces the same JSON envelope.
    Alternatives: Print tracebacks and let callers parse stderr.
    """

    try:
        services = _services(args)
        config = services.config
        activity_hours = resolve_activity_hours(args.hours, config.activity_hours)
        max_rooms = resolve_max_rooms(args.max_rooms, config.max_recent)
        logger.info("activityHours=%s, maxRoomsToReturn=%s", activity_hours, max_rooms)
        services.client.connect()
        now = datetime.now(timezone.utc)
        payload = services.unread.fetch_unread(activity_hours, max_rooms, now=now)
        if args.stdout:
            emit(payload, stdout)
            return 0
        output_dir = Path(args.output_dir or config.output_dir)
        output_path = write_payload(payload, output_dir, activity_hours, now)
    except FATAL_ERRORS as exc:
        logger.error("%s", exc)
        if args.stdout:
            emit({"rooms": [], "people": {}, "stats": None, "error": str(exc)}, stdout)
        else:
            emit({"outputPath": None, "error": str(exc)}, stdout)
        return 1
    emit({"outputPath": str(output_path), "error": None}, stdout)
    return 0


def run_read_status(args: argparse.Namespace, stdout: TextIO) -> int:
    try:
        services = _services(args)
        services.client.connect()
        room = services.unread.room_status(args.room)
    except FATAL_ERRORS as exc:
        logger.error("%s", exc)
        emit({"room": None, "error": str(exc)}, stdout)
        return 1
    emit({"room": room.to_dict(), "error": None}, stdout)
    return 0


def run_send(args: argparse.Namespace, stdin: TextIO | None, stdout: TextIO) -> int:
    """Summary: Send one markdown message and report its identifiers.

    Importance: Single attempt, a failed send is reported and never retried.
    Alternatives: Retry transient failures with backoff.
    """

    try:
        services = _services(args)
        to = first_non_empty(args.to, services.config.default_to)
        if not to:
            raise ValueError("--to / -t or WEBEX_TO required (room ID or person email)")
        markdown = resolve_markdown(args.message, services.config.default_message, stdin)
        if not markdown:
            raise ValueError("--message / -m, WEBEX_MESSAGE, or stdin required")
        services.client.connect()
        message = services.send.send(to, markdown)
    except FATAL_ERRORS as exc:
        logger.error("%s", exc)
        emit({"ok": False, "error": str(exc)}, stdout)
        return 1
    emit({"ok": True, "message": message.to_dict(), "error": None}, stdout)
    return 0


def main(
    argv: list[str] | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Summary: Parse arguments and dispatch to a command.

    Importance: Returns the process exit code so tests can call it directly.
    Alternatives: Exit from inside each command.
    """

    out = stdout or sys.stdout
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        emit({**exc.envelope, "error": str(exc)}, out)
        return 1
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if args.command == "fetch-unread":
        return run_fetch_unread(args, out)
    if args.command == "read-status":
        return run_read_status(args, out)
    return run_send(args, stdin if stdin is not None else sys.stdin, out)


def run_cli() -> None:
    """Summary: Console entry point."""

    raise SystemExit(main())


if __name__ == "__main__":
    run_cli()
