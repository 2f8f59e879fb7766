"""Summary: Core application services for WebexInbox.

Importance: Orchestrates the unread room pipeline and the send flow.
Alternatives: Inline the pipeline inside each CLI command.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, TextIO

from webexinbox.config import MESSAGES_PAGE_SIZE, ROOMS_SCAN_LIMIT
from webexinbox.models import Room, RoomStats, SentMessage, UnreadRoom
from webexinbox.rooms import filter_recent_rooms, normalize_room
from webexinbox.slimming import slim_rooms
from webexinbox.unread import DEFAULT_MAX_WORKERS, attach_unread_messages, filter_output_rooms
from webexinbox.webex import WebexClient


logger = logging.getLogger(__name__)


def set_direct_room_titles(rooms: list[UnreadRoom]) -> list[UnreadRoom]:
    """Summary: Title direct rooms with the email of the latest unread sender.

    Importance: Gives 1:1 conversations a readable name.
    Alternatives: Look up the other member's display name.
    """

    titled: list[UnreadRoom] = []
    for room in rooms:
        if room.type == "direct" and room.unread_messages:
            email = room.unread_messages[-1].get("personEmail")
            if email:
                room = room.with_title(email)
        titled.append(room)
    return titled


def assemble_payload(
    rooms: list[UnreadRoom], total: int, unread_before_filter: int
) -> dict[str, Any]:
    """Summary: Build the `{rooms, people, stats, error}` result document.

    Importance: Read counts are taken before the bot filter, unread counts after it.
    Alternatives: Report only the final room list.
    """

    slimmed, people = slim_rooms(rooms)
    stats = RoomStats(total=total, unread=len(slimmed), read=total - unread_before_filter)
    return {
        "rooms": [room.to_dict() for room in slimmed],
        "people": people,
        "stats": stats.to_dict(),
        "error": None,
    }


def file_safe_iso(moment: datetime) -> str:
    """Summary: Format a UTC timestamp for file names, e.g. 2026-02-15T12-00-00Z."""

    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")


def output_filename(since: datetime, until: datetime) -> str:
    return f"message-history-{file_safe_iso(since)}-{file_safe_iso(until)}.json"


def write_payload(
    payload: dict[str, Any], output_dir: Path, activity_hours: int, now: datetime
) -> Path:
    """Summary: Write the result document to the output directory.

    Importance: The file name embeds the window start and end.
    Alternatives: Always print the payload to standard output.
    """

    since = now - timedelta(hours=activity_hours)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / output_filename(since, now)
    output_path.write_text(json.dumps(payload), encoding="utf-8")
    logger.info("Wrote %s", output_path)
    return output_path


@dataclass(frozen=True)
class UnreadService:
    """Summary: Runs the unread room pipeline against a Webex client.

    Importance: Keeps normalization, filtering, resolution, and assembly in one place.
    Alternatives: Compose the stages separately in every entrypoint.
    """

    client: WebexClient
    scan_limit: int = ROOMS_SCAN_LIMIT
    page_size: int = MESSAGES_PAGE_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS

    def fetch_unread(
        self, activity_hours: int, max_rooms: int, now: datetime | None = None
    ) -> dict[str, Any]:
        """Summary: Fetch unread rooms with their messages.

        Importance: Produces the payload consumed by the reading agent.
        Alternatives: Return every recent room regardless of read status.
        """

        now = now or datetime.now(timezone.utc)
        raw_rooms = self.client.list_rooms_with_read_status(self.scan_limit)
        me_id = self.client.get_me().get("id")
        recent = filter_recent_rooms(
            [normalize_room(room) for room in raw_rooms], activity_hours, now=now
        )
        unread = [room for room in recent if room.is_unread]
        logger.info("Found %s recent rooms, %s unread.", len(recent), len(unread))
        with_messages = attach_unread_messages(
            self.client,
            unread,
            me_id,
            page_size=self.page_size,
            max_workers=self.max_workers,
        )
        output_rooms = set_direct_room_titles(filter_output_rooms(with_messages)[:max_rooms])
        return assemble_payload(output_rooms, total=len(recent), unread_before_filter=len(unread))

    def room_status(self, room_id: str) -> Room:
        """Summary: Fetch the read status of a single room."""

        return normalize_room(self.client.get_room_with_read_status(room_id))


def is_email(value: str) -> bool:
    return "@" in value


def build_message_payload(to: str, markdown: str) -> dict[str, str]:
    """Summary: Build the message creation payload for a room or a person.

    Importance: Emails target people directly, anything else is a room id.
    Alternatives: Resolve emails to direct room ids first.
    """

    if is_email(to):
        return {"toPersonEmail": to, "markdown": markdown}
    return {"roomId": to, "markdown": markdown}


def first_non_empty(*candidates: str | None) -> str:
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


def resolve_markdown(flag: str | None, env_value: str | None, stdin: TextIO | None) -> str:
    """Summary: Pick the message body from the flag, the environment, or piped input.

    Importance: Standard input is read only when it is not an interactive terminal.
    Alternatives: Require the body as a flag.
    """

    markdown = first_non_empty(flag, env_value)
    if markdown or stdin is None or stdin.isatty():
        return markdown
    return stdin.read().strip()


@dataclass(frozen=True)
class SendService:
    """Summary: Sends markdown messages to rooms or people.

    Importance: Submits exactly one message per call, without retries.
    Alternatives: Retry on failure and risk duplicate messages.
    """

    client: WebexClient

    def send(self, to: str, markdown: str) -> SentMessage:
        payload = build_message_payload(to, markdown)
        message = SentMessage.from_response(self.client.create_message(payload))
        logger.info("Sent message %s to %s.", message.id, to)
        return message
