"""Summary: Unread message resolution and bot filtering for rooms.

Importance: Decides which messages a user has not seen and which rooms deserve attention.
Alternatives: Trust provider unread counters without inspecting messages.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from webexinbox.config import BOT_EMAIL_SUFFIX, MESSAGES_PAGE_SIZE, ROOM_TYPES
from webexinbox.models import Room, UnreadRoom
from webexinbox.rooms import to_timestamp
from webexinbox.webex import WebexClient


logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


def is_unread_message(message: dict[str, Any], last_seen_ts: float, me_id: str | None) -> bool:
    """Summary: Check whether a message arrived after the room was last seen.

    Importance: Messages written by the current user never count as unread.
    Alternatives: Compare message ids against the provider's last-seen id.
    """

    if to_timestamp(message.get("created")) <= last_seen_ts:
        return False
    return message.get("personId") != me_id


def room_mentions_me(unread_messages: Sequence[dict[str, Any]], me_id: str | None) -> bool:
    if not me_id:
        return False
    return any(
        isinstance(message.get("mentionedPeople"), list) and me_id in message["mentionedPeople"]
        for message in unread_messages
    )


def resolve_unread_room(
    client: WebexClient,
    room: Room,
    me_id: str | None,
    page_size: int = MESSAGES_PAGE_SIZE,
) -> UnreadRoom:
    """Summary: Fetch a room's recent messages and keep the unread ones, oldest first.

    Importance: Produces the message list and mention flag shown for each unread room.
    Alternatives: Stream the full room history and stop at the last-seen date.
    """

    messages = client.list_messages(room.id, page_size)
    last_seen_ts = to_timestamp(room.last_seen_date)
    unread = sorted(
        (message for message in messages if is_unread_message(message, last_seen_ts, me_id)),
        key=lambda message: to_timestamp(message.get("created")),
    )
    return UnreadRoom(
        room=room, unread_messages=unread, mentioned_me=room_mentions_me(unread, me_id)
    )


def attach_unread_messages(
    client: WebexClient,
    rooms: Sequence[Room],
    me_id: str | None,
    page_size: int = MESSAGES_PAGE_SIZE,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[UnreadRoom]:
    """Summary: Resolve unread messages for every room concurrently.

    Importance: A failed room is degraded to an empty unread list instead of failing the run.
    Alternatives: Fetch rooms sequentially and abort on the first error.
    """

    if not rooms:
        return []
    workers = max(1, min(max_workers, len(rooms)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="webex-unread") as executor:
        futures = [
            executor.submit(resolve_unread_room, client, room, me_id, page_size) for room in rooms
        ]
        results: list[UnreadRoom] = []
        for room, future in zip(rooms, futures):
            try:
                results.append(future.result())
            except Exception as exc:
                logger.warning("Failed to get unread messages for room %s: %s", room.id, exc)
                results.append(UnreadRoom(room=room))
    return results


def is_output_room(room: UnreadRoom, room_types: frozenset[str] = ROOM_TYPES) -> bool:
    return room.type in room_types


def is_bot_only(room: UnreadRoom, bot_suffix: str = BOT_EMAIL_SUFFIX) -> bool:
    """Summary: Check whether every unread message was sent by a bot account.

    Importance: Rooms with no unread messages are never treated as bot-only.
    Alternatives: Drop rooms where any message comes from a bot.
    """

    if not room.unread_messages:
        return False
    return all(
        str(message.get("personEmail") or "").endswith(bot_suffix)
        for message in room.unread_messages
    )


def filter_output_rooms(rooms: Iterable[UnreadRoom]) -> list[UnreadRoom]:
    """Summary: Drop rooms of other types and rooms that only contain bot chatter."""

    return [room for room in rooms if is_output_room(room) and not is_bot_only(room)]
