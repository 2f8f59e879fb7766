"""Summary: Message slimming and the people index.

Importance: Shrinks unread payloads before they are handed to downstream readers.
Alternatives: Emit full provider messages and let consumers ignore fields.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from webexinbox.models import UnreadRoom


# Redundant with the enclosing room or unused after resolution.
REDUNDANT_MESSAGE_FIELDS = frozenset({"roomId", "personId", "roomType", "created", "updated"})


def slim_message(message: dict[str, Any]) -> dict[str, Any]:
    """Summary: Return a copy of a message without redundant fields.

    Importance: Keeps only the richest body, html over markdown over text.
    Alternatives: Keep every body representation.
    """

    slim = {key: value for key, value in message.items() if key not in REDUNDANT_MESSAGE_FIELDS}
    if slim.get("markdown") is not None:
        slim.pop("text", None)
    if slim.get("html") is not None:
        slim.pop("markdown", None)
        slim.pop("text", None)
    return slim


def build_people_index(rooms: Iterable[UnreadRoom]) -> dict[str, str]:
    """Summary: Map sender emails to person ids, first occurrence wins.

    Importance: Lets readers reply to a sender after person ids are slimmed away.
    Alternatives: Look people up on demand through the provider.
    """

    people: dict[str, str] = {}
    for room in rooms:
        for message in room.unread_messages:
            email = message.get("personEmail")
            person_id = message.get("personId")
            if email and person_id and email not in people:
                people[email] = person_id
    return people


def slim_rooms(rooms: list[UnreadRoom]) -> tuple[list[UnreadRoom], dict[str, str]]:
    """Summary: Build the people index, then slim every unread message."""

    people = build_people_index(rooms)
    slimmed = [
        room.with_messages([slim_message(message) for message in room.unread_messages])
        for room in rooms
    ]
    return slimmed, people
