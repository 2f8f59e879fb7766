"""Summary: Domain model dataclasses for WebexInbox.

Importance: Defines the room, read-status, and send entities shared across services.
Alternatives: Pass raw provider dictionaries between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class Room:
    """Summary: Represents a normalized Webex room with read status.

    Importance: Gives every pipeline stage one canonical shape regardless of API version.
    Alternatives: Carry provider payloads and resolve aliases at each use.
    """

    id: str | None
    title: str | None
    type: str
    last_activity_date: str | None
    last_seen_date: str | None
    is_unread: bool

    def to_dict(self) -> dict[str, Any]:
        """Summary: Serialize the room with provider-style camelCase keys.

        Importance: Keeps JSON output compatible with downstream consumers.
        Alternatives: Use dataclasses.asdict and snake_case keys.
        """

        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "lastActivityDate": self.last_activity_date,
            "lastSeenDate": self.last_seen_date,
            "isUnread": self.is_unread,
        }


@dataclass(frozen=True)
class UnreadRoom:
    """Summary: A room paired with the messages the user has not seen yet.

    Importance: Carries per-room fetch results from resolution to output.
    Alternatives: Attach unread messages to the room dictionary in place.
    """

    room: Room
    unread_messages: list[dict[str, Any]] = field(default_factory=list)
    mentioned_me: bool = False

    @property
    def unread_message_count(self) -> int:
        return len(self.unread_messages)

    @property
    def type(self) -> str:
        return self.room.type

    def with_title(self, title: str) -> "UnreadRoom":
        return replace(self, room=replace(self.room, title=title))

    def with_messages(self, messages: list[dict[str, Any]]) -> "UnreadRoom":
        return replace(self, unread_messages=messages)

    def to_dict(self) -> dict[str, Any]:
        payload = self.room.to_dict()
        payload["unreadMessages"] = list(self.unread_messages)
        payload["unreadMessageCount"] = self.unread_message_count
        payload["mentionedMe"] = self.mentioned_me
        return payload


@dataclass(frozen=True)
class RoomStats:
    """Summary: Counts describing one fetch run.

    Importance: Lets callers see how many rooms were read, unread, and scanned.
    Alternatives: Derive counts from the room list on the consumer side.
    """

    total: int
    unread: int
    read: int

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "unread": self.unread, "read": self.read}


@dataclass(frozen=True)
class SentMessage:
    """Summary: Identifiers of a message created by the send flow.

    Importance: Returns only the fields callers need to reference the new message.
    Alternatives: Echo the full provider response.
    """

    id: str | None
    room_id: str | None
    created: str | None

    @staticmethod
    def from_response(payload: dict[str, Any]) -> "SentMessage":
        return SentMessage(
            id=payload.get("id"),
            room_id=payload.get("roomId"),
            created=payload.get("created"),
        )

    def to_dict(self) -> dict[str, str | None]:
        return {"id": self.id, "roomId": self.room_id, "created": self.created}
