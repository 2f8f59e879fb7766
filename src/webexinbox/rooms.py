"""Summary: Room normalization and activity filtering.

Importance: Turns provider room payloads into canonical rooms and keeps only recent ones.
Alternatives: Ask the provider to filter by activity date server-side.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from webexinbox.config import ROOM_TYPES
from webexinbox.models import Room


# Canonical field -> provider field names, most current API version first.
ROOM_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "title": ("title",),
    "type": ("type", "roomType"),
    "last_activity_date": ("lastActivityDate", "lastActivity"),
    "last_seen_date": ("lastSeenDate", "lastSeenActivityDate"),
}


class RoomRecord(BaseModel):
    """Summary: Schema for a raw room record across provider API versions.

    Importance: Resolves historical field names from one declarative alias table.
    Alternatives: Chain fallback lookups wherever a field is read.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    title: str | None = None
    type: str | None = None
    last_activity_date: str | None = None
    last_seen_date: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _resolve_aliases(cls, data: Any) -> dict[str, str | None]:
        source = data if isinstance(data, Mapping) else {}
        return {
            name: _first_present(source, keys) for name, keys in ROOM_FIELD_ALIASES.items()
        }


def _first_present(source: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = source.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return None


def to_timestamp(value: Any) -> float:
    """Summary: Convert an ISO 8601 date into POSIX seconds.

    Importance: Missing or unparseable dates compare as the epoch, i.e. infinitely old.
    Alternatives: Raise on invalid dates and drop the affected records.
    """

    if not value:
        return 0.0
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return 0.0
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def normalize_room(raw: Mapping[str, Any]) -> Room:
    """Summary: Map a provider room payload into a canonical Room.

    Importance: Recomputes the unread flag from the two dates instead of trusting the provider.
    Alternatives: Use the provider's own unread marker when present.
    """

    record = RoomRecord.model_validate(raw)
    return Room(
        id=record.id,
        title=record.title or record.id,
        type=record.type or "group",
        last_activity_date=record.last_activity_date,
        last_seen_date=record.last_seen_date,
        is_unread=to_timestamp(record.last_activity_date) > to_timestamp(record.last_seen_date),
    )


def filter_recent_rooms(
    rooms: Iterable[Room],
    hours: int,
    now: datetime | None = None,
    room_types: frozenset[str] = ROOM_TYPES,
) -> list[Room]:
    """Summary: Keep allowed rooms active within the trailing window, newest first.

    Importance: Bounds the number of rooms whose messages are fetched.
    Alternatives: Page through every room the user belongs to.
    """

    now_ts = (now or datetime.now(timezone.utc)).timestamp()
    cutoff = now_ts - hours * 60 * 60
    recent = [
        room
        for room in rooms
        if room.type in room_types
        and cutoff <= to_timestamp(room.last_activity_date) <= now_ts
    ]
    # sorted() is stable with reverse=True, so ties keep input order.
    return sorted(recent, key=lambda room: to_timestamp(room.last_activity_date), reverse=True)
