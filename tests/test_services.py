"""Summary: Tests for the unread pipeline and the send flow.

Importance: Exercises the full fetch payload, stats, titles, and send targets.
Alternatives: Run the CLI against a live account.
"""

from __future__ import annotations

import io
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from webexinbox.services import (
    SendService,
    UnreadService,
    build_message_payload,
    output_filename,
    resolve_markdown,
    write_payload,
)
from webexinbox.webex import FixtureWebexClient, WebexApiError


NOW = datetime(2026, 2, 15, 12, 0, tzinfo=timezone.utc)
ME = "person-me"


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def _ago(**delta: int) -> str:
    return _iso(NOW - timedelta(**delta))


def _fixture(tmp_path: Path, data: dict[str, Any]) -> FixtureWebexClient:
    path = tmp_path / "fixture.json"
    path.write_text(json.dumps({"me": {"id": ME}, **data}), encoding="utf-8")
    return FixtureWebexClient(path)


def _scenario(tmp_path: Path) -> FixtureWebexClient:
    return _fixture(
        tmp_path,
        {
            "rooms": [
                {
                    "id": "room-a",
                    "title": "Alice",
                    "type": "direct",
                    "lastActivityDate": _iso(NOW),
                    "lastSeenDate": _ago(hours=2),
                },
                {
                    "id": "room-b",
                    "title": "Alerts",
                    "type": "group",
                    "lastActivityDate": _ago(minutes=30),
                    "lastSeenDate": _ago(hours=3),
                },
                {
                    "id": "room-c",
                    "title": "Team",
                    "type": "group",
                    "lastActivityDate": _ago(minutes=45),
                    "lastSeenDate": _ago(hours=2),
                },
                {
                    "id": "room-read",
                    "title": "Read",
                    "type": "group",
                    "lastActivityDate": _ago(hours=1),
                    "lastSeenDate": _ago(hours=1),
                },
                {
                    "id": "room-old",
                    "title": "Old",
                    "type": "group",
                    "lastActivityDate": _ago(hours=48),
                    "lastSeenDate": _ago(hours=72),
                },
            ],
            "messages": {
                "room-a": [
                    {
                        "id": "a1",
                        "roomId": "room-a",
                        "roomType": "direct",
                        "created": _ago(hours=1),
                        "personId": "person-alice",
                        "personEmail": "alice@example.com",
                        "text": "ping",
                        "markdown": "**ping**",
                        "mentionedPeople": [ME],
                    }
                ],
                "room-b": [
                    {
                        "id": f"b{index}",
                        "created": _ago(minutes=40 + index),
                        "personId": "person-bot",
                        "personEmail": "automation@webex.bot",
                        "text": "alert",
                    }
                    for index in range(3)
                ],
                "room-c": [
                    {
                        "id": "c1",
                        "created": _ago(minutes=50),
                        "personId": "person-carol",
                        "personEmail": "carol@example.com",
                        "text": "standup?",
                    }
                ],
            },
        },
    )


def test_fetch_unread_builds_payload(tmp_path: Path) -> None:
    """Summary: Verify the direct, bot-only, and read rooms end up where expected.

    Importance: Covers normalization through assembly in one run.
    Alternatives: Test each stage in isolation only.
    """

    payload = UnreadService(client=_scenario(tmp_path)).fetch_unread(24, 30, now=NOW)
    assert payload["error"] is None
    assert [room["id"] for room in payload["rooms"]] == ["room-a", "room-c"]
    room_a = payload["rooms"][0]
    assert room_a["isUnread"] is True
    assert room_a["unreadMessageCount"] == 1
    assert room_a["mentionedMe"] is True
    assert room_a["title"] == "alice@example.com"
    assert room_a["unreadMessages"] == [
        {
            "id": "a1",
            "personEmail": "alice@example.com",
            "markdown": "**ping**",
            "mentionedPeople": [ME],
        }
    ]
    assert payload["rooms"][1]["title"] == "Team"
    assert payload["people"] == {
        "alice@example.com": "person-alice",
        "carol@example.com": "person-carol",
    }
    assert payload["stats"] == {"total": 4, "unread": 2, "read": 1}


def test_fetch_unread_caps_rooms(tmp_path: Path) -> None:
    """Summary: Verify max rooms keeps the most recently active room.

    Importance: Stats report the capped count against the pre-cap total.
    Alternatives: Cap before sorting by activity.
    """

    payload = UnreadService(client=_scenario(tmp_path)).fetch_unread(24, 1, now=NOW)
    assert [room["id"] for room in payload["rooms"]] == ["room-a"]
    assert payload["stats"] == {"total": 4, "unread": 1, "read": 1}


def test_fetch_unread_keeps_degraded_rooms(tmp_path: Path) -> None:
    client = _fixture(
        tmp_path,
        {
            "rooms": [
                {
                    "id": "room-x",
                    "title": "Flaky",
                    "type": "direct",
                    "lastActivityDate": _ago(minutes=5),
                    "lastSeenDate": _ago(hours=1),
                }
            ],
            "failures": ["room-x"],
        },
    )
    payload = UnreadService(client=client).fetch_unread(24, 30, now=NOW)
    assert payload["rooms"] == [
        {
            "id": "room-x",
            "title": "Flaky",
            "type": "direct",
            "lastActivityDate": _ago(minutes=5),
            "lastSeenDate": _ago(hours=1),
            "isUnread": True,
            "unreadMessages": [],
            "unreadMessageCount": 0,
            "mentionedMe": False,
        }
    ]


def test_room_status(tmp_path: Path) -> None:
    room = UnreadService(client=_scenario(tmp_path)).room_status("room-read")
    assert room.id == "room-read"
    assert room.is_unread is False


def test_output_filename_is_file_safe() -> None:
    name = output_filename(NOW - timedelta(hours=24), NOW)
    assert name == "message-history-2026-02-14T12-00-00Z-2026-02-15T12-00-00Z.json"
    assert ":" not in name


def test_write_payload(tmp_path: Path) -> None:
    payload = {
        "rooms": [],
        "people": {},
        "stats": {"total": 0, "unread": 0, "read": 0},
        "error": None,
    }
    path = write_payload(payload, tmp_path / "output", 24, NOW)
    assert path.parent == tmp_path / "output"
    assert json.loads(path.read_text(encoding="utf-8")) == payload


def test_build_message_payload_targets() -> None:
    """Summary: Verify emails target people and anything else targets rooms.

    Importance: A wrong target field would post to the wrong place.
    Alternatives: Ask the caller to choose the target field.
    """

    assert build_message_payload("someone@example.com", "hi") == {
        "toPersonEmail": "someone@example.com",
        "markdown": "hi",
    }
    assert build_message_payload("Y2lzY29zcGFyazovL3Jvb20", "hi") == {
        "roomId": "Y2lzY29zcGFyazovL3Jvb20",
        "markdown": "hi",
    }


class _Tty(io.StringIO):
    def isatty(self) -> bool:
        return True


def test_resolve_markdown_priority() -> None:
    assert resolve_markdown("flag", "env", io.StringIO("piped")) == "flag"
    assert resolve_markdown("  ", "env", io.StringIO("piped")) == "env"
    assert resolve_markdown(None, None, io.StringIO("  piped\n")) == "piped"
    assert resolve_markdown(None, None, _Tty("typed")) == ""
    assert resolve_markdown(None, None, None) == ""


def test_send_service_creates_one_message(tmp_path: Path) -> None:
    client = _fixture(tmp_path, {})
    message = SendService(client=client).send("someone@example.com", "**hi**")
    assert message.id == "fixture-message-1"
    assert client.sent[0]["toPersonEmail"] == "someone@example.com"
    assert len(client.sent) == 1


def test_unknown_room_status_raises(tmp_path: Path) -> None:
    with pytest.raises(WebexApiError, match="Room not found"):
        UnreadService(client=_fixture(tmp_path, {})).room_status("missing")
