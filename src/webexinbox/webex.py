"""Summary: Webex provider interfaces and implementations.

Importance: Encapsulates every call the scripts make against the messaging platform.
Alternatives: Call the REST API inline from each script.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from webexinbox.config import SDK_READY_TIMEOUT_SECONDS


logger = logging.getLogger(__name__)

MEMBERSHIPS_PAGE_SIZE = 1000
NEXT_LINK_PATTERN = re.compile(r"<([^>]+)>\s*;\s*rel=\"?next\"?")


class WebexApiError(RuntimeError):
    """Summary: Raised when the Webex API rejects a request or cannot be reached.

    Importance: Lets callers tell provider failures apart from configuration errors.
    Alternatives: Return error dictionaries the way raw HTTP helpers do.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class WebexClient(ABC):
    """Summary: Abstract interface for the Webex operations the scripts need.

    Importance: Lets the pipeline run against the live API or a local fixture.
    Alternatives: Depend on the HTTP client directly in each service.
    """

    @abstractmethod
    def connect(self) -> dict[str, Any]:
        """Summary: Perform the one-time handshake and return the current user.

        Importance: Fails the run before any room or message work starts.
        Alternatives: Authenticate lazily on the first request.
        """

    @abstractmethod
    def get_me(self) -> dict[str, Any]:
        """Summary: Return the authenticated person record."""

    @abstractmethod
    def list_rooms_with_read_status(self, limit: int) -> list[dict[str, Any]]:
        """Summary: List recently active rooms with the user's last-seen dates.

        Importance: Provides the input for unread room derivation.
        Alternatives: Fetch read status room by room.
        """

    @abstractmethod
    def get_room_with_read_status(self, room_id: str) -> dict[str, Any]:
        """Summary: Fetch one room together with the user's last-seen date."""

    @abstractmethod
    def list_messages(self, room_id: str, max_messages: int) -> list[dict[str, Any]]:
        """Summary: List the most recent messages of a room.

        Importance: Supplies unread message bodies for a room.
        Alternatives: Fetch messages by cursor or date range instead.
        """

    @abstractmethod
    def create_message(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Summary: Create one message and return the provider record."""


def extract_items(response: Any) -> list[dict[str, Any]]:
    """Summary: Pull the item list out of a list response.

    Importance: Accepts both bare lists and the `{items: [...]}` envelope.
    Alternatives: Assume a single response shape.
    """

    if isinstance(response, list):
        return response
    if isinstance(response, dict) and isinstance(response.get("items"), list):
        return response["items"]
    return []


class HttpWebexClient(WebexClient):
    """Summary: Webex client backed by the public REST API.

    Importance: Provides real-world integration using only a bearer token.
    Alternatives: Use a vendor SDK with its own device registration.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str,
        timeout: int = 60,
        handshake_timeout: int = SDK_READY_TIMEOUT_SECONDS,
    ) -> None:
        """Summary: Initialize the REST client.

        Importance: Stores credentials and endpoints for repeated requests.
        Alternatives: Pass the token per request from a caller.
        """

        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._handshake_timeout = handshake_timeout
        self._me: dict[str, Any] | None = None

    def connect(self) -> dict[str, Any]:
        """Summary: Verify the token by fetching the current user.

        Importance: Bounds startup by a fixed timeout and rejects unauthorized tokens.
        Alternatives: Skip verification and surface 401s from later calls.
        """

        try:
            me = self._request("GET", "/people/me", timeout=self._handshake_timeout)
        except WebexApiError as exc:
            if exc.status in (401, 403):
                raise WebexApiError(f"SDK not authorized: {exc}", status=exc.status) from exc
            raise WebexApiError(f"SDK ready failed: {exc}", status=exc.status) from exc
        if not isinstance(me, dict) or not me.get("id"):
            raise WebexApiError("SDK not authorized: current user unavailable")
        self._me = me
        logger.info("Webex client authorized as %s.", me.get("emails") or me.get("id"))
        return me

    def get_me(self) -> dict[str, Any]:
        if self._me is None:
            self._me = self._request("GET", "/people/me")
        return self._me

    def list_rooms_with_read_status(self, limit: int) -> list[dict[str, Any]]:
        """Summary: List rooms and join the caller's memberships for last-seen dates.

        Importance: The rooms resource has no read status, memberships carry it.
        Alternatives: Call the membership endpoint once per room.
        """

        rooms = extract_items(
            self._request("GET", "/rooms", params={"max": limit, "sortBy": "lastactivity"})
        )
        memberships = self._list_all("/memberships", params={"max": MEMBERSHIPS_PAGE_SIZE})
        last_seen = {
            membership["roomId"]: membership.get("lastSeenDate")
            for membership in memberships
            if membership.get("roomId")
        }
        return [_with_last_seen(room, last_seen.get(room.get("id"))) for room in rooms]

    def get_room_with_read_status(self, room_id: str) -> dict[str, Any]:
        room = self._request("GET", f"/rooms/{urllib.parse.quote(room_id, safe='')}")
        me = self.get_me()
        memberships = extract_items(
            self._request(
                "GET", "/memberships", params={"roomId": room_id, "personId": me.get("id")}
            )
        )
        last_seen = next(
            (m.get("lastSeenDate") for m in memberships if m.get("lastSeenDate")), None
        )
        return _with_last_seen(room, last_seen)

    def list_messages(self, room_id: str, max_messages: int) -> list[dict[str, Any]]:
        return extract_items(
            self._request("GET", "/messages", params={"roomId": room_id, "max": max_messages})
        )

    def create_message(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/messages", payload=payload)

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
        timeout: int | None = None,
    ) -> Any:
        body, _ = self._exchange(method, self._url(path, params), path, payload, timeout)
        return body

    def _list_all(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Summary: Collect every page of a list resource.

        Importance: Webex caps each page and links the next one via the `Link` header.
        Alternatives: Request one page with a large `max` and accept truncation.
        """

        items: list[dict[str, Any]] = []
        url: str | None = self._url(path, params)
        visited: set[str] = set()
        while url and url not in visited:
            visited.add(url)
            body, headers = self._exchange("GET", url, path)
            items.extend(extract_items(body))
            url = next_link(headers.get("Link"))
        return items

    def _url(self, path: str, params: dict[str, Any] | None) -> str:
        url = f"{self._base_url}{path}"
        if params:
            query = {key: value for key, value in params.items() if value is not None}
            url = f"{url}?{urllib.parse.urlencode(query)}"
        return url

    def _exchange(
        self,
        method: str,
        url: str,
        path: str,
        payload: dict[str, Any] | None = None,
        timeout: int | None = None,
    ) -> tuple[Any, Any]:
        """Summary: Send one JSON request to the Webex API.

        Importance: Maps HTTP, network, and timeout failures onto WebexApiError.
        Alternatives: Use a third-party HTTP client.
        """

        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        request = urllib.request.Request(
            url,
            data=data,
            headers={
                "Authorization": f"Bearer {self._access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            method=method,
        )
        limit = timeout or self._timeout
        try:
            with urllib.request.urlopen(request, timeout=limit) as response:
                raw = response.read().decode("utf-8")
                headers = response.headers
        except urllib.error.HTTPError as exc:
            error_body = exc.read().decode("utf-8", errors="replace")
            raise WebexApiError(
                _error_message(error_body) or f"HTTP {exc.code} {exc.reason}", status=exc.code
            ) from exc
        except TimeoutError as exc:
            raise WebexApiError(f"{method} {path} timeout ({limit}s)") from exc
        except urllib.error.URLError as exc:
            if isinstance(exc.reason, TimeoutError):
                raise WebexApiError(f"{method} {path} timeout ({limit}s)") from exc
            raise WebexApiError(f"Webex request failed: {exc.reason}") from exc
        return (json.loads(raw) if raw else {}), headers


def next_link(header: str | None) -> str | None:
    """Return the `rel="next"` target of an RFC 8288 `Link` header, if any."""

    if not header:
        return None
    match = NEXT_LINK_PATTERN.search(header)
    return match.group(1) if match else None


def _with_last_seen(room: dict[str, Any], last_seen: str | None) -> dict[str, Any]:
    merged = dict(room)
    if last_seen and not merged.get("lastSeenDate"):
        merged["lastSeenDate"] = last_seen
    return merged


def _error_message(body: str) -> str | None:
    if not body:
        return None
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(parsed, dict) and parsed.get("message"):
        return str(parsed["message"])
    return body


class FixtureWebexClient(WebexClient):
    """Summary: Serves rooms and messages from a local JSON fixture.

    Importance: Supports offline runs, demos, and tests without a token.
    Alternatives: Record and replay HTTP traffic.
    """

    def __init__(self, fixture_path: Path) -> None:
        """Summary: Load the fixture document.

        Importance: Accepts `{me, rooms, messages, failures}` with every key optional.
        Alternatives: Hardcode sample data in the class.
        """

        self._fixture_path = fixture_path
        self._data: dict[str, Any] = json.loads(fixture_path.read_text(encoding="utf-8"))
        self.sent: list[dict[str, Any]] = []

    def connect(self) -> dict[str, Any]:
        me = self.get_me()
        if not me.get("id"):
            raise WebexApiError("SDK not authorized: fixture has no current user")
        return me

    def get_me(self) -> dict[str, Any]:
        return dict(self._data.get("me") or {})

    def list_rooms_with_read_status(self, limit: int) -> list[dict[str, Any]]:
        return [dict(room) for room in self._data.get("rooms", [])[:limit]]

    def get_room_with_read_status(self, room_id: str) -> dict[str, Any]:
        for room in self._data.get("rooms", []):
            if room.get("id") == room_id:
                return dict(room)
        raise WebexApiError(f"Room not found: {room_id}", status=404)

    def list_messages(self, room_id: str, max_messages: int) -> list[dict[str, Any]]:
        if room_id in self._data.get("failures", []):
            raise WebexApiError(f"Messages unavailable for room {room_id}", status=502)
        messages = self._data.get("messages", {}).get(room_id, [])
        return [dict(message) for message in messages[:max_messages]]

    def create_message(self, payload: dict[str, Any]) -> dict[str, Any]:
        room_id = payload.get("roomId") or f"direct:{payload.get('toPersonEmail')}"
        message = {
            **payload,
            "id": f"fixture-message-{len(self.sent) + 1}",
            "roomId": room_id,
            "created": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        self.sent.append(message)
        return message
