"""Summary: Application configuration for WebexInbox.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path


DEFAULT_MAX_RECENT = 30
MAX_RECENT_CAP = 1000
ROOMS_SCAN_LIMIT = 100
MESSAGES_PAGE_SIZE = 100
DEFAULT_ACTIVITY_HOURS = 24
MIN_ACTIVITY_HOURS = 1
MAX_ACTIVITY_HOURS = 720
SDK_READY_TIMEOUT_SECONDS = 60

ROOM_TYPES = frozenset({"direct", "group"})
BOT_EMAIL_SUFFIX = "@webex.bot"

PACKAGE_DEFAULTS_PATH = Path(__file__).resolve().parent / "defaults.json"
DEFAULT_KEYS = (
    "access_token",
    "hydra_url",
    "max_recent",
    "activity_hours",
    "output_dir",
    "request_timeout",
    "default_to",
    "default_message",
)
ROOT_ENV_VAR = "WEBEXINBOX_HOME"


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for the Webex client and scripts.

    Importance: Ensures every invocation derives settings from a single source of truth.
    Alternatives: Read environment variables ad hoc inside each script.
    """

    access_token: str | None
    hydra_url: str
    max_recent: str | None
    activity_hours: str | None
    output_dir: str
    request_timeout: int
    default_to: str | None
    default_message: str | None

    @staticmethod
    def from_env(root: Path | None = None) -> "AppConfig":
        """Summary: Build configuration from packaged defaults, the project root, and environment.

        Importance: Works from any directory; `root/config/defaults.json` and `root/.env`
        are optional overrides and relative output directories live under the root.
        Alternatives: Parse only environment variables without a defaults file.
        """

        base = root or resolve_root()
        defaults = load_defaults(PACKAGE_DEFAULTS_PATH)
        project_defaults = base / "config" / "defaults.json"
        if project_defaults.exists():
            defaults.update(load_defaults(project_defaults, required=()))
        load_dotenv(base / ".env")
        output_dir = Path(os.getenv("WEBEX_OUTPUT_DIR") or defaults["output_dir"])
        return AppConfig(
            access_token=os.getenv("WEBEX_ACCESS_TOKEN") or defaults["access_token"] or None,
            hydra_url=os.getenv("HYDRA_SERVICE_URL") or defaults["hydra_url"],
            max_recent=os.getenv("WEBEX_MAX_RECENT") or defaults["max_recent"] or None,
            activity_hours=os.getenv("WEBEX_ACTIVITY_HOURS") or defaults["activity_hours"] or None,
            output_dir=str(base / output_dir),
            request_timeout=int(os.getenv("WEBEX_REQUEST_TIMEOUT", defaults["request_timeout"])),
            default_to=os.getenv("WEBEX_TO") or defaults["default_to"] or None,
            default_message=os.getenv("WEBEX_MESSAGE") or defaults["default_message"] or None,
        )

    def require_token(self) -> str:
        """Summary: Return the access token or fail before any network call.

        Importance: Missing credentials are fatal configuration errors.
        Alternatives: Let the provider reject anonymous requests.
        """

        token = (self.access_token or "").strip()
        if not token:
            raise ValueError("WEBEX_ACCESS_TOKEN required")
        return token


def resolve_root() -> Path:
    """Summary: Locate the project root holding `.env` and `output/`.

    Importance: `WEBEXINBOX_HOME` pins the root, otherwise the working directory is used.
    Alternatives: Derive the root from the installed package location.
    """

    configured = os.getenv(ROOT_ENV_VAR)
    return Path(configured).expanduser() if configured else Path.cwd()


def load_defaults(path: Path, required: tuple[str, ...] = DEFAULT_KEYS) -> dict[str, str]:
    """Summary: Read the Webex defaults document (token, hydra URL, window, output dir).

    Importance: A missing file or key is reported as a configuration error, not a KeyError.
    Alternatives: Hardcode the defaults next to AppConfig.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    defaults = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(defaults, dict):
        raise ValueError(f"Defaults file must hold a JSON object: {path}")
    missing = [key for key in required if key not in defaults]
    if missing:
        raise ValueError(f"Defaults file {path} missing keys: {', '.join(missing)}")
    return {key: "" if value is None else str(value) for key, value in defaults.items()}


def load_dotenv(path: Path) -> None:
    """Summary: Export `WEBEX_*` settings from a project `.env` file.

    Importance: Variables already set in the shell win; surrounding quotes are stripped.
    Alternatives: Require every Webex variable to be exported before each run.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        os.environ.setdefault(key.strip(), value)


def _parse_int(raw: object) -> int | None:
    # Leading integer, so "12h" is 12 and "2.5" is 2.
    if raw is None:
        return None
    match = re.match(r"\s*([+-]?\d+)", str(raw))
    return int(match.group(1)) if match else None


def resolve_max_rooms(cli_value: object = None, config_value: object = None) -> int:
    """Summary: Resolve the number of rooms to return.

    Importance: CLI overrides configuration, invalid values fall back to the default.
    Alternatives: Reject invalid values with an error.
    """

    raw = cli_value if cli_value is not None else config_value
    value = _parse_int(raw)
    if value is None or value < 1:
        return DEFAULT_MAX_RECENT
    return min(value, MAX_RECENT_CAP)


def resolve_activity_hours(cli_value: object = None, config_value: object = None) -> int:
    """Summary: Resolve the trailing activity window in hours.

    Importance: Keeps the window within one hour and thirty days.
    Alternatives: Accept unbounded windows and rely on provider paging.
    """

    raw = cli_value if cli_value is not None else config_value
    value = _parse_int(raw)
    if value is None or value < MIN_ACTIVITY_HOURS:
        return DEFAULT_ACTIVITY_HOURS
    return min(value, MAX_ACTIVITY_HOURS)
