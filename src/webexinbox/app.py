"""Summary: Application factory wiring core services.

Importance: Builds explicit per-invocation dependencies for the CLI.
Alternatives: Share a module-level client singleton.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from webexinbox.config import AppConfig
from webexinbox.services import SendService, UnreadService
from webexinbox.webex import FixtureWebexClient, HttpWebexClient, WebexClient


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of core services for WebexInbox.

    Importance: Simplifies passing dependencies to the CLI and tests.
    Alternatives: Use a dependency injection container.
    """

    client: WebexClient
    unread: UnreadService
    send: SendService
    config: AppConfig


def build_client(config: AppConfig, fixture: Path | None = None) -> WebexClient:
    """Summary: Construct the Webex client for this invocation.

    Importance: A fixture runs offline, otherwise the access token is required.
    Alternatives: Select the client with an environment variable.
    """

    if fixture is not None:
        return FixtureWebexClient(fixture)
    return HttpWebexClient(
        access_token=config.require_token(),
        base_url=config.hydra_url,
        timeout=config.request_timeout,
    )


def build_services(config: AppConfig, fixture: Path | None = None) -> AppServices:
    """Summary: Build core services from configuration.

    Importance: Provides a single construction path for the application.
    Alternatives: Instantiate services directly within the CLI entrypoint.
    """

    client = build_client(config, fixture)
    return AppServices(
        client=client,
        unread=UnreadService(client=client),
        send=SendService(client=client),
        config=config,
    )
