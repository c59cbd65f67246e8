"""Shared fixtures for the Riposte test suite."""
from __future__ import annotations

from typing import Any

import pytest

from riposte import CatalogTranslator, Dispatcher
from riposte.core.config import Settings


class RecordingObserver:
    """Observer that keeps every callback for assertions."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, Any]] = []
        self.replies: list[tuple[str, int | None, dict | None]] = []
        self.errors: list[tuple[Any, str | None]] = []
        self.traces: list[tuple[str, dict]] = []

    def request(self, reply_id: str, request: Any) -> None:
        self.requests.append((reply_id, request))

    def reply(self, reply_id: str, status_code: int | None, body: dict | None) -> None:
        self.replies.append((reply_id, status_code, body))

    def error(self, error: Any, reply_id: str | None = None) -> None:
        self.errors.append((error, reply_id))

    def trace(self, event: str, **fields: Any) -> None:
        self.traces.append((event, fields))


class RecordingTransport:
    """Transport that records deliveries and hands back a tuple as its response."""

    def __init__(self) -> None:
        self.deliveries: list = []

    async def deliver(self, delivery) -> tuple[str, int]:
        self.deliveries.append(delivery)
        return ("response", delivery.status_code)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def dispatcher(settings: Settings, observer: RecordingObserver) -> Dispatcher:
    return Dispatcher(settings=settings, observer=observer)


@pytest.fixture
def translator() -> CatalogTranslator:
    return CatalogTranslator({
        "en": {
            "server": {
                "400": {
                    "notfound": "The page {page} could not be found",
                    "forbidden": "The page is forbidden",
                },
                "500": {"generic": "Something broke"},
            }
        },
        "fr": {"server": {"400": {"notfound": "La page {page} est introuvable"}}},
    })
