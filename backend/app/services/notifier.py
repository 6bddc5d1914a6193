# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Push channel to connected clients (one room per user id)."""

    async def emit_to_user(self, user_id: uuid.UUID, event: str, payload: dict[str, Any]) -> None: ...


class LoggingNotifier:
    """Default notifier: records the event in the application log."""

    async def emit_to_user(self, user_id: uuid.UUID, event: str, payload: dict[str, Any]) -> None:
        logger.info("Emit %s to user=%s", event, user_id)


@dataclass(frozen=True)
class SentEvent:
    user_id: uuid.UUID
    event: str
    payload: dict[str, Any]


class InMemoryNotifier:
    """Collects emitted events; used in tests."""

    def __init__(self) -> None:
        self.sent: list[SentEvent] = []

    async def emit_to_user(self, user_id: uuid.UUID, event: str, payload: dict[str, Any]) -> None:
        self.sent.append(SentEvent(user_id=user_id, event=event, payload=payload))


async def notify_quietly(notifier: Notifier, user_id: uuid.UUID, event: str, payload: dict[str, Any]) -> None:
    """Emit an event; delivery failures are logged and never raised."""
    try:
        await notifier.emit_to_user(user_id, event, payload)
    except Exception:
        logger.exception("Failed to emit %s to user=%s", event, user_id)


_notifier: Notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    return _notifier


def set_notifier(notifier: Notifier) -> None:
    """Override the notifier (for testing or production wiring)."""
    global _notifier
    _notifier = notifier
