"""
Real-time delivery of persisted notifications.

Services never push directly. They enqueue onto a per-request
NotificationOutbox; the outbox is delivered once, after the HTTP response,
by a background task. Delivery is at-most-once and best-effort: every
failed push is logged and dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

logger = logging.getLogger(__name__)


class RealtimeChannel(Protocol):
    async def send_to_user(self, user_id: UUID, event: str, data: Any) -> int: ...


@dataclass(frozen=True)
class PendingPush:
    user_id: UUID
    events: tuple[str, ...]
    payload: dict


@dataclass
class DeliveryReport:
    delivered: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class NotificationOutbox:
    """Pushes queued during one request, waiting for delivery."""

    def __init__(self) -> None:
        self._pending: list[PendingPush] = []

    def enqueue(self, user_id: UUID, events: tuple[str, ...], payload: dict) -> None:
        self._pending.append(PendingPush(user_id=user_id, events=tuple(events), payload=payload))

    @property
    def pending(self) -> list[PendingPush]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    async def deliver(self, channel: RealtimeChannel) -> DeliveryReport:
        """Attempt each queued push once, then forget it."""
        items, self._pending = self._pending, []
        report = DeliveryReport()
        for push in items:
            for event in push.events:
                try:
                    await channel.send_to_user(push.user_id, event, push.payload)
                    report.delivered += 1
                except Exception as exc:
                    report.failed += 1
                    report.errors.append(f"{event}: {exc}")
                    logger.warning(
                        "Real-time push %s to user %s failed", event, push.user_id, exc_info=True
                    )
        if items:
            logger.debug(
                "Outbox delivered %d push(es), %d failed", report.delivered, report.failed
            )
        return report
