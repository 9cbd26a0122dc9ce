"""Tests for the notification outbox and best-effort triggers."""

from uuid import uuid4

import pytest

from bpm.db.enums import RealtimeEvent
from bpm.db.models import Notification
from bpm.services import notification_facade, notification_service
from bpm.services.notification_dispatch import NotificationOutbox


class FlakyChannel:
    """Fails every push to one user, records the rest."""

    def __init__(self, broken_user):
        self.broken_user = broken_user
        self.sent = []

    async def send_to_user(self, user_id, event, data):
        if user_id == self.broken_user:
            raise ConnectionError("socket gone")
        self.sent.append((user_id, event))
        return 1


@pytest.mark.asyncio
async def test_outbox_isolates_failed_pushes():
    broken, healthy = uuid4(), uuid4()
    outbox = NotificationOutbox()
    outbox.enqueue(broken, ("notification", "status_update_notification"), {"id": "1"})
    outbox.enqueue(healthy, ("notification", "status_update_notification"), {"id": "2"})

    channel = FlakyChannel(broken)
    report = await outbox.deliver(channel)

    assert report.delivered == 2
    assert report.failed == 2
    assert channel.sent == [
        (healthy, "notification"),
        (healthy, "status_update_notification"),
    ]
    assert len(outbox) == 0


@pytest.mark.asyncio
async def test_outbox_delivers_once():
    user_id = uuid4()
    outbox = NotificationOutbox()
    outbox.enqueue(user_id, ("notification",), {})
    channel = FlakyChannel(broken_user=None)

    await outbox.deliver(channel)
    report = await outbox.deliver(channel)

    assert report.delivered == 0
    assert channel.sent == [(user_id, "notification")]


def test_notify_persists_and_queues_both_events(db, client_user):
    outbox = NotificationOutbox()

    notification = notification_service.notify(
        db,
        outbox,
        client_user.id,
        "Application Approved",
        "Your application has been approved",
        event=RealtimeEvent.STATUS_UPDATE,
    )

    assert notification is not None
    assert db.query(Notification).filter_by(user_id=client_user.id).count() == 1
    [push] = outbox.pending
    assert push.user_id == client_user.id
    assert push.events == ("notification", "status_update_notification")
    assert push.payload["title"] == "Application Approved"
    assert push.payload["read"] is False


def test_notify_without_outbox_only_persists(db, client_user):
    notification = notification_service.notify(db, None, client_user.id, "Hello", "World")
    assert notification.read is False
    assert notification_service.get_unread_count(db, client_user.id) == 1


def test_notify_many_skips_excluded_and_duplicates(db, admin, employee, other_employee):
    outbox = NotificationOutbox()

    created = notification_service.notify_many(
        db,
        outbox,
        [employee.id, other_employee.id, employee.id, admin.id],
        "Title",
        "Message",
        exclude=[admin.id],
    )

    assert {n.user_id for n in created} == {employee.id, other_employee.id}
    assert len(outbox) == 2


def test_notify_swallows_insert_failure(db, client_user, monkeypatch):
    def broken_create(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(notification_service, "create_notification", broken_create)
    outbox = NotificationOutbox()

    assert notification_service.notify(db, outbox, client_user.id, "T", "M") is None
    assert len(outbox) == 0


def test_facade_trigger_failure_is_swallowed(db, admin, monkeypatch):
    def broken_notify_many(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(notification_facade.notification_service, "notify_many", broken_notify_many)

    class StubApplication:
        id = uuid4()
        client_id = uuid4()
        service_type = "commercial"

    # Must not raise
    notification_facade.notify_new_application(db, NotificationOutbox(), StubApplication(), "Carla")
