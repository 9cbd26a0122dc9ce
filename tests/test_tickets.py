"""Tests for the /tickets endpoints."""

import pytest

from bpm.db.models import Notification, Ticket


def _notifications(db, user_id, title) -> list[Notification]:
    return [
        n for n in db.query(Notification).filter(Notification.user_id == user_id)
        if n.title == title
    ]


async def _open(client, **overrides):
    body = {"title": "Licence not received", "description": "It has been two weeks", **overrides}
    res = await client.post("/tickets", json=body)
    assert res.status_code == 201, res.text
    return res.json()["data"]


@pytest.mark.asyncio
async def test_client_opens_ticket_and_admins_hear(db, client_for, channel, client_user, admin):
    ticket = await _open(client_for(client_user), priority="urgent", category="document")

    assert ticket["status"] == "open"
    assert ticket["category"] == "document"
    assert ticket["user_id"] == str(client_user.id)
    assert ticket["assigned_to_id"] is None

    [notification] = _notifications(db, admin.id, "New Support Ticket Received")
    assert notification.priority == "high"
    assert "Carla Client" in notification.message
    assert "new_ticket_notification" in channel.events_for(admin.id)


@pytest.mark.asyncio
async def test_only_clients_open_tickets(client_for, employee):
    res = await client_for(employee).post(
        "/tickets", json={"title": "Laptop", "description": "Broken"}
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_ticket_listings(client_for, client_user, other_client, admin, employee):
    mine = await _open(client_for(client_user))
    await _open(client_for(other_client), title="Invoice question")

    res = await client_for(admin).get("/tickets")
    assert len(res.json()["data"]) == 2

    res = await client_for(employee).get("/tickets")
    assert res.status_code == 403

    res = await client_for(client_user).get("/tickets/my")
    assert [t["id"] for t in res.json()["data"]] == [mine["id"]]


@pytest.mark.asyncio
async def test_assign_ticket(db, client_for, channel, client_user, admin, employee):
    ticket = await _open(client_for(client_user))

    res = await client_for(admin).patch(
        f"/tickets/{ticket['id']}/assign", json={"employee_id": str(employee.id)}
    )

    assert res.status_code == 200, res.text
    assigned = res.json()["data"]
    assert assigned["status"] == "in_progress"
    assert assigned["assigned_to_id"] == str(employee.id)
    assert len(_notifications(db, employee.id, "New Ticket Assignment")) == 1
    assert len(_notifications(db, client_user.id, "Ticket Assigned")) == 1
    assert "ticket_assignment_notification" in channel.events_for(client_user.id)

    res = await client_for(employee).get("/tickets/my")
    assert [t["id"] for t in res.json()["data"]] == [ticket["id"]]


@pytest.mark.asyncio
async def test_assign_ticket_rules(client_for, client_user, other_client, admin, employee):
    ticket = await _open(client_for(client_user))

    res = await client_for(admin).patch(
        f"/tickets/{ticket['id']}/assign", json={"employee_id": str(other_client.id)}
    )
    assert res.status_code == 400

    res = await client_for(employee).patch(
        f"/tickets/{ticket['id']}/assign", json={"employee_id": str(employee.id)}
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_status_update_notifies_client_and_admins(
    db, client_for, channel, client_user, admin, employee, other_employee
):
    ticket = await _open(client_for(client_user))
    await client_for(admin).patch(
        f"/tickets/{ticket['id']}/assign", json={"employee_id": str(employee.id)}
    )

    res = await client_for(other_employee).patch(
        f"/tickets/{ticket['id']}/status", json={"status": "resolved"}
    )
    assert res.status_code == 403

    res = await client_for(employee).patch(
        f"/tickets/{ticket['id']}/status", json={"status": "resolved"}
    )
    assert res.status_code == 200, res.text
    assert res.json()["data"]["status"] == "resolved"

    [client_note] = _notifications(db, client_user.id, "Ticket Status Updated")
    assert client_note.message == (
        'Your ticket "Licence not received" has been resolved by Eve Employee'
    )
    assert client_note.type == "success"
    assert len(_notifications(db, admin.id, "Ticket Status Updated")) == 1
    assert "ticket_status_notification" in channel.events_for(admin.id)

    # An admin's own change is not echoed back to the admins
    res = await client_for(admin).patch(
        f"/tickets/{ticket['id']}/status", json={"status": "closed"}
    )
    assert res.status_code == 200
    assert len(_notifications(db, client_user.id, "Ticket Status Updated")) == 2
    assert len(_notifications(db, admin.id, "Ticket Status Updated")) == 1


@pytest.mark.asyncio
async def test_admin_deletes_ticket(db, client_for, client_user, admin):
    ticket = await _open(client_for(client_user))

    res = await client_for(client_user).delete(f"/tickets/{ticket['id']}")
    assert res.status_code == 403

    res = await client_for(admin).delete(f"/tickets/{ticket['id']}")
    assert res.status_code == 200
    assert db.query(Ticket).count() == 0

    res = await client_for(admin).delete(f"/tickets/{ticket['id']}")
    assert res.status_code == 404
