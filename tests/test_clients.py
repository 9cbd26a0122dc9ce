"""Tests for the client directory and the cascade delete."""

import uuid

import pytest

from bpm.db.models import (
    Application,
    ApplicationAssignment,
    Message,
    Notification,
    Payment,
    Task,
    Ticket,
    TicketReply,
    User,
)
from bpm.services import message_service


@pytest.mark.asyncio
async def test_list_clients_with_application_counts(
    client_for, client_user, other_client, employee, submit_application
):
    await submit_application(client_for(client_user))
    await submit_application(client_for(client_user))

    res = await client_for(employee).get("/clients")

    assert res.status_code == 200
    counts = {c["id"]: c["application_count"] for c in res.json()["data"]}
    assert counts == {str(client_user.id): 2, str(other_client.id): 0}


@pytest.mark.asyncio
async def test_clients_cannot_browse_directory(client_for, client_user):
    res = await client_for(client_user).get("/clients")
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_get_client_rejects_staff_ids(client_for, admin, employee):
    res = await client_for(admin).get(f"/clients/{employee.id}")
    assert res.status_code == 404
    assert res.json()["message"] == "Client not found"


@pytest.mark.asyncio
async def test_delete_client_cascades(
    db,
    client_for,
    session_for,
    client_user,
    other_client,
    admin,
    employee,
    submit_application,
):
    client_id = client_user.id
    application = await submit_application(
        client_for(client_user),
        documents=[{"type": "passport", "file_url": "https://files.example.com/p.pdf"}],
    )
    untouched = await submit_application(client_for(other_client))
    res = await client_for(admin).patch(
        f"/applications/{application['id']}/assign",
        json={"employee_ids": [str(employee.id)]},
    )
    assert res.status_code == 200

    application_id = uuid.UUID(application["id"])
    message_service.send_message(db, application_id, session_for(employee), "Hello")
    db.add(Task(application_id=application_id, title="Collect CR"))
    ticket = Ticket(user_id=client_id, title="Help", description="Where is my licence?")
    ticket.replies.append(TicketReply(user_id=client_id, message="Any update?"))
    db.add(ticket)
    db.commit()

    res = await client_for(admin).delete(f"/clients/{client_id}")

    assert res.status_code == 200, res.text
    assert res.json()["data"] == {
        "client_id": str(client_id),
        "documents": 1,
        "timeline_entries": 2,
        "payment_installments": 0,
        "payments": 1,
        "tasks": 1,
        "messages": 1,
        "notifications": 1,
        "ticket_replies": 1,
        "tickets": 1,
        "assignments": 1,
        "applications": 1,
    }
    assert db.get(User, client_id) is None
    assert db.query(Application).filter(Application.client_id == client_id).count() == 0
    assert db.query(Payment).filter(Payment.client_id == client_id).count() == 0
    assert db.query(Notification).filter(Notification.user_id == client_id).count() == 0
    assert db.query(Message).count() == 0
    assert db.query(ApplicationAssignment).count() == 0
    assert db.query(TicketReply).count() == 0

    # Other clients and staff are untouched
    assert db.get(User, employee.id) is not None
    res = await client_for(admin).get(f"/applications/{untouched['id']}")
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_only_admins_delete_clients(client_for, client_user, employee):
    res = await client_for(employee).delete(f"/clients/{client_user.id}")
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_delete_unknown_client_is_404(client_for, admin, employee):
    res = await client_for(admin).delete(f"/clients/{employee.id}")
    assert res.status_code == 404
