"""Tests for the /tasks endpoints."""

import pytest

from bpm.db.models import Notification

DUE = "2026-11-30T17:00:00Z"


def _titles(db, user_id) -> list[str]:
    return [n.title for n in db.query(Notification).filter(Notification.user_id == user_id)]


async def _create(client, assignee, **extra):
    body = {
        "title": "Collect CR copy",
        "description": "Fetch the commercial registration from the ministry",
        "assigned_to_id": str(assignee.id),
        "due_date": DUE,
        **extra,
    }
    res = await client.post("/tasks", json=body)
    assert res.status_code == 201, res.text
    return res.json()["data"]


@pytest.mark.asyncio
async def test_create_task_notifies_assignee(
    db, client_for, channel, client_user, admin, employee, submit_application
):
    application = await submit_application(client_for(client_user))

    task = await _create(
        client_for(admin), employee, priority="urgent", application_id=application["id"]
    )

    assert task["status"] == "open"
    assert task["priority"] == "urgent"
    assert task["application_id"] == application["id"]
    assert task["assigned_to_name"] == "Eve Employee"
    assert task["created_by_name"] == "Alice Admin"
    assert task["completed_at"] is None
    assert _titles(db, employee.id) == ["New Task Assigned"]
    assert "task_assignment_notification" in channel.events_for(employee.id)


@pytest.mark.asyncio
async def test_create_task_validation(client_for, client_user, admin, employee):
    res = await client_for(admin).post(
        "/tasks",
        json={
            "title": "Call client",
            "description": "Follow up",
            "assigned_to_id": str(client_user.id),
            "due_date": DUE,
        },
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Can only assign tasks to employees or admins"

    res = await client_for(admin).post(
        "/tasks",
        json={
            "title": "Call client",
            "description": "Follow up",
            "assigned_to_id": str(employee.id),
            "due_date": DUE,
            "application_id": str(employee.id),
        },
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Application not found"

    res = await client_for(client_user).post(
        "/tasks",
        json={
            "title": "Do my paperwork",
            "description": "Please",
            "assigned_to_id": str(employee.id),
            "due_date": DUE,
        },
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_task_visibility(client_for, client_user, admin, employee, other_employee):
    given = await _create(client_for(admin), employee)
    handed_on = await _create(client_for(employee), other_employee, title="Translate deed")

    res = await client_for(employee).get("/tasks")
    assert {t["id"] for t in res.json()["data"]} == {given["id"], handed_on["id"]}

    res = await client_for(employee).get("/tasks/my")
    assert [t["id"] for t in res.json()["data"]] == [given["id"]]

    res = await client_for(other_employee).get("/tasks")
    assert [t["id"] for t in res.json()["data"]] == [handed_on["id"]]

    res = await client_for(other_employee).get(f"/tasks/{given['id']}")
    assert res.status_code == 403

    res = await client_for(admin).get("/tasks", params={"assigned_to_id": str(employee.id)})
    assert [t["id"] for t in res.json()["data"]] == [given["id"]]

    res = await client_for(client_user).get("/tasks")
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_status_update_stamps_completion(
    db, client_for, channel, admin, employee, other_employee
):
    task = await _create(client_for(admin), employee)

    res = await client_for(employee).patch(
        f"/tasks/{task['id']}/status", json={"status": "completed", "note": "Copy filed"}
    )

    assert res.status_code == 200, res.text
    completed = res.json()["data"]
    assert completed["status"] == "completed"
    assert completed["completed_at"] is not None

    # The creator is also the only admin: one notification, never the actor
    [update] = [
        n for n in db.query(Notification).filter(Notification.user_id == admin.id)
        if n.title == "Task Status Updated"
    ]
    assert update.message.endswith("Note: Copy filed")
    assert "task_status_update_notification" in channel.events_for(admin.id)
    assert "Task Status Updated" not in _titles(db, employee.id)

    res = await client_for(employee).patch(
        f"/tasks/{task['id']}/status", json={"status": "in_progress"}
    )
    assert res.json()["data"]["completed_at"] is None

    res = await client_for(other_employee).patch(
        f"/tasks/{task['id']}/status", json={"status": "cancelled"}
    )
    assert res.status_code == 403

    res = await client_for(employee).patch(
        f"/tasks/{task['id']}/status", json={"status": "done"}
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_only_creator_or_admin_deletes(client_for, admin, employee):
    task = await _create(client_for(admin), employee)

    res = await client_for(employee).delete(f"/tasks/{task['id']}")
    assert res.status_code == 403

    res = await client_for(admin).delete(f"/tasks/{task['id']}")
    assert res.status_code == 200
    assert res.json()["message"] == "Task deleted successfully"

    res = await client_for(admin).get(f"/tasks/{task['id']}")
    assert res.status_code == 404
