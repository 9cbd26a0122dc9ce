"""Tests for the application lifecycle endpoints."""

import pytest

from bpm.db.models import Application, Notification


def _titles(db, user_id) -> list[str]:
    return [n.title for n in db.query(Notification).filter(Notification.user_id == user_id)]


async def _assign(client, application_id, *employees, **extra):
    res = await client.patch(
        f"/applications/{application_id}/assign",
        json={"employee_ids": [str(e.id) for e in employees], **extra},
    )
    assert res.status_code == 200, res.text
    return res.json()["data"]


async def _review(client, application_id, action, reason=None):
    body = {"action": action}
    if reason is not None:
        body["reason"] = reason
    return await client.patch(f"/applications/{application_id}/review", json=body)


# =============================================================================
# Submit
# =============================================================================


@pytest.mark.asyncio
async def test_submit_creates_application_with_pending_payment(
    db, client_for, channel, client_user, admin, submit_application
):
    data = await submit_application(client_for(client_user))

    assert data["status"] == "submitted"
    assert data["progress"] == 10
    assert data["client"]["id"] == str(client_user.id)
    assert data["payment"]["total_amount"] == 5000
    assert data["payment"]["status"] == "pending"
    assert data["payment"]["payment_plan"] == "full"
    assert data["payment"]["due_date"] is not None

    [entry] = data["timeline"]
    assert entry["status"] == "submitted"
    assert entry["progress"] == 0
    assert entry["updated_by_name"] == "Carla Client"

    assert _titles(db, admin.id) == ["New Application Received"]
    assert channel.events_for(admin.id) == ["notification", "new_application_notification"]


@pytest.mark.asyncio
async def test_submit_prices_add_ons(client_for, client_user, submit_application):
    data = await submit_application(
        client_for(client_user),
        service_type="engineering",
        need_virtual_office=True,
        external_companies_details=[{"company_name": "Acme"}, {"company_name": "Globex"}],
        documents=[{"type": "passport", "file_url": "https://files.example.com/p.pdf"}],
    )

    assert data["external_companies_count"] == 2
    assert data["payment"]["total_amount"] == 12000
    assert data["documents"][0]["type"] == "passport"


@pytest.mark.asyncio
async def test_submit_rejects_unknown_service_type(client_for, client_user):
    res = await client_for(client_user).post("/applications", json={"service_type": "mining"})

    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert body["errors"][0]["field"] == "body.service_type"


@pytest.mark.asyncio
async def test_staff_cannot_submit(client_for, employee):
    res = await client_for(employee).post("/applications", json={"service_type": "commercial"})
    assert res.status_code == 403


# =============================================================================
# Listing
# =============================================================================


@pytest.mark.asyncio
async def test_list_is_scoped_by_role(
    client_for, client_user, other_client, admin, employee, submit_application
):
    mine = await submit_application(client_for(client_user))
    theirs = await submit_application(client_for(other_client))
    await _assign(client_for(admin), theirs["id"], employee)

    res = await client_for(client_user).get("/applications")
    assert [a["id"] for a in res.json()["data"]] == [mine["id"]]

    res = await client_for(employee).get("/applications")
    assert [a["id"] for a in res.json()["data"]] == [theirs["id"]]

    res = await client_for(admin).get("/applications")
    assert {a["id"] for a in res.json()["data"]} == {mine["id"], theirs["id"]}

    res = await client_for(admin).get("/applications", params={"status": "under_review"})
    assert [a["id"] for a in res.json()["data"]] == [theirs["id"]]


@pytest.mark.asyncio
async def test_other_client_cannot_read_application(
    client_for, client_user, other_client, submit_application
):
    data = await submit_application(client_for(client_user))

    res = await client_for(other_client).get(f"/applications/{data['id']}")
    assert res.status_code == 403
    assert res.json()["success"] is False


@pytest.mark.asyncio
async def test_missing_application_is_404(client_for, admin):
    res = await client_for(admin).get("/applications/00000000-0000-0000-0000-000000000000")
    assert res.status_code == 404
    assert res.json()["message"] == "Application not found"


# =============================================================================
# Review
# =============================================================================


@pytest.mark.asyncio
async def test_reject_requires_reason(client_for, client_user, admin, submit_application):
    data = await submit_application(client_for(client_user))

    res = await _review(client_for(admin), data["id"], "reject")
    assert res.status_code == 400
    assert res.json()["message"] == "Reason is required for rejection"


@pytest.mark.asyncio
async def test_reject_records_reason_and_notifies_client(
    db, client_for, channel, client_user, admin, submit_application
):
    data = await submit_application(client_for(client_user))

    res = await _review(client_for(admin), data["id"], "reject", "incomplete docs")

    assert res.status_code == 200, res.text
    rejected = res.json()["data"]
    assert rejected["status"] == "rejected"
    assert rejected["progress"] == 0
    assert any(
        e["status"] == "rejected" and e["note"] == "incomplete docs" for e in rejected["timeline"]
    )

    notification = (
        db.query(Notification)
        .filter(
            Notification.user_id == client_user.id,
            Notification.title == "Application Rejected",
        )
        .one()
    )
    assert "incomplete docs" in notification.message
    assert "status_update_notification" in channel.events_for(client_user.id)

    # Rejected is terminal
    res = await _review(client_for(admin), data["id"], "approve")
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_approve_sets_approver(client_for, client_user, admin, submit_application):
    data = await submit_application(client_for(client_user))

    res = await _review(client_for(admin), data["id"], "approve")

    approved = res.json()["data"]
    assert approved["status"] == "approved"
    assert approved["progress"] == 50
    assert approved["approved_by_id"] == str(admin.id)
    assert approved["approved_at"] is not None


@pytest.mark.asyncio
async def test_client_cannot_review(client_for, client_user, submit_application):
    data = await submit_application(client_for(client_user))

    res = await _review(client_for(client_user), data["id"], "approve")
    assert res.status_code == 403


# =============================================================================
# Assign
# =============================================================================


@pytest.mark.asyncio
async def test_assign_moves_submitted_to_under_review(
    db, client_for, channel, client_user, admin, employee, submit_application
):
    data = await submit_application(client_for(client_user))

    assigned = await _assign(client_for(admin), data["id"], employee, task="Prepare CR")

    assert assigned["status"] == "under_review"
    [member] = assigned["assigned_employees"]
    assert member["employee_id"] == str(employee.id)
    assert member["task"] == "Prepare CR"
    assert any(
        e["progress"] == 25 and e["note"] == "Assigned to Eve Employee"
        for e in assigned["timeline"]
    )
    assert _titles(db, employee.id) == ["New Application Assignment"]
    assert "assignment_notification" in channel.events_for(employee.id)
    [assigned_note] = [
        n for n in db.query(Notification).filter(Notification.user_id == client_user.id)
        if n.title == "Application Assigned"
    ]
    assert assigned_note.message.endswith("is now under review")


@pytest.mark.asyncio
async def test_assign_is_idempotent(
    db, client_for, client_user, admin, employee, other_employee, submit_application
):
    data = await submit_application(client_for(client_user))
    first = await _assign(client_for(admin), data["id"], employee)

    second = await _assign(client_for(admin), data["id"], employee, other_employee)
    again = await _assign(client_for(admin), data["id"], employee, other_employee)

    assert second["status"] == "under_review"
    ids = [m["employee_id"] for m in again["assigned_employees"]]
    assert sorted(ids) == sorted([str(employee.id), str(other_employee.id)])
    kept = next(m for m in again["assigned_employees"] if m["employee_id"] == str(employee.id))
    assert kept["assigned_at"] == first["assigned_employees"][0]["assigned_at"]
    assert _titles(db, employee.id).count("New Application Assignment") == 1
    assert _titles(db, other_employee.id).count("New Application Assignment") == 1


@pytest.mark.asyncio
async def test_assign_rejects_clients_and_empty_lists(
    client_for, client_user, other_client, admin, submit_application
):
    data = await submit_application(client_for(client_user))

    res = await client_for(admin).patch(
        f"/applications/{data['id']}/assign", json={"employee_ids": [str(other_client.id)]}
    )
    assert res.status_code == 400
    assert res.json()["message"] == "One or more employee IDs are invalid or not employees"

    res = await client_for(admin).patch(
        f"/applications/{data['id']}/assign", json={"employee_ids": []}
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_employee_cannot_assign(client_for, client_user, employee, submit_application):
    data = await submit_application(client_for(client_user))

    res = await client_for(employee).patch(
        f"/applications/{data['id']}/assign", json={"employee_ids": [str(employee.id)]}
    )
    assert res.status_code == 403


# =============================================================================
# Direct payment and status updates
# =============================================================================


@pytest.mark.asyncio
async def test_make_payment_only_once(client_for, client_user, admin, submit_application):
    data = await submit_application(client_for(client_user))
    client = client_for(client_user)

    res = await client.post(
        f"/applications/{data['id']}/payment", json={"amount": 5000, "method": "card"}
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Payment allowed only for approved applications"

    await _review(client_for(admin), data["id"], "approve")

    res = await client.post(
        f"/applications/{data['id']}/payment", json={"amount": 4000, "method": "card"}
    )
    assert res.status_code == 400

    res = await client.post(
        f"/applications/{data['id']}/payment",
        json={"amount": 5000, "method": "bank_transfer", "transaction_ref": "TX-1"},
    )
    assert res.status_code == 200, res.text
    paid = res.json()["data"]
    assert paid["status"] == "in_process"
    assert paid["progress"] == 75
    assert paid["payment"]["status"] == "approved"
    assert paid["payment"]["method"] == "bank_transfer"
    assert paid["payment"]["paid_by_id"] == str(client_user.id)

    res = await client.post(
        f"/applications/{data['id']}/payment", json={"amount": 5000, "method": "card"}
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Payment already exists for this application"


@pytest.mark.asyncio
async def test_make_payment_with_installment_plan(
    client_for, client_user, admin, submit_application
):
    data = await submit_application(client_for(client_user))
    await _review(client_for(admin), data["id"], "approve")

    res = await client_for(client_user).post(
        f"/applications/{data['id']}/payment",
        json={"amount": 5000, "method": "card", "plan": "installments"},
    )

    payment = res.json()["data"]["payment"]
    assert payment["payment_plan"] == "installments"
    assert [i["amount"] for i in payment["installments"]] == [1666.67, 1666.67, 1666.66]
    assert {i["status"] for i in payment["installments"]} == {"approved"}


@pytest.mark.asyncio
async def test_employee_completes_and_everyone_hears(
    db, client_for, channel, client_user, admin, employee, other_employee, submit_application
):
    data = await submit_application(client_for(client_user))
    await _assign(client_for(admin), data["id"], employee, other_employee)
    await _review(client_for(admin), data["id"], "approve")
    res = await client_for(client_user).post(
        f"/applications/{data['id']}/payment", json={"amount": 5000, "method": "card"}
    )
    assert res.json()["data"]["status"] == "in_process"

    res = await client_for(employee).patch(
        f"/status/{data['id']}/update", json={"status": "completed", "note": "Licence issued"}
    )

    assert res.status_code == 200, res.text
    assert res.json()["message"] == "Status updated successfully"
    completed = res.json()["data"]
    assert completed["status"] == "completed"
    assert completed["progress"] == 100
    assert any(
        e["progress"] == 100 and e["note"] == "Licence issued" for e in completed["timeline"]
    )

    title = "Application Status Updated"
    assert _titles(db, client_user.id).count(title) == 1
    assert _titles(db, other_employee.id).count(title) == 1
    assert _titles(db, admin.id).count(title) == 1
    assert _titles(db, employee.id).count(title) == 0


@pytest.mark.asyncio
async def test_invalid_status_is_rejected(client_for, client_user, admin, submit_application):
    data = await submit_application(client_for(client_user))

    res = await client_for(admin).patch(
        f"/status/{data['id']}/update", json={"status": "finished"}
    )

    assert res.status_code == 400
    assert res.json()["message"] == "Invalid status 'finished'"


@pytest.mark.asyncio
async def test_in_process_needs_verified_payment(
    client_for, client_user, admin, submit_application
):
    data = await submit_application(client_for(client_user))
    await _review(client_for(admin), data["id"], "approve")

    res = await client_for(admin).patch(
        f"/status/{data['id']}/update", json={"status": "in_process"}
    )

    assert res.status_code == 400
    assert "payment" in res.json()["message"]


@pytest.mark.asyncio
async def test_unassigned_employee_cannot_update_status(
    client_for, client_user, employee, submit_application
):
    data = await submit_application(client_for(client_user))

    res = await client_for(employee).patch(
        f"/status/{data['id']}/update", json={"status": "under_review"}
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_employee_field_update_keeps_price(
    client_for, client_user, admin, employee, submit_application
):
    data = await submit_application(client_for(client_user))
    await _assign(client_for(admin), data["id"], employee)

    res = await client_for(employee).patch(
        f"/employees/applications/{data['id']}",
        json={"need_virtual_office": True, "project_estimated_value": 250000, "role": "admin"},
    )

    assert res.status_code == 200, res.text
    updated = res.json()["data"]
    assert updated["need_virtual_office"] is True
    assert updated["project_estimated_value"] == 250000
    assert updated["status"] == "under_review"
    assert updated["payment"]["total_amount"] == 5000
    assert any(e["note"] == "Application data updated by employee" for e in updated["timeline"])


# =============================================================================
# Delete
# =============================================================================


@pytest.mark.asyncio
async def test_admin_deletes_application(
    db, client_for, channel, client_user, admin, submit_application
):
    data = await submit_application(client_for(client_user))

    res = await client_for(admin).delete(f"/applications/{data['id']}")

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "message": "Application deleted successfully",
        "data": None,
    }
    assert db.query(Application).count() == 0
    res = await client_for(admin).get(f"/applications/{data['id']}")
    assert res.status_code == 404
    assert "application_deleted_notification" in channel.events_for(client_user.id)


@pytest.mark.asyncio
async def test_client_cannot_delete_application(client_for, client_user, submit_application):
    data = await submit_application(client_for(client_user))

    res = await client_for(client_user).delete(f"/applications/{data['id']}")
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_reassign_never_regresses_status(
    db, client_for, client_user, admin, employee, other_employee, submit_application
):
    data = await submit_application(client_for(client_user))
    await _review(client_for(admin), data["id"], "approve")
    await client_for(client_user).post(
        f"/applications/{data['id']}/payment", json={"amount": 5000, "method": "cash"}
    )

    first = await _assign(client_for(admin), data["id"], employee)
    second = await _assign(client_for(admin), data["id"], employee)

    assert first["status"] == second["status"] == "in_process"
    assert first["assigned_employees"] == second["assigned_employees"]
    assert all(e["status"] != "under_review" for e in second["timeline"])
    messages = [
        n.message
        for n in db.query(Notification).filter(Notification.user_id == client_user.id)
        if n.title == "Application Assigned"
    ]
    assert len(messages) == 2
    assert all(m.endswith("is now in process") for m in messages)


# =============================================================================
# Approval through status writes
# =============================================================================


@pytest.mark.asyncio
async def test_status_write_approval_records_approver(
    client_for, client_user, admin, submit_application
):
    data = await submit_application(client_for(client_user))

    res = await client_for(admin).patch(
        f"/status/{data['id']}/update", json={"status": "approved"}
    )

    assert res.status_code == 200, res.text
    approved = res.json()["data"]
    assert approved["status"] == "approved"
    assert approved["approved_by_id"] == str(admin.id)
    assert approved["approved_at"] is not None


@pytest.mark.asyncio
async def test_employee_field_update_approval_records_approver(
    client_for, client_user, admin, employee, submit_application
):
    data = await submit_application(client_for(client_user))
    await _assign(client_for(admin), data["id"], employee)

    res = await client_for(employee).patch(
        f"/employees/applications/{data['id']}", json={"status": "approved"}
    )

    assert res.status_code == 200, res.text
    assert res.json()["data"]["approved_by_id"] == str(employee.id)

    # Rewriting the same status keeps the original approver
    res = await client_for(admin).patch(
        f"/status/{data['id']}/update", json={"status": "approved"}
    )
    assert res.json()["data"]["approved_by_id"] == str(employee.id)


# =============================================================================
# Timeline
# =============================================================================


@pytest.mark.asyncio
async def test_timeline_lists_entries_newest_first(
    client_for, client_user, other_client, admin, employee, submit_application
):
    data = await submit_application(client_for(client_user))
    await _assign(client_for(admin), data["id"], employee)
    await _review(client_for(admin), data["id"], "approve")

    res = await client_for(client_user).get(f"/applications/{data['id']}/timeline")

    assert res.status_code == 200
    entries = res.json()["data"]
    assert [e["status"] for e in entries] == ["approved", "under_review", "submitted"]
    assert [e["progress"] for e in entries] == [50, 25, 0]
    assert entries[0]["updated_by_name"] == "Alice Admin"

    res = await client_for(other_client).get(f"/applications/{data['id']}/timeline")
    assert res.status_code == 403
