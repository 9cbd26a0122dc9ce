"""Tests for the /messages endpoints."""

import pytest


@pytest.fixture
async def application_id(client_for, client_user, admin, employee, submit_application):
    """A submitted application assigned to Eve Employee."""
    data = await submit_application(client_for(client_user))
    res = await client_for(admin).patch(
        f"/applications/{data['id']}/assign", json={"employee_ids": [str(employee.id)]}
    )
    assert res.status_code == 200, res.text
    return data["id"]


async def _send(client, application_id, content):
    res = await client.post(
        "/messages", json={"application_id": application_id, "content": content}
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


@pytest.mark.asyncio
async def test_send_message_reaches_both_parties(
    client_for, channel, client_user, employee, application_id
):
    message = await _send(client_for(client_user), application_id, " Hello ")

    assert message["content"] == "Hello"
    assert message["sender_id"] == str(client_user.id)
    assert message["recipient_id"] == str(employee.id)
    assert message["is_read"] is False
    assert channel.events_for(employee.id).count("new_message") == 1
    assert channel.events_for(client_user.id).count("new_message") == 1

    res = await client_for(employee).get(f"/applications/{application_id}/messages")
    assert [m["content"] for m in res.json()["data"]] == ["Hello"]


@pytest.mark.asyncio
async def test_send_before_assignment_fails(client_for, client_user, submit_application):
    data = await submit_application(client_for(client_user))

    res = await client_for(client_user).post(
        "/messages", json={"application_id": data["id"], "content": "Anyone there?"}
    )

    assert res.status_code == 400
    assert res.json()["message"] == "No employee is assigned to this application yet"


@pytest.mark.asyncio
async def test_outsiders_cannot_send(client_for, other_client, other_employee, application_id):
    for outsider in (other_client, other_employee):
        res = await client_for(outsider).post(
            "/messages", json={"application_id": application_id, "content": "Hi"}
        )
        assert res.status_code == 403


@pytest.mark.asyncio
async def test_unread_count_and_mark_read(client_for, client_user, employee, application_id):
    first = await _send(client_for(client_user), application_id, "One")
    second = await _send(client_for(client_user), application_id, "Two")

    res = await client_for(employee).get("/messages/unread-count")
    assert res.json()["data"] == {"count": 2}

    # The sender cannot mark their own outgoing messages read
    res = await client_for(client_user).put(
        "/messages/read", json={"message_ids": [first["id"]]}
    )
    assert res.json()["data"] == {"marked_read": 0}

    res = await client_for(employee).put(
        "/messages/read", json={"message_ids": [first["id"], second["id"]]}
    )
    assert res.status_code == 200
    assert res.json()["data"] == {"marked_read": 2}

    res = await client_for(employee).get("/messages/unread-count")
    assert res.json()["data"] == {"count": 0}


@pytest.mark.asyncio
async def test_mark_read_requires_ids(client_for, employee):
    res = await client_for(employee).put("/messages/read", json={"message_ids": []})
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_conversations_summarise_each_application(
    client_for, client_user, employee, other_employee, application_id, submit_application
):
    await submit_application(client_for(client_user))  # no messages, left out
    await _send(client_for(client_user), application_id, "One")
    await _send(client_for(client_user), application_id, "Two")

    res = await client_for(employee).get("/messages/conversations")

    assert res.status_code == 200
    [conversation] = res.json()["data"]
    assert conversation["application_id"] == application_id
    assert conversation["partner"]["id"] == str(client_user.id)
    assert conversation["last_message"]["content"] == "Two"
    assert conversation["unread_count"] == 2

    res = await client_for(client_user).get("/messages/conversations")
    [conversation] = res.json()["data"]
    assert conversation["partner"]["full_name"] == "Eve Employee"
    assert conversation["unread_count"] == 0

    res = await client_for(other_employee).get("/messages/conversations")
    assert res.json()["data"] == []


@pytest.mark.asyncio
async def test_only_sender_deletes_message(client_for, client_user, employee, application_id):
    message = await _send(client_for(client_user), application_id, "Oops")

    res = await client_for(employee).delete(f"/messages/{message['id']}")
    assert res.status_code == 403

    res = await client_for(client_user).delete(f"/messages/{message['id']}")
    assert res.status_code == 200
    assert res.json()["message"] == "Message deleted successfully"

    res = await client_for(client_user).get(f"/applications/{application_id}/messages")
    assert res.json()["data"] == []

    res = await client_for(client_user).delete(f"/messages/{message['id']}")
    assert res.status_code == 404
