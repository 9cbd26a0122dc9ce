"""Outsiders (not owner, not assigned, not admin) are refused every application mutation."""

import pytest

from bpm.db.models import Application

MUTATIONS = [
    ("patch", "/applications/{id}/review", {"action": "approve"}),
    ("patch", "/applications/{id}/assign", {"employee_ids": ["{employee}"]}),
    ("post", "/applications/{id}/payment", {"amount": 5000, "method": "card"}),
    ("patch", "/status/{id}/update", {"status": "under_review"}),
    ("patch", "/employees/applications/{id}", {"need_virtual_office": True}),
    ("delete", "/applications/{id}", None),
]


def _fill(value, application_id, employee_id):
    if isinstance(value, str):
        return value.replace("{id}", application_id).replace("{employee}", employee_id)
    if isinstance(value, list):
        return [_fill(v, application_id, employee_id) for v in value]
    if isinstance(value, dict):
        return {k: _fill(v, application_id, employee_id) for k, v in value.items()}
    return value


@pytest.mark.asyncio
@pytest.mark.parametrize("method,path,body", MUTATIONS)
@pytest.mark.parametrize("outsider", ["other_client", "other_employee"])
async def test_outsider_gets_403(
    request,
    db,
    client_for,
    client_user,
    admin,
    employee,
    submit_application,
    method,
    path,
    body,
    outsider,
):
    application = await submit_application(client_for(client_user))
    await client_for(admin).patch(
        f"/applications/{application['id']}/assign", json={"employee_ids": [str(employee.id)]}
    )
    user = request.getfixturevalue(outsider)
    url = _fill(path, application["id"], str(employee.id))
    kwargs = {} if body is None else {"json": _fill(body, application["id"], str(employee.id))}

    res = await getattr(client_for(user), method)(url, **kwargs)

    assert res.status_code == 403, res.text
    assert res.json()["success"] is False
    db.expire_all()
    assert db.query(Application).one().status == "under_review"
