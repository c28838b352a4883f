import pytest
from faker import Faker

from app.modules.workshops.models import WORKSHOPS_COLLECTION

fake = Faker()


async def _create_workshop_helper(client, name=None):
    response = await client.post("/api/v1/workshops", json={
        "name": name or fake.catch_phrase(),
        "participants": [fake.email()],
    })
    assert response.status_code == 201
    return response.json()


@pytest.mark.anyio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.anyio
async def test_create_workshop(client, principal):
    data = await _create_workshop_helper(client, name="Payments MVP")

    workshop = data["workshop"]
    assert workshop["name"] == "Payments MVP"
    assert workshop["created_by"] == principal.id
    assert workshop["total_steps"] == 12
    assert workshop["current_step"] == 0
    assert workshop["status"] == "in_progress"
    assert [s["step_number"] for s in data["steps"]] == list(range(1, 14))
    assert data["steps"][1]["kind"] == "agenda"
    assert data["selected_step"]["name"] == "Kickoff"
    assert data["guard_state"] == "clean"
    assert data["notices"][0]["title"] == "Workshop Created"


@pytest.mark.anyio
async def test_create_workshop_rejects_blank_name(client):
    response = await client.post("/api/v1/workshops", json={"name": "   "})
    assert response.status_code == 422


@pytest.mark.anyio
async def test_create_workshop_with_request_id_is_idempotent(client, documents):
    body = {"name": "Once", "request_id": fake.uuid4()}
    first = await client.post("/api/v1/workshops", json=body)
    second = await client.post("/api/v1/workshops", json=body)

    assert first.json()["workshop"]["id"] == second.json()["workshop"]["id"]
    assert len(await documents.list(WORKSHOPS_COLLECTION)) == 1


@pytest.mark.anyio
async def test_open_workshop_not_found(client):
    response = await client.get("/api/v1/workshops/does-not-exist")
    assert response.status_code == 404


@pytest.mark.anyio
async def test_open_workshop_forbidden(client, documents):
    await documents.set(WORKSHOPS_COLLECTION, "theirs", {"name": "Private", "created_by": "someone-else"})
    response = await client.get("/api/v1/workshops/theirs")
    assert response.status_code == 403


@pytest.mark.anyio
async def test_edit_navigate_and_save_flow(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]
    kickoff_id = created["selected_step"]["id"]

    response = await client.post(f"/api/v1/workshops/{workshop_id}/session/edit",
                                 json={"content": {"notes": ["Scope is payments"]}})
    assert response.json()["guard_state"] == "dirty"

    response = await client.post(f"/api/v1/workshops/{workshop_id}/session/navigate",
                                 json={"action": {"type": "next"}})
    data = response.json()
    assert data["guard_state"] == "pending_decision"
    assert data["pending_action"] == {"type": "next"}
    assert data["selected_step"]["id"] == kickoff_id

    response = await client.post(f"/api/v1/workshops/{workshop_id}/session/decision",
                                 json={"decision": "save"})
    data = response.json()
    assert data["guard_state"] == "clean"
    assert data["selected_step"]["name"] == "Agenda"
    assert "Saved!" in [n["title"] for n in data["notices"]]

    response = await client.get(f"/api/v1/workshops/{workshop_id}")
    steps = {s["id"]: s for s in response.json()["steps"]}
    assert steps[kickoff_id]["content"] == {"notes": ["Scope is payments"]}


@pytest.mark.anyio
async def test_lock_flow_updates_progress(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]

    response = await client.post(f"/api/v1/workshops/{workshop_id}/session/lock")
    data = response.json()
    assert response.status_code == 200
    assert data["workshop"]["current_step"] == 1
    assert data["selected_step"]["is_locked"] is True
    assert data["notices"][-1]["title"] == "Step Completed"

    response = await client.get(f"/api/v1/workshops/{workshop_id}/progress")
    assert response.json() == {
        "completed_count": 1,
        "total_counted": 12,
        "all_complete": False,
        "status": "in_progress",
    }


@pytest.mark.anyio
async def test_lock_agenda_is_conflict(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]
    agenda_id = created["steps"][1]["id"]

    await client.post(f"/api/v1/workshops/{workshop_id}/session/navigate",
                      json={"action": {"type": "step", "step_id": agenda_id}})
    response = await client.post(f"/api/v1/workshops/{workshop_id}/session/lock")

    assert response.status_code == 409


@pytest.mark.anyio
async def test_lock_while_dirty_is_refused(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]
    await client.post(f"/api/v1/workshops/{workshop_id}/session/edit", json={"content": {"x": 1}})

    response = await client.post(f"/api/v1/workshops/{workshop_id}/session/lock")

    data = response.json()
    assert data["workshop"]["current_step"] == 0
    assert data["notices"][-1]["title"] == "Unsaved Changes"


@pytest.mark.anyio
async def test_completing_every_step_exposes_report(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]
    counted = [s for s in created["steps"] if s["kind"] == "template"]

    for step in counted:
        await client.post(f"/api/v1/workshops/{workshop_id}/session/navigate",
                          json={"action": {"type": "step", "step_id": step["id"]}})
        response = await client.post(f"/api/v1/workshops/{workshop_id}/session/lock")

    data = response.json()
    assert data["workshop"]["status"] == "completed"
    assert data["steps"][-1]["kind"] == "report"
    assert data["steps"][-1]["step_number"] == 14

    response = await client.get(f"/api/v1/workshops/{workshop_id}/report")
    report = response.json()
    assert report["status"] == "completed"
    assert report["progress"] == "12 / 12"
    assert len(report["steps"]) == 13


@pytest.mark.anyio
async def test_rename_workshop(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]

    response = await client.put(f"/api/v1/workshops/{workshop_id}", json={"name": "Renamed"})
    assert response.json()["workshop"]["name"] == "Renamed"

    response = await client.put(f"/api/v1/workshops/{workshop_id}", json={"name": ""})
    assert response.status_code == 422


@pytest.mark.anyio
async def test_leave_workshop(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]

    response = await client.post(f"/api/v1/workshops/{workshop_id}/session/navigate",
                                 json={"action": {"type": "back"}})

    assert response.json()["closed"] is True


@pytest.mark.anyio
async def test_reopen_keeps_unsaved_draft(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]
    await client.post(f"/api/v1/workshops/{workshop_id}/session/edit", json={"content": {"draft": True}})

    response = await client.get(f"/api/v1/workshops/{workshop_id}")

    assert response.json()["guard_state"] == "dirty"
    assert response.json()["selected_step"]["content"] == {"draft": True}


@pytest.mark.anyio
async def test_decision_without_pending_action(client):
    created = await _create_workshop_helper(client)
    workshop_id = created["workshop"]["id"]

    response = await client.post(f"/api/v1/workshops/{workshop_id}/session/decision",
                                 json={"decision": "discard"})

    assert response.status_code == 400
