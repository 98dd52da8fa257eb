"""HTTP tests for the editor service and the unified application."""

import pytest
from fastapi.testclient import TestClient

from deckstate.app import app as unified_app
from deckstate.services.editor.app import app, registry
from deckstate.services.persistence.drivers.memory import InMemoryRemoteStore

HEADERS = {"X-User-Id": "user-1", "X-User-Email": "ada@example.com"}


@pytest.fixture
def remote_store():
    store = InMemoryRemoteStore()
    registry.remote = store
    registry.sessions.clear()
    yield store
    registry.sessions.clear()
    registry.remote = None


@pytest.fixture
def client(remote_store):
    with TestClient(app) as test_client:
        yield test_client


def open_session(client, presentation_id=None, headers=None) -> dict:
    body = {"presentation_id": presentation_id} if presentation_id else {}
    response = client.post("/sessions", json=body, headers=headers or {})
    assert response.status_code == 200
    return response.json()["data"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "editor", "remote_store": "memory"}


def test_open_local_session(client):
    data = open_session(client)

    assert data["mode"] == "local"
    assert len(data["document"]["slides"]) == 1
    assert data["document"]["presentation_id"].startswith("local-")
    assert data["can_undo"] is False


def test_unknown_session_is_404(client):
    assert client.get("/sessions/nope").status_code == 404


def test_content_change_undo_and_redo(client):
    session_id = open_session(client)["session_id"]

    response = client.post(f"/sessions/{session_id}/content", json={"field": "title", "content": "Q3 Plan"})
    data = response.json()["data"]
    assert data["document"]["slides"][0]["title"] == "Q3 Plan"
    assert data["can_undo"] is True

    data = client.post(f"/sessions/{session_id}/undo").json()["data"]
    assert data["document"]["slides"][0]["title"] == "Click to add title"
    assert data["can_redo"] is True

    data = client.post(f"/sessions/{session_id}/redo").json()["data"]
    assert data["document"]["slides"][0]["title"] == "Q3 Plan"


def test_invalid_field_is_rejected(client):
    session_id = open_session(client)["session_id"]
    response = client.post(f"/sessions/{session_id}/content", json={"field": "footer", "content": "x"})
    assert response.status_code == 422


def test_delete_last_slide_is_refused(client):
    data = open_session(client)
    slide_id = data["document"]["slides"][0]["id"]

    response = client.delete(f"/sessions/{data['session_id']}/slides/{slide_id}")

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert body["data"]["status_message"]["text"] == "At least one slide must remain in the presentation."


def test_add_move_and_select(client):
    session_id = open_session(client)["session_id"]
    data = client.post(f"/sessions/{session_id}/slides").json()["data"]
    first, second = [slide["id"] for slide in data["document"]["slides"]]
    assert data["document"]["selected_slide_id"] == second

    data = client.post(f"/sessions/{session_id}/move", json={"direction": "up"}).json()["data"]
    assert [slide["id"] for slide in data["document"]["slides"]] == [second, first]

    assert client.post(f"/sessions/{session_id}/slides/missing/select").status_code == 404


def test_field_record_updates(client):
    data = open_session(client)
    session_id = data["session_id"]
    slide_id = data["document"]["slides"][0]["id"]

    response = client.patch(
        f"/sessions/{session_id}/slides/{slide_id}/style", json={"field": "title", "values": {"font_size": 40}}
    )
    assert response.status_code == 200
    assert response.json()["data"]["document"]["slides"][0]["styles"]["title"]["font_size"] == 40

    response = client.patch(
        f"/sessions/{session_id}/slides/{slide_id}/style", json={"field": "title", "values": {"fontSize": 12}}
    )
    assert response.status_code == 400

    response = client.patch(
        f"/sessions/{session_id}/slides/{slide_id}/position", json={"field": "text_box", "values": {"x": 1}}
    )
    assert response.status_code == 400

    response = client.patch(f"/sessions/{session_id}/slides/{slide_id}/shadow", json={"field": "title"})
    assert response.status_code == 404


def test_remote_save_requires_identity(client, remote_store):
    session_id = open_session(client, "deck-1")["session_id"]

    assert client.post(f"/sessions/{session_id}/save", json={}).status_code == 401

    response = client.post(f"/sessions/{session_id}/save", json={"title": "Board deck"}, headers=HEADERS)
    assert response.status_code == 200
    assert remote_store.presentations["deck-1"]["title"] == "Board deck"


def test_versions_save_and_restore(client, remote_store):
    data = open_session(client, "deck-1", HEADERS)
    session_id = data["session_id"]
    assert data["mode"] == "remote"

    response = client.post(f"/sessions/{session_id}/versions", json={"summary": "one slide"}, headers=HEADERS)
    assert response.status_code == 200
    version_id = response.json()["data"]["version_id"]

    client.post(f"/sessions/{session_id}/slides", headers=HEADERS)
    versions = client.get(f"/sessions/{session_id}/versions").json()["data"]["versions"]
    assert [version["id"] for version in versions] == [version_id]

    response = client.post(f"/sessions/{session_id}/versions/{version_id}/restore", headers=HEADERS)
    assert response.status_code == 200
    assert len(response.json()["data"]["document"]["slides"]) == 1

    assert client.post(f"/sessions/{session_id}/versions/missing/restore").status_code == 409


def test_version_in_local_mode_conflicts(client):
    session_id = open_session(client)["session_id"]
    response = client.post(f"/sessions/{session_id}/versions", json={}, headers=HEADERS)
    assert response.status_code == 409


def test_comments(client):
    session_id = open_session(client, "deck-1")["session_id"]

    assert client.post(f"/sessions/{session_id}/comments", json={"message": "hi"}).status_code == 401

    response = client.post(f"/sessions/{session_id}/comments", json={"message": "Looks good"}, headers=HEADERS)
    assert response.status_code == 200

    comments = client.get(f"/sessions/{session_id}/comments").json()["data"]["comments"]
    assert comments[0]["message"] == "Looks good"
    assert comments[0]["author"] == "ada@example.com"


def test_status_change(client, remote_store):
    session_id = open_session(client, "deck-1", HEADERS)["session_id"]

    response = client.post(f"/sessions/{session_id}/status", json={"status": "final"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["data"]["document"]["status"] == "final"
    assert remote_store.presentations["deck-1"]["status"] == "final"


def test_assistant_patch_and_view(client):
    session_id = open_session(client)["session_id"]

    response = client.post(
        f"/sessions/{session_id}/assistant/patch", json={"patch": {"content": "Generated", "notes": "Notes"}}
    )
    assert response.status_code == 200

    view = client.get(f"/sessions/{session_id}/assistant").json()["data"]
    assert view["slide"]["content"] == "Generated"
    assert view["slide"]["title"] == ""
    assert len(view["slides"]) == 1


def test_close_session_flushes_remote_writes(client, remote_store):
    session_id = open_session(client, "deck-1", HEADERS)["session_id"]
    client.post(f"/sessions/{session_id}/content", json={"field": "title", "content": "Saved on close"})

    assert client.delete(f"/sessions/{session_id}").status_code == 200

    [(_, record)] = [(slide_id, data) for slide_id, (_, data) in remote_store.slides["deck-1"].items()]
    assert record["title"] == "Saved on close"
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_unified_app_mounts_editor_routes(remote_store):
    with TestClient(unified_app) as unified:
        health = unified.get("/health").json()
        assert health["service"] == "deckstate"

        response = unified.post("/api/v1/editor/sessions", json={})
        assert response.status_code == 200
        session_id = response.json()["data"]["session_id"]
        assert unified.get(f"/api/v1/editor/sessions/{session_id}").status_code == 200
