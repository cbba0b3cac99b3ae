"""
Tests for the API layer.

Tests:
- API service methods
- HTTP routes and status codes
- Error code mapping
- Save / restore over HTTP
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from ..api import APIService, ChoiceRequest, CreateSessionRequest, ErrorCode, ErrorResponse, create_app
from ..api.app import ERROR_STATUS
from ..config import HollowConfig
from ..persistence import InMemoryPersistence


@pytest.fixture
def service(repository):
    return APIService(repository=repository, persistence=InMemoryPersistence())


@pytest.fixture
def client(service):
    app = create_app(service=service, config=HollowConfig())
    with TestClient(app) as client:
        yield client


def _start(client, story_id="crypt"):
    response = client.post("/api/v1/sessions", json={"story_id": story_id})
    assert response.status_code == 201
    return response.json()["session_id"]


class TestAPIService:
    """Tests for APIService."""

    def test_create_session(self, service):
        response = service.create_session(CreateSessionRequest(story_id="crypt"))

        assert response.status == "active"
        assert response.passage.passage_id == "start"
        assert response.player.sanity == 100
        assert response.events == ["StateChanged"]

    def test_unknown_session(self, service):
        response = service.get_session("nonexistent-id")

        assert isinstance(response, ErrorResponse)
        assert response.error_code == ErrorCode.SESSION_NOT_FOUND

    def test_locked_choice_details(self, service):
        session_id = service.create_session(CreateSessionRequest()).session_id
        response = service.make_choice(session_id, ChoiceRequest(choice_id="vault"))

        assert response.error_code == ErrorCode.CHOICE_LOCKED
        assert response.details == {"block_reason": "MISSING_ITEMS", "missing_items": ["key", "lamp"]}

    def test_restore_untracked_session(self, repository):
        """A session saved by one service can be resumed by another."""
        store = InMemoryPersistence()
        first = APIService(repository=repository, persistence=store)
        session_id = first.create_session(CreateSessionRequest()).session_id
        first.make_choice(session_id, ChoiceRequest(choice_id="enter"))
        assert asyncio.run(first.save_game(session_id)).success

        second = APIService(repository=repository, persistence=store)
        response = asyncio.run(second.restore_game(session_id))

        assert response.passage.passage_id == "hall"
        assert second.list_sessions() == [session_id]

    def test_every_failure_code_has_an_error_code(self):
        from ..engine_core import FailureCode

        for code in FailureCode:
            assert ErrorCode(code.value) in ERROR_STATUS


class TestStoryRoutes:
    """Tests for story listing and health."""

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["stories"] == 1

    def test_list_stories(self, client):
        body = client.get("/api/v1/stories").json()

        assert body["count"] == 1
        assert body["stories"][0] == {
            "story_id": "crypt",
            "title": "The Crypt",
            "author": "",
            "description": "",
            "passage_count": 6,
        }


class TestSessionRoutes:
    """Tests for session lifecycle routes."""

    def test_create_default_story(self, client):
        response = client.post("/api/v1/sessions", json={})

        assert response.status_code == 201
        body = response.json()
        assert body["story_id"] == "crypt"
        assert body["passage"]["paragraphs"] == ["A gate of black iron.", "Beyond it, stairs going down."]

    def test_create_unknown_story(self, client):
        response = client.post("/api/v1/sessions", json={"story_id": "missing"})

        assert response.status_code == 404
        assert response.json()["error_code"] == "STORY_NOT_FOUND"

    def test_get_session(self, client):
        session_id = _start(client)
        body = client.get(f"/api/v1/sessions/{session_id}").json()

        vault = next(c for c in body["passage"]["choices"] if c["choice_id"] == "vault")
        assert not vault["selectable"]
        assert vault["lock_label"] == "Requires key, lamp"

    def test_get_missing_session(self, client):
        response = client.get("/api/v1/sessions/nope")
        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"

    def test_delete_session(self, client):
        session_id = _start(client)

        assert client.delete(f"/api/v1/sessions/{session_id}").json()["success"]
        assert client.get(f"/api/v1/sessions/{session_id}").status_code == 404


class TestNarrativeRoutes:
    """Tests for choices, back, reset and settings."""

    def test_make_choice(self, client):
        session_id = _start(client)
        response = client.post(f"/api/v1/sessions/{session_id}/choices", json={"choice_id": "plunge"})

        assert response.status_code == 200
        body = response.json()
        assert body["player"]["sanity"] == 40
        assert body["player"]["sanity_status"] == "Disturbed"
        assert body["events"] == ["StateChanged", "SanityThresholdCrossed"]
        assert body["sound_cues"] == ["choice"]

    @pytest.mark.parametrize("choice_id,status,code", [
        ("vault", 409, "CHOICE_LOCKED"),
        ("missing", 422, "CHOICE_NOT_FOUND"),
    ])
    def test_choice_errors(self, client, choice_id, status, code):
        session_id = _start(client)
        response = client.post(f"/api/v1/sessions/{session_id}/choices", json={"choice_id": choice_id})

        assert response.status_code == status
        assert response.json()["error_code"] == code

    def test_critical_choice_flow(self, client):
        session_id = _start(client)
        url = f"/api/v1/sessions/{session_id}/choices"
        client.post(url, json={"choice_id": "enter"})

        response = client.post(url, json={"choice_id": "stare"})
        assert response.status_code == 409
        assert response.json()["error_code"] == "CONFIRMATION_REQUIRED"

        response = client.post(url, json={"choice_id": "stare", "confirmed": True})
        assert response.status_code == 200
        assert response.json()["passage"]["passage_id"] == "abyss"

    def test_back(self, client):
        session_id = _start(client)
        client.post(f"/api/v1/sessions/{session_id}/choices", json={"choice_id": "enter"})

        body = client.post(f"/api/v1/sessions/{session_id}/back").json()

        assert body["passage"]["passage_id"] == "start"
        assert body["player"]["sanity"] == 90

    def test_reset_then_choice(self, client):
        session_id = _start(client)

        body = client.post(f"/api/v1/sessions/{session_id}/reset").json()
        assert body["status"] == "uninitialized"
        assert body["passage"] is None

        response = client.post(f"/api/v1/sessions/{session_id}/choices", json={"choice_id": "enter"})
        assert response.status_code == 409
        assert response.json()["error_code"] == "SESSION_NOT_ACTIVE"

    def test_update_setting(self, client):
        session_id = _start(client)
        response = client.patch(
            f"/api/v1/sessions/{session_id}/settings",
            json={"key": "sound_enabled", "value": False},
        )

        assert response.status_code == 200
        assert response.json()["settings"]["sound_enabled"] is False

        body = client.post(f"/api/v1/sessions/{session_id}/choices", json={"choice_id": "enter"}).json()
        assert body["sound_cues"] == []


class TestPersistenceRoutes:
    """Tests for save and restore."""

    def test_save_and_restore(self, client):
        session_id = _start(client)
        client.post(f"/api/v1/sessions/{session_id}/choices", json={"choice_id": "enter"})

        saved = client.post(f"/api/v1/sessions/{session_id}/save")
        assert saved.status_code == 200
        assert saved.json()["success"]

        restored = client.post(f"/api/v1/sessions/{session_id}/restore")
        assert restored.status_code == 200
        assert restored.json()["passage"]["passage_id"] == "hall"

    def test_restore_nothing_saved(self, client):
        response = client.post("/api/v1/sessions/never-saved/restore")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NO_SAVED_GAME"

    def test_save_missing_session(self, client):
        assert client.post("/api/v1/sessions/nope/save").status_code == 404
