"""Tests for the local control API."""
import pytest
from fastapi.testclient import TestClient

from codelink.core.errors import AccessDenied, DeliveryUnconfirmed
from codelink.core.live_context import LiveContextSession, SessionController
from codelink.host.api import create_app, error_response

from fakes import PROJECT_FILES, FakeDirectory


def make_client(document, settings, export_path=None, **directory_options):
    def factory(project_root):
        return LiveContextSession(document, FakeDirectory(PROJECT_FILES, **directory_options), settings)

    controller = SessionController(factory)
    default = (lambda: export_path) if export_path is not None else None
    return TestClient(create_app(controller, default))


@pytest.fixture
def client(document, settings, tmp_path):
    with make_client(document, settings, export_path=tmp_path / "default.json") as client:
        yield client
        client.post("/v1/live-context/stop")


class TestStatus:
    def test_health(self, client):
        assert client.get("/health").json() == {"ok": True}

    def test_status_before_init(self, client):
        body = client.get("/v1/live-context/status").json()
        assert body["is_initialized"] is False
        assert body["state"] == "uninitialized"


class TestInit:
    def test_init_starts_session(self, client):
        body = client.post("/v1/live-context/init", json={"project_root": "/projects/demo"}).json()
        assert body["success"] is True
        assert body["message"] == "Live context started for demo"

        status = client.get("/v1/live-context/status").json()
        assert status["is_initialized"] is True
        assert status["total_files"] == 5

    def test_init_twice(self, client):
        client.post("/v1/live-context/init")
        body = client.post("/v1/live-context/init").json()
        assert body["success"] is False
        assert body["error"] == "Live context already initialized"

    def test_init_failure_reports_kind(self, document, settings):
        with make_client(document, settings, open_error=AccessDenied("Permission denied")) as client:
            body = client.post("/v1/live-context/init").json()
        assert body["success"] is False
        assert body["kind"] == "access_denied"
        assert body["error"] == "Permission denied"


class TestOperations:
    def test_structure_requires_session(self, client):
        body = client.post("/v1/live-context/structure").json()
        assert body["success"] is False

    def test_structure(self, client, document):
        client.post("/v1/live-context/init")
        document.surface.value = ""
        body = client.post("/v1/live-context/structure").json()
        assert body["success"] is True
        assert "CodeLinkGPT" in document.surface.value

    def test_stop(self, client):
        client.post("/v1/live-context/init")
        body = client.post("/v1/live-context/stop").json()
        assert body == {"success": True, "message": "Live context stopped", "error": None, "kind": None}
        assert client.get("/v1/live-context/status").json()["is_initialized"] is False

    def test_export_to_destination(self, client, tmp_path):
        client.post("/v1/live-context/init")
        destination = tmp_path / "context.json"
        body = client.post("/v1/live-context/export", json={"destination": str(destination)}).json()
        assert body["success"] is True
        assert body["message"] == str(destination)
        assert destination.exists()

    def test_export_default_destination(self, client, tmp_path):
        client.post("/v1/live-context/init")
        body = client.post("/v1/live-context/export").json()
        assert body["success"] is True
        assert (tmp_path / "default.json").exists()

    def test_export_without_session(self, client):
        body = client.post("/v1/live-context/export", json={"destination": "out.json"}).json()
        assert body["success"] is False
        assert body["kind"] == "error"


def test_error_response_maps_unknown_kinds():
    response = error_response(DeliveryUnconfirmed("late"))
    assert response.kind == "error"
    assert response.error == "late"
