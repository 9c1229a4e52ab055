import pytest
from fastapi.testclient import TestClient

from api.main import app, get_bridge, get_settings_store
from src.words_bridge.bridge import CommandBridge
from src.words_bridge.config import BridgeConfig
from src.words_bridge.executor import CommandExecutor, CommandOutcome
from src.words_bridge.settings_store import ConnectionSettings, SettingsStore


class RecordingExecutor(CommandExecutor):
    def __init__(self, exit_code=0, stdout="OK\n", stderr=""):
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.specs = []

    def execute(self, spec, cancel_token=None):
        self.specs.append(spec)
        return CommandOutcome.finished(spec.argv, self.exit_code, self.stdout, self.stderr)


@pytest.fixture()
def executor():
    return RecordingExecutor()


@pytest.fixture()
def store(tmp_path):
    return SettingsStore(ConnectionSettings(host="127.0.0.1", port=1025), path=tmp_path / "settings.json")


@pytest.fixture()
def client(executor, store):
    bridge = CommandBridge(BridgeConfig(data={"tool": {"command": ["words"]}}), executor)
    app.dependency_overrides[get_bridge] = lambda: bridge
    app.dependency_overrides[get_settings_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_status_uses_saved_connection(client, executor):
    resp = client.get("/api/status")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "OK\n", "file_path": None}
    assert executor.specs[-1].args == ["status", "--host", "127.0.0.1", "--port", "1025"]


def test_playlists_with_query_connection(client, executor):
    resp = client.get("/api/playlists", params={"host": "pp.local", "port": 50001})
    assert resp.status_code == 200
    assert executor.specs[-1].args == ["playlists", "--json", "--host", "pp.local", "--port", "50001"]


def test_libraries(client, executor):
    client.get("/api/libraries")
    assert executor.specs[-1].args[:2] == ["libraries", "--json"]


def test_export_pptx_and_remembers_playlist(client, executor, store):
    resp = client.post("/api/export", json={"playlist_id": "abc", "export_format": "pptx"})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert executor.specs[-1].args == ["pptx", "abc", "--host", "127.0.0.1", "--port", "1025"]
    assert store.load().last_playlist_id == "abc"


def test_tool_failure_is_data_not_http_error(client, executor, store):
    executor.exit_code = 1
    executor.stderr = "not found\n"
    resp = client.post("/api/export", json={"playlist_id": "zzz", "export_format": "json"})
    assert resp.status_code == 200
    assert resp.json() == {"success": False, "message": "not found\n", "file_path": None}
    assert store.load().last_playlist_id is None


def test_invalid_port_rejected(client, executor):
    assert client.get("/api/status", params={"port": 70000}).status_code == 422
    assert client.post("/api/export", json={"playlist_id": "a", "port": -1}).status_code == 422
    assert executor.specs == []


def test_settings_round_trip(client):
    resp = client.put("/api/settings", json={"host": "10.0.0.8", "port": 2000, "export_format": "json"})
    assert resp.status_code == 200
    assert resp.json()["host"] == "10.0.0.8"

    data = client.get("/api/settings").json()
    assert data == {"host": "10.0.0.8", "port": 2000, "export_format": "json", "last_playlist_id": None}


def test_settings_reject_blank_host(client):
    assert client.put("/api/settings", json={"host": "  "}).status_code == 400


def test_saved_settings_feed_default_connection(client, executor):
    client.put("/api/settings", json={"host": "10.0.0.8", "port": 2000})
    client.get("/api/status")
    assert executor.specs[-1].args == ["status", "--host", "10.0.0.8", "--port", "2000"]
