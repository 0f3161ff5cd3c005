import httpx
import pytest
from fastapi.testclient import TestClient

from echocraft import api, config
from echocraft.config import RuntimeOptions
from echocraft.defaults import DEFAULT_SETTINGS
from echocraft.polisher import FAILURE_MESSAGE, MISSING_CREDENTIAL_MESSAGE, PolishSession
from echocraft.storage import Storage


@pytest.fixture
def session(tmp_path):
    def handler(request):
        if request.url.host == "qianfan.baidubce.com":
            return httpx.Response(200, json={"result": "已完成"})
        return httpx.Response(503, json={"error": "unavailable"})

    storage = Storage(db_path=tmp_path / "api.db")
    return PolishSession(
        DEFAULT_SETTINGS,
        storage=storage,
        client_factory=lambda: httpx.Client(transport=httpx.MockTransport(handler)),
        options=RuntimeOptions(),
    )


@pytest.fixture
def client(session):
    api.app.dependency_overrides[api.get_session] = lambda: session
    with TestClient(api.app) as test_client:
        yield test_client
    api.app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_polish_without_credential(client):
    response = client.post("/polish", json={"text": "你好"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["original"] == "你好"
    assert payload["polished"] == MISSING_CREDENTIAL_MESSAGE
    assert payload["model_id"] == "openai"
    assert payload["scene_id"] == "general"


def test_polish_with_configured_provider(client):
    client.put("/models/wenxin/credential", json={"api_key": "bce"})
    client.put("/settings/selection", json={"model_id": "wenxin", "scene_id": "meeting"})

    payload = client.post("/polish", json={"text": "开会"}).json()

    assert payload["polished"] == "已完成"
    assert payload["model_id"] == "wenxin"
    assert payload["scene_id"] == "meeting"


def test_polish_failure_is_reported_as_text(client):
    client.put("/models/openai/credential", json={"api_key": "sk"})

    payload = client.post("/polish", json={"text": "开会"}).json()

    assert payload["polished"] == FAILURE_MESSAGE


def test_polish_unknown_override_is_404(client):
    assert client.post("/polish", json={"text": "x", "scene_id": "nope"}).status_code == 404
    assert client.post("/polish", json={"text": "x", "model_id": "nope"}).status_code == 404


def test_polish_while_busy_is_409(client, session):
    session._busy = True
    try:
        response = client.post("/polish", json={"text": "x"})
    finally:
        session._busy = False
    assert response.status_code == 409


def test_cancel_without_request_is_404(client):
    assert client.post("/polish/cancel").status_code == 404


def test_settings_masks_credentials(client):
    client.put("/models/claude/credential", json={"api_key": "very-secret"})

    response = client.get("/settings")

    assert "very-secret" not in response.text
    models = {model["id"]: model for model in response.json()["models"]}
    assert models["claude"]["configured"] is True
    assert models["openai"]["configured"] is False


def test_selection_rejects_unknown_ids(client):
    response = client.put("/settings/selection", json={"scene_id": "missing"})
    assert response.status_code == 400


def test_scene_crud_persists(client, session):
    created = client.post("/scenes", json={"name": "My Scene", "prompt": "Y"})
    assert created.status_code == 201
    scene_id = created.json()["id"]
    assert scene_id.startswith("custom_")

    edited = client.patch(f"/scenes/{scene_id}", json={"prompt": "Z"})
    assert edited.json() == {"id": scene_id, "name": "My Scene", "prompt": "Z"}

    stored = config.load_settings(session._storage)
    assert stored.find_scene(scene_id).prompt == "Z"

    assert client.delete(f"/scenes/{scene_id}").status_code == 204
    assert all(scene["id"] != scene_id for scene in client.get("/scenes").json())
    assert client.delete(f"/scenes/{scene_id}").status_code == 404


def test_deleting_last_scene_is_rejected(client, session):
    for scene in session.settings.scenes[1:]:
        assert client.delete(f"/scenes/{scene.id}").status_code == 204

    response = client.delete("/scenes/general")

    assert response.status_code == 400
    assert [scene["id"] for scene in client.get("/scenes").json()] == ["general"]


def test_edit_unknown_scene_is_404(client):
    response = client.patch("/scenes/missing", json={"prompt": "Z"})
    assert response.status_code == 404


def test_edit_scene_removed_while_updating_is_404(client, monkeypatch):
    monkeypatch.setattr(
        api.config_mod,
        "update_scene",
        lambda current, scene_id, name=None, prompt=None: config.delete_scene(current, scene_id),
    )

    response = client.patch("/scenes/email", json={"prompt": "Z"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Unknown scene: email"
