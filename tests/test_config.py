import json
import logging

import pytest

from echocraft import config
from echocraft.defaults import DEFAULT_SETTINGS
from echocraft.models import ModelConfig, Scene, Settings
from echocraft.storage import Storage, StorageError


GENERAL_ONLY = Settings(
    hotkey="F9",
    selected_model="openai",
    selected_scene="general",
    models=(ModelConfig(id="openai", name="OpenAI GPT"),),
    scenes=(Scene(id="general", name="通用润色", prompt="default prompt"),),
)


def test_load_defaults_when_missing(tmp_path):
    storage = Storage(db_path=tmp_path / "store.db")

    settings = config.load_settings(storage)
    assert settings == DEFAULT_SETTINGS
    assert settings.selected_scene == "general"
    assert len(settings.scenes) == 13


def test_load_defaults_on_corrupt_blob(tmp_path, caplog):
    storage = Storage(db_path=tmp_path / "store.db")
    storage.set(config.SETTINGS_STORAGE_KEY, "{not json")

    with caplog.at_level(logging.WARNING):
        settings = config.load_settings(storage)

    assert settings == DEFAULT_SETTINGS
    assert "Failed to parse stored settings" in caplog.text


def test_load_defaults_on_wrong_shape(tmp_path):
    storage = Storage(db_path=tmp_path / "store.db")
    storage.set(config.SETTINGS_STORAGE_KEY, json.dumps(["a", "list"]))

    assert config.load_settings(storage) == DEFAULT_SETTINGS


def test_save_and_load_round_trip(tmp_path):
    storage = Storage(db_path=tmp_path / "store.db")
    settings = config.set_credential(DEFAULT_SETTINGS, "claude", "sk-ant-123")
    settings = config.select_model(settings, "claude")
    settings, custom = config.add_custom_scene(settings, name="My Scene", prompt="Y")

    config.save_settings(storage, settings)
    loaded = config.load_settings(storage)

    assert loaded == settings
    assert loaded.find_model("claude").api_key == "sk-ant-123"
    assert loaded.scenes[-1] == custom


def test_persisted_blob_uses_original_field_names(tmp_path):
    storage = Storage(db_path=tmp_path / "store.db")
    config.save_settings(storage, config.set_credential(DEFAULT_SETTINGS, "openai", "sk-1"))

    payload = json.loads(storage.get(config.SETTINGS_STORAGE_KEY))
    assert payload["selectedModel"] == "openai"
    assert payload["selectedScene"] == "general"
    assert payload["models"][0] == {"id": "openai", "name": "OpenAI GPT", "apiKey": "sk-1"}
    assert "apiKey" not in payload["models"][1]


def test_save_failure_is_logged_not_raised(caplog):
    class BrokenStorage:
        def set(self, key, value):
            raise StorageError("disk full")

    with caplog.at_level(logging.WARNING):
        config.save_settings(BrokenStorage(), DEFAULT_SETTINGS)

    assert "Failed to save settings" in caplog.text


def test_merge_keeps_user_prompt_and_custom_scene():
    payload = {
        "selectedScene": "general",
        "scenes": [
            {"id": "general", "name": "通用润色", "prompt": "X"},
            {"id": "custom_1", "name": "My Scene", "prompt": "Y"},
        ],
    }

    merged = config.merge_settings(GENERAL_ONLY, payload)

    assert [scene.id for scene in merged.scenes] == ["general", "custom_1"]
    assert merged.scenes[0].prompt == "X"
    assert merged.scenes[1] == Scene(id="custom_1", name="My Scene", prompt="Y")
    assert merged.selected_scene == "general"


def test_merge_against_full_defaults_appends_custom_scenes_last():
    payload = {
        "scenes": [
            {"id": "custom_1", "name": "My Scene", "prompt": "Y"},
            {"id": "general", "name": "通用润色", "prompt": "X"},
        ],
    }

    merged = config.merge_settings(DEFAULT_SETTINGS, payload)

    assert merged.scenes[0].id == "general"
    assert merged.scenes[0].prompt == "X"
    assert merged.scenes[-1].id == "custom_1"
    assert len(merged.scenes) == len(DEFAULT_SETTINGS.scenes) + 1


def test_merge_falls_back_when_selection_is_stale():
    payload = {"selectedScene": "deleted_scene", "selectedModel": "gone"}

    merged = config.merge_settings(DEFAULT_SETTINGS, payload)

    assert merged.selected_scene == DEFAULT_SETTINGS.selected_scene
    assert merged.selected_model == DEFAULT_SETTINGS.selected_model


def test_merge_overlays_credentials_and_drops_unknown_models():
    payload = {
        "hotkey": "F10",
        "selectedModel": "wenxin",
        "models": [
            {"id": "wenxin", "name": "文心一言", "apiKey": "bce-key"},
            {"id": "legacy", "name": "Removed provider", "apiKey": "zzz"},
        ],
    }

    merged = config.merge_settings(DEFAULT_SETTINGS, payload)

    assert merged.hotkey == "F10"
    assert merged.selected_model == "wenxin"
    assert merged.find_model("wenxin").api_key == "bce-key"
    assert merged.find_model("legacy") is None
    assert [m.id for m in merged.models] == [m.id for m in DEFAULT_SETTINGS.models]


def test_merge_ignores_malformed_entries():
    payload = {"models": "nope", "scenes": [None, {"name": "no id"}, {"id": "general", "prompt": 3}]}

    merged = config.merge_settings(DEFAULT_SETTINGS, payload)

    assert merged == DEFAULT_SETTINGS


def test_merge_is_idempotent():
    payload = {
        "hotkey": "F8",
        "selectedScene": "custom_9",
        "models": [{"id": "claude", "name": "Claude", "apiKey": "k"}],
        "scenes": [
            {"id": "email", "name": "邮件", "prompt": "Z"},
            {"id": "custom_9", "name": "Mine", "prompt": "Y"},
        ],
    }

    once = config.merge_settings(DEFAULT_SETTINGS, payload)
    twice = config.merge_settings(DEFAULT_SETTINGS, config.settings_to_dict(once))

    assert twice == once


def test_select_unknown_ids_raise():
    with pytest.raises(config.ConfigError):
        config.select_model(DEFAULT_SETTINGS, "unknown")
    with pytest.raises(config.ConfigError):
        config.select_scene(DEFAULT_SETTINGS, "unknown")


def test_set_credential_blank_clears_key():
    settings = config.set_credential(DEFAULT_SETTINGS, "openai", "  sk-1  ")
    assert settings.find_model("openai").api_key == "sk-1"

    cleared = config.set_credential(settings, "openai", "   ")
    assert cleared.find_model("openai").api_key is None
    assert settings.find_model("openai").api_key == "sk-1"


def test_update_scene_changes_only_given_fields():
    settings = config.update_scene(DEFAULT_SETTINGS, "email", prompt="new prompt")
    scene = settings.find_scene("email")

    assert scene.prompt == "new prompt"
    assert scene.name == DEFAULT_SETTINGS.find_scene("email").name
    assert DEFAULT_SETTINGS.find_scene("email").prompt != "new prompt"


def test_add_custom_scene_generates_unique_ids(monkeypatch):
    monkeypatch.setattr(config.time, "time", lambda: 1700000000.0)

    settings, first = config.add_custom_scene(DEFAULT_SETTINGS)
    settings, second = config.add_custom_scene(settings)

    assert first.id == "custom_1700000000000"
    assert second.id == "custom_1700000000000_1"
    assert first.name == "自定义场景"
    assert first.prompt == "请润色以下文字："
    assert settings.scenes[-2:] == (first, second)


def test_delete_selected_scene_moves_selection_to_first():
    settings = config.select_scene(DEFAULT_SETTINGS, "email")

    settings = config.delete_scene(settings, "email")

    assert settings.find_scene("email") is None
    assert settings.selected_scene == "general"


def test_delete_last_scene_is_rejected():
    settings = GENERAL_ONLY

    try:
        config.delete_scene(settings, "general")
    except config.ConfigError:
        pass
    else:
        raise AssertionError("Expected ConfigError when deleting the last scene")


def test_set_hotkey_rejects_blank():
    assert config.set_hotkey(DEFAULT_SETTINGS, " F10 ").hotkey == "F10"
    with pytest.raises(config.ConfigError):
        config.set_hotkey(DEFAULT_SETTINGS, "  ")


def test_runtime_options_from_environment(monkeypatch):
    monkeypatch.setenv("ECHOCRAFT_PROXY_URL", "http://localhost:5173/")
    monkeypatch.setenv("ECHOCRAFT_HTTP_TIMEOUT", "12.5")

    options = config.runtime_options()

    assert options.proxy_url == "http://localhost:5173"
    assert options.http_timeout == 12.5


def test_runtime_options_invalid_timeout_uses_default(monkeypatch, caplog):
    monkeypatch.setenv("ECHOCRAFT_HTTP_TIMEOUT", "soon")

    with caplog.at_level(logging.WARNING):
        options = config.runtime_options()

    assert options.http_timeout == config.DEFAULT_HTTP_TIMEOUT
    assert options.proxy_url is None
    assert "ECHOCRAFT_HTTP_TIMEOUT" in caplog.text
