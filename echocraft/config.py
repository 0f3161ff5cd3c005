"""Persisted settings management.

The settings aggregate is stored as one JSON blob under ``SETTINGS_STORAGE_KEY``.
On startup the stored blob is merged over the built-in defaults so that new
scenes shipped with an update appear while user edits (credentials, prompt
text, custom scenes) survive.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .defaults import CUSTOM_SCENE_NAME, CUSTOM_SCENE_PROMPT, DEFAULT_SETTINGS
from .models import ModelConfig, Scene, Settings
from .storage import Storage, StorageError

logger = logging.getLogger(__name__)

SETTINGS_STORAGE_KEY = "echocraft_app_settings_v1"
DEFAULT_HTTP_TIMEOUT = 60.0


class ConfigError(RuntimeError):
    """Raised when a settings change cannot be applied."""


@dataclass(frozen=True, slots=True)
class RuntimeOptions:
    """Process level options read from the environment."""

    proxy_url: Optional[str] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT


def runtime_options() -> RuntimeOptions:
    proxy_url = os.getenv("ECHOCRAFT_PROXY_URL") or None
    raw_timeout = os.getenv("ECHOCRAFT_HTTP_TIMEOUT")
    timeout = DEFAULT_HTTP_TIMEOUT
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            logger.warning("Invalid ECHOCRAFT_HTTP_TIMEOUT=%r, using %s", raw_timeout, DEFAULT_HTTP_TIMEOUT)
        else:
            if timeout <= 0:
                logger.warning("ECHOCRAFT_HTTP_TIMEOUT must be positive, using %s", DEFAULT_HTTP_TIMEOUT)
                timeout = DEFAULT_HTTP_TIMEOUT
    return RuntimeOptions(proxy_url=proxy_url.rstrip("/") if proxy_url else None, http_timeout=timeout)


# Serialisation ---------------------------------------------------------------


def settings_to_dict(settings: Settings) -> Dict[str, Any]:
    """Return the persisted shape of ``settings`` (camelCase keys, no empty credentials)."""

    models: List[Dict[str, Any]] = []
    for model in settings.models:
        entry: Dict[str, Any] = {"id": model.id, "name": model.name}
        if model.api_key:
            entry["apiKey"] = model.api_key
        models.append(entry)
    return {
        "hotkey": settings.hotkey,
        "selectedModel": settings.selected_model,
        "selectedScene": settings.selected_scene,
        "models": models,
        "scenes": [{"id": s.id, "name": s.name, "prompt": s.prompt} for s in settings.scenes],
    }


def _entries(payload: Mapping[str, Any], key: str) -> List[Mapping[str, Any]]:
    value = payload.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping) and isinstance(item.get("id"), str)]


def _text(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _merge_model(default: ModelConfig, stored: Optional[Mapping[str, Any]]) -> ModelConfig:
    if stored is None:
        return default
    api_key = stored.get("apiKey", default.api_key)
    return ModelConfig(
        id=default.id,
        name=_text(stored.get("name"), default.name),
        api_key=api_key if isinstance(api_key, str) and api_key else None,
    )


def _merge_scene(default: Scene, stored: Optional[Mapping[str, Any]]) -> Scene:
    if stored is None:
        return default
    return Scene(
        id=default.id,
        name=_text(stored.get("name"), default.name),
        prompt=_text(stored.get("prompt"), default.prompt),
    )


def merge_settings(default: Settings, payload: Mapping[str, Any]) -> Settings:
    """Overlay a persisted blob on ``default``.

    Defaults keep their order and are overridden field by field by stored entries
    with the same id; stored scenes unknown to the defaults are appended after
    them. Stored models without a default counterpart are dropped. Selections
    that no longer resolve fall back to the default selection.
    """

    stored_models = {entry["id"]: entry for entry in _entries(payload, "models")}
    stored_scenes = _entries(payload, "scenes")
    stored_scene_map = {}
    for entry in stored_scenes:
        stored_scene_map.setdefault(entry["id"], entry)

    models = tuple(_merge_model(model, stored_models.get(model.id)) for model in default.models)

    default_scene_ids = {scene.id for scene in default.scenes}
    scenes = [_merge_scene(scene, stored_scene_map.get(scene.id)) for scene in default.scenes]
    seen = set(default_scene_ids)
    for entry in stored_scenes:
        if entry["id"] in seen:
            continue
        seen.add(entry["id"])
        scenes.append(
            Scene(
                id=entry["id"],
                name=_text(entry.get("name"), CUSTOM_SCENE_NAME),
                prompt=_text(entry.get("prompt"), CUSTOM_SCENE_PROMPT),
            )
        )

    hotkey = payload.get("hotkey")
    selected_model = payload.get("selectedModel")
    selected_scene = payload.get("selectedScene")
    return Settings(
        hotkey=hotkey if isinstance(hotkey, str) and hotkey.strip() else default.hotkey,
        selected_model=(
            selected_model
            if isinstance(selected_model, str) and any(m.id == selected_model for m in models)
            else default.selected_model
        ),
        selected_scene=(
            selected_scene
            if isinstance(selected_scene, str) and any(s.id == selected_scene for s in scenes)
            else default.selected_scene
        ),
        models=models,
        scenes=tuple(scenes),
    )


# Persistence -----------------------------------------------------------------


def load_settings(storage: Storage, default: Settings = DEFAULT_SETTINGS) -> Settings:
    """Return the merged settings; unreadable content falls back to ``default``."""

    try:
        raw = storage.get(SETTINGS_STORAGE_KEY)
    except StorageError as exc:
        logger.warning("Failed to load stored settings, using defaults: %s", exc)
        return default
    if raw is None:
        logger.info("No stored settings found, using defaults.")
        return default
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse stored settings, using defaults: %s", exc)
        return default
    if not isinstance(payload, dict):
        logger.warning("Stored settings have an unexpected shape, using defaults.")
        return default
    return merge_settings(default, payload)


def save_settings(storage: Storage, settings: Settings) -> None:
    try:
        storage.set(SETTINGS_STORAGE_KEY, json.dumps(settings_to_dict(settings), ensure_ascii=False))
    except StorageError as exc:
        logger.warning("Failed to save settings: %s", exc)


# Edits -----------------------------------------------------------------------


def _require_model(settings: Settings, model_id: str) -> ModelConfig:
    model = settings.find_model(model_id)
    if model is None:
        raise ConfigError(f"Unknown model: {model_id}")
    return model


def _require_scene(settings: Settings, scene_id: str) -> Scene:
    scene = settings.find_scene(scene_id)
    if scene is None:
        raise ConfigError(f"Unknown scene: {scene_id}")
    return scene


def set_hotkey(settings: Settings, hotkey: str) -> Settings:
    hotkey = hotkey.strip()
    if not hotkey:
        raise ConfigError("Hotkey cannot be empty.")
    return replace(settings, hotkey=hotkey)


def select_model(settings: Settings, model_id: str) -> Settings:
    _require_model(settings, model_id)
    return replace(settings, selected_model=model_id)


def select_scene(settings: Settings, scene_id: str) -> Settings:
    _require_scene(settings, scene_id)
    return replace(settings, selected_scene=scene_id)


def set_credential(settings: Settings, model_id: str, credential: Optional[str]) -> Settings:
    """Store ``credential`` for ``model_id``; a blank value clears it."""

    _require_model(settings, model_id)
    value = credential.strip() if credential else ""
    models = tuple(
        replace(model, api_key=value or None) if model.id == model_id else model
        for model in settings.models
    )
    return replace(settings, models=models)


def update_scene(
    settings: Settings,
    scene_id: str,
    name: Optional[str] = None,
    prompt: Optional[str] = None,
) -> Settings:
    scene = _require_scene(settings, scene_id)
    updated = replace(
        scene,
        name=name if name is not None else scene.name,
        prompt=prompt if prompt is not None else scene.prompt,
    )
    return replace(settings, scenes=tuple(updated if s.id == scene_id else s for s in settings.scenes))


def add_custom_scene(
    settings: Settings,
    name: str = CUSTOM_SCENE_NAME,
    prompt: str = CUSTOM_SCENE_PROMPT,
) -> Tuple[Settings, Scene]:
    """Append a user scene with a timestamp based id."""

    base_id = f"custom_{int(time.time() * 1000)}"
    scene_id = base_id
    suffix = 1
    while settings.find_scene(scene_id) is not None:
        scene_id = f"{base_id}_{suffix}"
        suffix += 1
    scene = Scene(id=scene_id, name=name, prompt=prompt)
    return replace(settings, scenes=settings.scenes + (scene,)), scene


def delete_scene(settings: Settings, scene_id: str) -> Settings:
    _require_scene(settings, scene_id)
    if len(settings.scenes) <= 1:
        raise ConfigError("At least one scene must remain.")
    scenes = tuple(scene for scene in settings.scenes if scene.id != scene_id)
    selected = scenes[0].id if settings.selected_scene == scene_id else settings.selected_scene
    return replace(settings, scenes=scenes, selected_scene=selected)
