"""FastAPI application for the echocraft polishing service."""

from __future__ import annotations

import threading
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from .. import __version__
from .. import config as config_mod
from ..config import ConfigError
from ..models import Scene, Settings
from ..polisher import PolishSession, SessionBusyError
from ..providers import PolishCancelled
from ..storage import Storage

app = FastAPI(
    title="echocraft API",
    description="Polish dictated text with a selectable scene and LLM provider.",
    version=__version__,
)

_session_lock = threading.Lock()
_session: Optional[PolishSession] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = __version__


class PolishRequest(BaseModel):
    text: str
    scene_id: Optional[str] = None
    model_id: Optional[str] = None


class PolishResponse(BaseModel):
    original: str
    polished: str
    scene_id: str
    model_id: str


class ScenePayload(BaseModel):
    id: str
    name: str
    prompt: str


class SceneCreate(BaseModel):
    name: str = config_mod.CUSTOM_SCENE_NAME
    prompt: str = config_mod.CUSTOM_SCENE_PROMPT


class SceneUpdate(BaseModel):
    name: Optional[str] = None
    prompt: Optional[str] = None


class ModelPayload(BaseModel):
    id: str
    name: str
    configured: bool


class SettingsPayload(BaseModel):
    hotkey: str
    selected_model: str
    selected_scene: str
    models: List[ModelPayload] = Field(default_factory=list)
    scenes: List[ScenePayload] = Field(default_factory=list)


class SelectionUpdate(BaseModel):
    model_id: Optional[str] = None
    scene_id: Optional[str] = None
    hotkey: Optional[str] = None


class CredentialUpdate(BaseModel):
    api_key: Optional[str] = None


def get_session() -> PolishSession:
    global _session
    if _session is not None:
        return _session
    with _session_lock:
        if _session is None:
            storage = Storage()
            _session = PolishSession(config_mod.load_settings(storage), storage=storage)
    return _session


def _scene_to_payload(scene: Scene) -> ScenePayload:
    return ScenePayload(id=scene.id, name=scene.name, prompt=scene.prompt)


def _settings_to_payload(settings: Settings) -> SettingsPayload:
    return SettingsPayload(
        hotkey=settings.hotkey,
        selected_model=settings.selected_model,
        selected_scene=settings.selected_scene,
        models=[ModelPayload(id=m.id, name=m.name, configured=m.has_credential) for m in settings.models],
        scenes=[_scene_to_payload(scene) for scene in settings.scenes],
    )


def _apply(session: PolishSession, update: Callable[[Settings], Settings]) -> Settings:
    try:
        return session.apply(update)
    except ConfigError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _require_scene(session: PolishSession, scene_id: str) -> None:
    if session.settings.find_scene(scene_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown scene: {scene_id}")


@app.get("/health", response_model=HealthResponse)
async def healthcheck() -> HealthResponse:
    return HealthResponse()


@app.post("/polish", response_model=PolishResponse)
async def polish_text(request: PolishRequest, session: PolishSession = Depends(get_session)) -> PolishResponse:
    settings = session.settings
    if request.scene_id is not None and settings.find_scene(request.scene_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown scene: {request.scene_id}")
    if request.model_id is not None and settings.find_model(request.model_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown model: {request.model_id}")

    try:
        pair = await run_in_threadpool(session.submit, request.text, request.scene_id, request.model_id)
    except SessionBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PolishCancelled as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return PolishResponse(
        original=pair.original,
        polished=pair.polished,
        scene_id=request.scene_id or settings.active_scene.id,
        model_id=request.model_id or settings.selected_model,
    )


@app.post("/polish/cancel", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_polish(session: PolishSession = Depends(get_session)) -> None:
    if not session.cancel():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No polish request in progress.")


@app.get("/settings", response_model=SettingsPayload)
async def read_settings(session: PolishSession = Depends(get_session)) -> SettingsPayload:
    return _settings_to_payload(session.settings)


@app.put("/settings/selection", response_model=SettingsPayload)
async def update_selection(update: SelectionUpdate, session: PolishSession = Depends(get_session)) -> SettingsPayload:
    def change(settings: Settings) -> Settings:
        if update.model_id is not None:
            settings = config_mod.select_model(settings, update.model_id)
        if update.scene_id is not None:
            settings = config_mod.select_scene(settings, update.scene_id)
        if update.hotkey is not None:
            settings = config_mod.set_hotkey(settings, update.hotkey)
        return settings

    return _settings_to_payload(_apply(session, change))


@app.put("/models/{model_id}/credential", response_model=SettingsPayload)
async def update_credential(
    model_id: str,
    update: CredentialUpdate,
    session: PolishSession = Depends(get_session),
) -> SettingsPayload:
    if session.settings.find_model(model_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown model: {model_id}")
    settings = _apply(session, lambda current: config_mod.set_credential(current, model_id, update.api_key))
    return _settings_to_payload(settings)


@app.get("/scenes", response_model=list[ScenePayload])
async def list_scenes(session: PolishSession = Depends(get_session)) -> list[ScenePayload]:
    return [_scene_to_payload(scene) for scene in session.settings.scenes]


@app.post("/scenes", response_model=ScenePayload, status_code=status.HTTP_201_CREATED)
async def create_scene(payload: SceneCreate, session: PolishSession = Depends(get_session)) -> ScenePayload:
    created: List[Scene] = []

    def change(settings: Settings) -> Settings:
        settings, scene = config_mod.add_custom_scene(settings, name=payload.name, prompt=payload.prompt)
        created.append(scene)
        return settings

    _apply(session, change)
    return _scene_to_payload(created[0])


@app.patch("/scenes/{scene_id}", response_model=ScenePayload)
async def edit_scene(
    scene_id: str,
    payload: SceneUpdate,
    session: PolishSession = Depends(get_session),
) -> ScenePayload:
    _require_scene(session, scene_id)
    settings = _apply(
        session,
        lambda current: config_mod.update_scene(current, scene_id, name=payload.name, prompt=payload.prompt),
    )
    scene = settings.find_scene(scene_id)
    if scene is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown scene: {scene_id}")
    return _scene_to_payload(scene)


@app.delete("/scenes/{scene_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_scene(scene_id: str, session: PolishSession = Depends(get_session)) -> None:
    _require_scene(session, scene_id)
    _apply(session, lambda current: config_mod.delete_scene(current, scene_id))
