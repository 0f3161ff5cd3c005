"""Dataclasses describing the settings aggregate and session objects for echocraft."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class Scene:
    """A named prompt template placed in front of the dictated text."""

    id: str
    name: str
    prompt: str


@dataclass(frozen=True, slots=True)
class ModelConfig:
    """A remote LLM provider entry and its optional credential."""

    id: str
    name: str
    api_key: Optional[str] = None

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True, slots=True)
class Settings:
    """User settings persisted as a single blob.

    Instances are values: edits produce a new instance via ``dataclasses.replace``.
    """

    hotkey: str
    selected_model: str
    selected_scene: str
    models: Tuple[ModelConfig, ...] = field(default_factory=tuple)
    scenes: Tuple[Scene, ...] = field(default_factory=tuple)

    def find_model(self, model_id: str) -> Optional[ModelConfig]:
        return next((model for model in self.models if model.id == model_id), None)

    def find_scene(self, scene_id: str) -> Optional[Scene]:
        return next((scene for scene in self.scenes if scene.id == scene_id), None)

    @property
    def active_scene(self) -> Scene:
        """Selected scene, or the first registered one when the id is stale."""
        return self.find_scene(self.selected_scene) or self.scenes[0]

    @property
    def active_model(self) -> Optional[ModelConfig]:
        return self.find_model(self.selected_model)


@dataclass(frozen=True, slots=True)
class TranscriptPair:
    """Dictated text and its polished counterpart for the current session."""

    original: str = ""
    polished: str = ""
