"""Route dictated text to the selected provider and scene."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

import httpx

from .config import RuntimeOptions, save_settings
from .fallback import fallback_polish
from .models import Settings, TranscriptPair
from .providers import CancelToken, ProviderError, get_adapter
from .storage import Storage

logger = logging.getLogger(__name__)

MISSING_CREDENTIAL_MESSAGE = "未配置所选模型的 API 密钥，请在设置中填写。"
FAILURE_MESSAGE = "润色失败，请重试"


class SessionBusyError(RuntimeError):
    """Raised when a polish is requested while another one is still running."""


def polish(
    text: str,
    settings: Settings,
    client: Optional[httpx.Client] = None,
    options: Optional[RuntimeOptions] = None,
    cancel: Optional[CancelToken] = None,
) -> str:
    """Return the polished form of ``text``.

    Configuration and provider failures are reported as fixed messages in place
    of the result; only cancellation is raised to the caller.
    """

    scene = settings.active_scene
    model = settings.active_model

    if model is None or not model.api_key:
        return MISSING_CREDENTIAL_MESSAGE

    adapter = get_adapter(model.id)
    if adapter is None:
        logger.warning("Model %s has no provider adapter; using local fallback.", model.id)
        return fallback_polish(text)

    try:
        result = adapter.call(
            model.api_key,
            scene.prompt,
            text,
            client=client,
            options=options,
            cancel=cancel,
        )
    except ProviderError as exc:
        logger.error("Polish failed (%s): %s", exc.provider, exc)
        return FAILURE_MESSAGE
    return result.strip()


class PolishSession:
    """Single owner of the settings value and the current transcript pair.

    Only one polish runs at a time; a second request while busy raises
    :class:`SessionBusyError`.
    """

    def __init__(
        self,
        settings: Settings,
        storage: Optional[Storage] = None,
        client_factory: Optional[Callable[[], httpx.Client]] = None,
        options: Optional[RuntimeOptions] = None,
    ) -> None:
        self._settings = settings
        self._storage = storage
        self._client_factory = client_factory
        self._options = options
        self._lock = threading.Lock()
        self._busy = False
        self._cancel: Optional[CancelToken] = None
        self.transcript = TranscriptPair()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def busy(self) -> bool:
        return self._busy

    def apply(self, update: Callable[[Settings], Settings]) -> Settings:
        """Replace the settings with ``update(settings)`` and persist the result."""

        self._settings = update(self._settings)
        if self._storage is not None:
            save_settings(self._storage, self._settings)
        return self._settings

    def submit(
        self,
        text: str,
        scene_id: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> TranscriptPair:
        """Polish ``text`` and record the pair; overrides apply to this call only."""

        with self._lock:
            if self._busy:
                raise SessionBusyError("A polish request is already in progress.")
            self._busy = True
            token = self._cancel = CancelToken()

        settings = self._settings
        if scene_id is not None:
            settings = replace(settings, selected_scene=scene_id)
        if model_id is not None:
            settings = replace(settings, selected_model=model_id)

        try:
            if self._client_factory is not None:
                with self._client_factory() as client:
                    polished = polish(text, settings, client=client, options=self._options, cancel=token)
            else:
                polished = polish(text, settings, options=self._options, cancel=token)
        finally:
            with self._lock:
                self._busy = False
                self._cancel = None

        self.transcript = TranscriptPair(original=text, polished=polished)
        return self.transcript

    def cancel(self) -> bool:
        """Cancel the running request, if any. Returns True when one was cancelled."""

        with self._lock:
            token = self._cancel
        if token is None:
            return False
        token.cancel()
        return True
