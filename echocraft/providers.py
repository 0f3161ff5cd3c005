"""Transport adapters for the remote LLM providers.

Every adapter exposes the same call: ``(credential, template, text) -> str``.
They differ only in endpoint, authentication headers, request envelope and
where the generated text lives in the response.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Sequence

import httpx

from .config import RuntimeOptions, runtime_options

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "你是一名中文文本润色助手。请在保留原意的前提下，使表达更加正式、通顺、结构化，并仅输出润色后的文本。"
DEFAULT_TEMPERATURE = 0.3


class ProviderKind(str, Enum):
    OPENAI = "openai"
    CLAUDE = "claude"
    TONGYI = "tongyi"
    WENXIN = "wenxin"

    @classmethod
    def parse(cls, provider_id: str) -> Optional[ProviderKind]:
        try:
            return cls(provider_id)
        except ValueError:
            return None


class ProviderError(RuntimeError):
    """Raised when a provider call fails or returns no usable text."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class PolishCancelled(RuntimeError):
    """Raised when a polish request was cancelled before its result was used."""


class CancelToken:
    """Cooperative cancellation flag shared between a controller and an adapter."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PolishCancelled("Polish request was cancelled.")


# Extraction strategies. Each returns the generated text or None.

Extractor = Callable[[Any], Optional[str]]


def _non_empty(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def choices_message_content(payload: Any) -> Optional[str]:
    """Chat completions shape: ``choices[0].message.content``."""
    try:
        return _non_empty(payload["choices"][0]["message"]["content"])
    except (KeyError, IndexError, TypeError):
        return None


def content_text(payload: Any) -> Optional[str]:
    """Messages shape: ``content[0].text``."""
    try:
        return _non_empty(payload["content"][0]["text"])
    except (KeyError, IndexError, TypeError):
        return None


def result_field(payload: Any) -> Optional[str]:
    """Legacy single field shape: ``result``."""
    try:
        return _non_empty(payload["result"])
    except (KeyError, TypeError):
        return None


def user_message(template: str, text: str) -> str:
    return f"{template}\n\n{text}"


class ProviderAdapter:
    """Base adapter speaking the chat completions dialect."""

    kind: ProviderKind
    display_name: str
    base_url: str
    path: str
    proxy_prefix: str
    model: str
    extractors: Sequence[Extractor] = (choices_message_content,)

    def endpoint(self, options: RuntimeOptions) -> str:
        if options.proxy_url:
            return f"{options.proxy_url}{self.proxy_prefix}{self.path}"
        return f"{self.base_url}{self.path}"

    def headers(self, credential: str) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {credential}"}

    def body(self, template: str, text: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_message(template, text)},
            ],
            "temperature": DEFAULT_TEMPERATURE,
        }

    def extract(self, payload: Any) -> str:
        for extractor in self.extractors:
            content = extractor(payload)
            if content is not None:
                return content.strip()
        raise ProviderError(self.kind.value, f"{self.display_name} returned empty content")

    def call(
        self,
        credential: str,
        template: str,
        text: str,
        client: Optional[httpx.Client] = None,
        options: Optional[RuntimeOptions] = None,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        options = options or runtime_options()
        if cancel is not None:
            cancel.raise_if_cancelled()
        url = self.endpoint(options)
        logger.debug("Calling %s at %s", self.display_name, url)
        try:
            with _client_scope(client, options) as http:
                response = http.post(url, headers=self.headers(credential), json=self.body(template, text))
        except httpx.HTTPError as exc:
            raise ProviderError(self.kind.value, f"{self.display_name} request failed: {exc}") from exc
        except ValueError as exc:
            # Headers that cannot be encoded, e.g. a credential with non-ASCII characters.
            raise ProviderError(self.kind.value, f"{self.display_name} request could not be built") from exc
        if cancel is not None:
            cancel.raise_if_cancelled()
        if not response.is_success:
            raise ProviderError(
                self.kind.value,
                f"{self.display_name} request failed: {response.status_code} "
                f"{response.reason_phrase} {response.text}".rstrip(),
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(self.kind.value, f"{self.display_name} returned invalid JSON") from exc
        return self.extract(payload)


class OpenAIAdapter(ProviderAdapter):
    kind = ProviderKind.OPENAI
    display_name = "OpenAI"
    base_url = "https://api.openai.com"
    path = "/v1/chat/completions"
    proxy_prefix = "/openai"
    model = "gpt-4o-mini"


class ClaudeAdapter(ProviderAdapter):
    kind = ProviderKind.CLAUDE
    display_name = "Claude"
    base_url = "https://api.anthropic.com"
    path = "/v1/messages"
    proxy_prefix = "/anthropic"
    model = "claude-3-haiku-20240307"
    api_version = "2023-06-01"
    max_tokens = 1024
    extractors = (content_text,)

    def headers(self, credential: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": credential,
            "anthropic-version": self.api_version,
        }

    def body(self, template: str, text: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": user_message(template, text)}],
        }


class TongyiAdapter(ProviderAdapter):
    kind = ProviderKind.TONGYI
    display_name = "Tongyi Qianwen"
    base_url = "https://dashscope.aliyuncs.com"
    path = "/compatible-mode/v1/chat/completions"
    proxy_prefix = "/dashscope"
    model = "qwen-turbo"


class WenxinAdapter(ProviderAdapter):
    kind = ProviderKind.WENXIN
    display_name = "Wenxin Yiyan"
    base_url = "https://qianfan.baidubce.com"
    path = "/v2/chat/completions"
    proxy_prefix = "/qianfan"
    model = "ernie-3.5-8k"
    # Older Qianfan deployments answer with a top level ``result`` field.
    extractors = (result_field, choices_message_content)

    def body(self, template: str, text: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": user_message(template, text)}],
            "temperature": DEFAULT_TEMPERATURE,
        }


ADAPTERS: Dict[ProviderKind, ProviderAdapter] = {
    ProviderKind.OPENAI: OpenAIAdapter(),
    ProviderKind.CLAUDE: ClaudeAdapter(),
    ProviderKind.TONGYI: TongyiAdapter(),
    ProviderKind.WENXIN: WenxinAdapter(),
}


def get_adapter(provider_id: str) -> Optional[ProviderAdapter]:
    """Return the adapter for ``provider_id`` or None when no adapter is wired."""

    kind = ProviderKind.parse(provider_id)
    if kind is None:
        return None
    return ADAPTERS[kind]


@contextmanager
def _client_scope(client: Optional[httpx.Client], options: RuntimeOptions) -> Iterator[httpx.Client]:
    if client is not None:
        yield client
        return
    with httpx.Client(timeout=options.http_timeout) as owned:
        yield owned
