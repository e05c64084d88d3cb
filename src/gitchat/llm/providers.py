"""Local LLM providers for the chat engine.

Provides the language-model collaborator used for classification,
parameter extraction and text generation:
- OllamaProvider (native /api/chat, JSON-lines streaming)
- LMStudioProvider (OpenAI-compatible /chat/completions, SSE streaming)
- create_model_client() factory driven by LLMSettings

Low-level ``send()`` never raises; transport failures are recorded on the
returned LLMResponse. The high-level ``classify()`` / ``generate()`` /
``stream_generate()`` calls raise ModelUnavailableError so that call sites
can apply their deterministic fallback.
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import httpx

from gitchat.config.defaults import PROVIDER_DEFAULTS
from gitchat.config.settings import LLMSettings
from gitchat.errors import ModelUnavailableError
from gitchat.utils.logging import get_logger

logger = get_logger("llm.providers")

ProviderName = Literal["ollama", "lmstudio"]


@dataclass
class LLMRequest:
    """Request to send to an LLM provider."""

    prompt: str | None = None
    messages: list[dict[str, str]] = field(default_factory=list)
    model: str | None = None
    temperature: float = 0.0
    max_tokens: int | None = None
    system_prompt: str | None = None


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    text: str
    provider: ProviderName
    model: str
    latency_ms: float
    tokens_used: int = 0
    raw: dict | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ModelClient(Protocol):
    """Language-model collaborator used by the routing pipeline."""

    async def classify(self, prompt: str) -> str:  # pragma: no cover
        """Return a short, deterministic reply for a classification prompt."""
        ...

    async def generate(self, prompt: str) -> str:  # pragma: no cover
        """Return free-form generated text."""
        ...

    def stream_generate(
        self, messages: list[dict[str, str]]
    ) -> AsyncIterator[str]:  # pragma: no cover
        """Yield text fragments as the server produces them."""
        ...


class _BaseProvider:
    """Shared request plumbing for the local providers."""

    name: ProviderName

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = 4096,
        timeout: float = 120.0,
    ):
        defaults = PROVIDER_DEFAULTS[self.name]
        self.base_url = (base_url or defaults["base_url"]).rstrip("/")
        self.default_model = model or defaults["model"]
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def chat_url(self) -> str:
        raise NotImplementedError

    def _build_messages(self, request: LLMRequest) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.extend(request.messages)
        if request.prompt is not None:
            messages.append({"role": "user", "content": request.prompt})
        return messages

    def _build_payload(self, request: LLMRequest, model: str, stream: bool) -> dict[str, Any]:
        raise NotImplementedError

    def _extract_text(self, data: dict[str, Any]) -> tuple[str, int]:
        raise NotImplementedError

    def _extract_fragment(self, line: str) -> tuple[str, bool]:
        """Return (text, done) for one streamed line."""
        raise NotImplementedError

    def _connect_error(self) -> str:
        return f"Cannot connect to {self.name} at {self.base_url}. Is it running?"

    async def send(self, request: LLMRequest) -> LLMResponse:
        """Send a non-streaming chat request."""
        start = time.perf_counter()
        model = request.model or self.default_model
        payload = self._build_payload(request, model, stream=False)

        try:
            client = self._get_client()
            response = await client.post(self.chat_url, json=payload)
            response.raise_for_status()
            data = response.json()
            text, tokens = self._extract_text(data)
            elapsed = (time.perf_counter() - start) * 1000
            return LLMResponse(
                text=text,
                provider=self.name,
                model=model,
                latency_ms=elapsed,
                tokens_used=tokens,
                raw=data,
            )
        except httpx.ConnectError:
            error = self._connect_error()
        except httpx.HTTPStatusError as e:
            error = f"HTTP {e.response.status_code}"
            if e.response.status_code == 404:
                error = f"Model '{model}' not found on {self.name}"
        except (httpx.HTTPError, ValueError, KeyError, IndexError) as e:
            error = str(e) or type(e).__name__

        elapsed = (time.perf_counter() - start) * 1000
        logger.warning("llm.request_failed", provider=self.name, model=model, error=error)
        return LLMResponse(
            text="",
            provider=self.name,
            model=model,
            latency_ms=elapsed,
            error=error,
        )

    async def classify(self, prompt: str) -> str:
        response = await self.send(LLMRequest(prompt=prompt, temperature=0.0, max_tokens=256))
        if not response.ok:
            raise ModelUnavailableError(response.error or "unknown error", provider=self.name)
        logger.debug("llm.classified", provider=self.name, latency_ms=round(response.latency_ms, 1))
        return response.text

    async def generate(self, prompt: str) -> str:
        response = await self.send(
            LLMRequest(
                prompt=prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        )
        if not response.ok:
            raise ModelUnavailableError(response.error or "unknown error", provider=self.name)
        return response.text

    async def stream_generate(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        """Stream a chat completion, yielding fragments unchanged."""
        request = LLMRequest(
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        model = self.default_model
        payload = self._build_payload(request, model, stream=True)

        try:
            client = self._get_client()
            async with client.stream("POST", self.chat_url, json=payload) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line:
                        continue
                    text, done = self._extract_fragment(line)
                    if text:
                        yield text
                    if done:
                        break
        except httpx.ConnectError as e:
            raise ModelUnavailableError(self._connect_error(), provider=self.name) from e
        except httpx.HTTPStatusError as e:
            raise ModelUnavailableError(
                f"HTTP {e.response.status_code}", provider=self.name
            ) from e
        except httpx.HTTPError as e:
            raise ModelUnavailableError(str(e) or type(e).__name__, provider=self.name) from e


class OllamaProvider(_BaseProvider):
    """Ollama local LLM provider."""

    name: ProviderName = "ollama"

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/api/chat"

    def _connect_error(self) -> str:
        return f"Cannot connect to Ollama at {self.base_url}. Is it running? Try: ollama serve"

    def _build_payload(self, request: LLMRequest, model: str, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(request),
            "stream": stream,
        }

        options: dict[str, Any] = {"temperature": request.temperature}
        if request.max_tokens:
            options["num_predict"] = request.max_tokens
        payload["options"] = options
        return payload

    def _extract_text(self, data: dict[str, Any]) -> tuple[str, int]:
        # Chat API returns message.content
        text = data.get("message", {}).get("content", "") or data.get("response", "")
        return text, data.get("eval_count", 0)

    def _extract_fragment(self, line: str) -> tuple[str, bool]:
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            return "", False
        text = data.get("message", {}).get("content", "") or data.get("response", "")
        return text, bool(data.get("done"))


class LMStudioProvider(_BaseProvider):
    """LM Studio local LLM provider (OpenAI-compatible API)."""

    name: ProviderName = "lmstudio"

    @property
    def chat_url(self) -> str:
        # The configured base URL already carries the /v1 suffix
        return f"{self.base_url}/chat/completions"

    def _connect_error(self) -> str:
        return f"Cannot connect to LM Studio at {self.base_url}. Is it running?"

    def _build_payload(self, request: LLMRequest, model: str, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(request),
            "temperature": request.temperature,
            "stream": stream,
        }
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens
        return payload

    def _extract_text(self, data: dict[str, Any]) -> tuple[str, int]:
        text = data["choices"][0]["message"]["content"] if data.get("choices") else ""
        tokens = data.get("usage", {}).get("total_tokens", 0)
        return text or "", tokens

    def _extract_fragment(self, line: str) -> tuple[str, bool]:
        if not line.startswith("data: "):
            return "", False
        data_str = line[6:].strip()
        if data_str == "[DONE]":
            return "", True
        try:
            data = json.loads(data_str)
        except json.JSONDecodeError:
            return "", False
        choices = data.get("choices", [])
        if not choices:
            return "", False
        return choices[0].get("delta", {}).get("content") or "", False


PROVIDERS: dict[str, type[_BaseProvider]] = {
    "ollama": OllamaProvider,
    "lmstudio": LMStudioProvider,
}


def create_model_client(settings: LLMSettings) -> _BaseProvider:
    """Build the configured provider.

    Args:
        settings: LLM section of the loaded settings

    Returns:
        A provider implementing the ModelClient protocol
    """
    provider_cls = PROVIDERS.get(settings.provider)
    if provider_cls is None:
        raise ValueError(f"Unknown LLM provider: {settings.provider}")
    logger.debug(
        "llm.provider_created",
        provider=settings.provider,
        model=settings.effective_model,
        base_url=settings.effective_base_url,
    )
    return provider_cls(
        base_url=settings.effective_base_url,
        model=settings.effective_model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        timeout=settings.timeout_seconds,
    )
