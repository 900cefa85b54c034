"""
LLM provider abstraction for the text-to-SQL service.
Talks to any OpenAI-compatible chat completions endpoint (OpenRouter by default).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..core.config import LLMSettings
from ..core.errors import TextToSQLError
from ..core.logger import get_logger

LOGGER = get_logger(__name__)


class LLMProvider(ABC):
    """Base class for LLM providers"""

    @abstractmethod
    async def query(
        self,
        system_prompt: str,
        user_prompt: str,
        conversation_history: Optional[list] = None,
        json_mode: bool = True,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Query the LLM; returns ``{"content", "model", "provider", "usage"}``."""
        raise NotImplementedError


class OpenRouterProvider(LLMProvider):
    """OpenAI-compatible chat completions provider (OpenRouter by default)."""

    name = "openrouter"

    def __init__(
        self,
        settings: LLMSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not settings.configured:
            raise ValueError(
                "LLM API key not configured. Set OPENROUTER_API_KEY or OPENAI_API_KEY."
            )
        self.settings = settings
        self.model = settings.model
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return self.settings.base_url.rstrip("/") + "/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.settings.referer,
            "X-Title": self.settings.title,
        }

    async def query(
        self,
        system_prompt: str,
        user_prompt: str,
        conversation_history: Optional[list] = None,
        json_mode: bool = True,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        messages: list[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        if conversation_history:
            messages.extend(conversation_history)
        messages.append({"role": "user", "content": user_prompt})

        resolved_model = model or self.model
        payload: Dict[str, Any] = {
            "model": resolved_model,
            "messages": messages,
            "max_tokens": self.settings.max_tokens,
            "temperature": 0,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.endpoint, headers=self._headers(), json=payload)
                if response.status_code == 400 and json_mode:
                    # Some routed models reject response_format; retry once without it
                    payload.pop("response_format", None)
                    response = await client.post(self.endpoint, headers=self._headers(), json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            LOGGER.error("LLM API error: %s", exc)
            raise TextToSQLError(f"LLM request failed: {exc}") from exc
        except ValueError as exc:
            raise TextToSQLError(f"LLM returned a non-JSON body: {exc}") from exc

        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        return {
            "content": content,
            "model": resolved_model,
            "provider": self.name,
            "usage": data.get("usage", {}),
        }


class LLMProviderFactory:
    """Factory to create the configured LLM provider"""

    PROVIDERS = {"openrouter": OpenRouterProvider, "openai": OpenRouterProvider}

    @staticmethod
    def create(settings: LLMSettings, provider_name: str = "openrouter", **kwargs: Any) -> LLMProvider:
        normalized = (provider_name or "").strip().lower()
        provider_cls = LLMProviderFactory.PROVIDERS.get(normalized)
        if provider_cls is None:
            raise ValueError(f"Unknown LLM provider: {provider_name}")
        return provider_cls(settings, **kwargs)
