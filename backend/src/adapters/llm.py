import os
from typing import Any, Optional

import openai
import requests
from openai import OpenAI

from adapters.base import BaseLLM
from adapters.utils import create_session_with_pooling
from errors import UpstreamServiceError

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 2000
DEFAULT_LLM_TIMEOUT = 120.0


class OpenAILLM(BaseLLM):
    """OpenAI LLM provider."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: Optional[int] = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        api_key = kwargs.pop("api_key", None) or os.environ.get("OPENAI_API_KEY")
        base_url = kwargs.pop("base_url", None)

        self.client = OpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _get_completion_params(
        self, messages: list[dict[str, str]], **kwargs: Any
    ) -> dict[str, Any]:
        """Build parameters for chat completion."""
        return {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.get("temperature", self.temperature),
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
        }

    def _create(self, params: dict[str, Any]) -> str:
        try:
            response = self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise UpstreamServiceError(f"OpenAI completion failed: {e}") from e
        return response.choices[0].message.content or ""

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        return self._create(self._get_completion_params(messages, **kwargs))


class OllamaLLM(BaseLLM):
    """Ollama local LLM provider with connection pooling."""

    def __init__(
        self,
        model: str = "llama3",
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: Optional[int] = DEFAULT_MAX_TOKENS,
        base_url: str = "http://localhost:11434",
        timeout: float = DEFAULT_LLM_TIMEOUT,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = create_session_with_pooling()

    def _build_payload(self, **kwargs: Any) -> dict[str, Any]:
        """Build request payload for Ollama API."""
        options: dict[str, Any] = {
            "temperature": kwargs.get("temperature", self.temperature),
        }
        max_tokens = kwargs.get("max_tokens", self.max_tokens)
        if max_tokens:
            options["num_predict"] = max_tokens
        return {"model": self.model, "stream": False, "options": options}

    def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.session.post(
                f"{self.base_url}{endpoint}",
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise UpstreamServiceError(f"Ollama request to {endpoint} failed: {e}") from e
        except ValueError as e:
            raise UpstreamServiceError(f"Ollama returned invalid JSON: {e}") from e

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        payload = self._build_payload(**kwargs)
        payload["messages"] = messages
        data = self._post("/api/chat", payload)
        return data.get("message", {}).get("content", "")
