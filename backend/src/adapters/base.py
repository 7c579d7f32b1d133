from abc import ABC, abstractmethod
from typing import Any, Optional


class BaseEmbedder(ABC):
    """Abstract base class for embedding providers.

    Implementations raise ``UpstreamServiceError`` when the provider call
    fails or times out.
    """

    def __init__(self, model: str, **kwargs: Any):
        self.model = model
        self.kwargs = kwargs

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        pass

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts, preserving input order."""
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass


class BaseLLM(ABC):
    """Abstract base class for chat/completion providers."""

    def __init__(self, model: str, **kwargs: Any):
        self.model = model
        self.kwargs = kwargs

    @abstractmethod
    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        pass

    def complete(
        self, prompt: str, system_prompt: Optional[str] = None, **kwargs: Any
    ) -> str:
        """Send a prompt with an optional system prompt and return the text."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return self.chat(messages, **kwargs)
