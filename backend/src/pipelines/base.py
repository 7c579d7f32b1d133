from typing import Any, Callable

from adapters import (
    BaseEmbedder,
    BaseLLM,
    EmbeddingClient,
    create_embedder,
    create_llm,
)
from adapters.embedding import DEFAULT_BATCH_DELAY, DEFAULT_BATCH_SIZE
from adapters.utils import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_BACKOFF
from config import get_config_value
from language import LanguageProfile, get_profile

DEFAULT_MAX_CHUNKS = 3
DEFAULT_MIN_SIMILARITY = 0.1
DEFAULT_LANGUAGE = "en"

# Keys consumed by the EmbeddingClient, not by provider adapters
_CLIENT_KEYS = ("batch_size", "batch_delay", "max_retries", "retry_backoff")


def _create_adapter_from_config(
    config: dict[str, Any],
    section: str,
    create_fn: Callable[..., Any],
    defaults: dict[str, str],
    exclude: tuple[str, ...] = (),
) -> Any:
    """Create an adapter (embedder or LLM) from configuration."""
    section_config = config.get(section, {})
    provider = section_config.get("provider", defaults["provider"])
    model = section_config.get("model", defaults["model"])

    skipped = ("provider", "model") + exclude
    extra_kwargs = {k: v for k, v in section_config.items() if k not in skipped}

    return create_fn(provider, model=model, **extra_kwargs)


def create_embedder_from_config(config: dict[str, Any]) -> BaseEmbedder:
    """Create an embedder instance from configuration."""
    defaults = {"provider": "ollama", "model": "nomic-embed-text"}
    return _create_adapter_from_config(
        config, "embedding", create_embedder, defaults, exclude=_CLIENT_KEYS
    )


def create_llm_from_config(config: dict[str, Any]) -> BaseLLM:
    """Create an LLM instance from configuration."""
    defaults = {"provider": "ollama", "model": "llama3"}
    return _create_adapter_from_config(
        config, "llm", create_llm, defaults, exclude=("max_retries", "retry_backoff")
    )


def get_language_profile(config: dict[str, Any]) -> LanguageProfile:
    return get_profile(get_config_value(config, "retrieval.language", DEFAULT_LANGUAGE))


def create_embedding_client_from_config(
    config: dict[str, Any], embedder: BaseEmbedder | None = None
) -> EmbeddingClient:
    """Wrap a provider embedder with the configured batching and retry."""
    batch_size = get_config_value(config, "embedding.batch_size", DEFAULT_BATCH_SIZE)
    return EmbeddingClient(
        embedder or create_embedder_from_config(config),
        profile=get_language_profile(config),
        batch_size=batch_size,
        batch_delay=get_config_value(config, "embedding.batch_delay", DEFAULT_BATCH_DELAY),
        max_workers=get_config_value(config, "evaluation.concurrency", batch_size),
        retry_attempts=get_config_value(
            config, "embedding.max_retries", DEFAULT_RETRY_ATTEMPTS
        ),
        retry_backoff=get_config_value(
            config, "embedding.retry_backoff", DEFAULT_RETRY_BACKOFF
        ),
    )
