from .base import (
    DEFAULT_MAX_CHUNKS,
    DEFAULT_MIN_SIMILARITY,
    create_embedder_from_config,
    create_embedding_client_from_config,
    create_llm_from_config,
    get_language_profile,
)
from .ingestion import IngestionPipeline
from .retrieval import DEFAULT_MAX_CONTEXT_TOKENS, RetrievalPipeline

__all__ = [
    "IngestionPipeline",
    "RetrievalPipeline",
    "create_embedder_from_config",
    "create_embedding_client_from_config",
    "create_llm_from_config",
    "get_language_profile",
    "DEFAULT_MAX_CHUNKS",
    "DEFAULT_MIN_SIMILARITY",
    "DEFAULT_MAX_CONTEXT_TOKENS",
]
