from typing import Any

from .base import BaseVectorStore
from .memory import InMemoryVectorStore
from .scoring import (
    HybridScorer,
    cosine_similarity,
    jaccard_similarity,
    semantic_overlap,
)

VectorStore = InMemoryVectorStore


def create_vector_store(
    provider: str,
    dimension: int,
    **kwargs: Any,
) -> BaseVectorStore:
    """Create a vector store instance based on provider.

    Args:
        provider: Provider name (currently only "memory" supported)
        dimension: Embedding dimension
        **kwargs: Additional provider-specific parameters

    Returns:
        BaseVectorStore instance
    """
    if provider == "memory":
        return InMemoryVectorStore(dimension=dimension, **kwargs)
    raise ValueError(f"Unknown vector store provider: {provider}")


__all__ = [
    "BaseVectorStore",
    "InMemoryVectorStore",
    "VectorStore",
    "HybridScorer",
    "cosine_similarity",
    "jaccard_similarity",
    "semantic_overlap",
    "create_vector_store",
]
