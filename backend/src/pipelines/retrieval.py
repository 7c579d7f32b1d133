import logging
from typing import Any, Callable, Optional

from adapters import EmbeddingClient
from config import get_config_value
from errors import InputValidationError, NoRelevantContextError, NotFoundError
from models.chunk import ContextBundle, RetrievalResult
from splitters import count_tokens
from stores import BaseVectorStore
from .base import DEFAULT_MAX_CHUNKS, DEFAULT_MIN_SIMILARITY

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTEXT_TOKENS = 4096


class RetrievalPipeline:
    """Turns a transcript into a ranked, filtered context bundle.

    Supports dependency injection for flexible composition.
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        vector_store: BaseVectorStore,
        max_chunks: int = DEFAULT_MAX_CHUNKS,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS,
        token_counter: Callable[[str], int] = count_tokens,
        config: dict[str, Any] | None = None,
    ):
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.max_chunks = max_chunks
        self.min_similarity = min_similarity
        self.max_context_tokens = max_context_tokens
        self.token_counter = token_counter
        self.config = config or {}

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        embedding_client: EmbeddingClient,
        vector_store: BaseVectorStore,
        token_counter: Optional[Callable[[str], int]] = None,
    ) -> "RetrievalPipeline":
        """Create pipeline from configuration dictionary."""
        return cls(
            embedding_client=embedding_client,
            vector_store=vector_store,
            max_chunks=get_config_value(config, "retrieval.max_chunks", DEFAULT_MAX_CHUNKS),
            min_similarity=get_config_value(
                config, "retrieval.min_similarity", DEFAULT_MIN_SIMILARITY
            ),
            max_context_tokens=get_config_value(
                config, "retrieval.max_context_tokens", DEFAULT_MAX_CONTEXT_TOKENS
            ),
            token_counter=token_counter or count_tokens,
            config=config,
        )

    def search_similar(
        self,
        query: str,
        document_id: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> list[RetrievalResult]:
        """Rank indexed chunks against a query by hybrid score."""
        if not query or not query.strip():
            raise InputValidationError("Query must not be empty")
        k = top_k if top_k is not None else self.max_chunks
        logger.info(f"Embedding query: {query[:50]}...")

        query_vector = self.embedding_client.embed_query(query)
        results = self.vector_store.query(
            query_vector, query, top_k=k, document_id=document_id
        )

        logger.info(f"Found {len(results)} results")
        return results

    def get_relevant_context(
        self,
        transcript: str,
        document_id: str,
        max_chunks: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> ContextBundle:
        """Retrieve the chunks of ``document_id`` that support the transcript.

        Raises:
            NotFoundError: The document has no indexed chunks.
            NoRelevantContextError: Every candidate scored below the floor.
        """
        if not document_id:
            raise InputValidationError("Document id is required")
        if self.vector_store.count_for_document(document_id) == 0:
            raise NotFoundError(f"No indexed chunks for document {document_id}")

        threshold = self.min_similarity if min_similarity is None else min_similarity
        results = self.search_similar(
            transcript, document_id=document_id, top_k=max_chunks or self.max_chunks
        )
        relevant = [r for r in results if r.score >= threshold]

        if not relevant:
            max_score = max((r.score for r in results), default=0.0)
            logger.warning(
                f"No relevant context for document {document_id}: "
                f"best score {max_score:.3f} below threshold {threshold}"
            )
            raise NoRelevantContextError(
                f"Transcript does not match document {document_id} "
                f"(best score {max_score:.3f} < {threshold})",
                max_score=max_score,
                threshold=threshold,
            )

        combined_text = "\n\n".join(r.text for r in relevant)
        token_count = self.token_counter(combined_text)
        if token_count > self.max_context_tokens:
            logger.warning(
                f"Context has {token_count} tokens (limit: {self.max_context_tokens})"
            )

        bundle = ContextBundle(
            relevant_chunks=relevant,
            combined_text=combined_text,
            total_score=sum(r.score for r in relevant),
            token_count=token_count,
        )
        logger.info(
            f"Relevant context for {document_id}: {len(relevant)} chunks, "
            f"average score {bundle.average_score:.3f}, {len(combined_text)} chars"
        )
        return bundle
