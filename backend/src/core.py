"""PresentationEvaluator: the single entry point used by the CLIs and tests.

Wires ingestion, retrieval and verification together around one embedding
client, one vector store and one LLM.
"""

import logging
import re
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError

from adapters import BaseEmbedder, BaseLLM
from config import get_config_value
from errors import EvaluatorError, InputValidationError
from evaluation import VerificationPipeline, compare_evaluations, generate_detailed_feedback
from evaluation.prompts import HEALTH_CHECK_PROMPT, HEALTH_CHECK_SYSTEM_PROMPT
from models.chunk import ContextBundle, DocumentStats, IndexStats, RetrievalResult
from models.evaluation import (
    DetailedFeedback,
    EvaluationComparison,
    EvaluationOptions,
    EvaluationResult,
)
from pipelines import (
    IngestionPipeline,
    RetrievalPipeline,
    create_embedding_client_from_config,
    create_llm_from_config,
    get_language_profile,
)
from stores import BaseVectorStore, HybridScorer, InMemoryVectorStore

logger = logging.getLogger(__name__)

DEFAULT_MIN_TRANSCRIPT_LENGTH = 10
FEEDBACK_CONTEXT_CHUNKS = 5

_ALPHANUMERIC = re.compile(r"[^\W_]")


class PresentationEvaluator:
    """Evaluates spoken presentations against ingested reference documents."""

    def __init__(
        self,
        ingestion: IngestionPipeline,
        retrieval: RetrievalPipeline,
        verification: VerificationPipeline,
        llm: BaseLLM,
        config: dict[str, Any] | None = None,
    ):
        self.ingestion = ingestion
        self.retrieval = retrieval
        self.verification = verification
        self.llm = llm
        self.config = config or {}
        self.min_transcript_length = get_config_value(
            self.config, "evaluation.min_transcript_length", DEFAULT_MIN_TRANSCRIPT_LENGTH
        )
        self.fact_check_default = get_config_value(
            self.config, "evaluation.fact_check", False
        )

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        embedder: Optional[BaseEmbedder] = None,
        llm: Optional[BaseLLM] = None,
        vector_store: Optional[BaseVectorStore] = None,
        token_counter: Optional[Callable[[str], int]] = None,
    ) -> "PresentationEvaluator":
        """Build every component from configuration.

        Args:
            config: Configuration dictionary.
            embedder: Provider embedder to use instead of the configured one.
            llm: LLM to use instead of the configured one.
            vector_store: Store to use instead of a fresh in-memory store.
            token_counter: Token counting function (defaults to tiktoken).
        """
        embedding_client = create_embedding_client_from_config(config, embedder)
        llm = llm or create_llm_from_config(config)
        vector_store = vector_store or InMemoryVectorStore(
            dimension=embedding_client.dimension,
            scorer=HybridScorer(get_language_profile(config)),
        )

        return cls(
            ingestion=IngestionPipeline.from_config(
                config,
                embedding_client=embedding_client,
                vector_store=vector_store,
                token_counter=token_counter,
            ),
            retrieval=RetrievalPipeline.from_config(
                config, embedding_client, vector_store, token_counter=token_counter
            ),
            verification=VerificationPipeline.from_config(config, llm),
            llm=llm,
            config=config,
        )

    @property
    def vector_store(self) -> BaseVectorStore:
        return self.retrieval.vector_store

    def process_document(
        self, text: str, document_id: str, degraded: bool = False
    ) -> dict[str, Any]:
        return self.ingestion.process_document(text, document_id, degraded=degraded)

    def delete_document(self, document_id: str) -> None:
        self.ingestion.delete_document(document_id)

    def search_similar(
        self, query: str, document_id: Optional[str] = None, top_k: Optional[int] = None
    ) -> list[RetrievalResult]:
        return self.retrieval.search_similar(query, document_id=document_id, top_k=top_k)

    def get_relevant_context(
        self,
        transcript: str,
        document_id: str,
        max_chunks: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> ContextBundle:
        return self.retrieval.get_relevant_context(
            transcript, document_id, max_chunks=max_chunks, min_similarity=min_similarity
        )

    def validate_transcript(self, transcript: Optional[str]) -> str:
        """Return the trimmed transcript or raise InputValidationError."""
        text = (transcript or "").strip()
        if not text:
            raise InputValidationError("Transcript must not be empty")
        if len(text) < self.min_transcript_length:
            raise InputValidationError(
                f"Transcript too short: {len(text)} characters "
                f"(minimum {self.min_transcript_length})"
            )
        if not _ALPHANUMERIC.search(text):
            raise InputValidationError("Transcript contains no letters or digits")
        return text

    @staticmethod
    def _parse_options(
        options: EvaluationOptions | dict[str, Any] | None,
    ) -> EvaluationOptions:
        if options is None:
            return EvaluationOptions()
        if isinstance(options, EvaluationOptions):
            return options
        try:
            return EvaluationOptions(**options)
        except ValidationError as e:
            raise InputValidationError(f"Invalid evaluation options: {e}") from e

    def evaluate(
        self,
        transcript: str,
        document_id: str,
        options: EvaluationOptions | dict[str, Any] | None = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EvaluationResult:
        """Retrieve context for a transcript and score it.

        All input validation happens before any embedding or LLM call.

        Raises:
            InputValidationError: Bad transcript, document id or options.
            NotFoundError: The document has no indexed chunks.
            NoRelevantContextError: The transcript does not match the document.
            UpstreamServiceError: The scoring call failed after retries.
            EvaluationCancelledError: ``cancel_event`` was set.
        """
        text = self.validate_transcript(transcript)
        if not document_id or not document_id.strip():
            raise InputValidationError("Document id is required")
        opts = self._parse_options(options)

        started_at = datetime.now(timezone.utc)
        logger.info(f"Evaluating transcript ({len(text)} chars) against {document_id}")

        bundle = self.retrieval.get_relevant_context(
            text,
            document_id,
            max_chunks=opts.max_relevant_chunks,
            min_similarity=opts.min_similarity_score,
        )
        fact_check = self.fact_check_default if opts.fact_check is None else opts.fact_check
        return self.verification.run(
            text,
            document_id,
            bundle,
            fact_check=fact_check,
            cancel_event=cancel_event,
            started_at=started_at,
        )

    def generate_detailed_feedback(
        self, transcript: str, document_id: str, focus_area: Optional[str] = None
    ) -> DetailedFeedback:
        text = self.validate_transcript(transcript)
        bundle = self.retrieval.get_relevant_context(
            text, document_id, max_chunks=FEEDBACK_CONTEXT_CHUNKS
        )
        return generate_detailed_feedback(self.llm, text, bundle, focus_area)

    def compare_evaluations(self, results: list[EvaluationResult]) -> EvaluationComparison:
        return compare_evaluations(results)

    def get_document_stats(self, document_id: str) -> DocumentStats:
        return self.ingestion.get_document_stats(document_id)

    def index_stats(self) -> IndexStats:
        return self.vector_store.stats()

    def health_check(self) -> dict[str, Any]:
        """Report index statistics and LLM reachability. Never raises."""
        try:
            reply = self.llm.complete(HEALTH_CHECK_PROMPT, HEALTH_CHECK_SYSTEM_PROMPT)
            llm_ok = bool(reply and reply.strip())
            llm_error = None
        except EvaluatorError as e:
            logger.warning(f"Health check: LLM unavailable: {e}")
            llm_ok, llm_error = False, str(e)

        stats = self.index_stats()
        return {
            "status": "healthy" if llm_ok else "degraded",
            "llm_available": llm_ok,
            "llm_error": llm_error,
            "documents": len(self.ingestion.list_documents()),
            "index": stats.model_dump(),
        }
