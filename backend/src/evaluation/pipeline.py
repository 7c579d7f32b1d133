"""Verification pipeline.

Stages run strictly in order with no backtracking:

    RETRIEVED -> SCORED -> CONCEPT_CHECKED -> RECONCILED -> FINALIZED

A concept-check failure skips straight to FINALIZED and keeps the model's
scores. The optional statement-level fact check runs before FINALIZED and is
reported separately.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from adapters import BaseLLM
from adapters.embedding import DEFAULT_BATCH_SIZE
from adapters.utils import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_BACKOFF
from config import get_config_value
from errors import EvaluationCancelledError, EvaluatorError
from models.chunk import ContextBundle
from models.evaluation import (
    AccuracyReport,
    CoherenceResult,
    ContextQuality,
    EvaluationMetadata,
    EvaluationResult,
    Feedback,
)
from .concepts import (
    DEFAULT_MAX_PAIRWISE_CANDIDATES,
    PRESENCE_THRESHOLD,
    ConceptAnalysisError,
    ConceptCoherenceChecker,
)
from .fact_check import FactChecker
from .reconcile import reconcile
from .scoring import LLMScorer

logger = logging.getLogger(__name__)


class VerificationStage(str, Enum):
    RETRIEVED = "retrieved"
    SCORED = "scored"
    CONCEPT_CHECKED = "concept_checked"
    RECONCILED = "reconciled"
    FINALIZED = "finalized"


class VerificationPipeline:
    """Scores a transcript against its context and cross-checks the score."""

    def __init__(
        self,
        scorer: LLMScorer,
        coherence_checker: Optional[ConceptCoherenceChecker] = None,
        fact_checker: Optional[FactChecker] = None,
    ):
        self.scorer = scorer
        self.coherence_checker = coherence_checker
        self.fact_checker = fact_checker

    @classmethod
    def from_config(cls, config: dict[str, Any], llm: BaseLLM) -> "VerificationPipeline":
        """Create the scorer and both checkers around one LLM."""
        concurrency = get_config_value(
            config,
            "evaluation.concurrency",
            get_config_value(config, "embedding.batch_size", DEFAULT_BATCH_SIZE),
        )
        return cls(
            scorer=LLMScorer(
                llm,
                retry_attempts=get_config_value(
                    config, "llm.max_retries", DEFAULT_RETRY_ATTEMPTS
                ),
                retry_backoff=get_config_value(
                    config, "llm.retry_backoff", DEFAULT_RETRY_BACKOFF
                ),
            ),
            coherence_checker=ConceptCoherenceChecker(
                llm,
                presence_threshold=get_config_value(
                    config, "evaluation.presence_threshold", PRESENCE_THRESHOLD
                ),
                max_pairwise_candidates=get_config_value(
                    config,
                    "evaluation.max_pairwise_candidates",
                    DEFAULT_MAX_PAIRWISE_CANDIDATES,
                ),
                max_workers=concurrency,
            ),
            fact_checker=FactChecker(llm, max_workers=concurrency),
        )

    def _advance(
        self,
        stages: list[VerificationStage],
        stage: VerificationStage,
        cancel_event: Optional[threading.Event],
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise EvaluationCancelledError(
                f"Evaluation cancelled before stage {stage.value}"
            )
        stages.append(stage)
        logger.info(f"Verification stage: {stage.value}")

    def _fact_check(
        self,
        transcript: str,
        bundle: ContextBundle,
        cancel_event: Optional[threading.Event],
    ) -> Optional[AccuracyReport]:
        if self.fact_checker is None:
            logger.warning("Fact check requested but no fact checker is configured")
            return None
        try:
            return self.fact_checker.check(
                transcript, [c.text for c in bundle.relevant_chunks], cancel_event
            )
        except EvaluationCancelledError:
            raise
        except EvaluatorError as e:
            logger.warning(f"Fact check skipped: {e}")
            return None

    def run(
        self,
        transcript: str,
        document_id: str,
        bundle: ContextBundle,
        fact_check: bool = False,
        cancel_event: Optional[threading.Event] = None,
        started_at: Optional[datetime] = None,
    ) -> EvaluationResult:
        started_at = started_at or datetime.now(timezone.utc)
        clock = time.perf_counter()
        stages: list[VerificationStage] = []

        self._advance(stages, VerificationStage.RETRIEVED, cancel_event)

        outcome = self.scorer.score(bundle.combined_text, transcript)
        self._advance(stages, VerificationStage.SCORED, cancel_event)

        criteria = outcome.criteria
        improvements = list(outcome.feedback.improvements)
        coherence: Optional[CoherenceResult] = None
        summary = None
        concept_check_failed = False

        if self.coherence_checker is not None:
            try:
                coherence = self.coherence_checker.check(
                    bundle.combined_text, transcript, cancel_event
                )
            except ConceptAnalysisError as e:
                concept_check_failed = True
                logger.warning(f"Concept check failed, keeping model scores: {e}")

        if coherence is not None:
            self._advance(stages, VerificationStage.CONCEPT_CHECKED, cancel_event)
            reconciliation = reconcile(outcome.criteria, coherence)
            criteria = reconciliation.criteria
            improvements.extend(reconciliation.improvements)
            summary = reconciliation.summary
            self._advance(stages, VerificationStage.RECONCILED, cancel_event)
            logger.info(
                f"Reconciled accuracy {outcome.criteria.accuracy} -> {criteria.accuracy} "
                f"(forced {reconciliation.forced_accuracy}), completeness "
                f"{outcome.criteria.completeness} -> {criteria.completeness}"
            )

        report = self._fact_check(transcript, bundle, cancel_event) if fact_check else None

        self._advance(stages, VerificationStage.FINALIZED, cancel_event)
        elapsed_ms = int((time.perf_counter() - clock) * 1000)
        finished_at = datetime.now(timezone.utc)
        total_ms = max(elapsed_ms, int((finished_at - started_at).total_seconds() * 1000))

        result = EvaluationResult(
            criteria=criteria,
            llm_criteria=outcome.criteria,
            overall_score=criteria.mean(),
            feedback=Feedback(
                strengths=outcome.feedback.strengths,
                improvements=improvements,
                detailed_feedback=outcome.feedback.detailed_feedback,
            ),
            metadata=EvaluationMetadata(
                document_id=document_id,
                transcript_length=len(transcript),
                chunks_used=len(bundle.relevant_chunks),
                started_at=started_at,
                finished_at=finished_at,
                processing_time_ms=total_ms,
                context_quality=ContextQuality(
                    chunks_used=len(bundle.relevant_chunks),
                    total_score=bundle.total_score,
                    average_score=bundle.average_score,
                ),
                stages=[stage.value for stage in stages],
                parsing_failed=outcome.parsing_failed,
                concept_check_failed=concept_check_failed,
                concept_coherence=summary,
            ),
            coherence=coherence,
            fact_check=report,
        )
        logger.info(
            f"Evaluation of {document_id} finished in {total_ms}ms: "
            f"overall {result.overall_score}"
        )
        return result
