import threading

import pytest

from errors import (
    EvaluationCancelledError,
    InputValidationError,
    NoRelevantContextError,
    NotFoundError,
    UpstreamServiceError,
)
from evaluation import VerificationStage
from models.evaluation import EvaluationOptions
from conftest import (
    DEFAULT_SCORES,
    ZORG_DOCUMENT,
    ZORG_DOCUMENT_CONCEPTS,
    ZORG_ID,
    MockEmbedder,
    ScriptedLLM,
    build_evaluator,
)

BLUE_SKY_TRANSCRIPT = "The sky on Zorg is blue."
NITROGEN_TRANSCRIPT = (
    "The sky on planet Zorg is green. Zorg has two moons. "
    "Zorg's atmosphere is nitrogen-based."
)
FAITHFUL_CONCEPTS = [
    {"concept": "green sky of Zorg", "context": "The sky is green.", "importance": 0.9},
    {"concept": "two moons of Zorg", "context": "Zorg has two moons.", "importance": 0.7},
]


def contradiction_similarity(first: str, second: str) -> float:
    if first.lower() == second.lower():
        return 1.0
    if {first, second} == {"green sky of Zorg", "blue sky of Zorg"}:
        return 0.3
    return 0.0


@pytest.fixture
def zorg_llm() -> ScriptedLLM:
    return ScriptedLLM(
        scoring={**DEFAULT_SCORES, "accuracy": 98},
        concepts={
            "nitrogen": FAITHFUL_CONCEPTS
            + [
                {
                    "concept": "nitrogen-based atmosphere of Zorg",
                    "context": "Zorg's atmosphere is nitrogen-based.",
                    "importance": 0.6,
                }
            ],
            "Zorg is blue": [
                {"concept": "blue sky of Zorg", "context": BLUE_SKY_TRANSCRIPT, "importance": 0.9}
            ],
            "planet Zorg is green": ZORG_DOCUMENT_CONCEPTS,
        },
        similarity=contradiction_similarity,
    )


@pytest.fixture
def zorg_evaluator(test_config, mock_embedder, zorg_llm):
    evaluator = build_evaluator(test_config, mock_embedder, zorg_llm)
    evaluator.process_document(ZORG_DOCUMENT, ZORG_ID)
    return evaluator


class TestInputValidation:
    @pytest.mark.parametrize("transcript", ["", "   ", "short", "?!?!?!?!?!?!", "____________"])
    def test_bad_transcript_rejected_before_any_call(
        self, evaluator, mock_embedder, scripted_llm, transcript
    ) -> None:
        with pytest.raises(InputValidationError):
            evaluator.evaluate(transcript, ZORG_ID)

        assert mock_embedder.calls == []
        assert scripted_llm.calls == []

    def test_missing_document_id(self, evaluator, mock_embedder) -> None:
        with pytest.raises(InputValidationError):
            evaluator.evaluate("A perfectly reasonable transcript.", "")
        assert mock_embedder.calls == []

    def test_invalid_options(self, evaluator, scripted_llm) -> None:
        with pytest.raises(InputValidationError):
            evaluator.evaluate(
                "A perfectly reasonable transcript.", ZORG_ID, {"max_relevant_chunks": 0}
            )
        assert scripted_llm.calls == []


class TestEvaluate:
    def test_distorted_fact_drives_accuracy_down(self, zorg_evaluator) -> None:
        result = zorg_evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID)

        flagged = [c.concept for c in result.coherence.missing] + [
            m.document_concept.concept for m in result.coherence.distorted
        ]
        assert "green sky of Zorg" in flagged
        assert result.criteria.accuracy < 60
        assert result.llm_criteria.accuracy == 98

    def test_true_but_absent_fact_is_extra(self, zorg_evaluator) -> None:
        result = zorg_evaluator.evaluate(NITROGEN_TRANSCRIPT, ZORG_ID)

        assert [c.concept for c in result.coherence.extra] == [
            "nitrogen-based atmosphere of Zorg"
        ]
        assert result.coherence.statistics.missing_count == 0
        assert result.metadata.concept_coherence.forced_accuracy == 90
        assert result.criteria.accuracy == 90
        assert any(
            "nitrogen-based atmosphere of Zorg" in bullet
            for bullet in result.feedback.improvements
        )

    def test_faithful_transcript_keeps_model_accuracy(self, zorg_evaluator) -> None:
        result = zorg_evaluator.evaluate(
            "The sky on planet Zorg is green and Zorg has two moons.", ZORG_ID
        )

        assert result.coherence.statistics.coverage_percentage == 100
        assert result.criteria.accuracy == 98
        assert result.criteria.completeness == DEFAULT_SCORES["completeness"]

    def test_overall_is_mean_of_final_criteria(self, zorg_evaluator) -> None:
        result = zorg_evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID)
        assert result.overall_score == result.criteria.mean()

    def test_metadata(self, zorg_evaluator) -> None:
        result = zorg_evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID)
        metadata = result.metadata

        assert metadata.document_id == ZORG_ID
        assert metadata.transcript_length == len(BLUE_SKY_TRANSCRIPT)
        assert metadata.chunks_used == 1
        assert metadata.finished_at >= metadata.started_at
        assert metadata.processing_time_ms >= 0
        assert metadata.stages == [stage.value for stage in VerificationStage]
        assert metadata.context_quality.chunks_used == 1

    def test_unrelated_transcript(self, zorg_evaluator, zorg_llm) -> None:
        with pytest.raises(NoRelevantContextError):
            zorg_evaluator.evaluate(
                "Quantum chromodynamics explains quark confinement.", ZORG_ID
            )
        assert zorg_llm.calls == []

    def test_unknown_document(self, evaluator) -> None:
        with pytest.raises(NotFoundError):
            evaluator.evaluate("A perfectly reasonable transcript.", "missing")

    def test_fact_check_option(self, zorg_evaluator, zorg_llm) -> None:
        zorg_llm.statements = [{"text": "The sky on Zorg is blue.", "type": "factual"}]
        zorg_llm.fact_checks = {
            "The sky on Zorg is blue.": {
                "is_accurate": False,
                "confidence": 0.95,
                "severity": "critical",
                "discrepancy": "The document says the sky is green",
            }
        }

        result = zorg_evaluator.evaluate(
            BLUE_SKY_TRANSCRIPT, ZORG_ID, EvaluationOptions(fact_check=True)
        )

        assert result.fact_check.score == 0
        assert result.fact_check.critical_errors
        assert "statements" in zorg_llm.routes_called()

    def test_fact_check_with_list_evidence(self, zorg_evaluator, zorg_llm) -> None:
        zorg_llm.statements = [{"text": "The sky on Zorg is blue.", "type": "factual"}]
        zorg_llm.fact_checks = {
            "The sky on Zorg is blue.": {
                "is_accurate": False,
                "severity": "critical",
                "evidence": ["The sky on planet Zorg is green."],
            }
        }

        result = zorg_evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID, {"fact_check": True})

        assert result.fact_check.results[0].evidence == "The sky on planet Zorg is green."
        assert result.fact_check.critical_errors

    def test_fact_check_is_off_by_default(self, zorg_evaluator, zorg_llm) -> None:
        result = zorg_evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID)

        assert result.fact_check is None
        assert "statements" not in zorg_llm.routes_called()

    def test_scoring_upstream_failure_is_fatal(self, test_config, mock_embedder) -> None:
        llm = ScriptedLLM(fail_on=("scoring",))
        evaluator = build_evaluator(test_config, mock_embedder, llm)
        evaluator.process_document(ZORG_DOCUMENT, ZORG_ID)

        with pytest.raises(UpstreamServiceError):
            evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID)

        assert llm.routes_called().count("scoring") == test_config["llm"]["max_retries"]

    def test_cancelled_evaluation(self, zorg_evaluator) -> None:
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(EvaluationCancelledError):
            zorg_evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID, cancel_event=cancel)

    def test_delete_then_evaluate(self, zorg_evaluator) -> None:
        zorg_evaluator.delete_document(ZORG_ID)

        with pytest.raises(NotFoundError):
            zorg_evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID)


class TestFacade:
    def test_search_similar(self, zorg_evaluator) -> None:
        results = zorg_evaluator.search_similar("green sky", document_id=ZORG_ID, top_k=2)
        assert results[0].document_id == ZORG_ID

    def test_detailed_feedback(self, zorg_evaluator, zorg_llm) -> None:
        feedback = zorg_evaluator.generate_detailed_feedback(
            BLUE_SKY_TRANSCRIPT, ZORG_ID, focus_area="accuracy"
        )

        assert feedback.feedback == zorg_llm.feedback
        assert feedback.focus_area == "accuracy"
        assert "Double-check the specific facts and figures you mention" in (
            feedback.recommended_actions
        )

    def test_detailed_feedback_unknown_focus_area(self, zorg_evaluator) -> None:
        with pytest.raises(InputValidationError):
            zorg_evaluator.generate_detailed_feedback(
                BLUE_SKY_TRANSCRIPT, ZORG_ID, focus_area="charisma"
            )

    def test_compare_evaluations(self, zorg_evaluator) -> None:
        results = [
            zorg_evaluator.evaluate(BLUE_SKY_TRANSCRIPT, ZORG_ID),
            zorg_evaluator.evaluate(NITROGEN_TRANSCRIPT, ZORG_ID),
        ]
        comparison = zorg_evaluator.compare_evaluations(results)

        assert comparison.evaluation_count == 2
        assert comparison.trends["accuracy"] == "improving"

    def test_stats(self, zorg_evaluator) -> None:
        assert zorg_evaluator.get_document_stats(ZORG_ID).chunk_count == 1
        stats = zorg_evaluator.index_stats()
        assert stats.total_vectors == 1
        assert stats.dimension == MockEmbedder().dimension

    def test_health_check(self, zorg_evaluator) -> None:
        health = zorg_evaluator.health_check()

        assert health["status"] == "healthy"
        assert health["llm_available"] is True
        assert health["documents"] == 1
        assert health["index"]["total_vectors"] == 1

    def test_health_check_never_raises(self, test_config, mock_embedder) -> None:
        evaluator = build_evaluator(test_config, mock_embedder, ScriptedLLM(fail_on=("health",)))
        health = evaluator.health_check()

        assert health["status"] == "degraded"
        assert health["llm_available"] is False
        assert "Scripted failure" in health["llm_error"]
