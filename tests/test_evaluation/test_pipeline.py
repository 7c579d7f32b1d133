import threading
from typing import Any

import pytest

from errors import EvaluationCancelledError
from evaluation import LLMScorer, VerificationPipeline, VerificationStage
from models.chunk import ContextBundle, RetrievalResult
from conftest import DEFAULT_SCORES, ScriptedLLM, ZORG_DOCUMENT, ZORG_ID

TRANSCRIPT = "The sky on planet Zorg is green."


class ConceptCrashLLM(ScriptedLLM):
    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        if self._route(messages[-1]["content"]) == "concepts":
            raise RuntimeError("concept model crashed")
        return super().chat(messages, **kwargs)


@pytest.fixture
def bundle() -> ContextBundle:
    return ContextBundle(
        relevant_chunks=[
            RetrievalResult(
                id=f"{ZORG_ID}_chunk_000", document_id=ZORG_ID, text=ZORG_DOCUMENT, score=0.8
            )
        ],
        combined_text=ZORG_DOCUMENT,
        total_score=0.8,
    )


def test_concept_check_failure_keeps_model_scores(test_config, bundle) -> None:
    pipeline = VerificationPipeline.from_config(test_config, ConceptCrashLLM())
    result = pipeline.run(TRANSCRIPT, ZORG_ID, bundle)

    assert result.metadata.concept_check_failed is True
    assert result.metadata.stages == ["retrieved", "scored", "finalized"]
    assert result.criteria == result.llm_criteria
    assert result.coherence is None
    assert result.metadata.concept_coherence is None


def test_parse_failure_gives_neutral_scores(test_config, bundle) -> None:
    llm = ScriptedLLM(scoring="Unable to comply.")
    result = VerificationPipeline.from_config(test_config, llm).run(TRANSCRIPT, ZORG_ID, bundle)

    assert result.metadata.parsing_failed is True
    assert result.llm_criteria.accuracy == 70
    assert result.overall_score == 70
    assert result.metadata.stages[-1] == VerificationStage.FINALIZED.value


def test_without_coherence_checker(bundle) -> None:
    llm = ScriptedLLM()
    result = VerificationPipeline(LLMScorer(llm, retry_backoff=0.0)).run(
        TRANSCRIPT, ZORG_ID, bundle
    )

    assert result.metadata.stages == ["retrieved", "scored", "finalized"]
    assert result.metadata.concept_check_failed is False
    assert result.criteria.accuracy == DEFAULT_SCORES["accuracy"]
    assert llm.routes_called() == ["scoring"]


def test_context_quality(test_config, bundle) -> None:
    result = VerificationPipeline.from_config(test_config, ScriptedLLM()).run(
        TRANSCRIPT, ZORG_ID, bundle
    )

    quality = result.metadata.context_quality
    assert quality.chunks_used == 1
    assert quality.total_score == 0.8
    assert quality.average_score == 0.8


def test_cancelled_before_any_call(test_config, bundle) -> None:
    llm = ScriptedLLM()
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(EvaluationCancelledError):
        VerificationPipeline.from_config(test_config, llm).run(
            TRANSCRIPT, ZORG_ID, bundle, cancel_event=cancel
        )
    assert llm.calls == []


def test_fact_check_without_checker_is_skipped(bundle) -> None:
    result = VerificationPipeline(LLMScorer(ScriptedLLM(), retry_backoff=0.0)).run(
        TRANSCRIPT, ZORG_ID, bundle, fact_check=True
    )
    assert result.fact_check is None
