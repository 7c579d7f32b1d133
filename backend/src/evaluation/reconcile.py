"""Reconciliation of the model's self-reported scores with concept statistics.

Accuracy and completeness are capped by deterministic values computed from
the concept comparison; the other criteria are kept as reported.
"""

from dataclasses import dataclass

from models.evaluation import (
    CoherenceResult,
    ConceptCoherenceSummary,
    CriteriaScores,
)

MISSING_WEIGHT = 60
EXTRA_PENALTY = 15
DISTORTION_WEIGHT = 10
HIGH_COVERAGE = 90
HIGH_COVERAGE_BONUS = 5
MAX_NAMED_CONCEPTS = 5


@dataclass
class Reconciliation:
    criteria: CriteriaScores
    forced_accuracy: int
    improvements: list[str]
    summary: ConceptCoherenceSummary


def forced_accuracy(coherence: CoherenceResult) -> float:
    """Accuracy derived only from missing, extra and distorted concepts."""
    stats = coherence.statistics
    score = 100.0
    if stats.total_document_concepts:
        score -= MISSING_WEIGHT * stats.missing_count / stats.total_document_concepts
    score -= EXTRA_PENALTY * stats.extra_count
    score -= sum(m.distortion * DISTORTION_WEIGHT for m in coherence.distorted)
    if stats.coverage_percentage > HIGH_COVERAGE:
        score += HIGH_COVERAGE_BONUS
    return min(100.0, max(0.0, score))


def _name_list(names: list[str]) -> str:
    shown = ", ".join(f'"{name}"' for name in names[:MAX_NAMED_CONCEPTS])
    hidden = len(names) - MAX_NAMED_CONCEPTS
    return f"{shown} (+{hidden} more)" if hidden > 0 else shown


def concept_feedback(coherence: CoherenceResult) -> list[str]:
    """Improvement bullets naming the concepts involved."""
    bullets = []
    if coherence.missing:
        bullets.append(
            "Missing concepts from the document: "
            + _name_list([c.concept for c in coherence.missing])
        )
    if coherence.extra:
        bullets.append(
            "Concepts not found in the document (do not add outside information): "
            + _name_list([c.concept for c in coherence.extra])
        )
    if coherence.distorted:
        bullets.append(
            "Distorted concepts: "
            + _name_list(
                [
                    f"{m.document_concept.concept} -> {m.transcript_concept.concept}"
                    for m in coherence.distorted
                    if m.transcript_concept is not None
                ]
            )
        )
    return bullets


def reconcile(llm_criteria: CriteriaScores, coherence: CoherenceResult) -> Reconciliation:
    forced = round(forced_accuracy(coherence))
    coverage = coherence.statistics.coverage_percentage

    criteria = llm_criteria.model_copy(
        update={
            "accuracy": min(llm_criteria.accuracy, forced),
            "completeness": min(llm_criteria.completeness, int(coverage)),
        }
    )
    summary = ConceptCoherenceSummary(
        coverage_percentage=coverage,
        fidelity_score=coherence.statistics.fidelity_score,
        missing_count=coherence.statistics.missing_count,
        extra_count=coherence.statistics.extra_count,
        distorted_count=coherence.statistics.distorted_count,
        forced_accuracy=forced,
    )
    return Reconciliation(
        criteria=criteria,
        forced_accuracy=forced,
        improvements=concept_feedback(coherence),
        summary=summary,
    )
