"""Data models produced by the verification pipeline."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CRITERIA = ("accuracy", "clarity", "completeness", "coherence", "fluency")


class Concept(BaseModel):
    """A short phrase representing one idea, with an importance weight."""

    concept: str
    context: str = ""
    importance: float = Field(default=0.5, ge=0.0, le=1.0)


class ConceptMatch(BaseModel):
    """A document concept paired with its best transcript counterpart.

    ``transcript_concept`` is ``None`` when the transcript had no concepts
    to compare against.
    """

    document_concept: Concept
    transcript_concept: Optional[Concept] = None
    similarity: float = 0.0
    present: bool = False
    distortion: float = 0.0


class CoherenceStatistics(BaseModel):
    total_document_concepts: int
    total_transcript_concepts: int
    matched_concepts: int
    missing_count: int
    extra_count: int
    distorted_count: int
    coverage_percentage: float
    fidelity_score: float
    average_similarity: float


class CoherenceResult(BaseModel):
    """Outcome of the concept-coherence check."""

    matches: list[ConceptMatch]
    missing: list[Concept]
    extra: list[Concept]
    distorted: list[ConceptMatch]
    statistics: CoherenceStatistics


class CriteriaScores(BaseModel):
    """Five criterion scores, each an integer in [0, 100]."""

    accuracy: int
    clarity: int
    completeness: int
    coherence: int
    fluency: int

    @field_validator("*", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> int:
        return int(round(min(100.0, max(0.0, float(value)))))

    def mean(self) -> int:
        values = [getattr(self, name) for name in CRITERIA]
        return int(round(sum(values) / len(values)))

    def weakest(self) -> str:
        return min(CRITERIA, key=lambda name: getattr(self, name))


class Feedback(BaseModel):
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    detailed_feedback: str = ""


class ContextQuality(BaseModel):
    chunks_used: int
    total_score: float
    average_score: float


class ConceptCoherenceSummary(BaseModel):
    """Concept statistics attached to the evaluation metadata."""

    coverage_percentage: float
    fidelity_score: float
    missing_count: int
    extra_count: int
    distorted_count: int
    forced_accuracy: int


class EvaluationMetadata(BaseModel):
    document_id: str
    transcript_length: int
    chunks_used: int
    started_at: datetime
    finished_at: datetime
    processing_time_ms: int
    context_quality: ContextQuality
    stages: list[str] = Field(default_factory=list)
    parsing_failed: bool = False
    concept_check_failed: bool = False
    concept_coherence: Optional[ConceptCoherenceSummary] = None


class StatementSeverity(str, Enum):
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    CRITICAL = "critical"


SEVERITY_PENALTIES = {
    StatementSeverity.NONE: 0,
    StatementSeverity.MINOR: 3,
    StatementSeverity.MODERATE: 10,
    StatementSeverity.CRITICAL: 20,
}


class Statement(BaseModel):
    text: str
    type: str = "factual"


class FactCheckResult(BaseModel):
    statement: str
    is_accurate: bool
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    severity: StatementSeverity = StatementSeverity.NONE
    evidence: Optional[str] = None
    discrepancy: Optional[str] = None


class AccuracyReport(BaseModel):
    """Separate accuracy estimate from the statement-level fact check."""

    score: int
    total_statements: int
    accurate_statements: int
    results: list[FactCheckResult]
    critical_errors: list[str] = Field(default_factory=list)
    moderate_errors: list[str] = Field(default_factory=list)
    minor_errors: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


class EvaluationResult(BaseModel):
    """Terminal artifact of one evaluation call."""

    model_config = ConfigDict(frozen=True)

    criteria: CriteriaScores
    llm_criteria: CriteriaScores
    overall_score: int
    feedback: Feedback
    metadata: EvaluationMetadata
    coherence: Optional[CoherenceResult] = None
    fact_check: Optional[AccuracyReport] = None


class EvaluationOptions(BaseModel):
    """Per-call overrides for ``evaluate``."""

    max_relevant_chunks: Optional[int] = Field(default=None, ge=1)
    min_similarity_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    fact_check: Optional[bool] = None


class DetailedFeedback(BaseModel):
    feedback: str
    focus_area: Optional[str] = None
    recommended_actions: list[str] = Field(default_factory=list)
    context_total_score: float = 0.0


class EvaluationComparison(BaseModel):
    evaluation_count: int
    average_scores: dict[str, float]
    trends: dict[str, str] = Field(default_factory=dict)
    recommendations: list[str] = Field(default_factory=list)
