from models.chunk import (
    Chunk,
    ChunkingStats,
    ContextBundle,
    Document,
    DocumentStats,
    IndexStats,
    RetrievalResult,
    ScoreBreakdown,
    VectorRecord,
)
from models.evaluation import (
    CRITERIA,
    AccuracyReport,
    CoherenceResult,
    CoherenceStatistics,
    Concept,
    ConceptCoherenceSummary,
    ConceptMatch,
    ContextQuality,
    CriteriaScores,
    DetailedFeedback,
    EvaluationComparison,
    EvaluationMetadata,
    EvaluationOptions,
    EvaluationResult,
    FactCheckResult,
    Feedback,
    Statement,
    StatementSeverity,
)

__all__ = [
    "Chunk",
    "ChunkingStats",
    "ContextBundle",
    "Document",
    "DocumentStats",
    "IndexStats",
    "RetrievalResult",
    "ScoreBreakdown",
    "VectorRecord",
    "CRITERIA",
    "AccuracyReport",
    "CoherenceResult",
    "CoherenceStatistics",
    "Concept",
    "ConceptCoherenceSummary",
    "ConceptMatch",
    "ContextQuality",
    "CriteriaScores",
    "DetailedFeedback",
    "EvaluationComparison",
    "EvaluationMetadata",
    "EvaluationOptions",
    "EvaluationResult",
    "FactCheckResult",
    "Feedback",
    "Statement",
    "StatementSeverity",
]
