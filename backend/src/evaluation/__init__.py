from .comparison import compare_evaluations
from .concepts import ConceptAnalysisError, ConceptCoherenceChecker
from .fact_check import FactChecker
from .feedback import generate_detailed_feedback, recommended_actions
from .parsing import ScoringOutcome, parse_scoring_response, scoring_fallback
from .pipeline import VerificationPipeline, VerificationStage
from .reconcile import forced_accuracy, reconcile
from .scoring import LLMScorer

__all__ = [
    "compare_evaluations",
    "ConceptAnalysisError",
    "ConceptCoherenceChecker",
    "FactChecker",
    "generate_detailed_feedback",
    "recommended_actions",
    "ScoringOutcome",
    "parse_scoring_response",
    "scoring_fallback",
    "VerificationPipeline",
    "VerificationStage",
    "forced_accuracy",
    "reconcile",
    "LLMScorer",
]
