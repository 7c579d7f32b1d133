"""Hybrid similarity: cosine blended with two lexical signals.

``hybrid = 0.6 * cosine + 0.2 * jaccard + 0.2 * semantic``
"""

import logging
import math
from typing import Sequence

import numpy as np

from language import ENGLISH, LanguageProfile, tokenize, word_set
from models.chunk import ScoreBreakdown

logger = logging.getLogger(__name__)

COSINE_WEIGHT = 0.6
JACCARD_WEIGHT = 0.2
SEMANTIC_WEIGHT = 0.2

EXACT_MATCH = 1.0
SYNONYM_MATCH = 0.8
STEM_MATCH = 0.5
MIN_STEM_LENGTH = 4
SHARED_STEM_LENGTH = 5


def cosine_similarity(first: Sequence[float], second: Sequence[float]) -> float:
    """Cosine similarity clamped to [0, 1].

    Empty vectors, mismatched dimensions, zero norms and non-finite values
    score 0 and are logged instead of raising.
    """
    if len(first) == 0 or len(second) == 0:
        logger.warning("Cosine guard: empty vector")
        return 0.0
    if len(first) != len(second):
        logger.warning(f"Cosine guard: dimension mismatch {len(first)} != {len(second)}")
        return 0.0

    a = np.asarray(first, dtype=np.float64)
    b = np.asarray(second, dtype=np.float64)
    if not (np.isfinite(a).all() and np.isfinite(b).all()):
        logger.warning("Cosine guard: non-finite vector component")
        return 0.0

    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0 or not math.isfinite(norm):
        logger.warning("Cosine guard: zero or non-finite norm")
        return 0.0

    value = float(np.dot(a, b) / norm)
    if not math.isfinite(value):
        logger.warning("Cosine guard: non-finite similarity")
        return 0.0
    return min(1.0, max(0.0, value))


def jaccard_similarity(first: str, second: str) -> float:
    """Jaccard index of the word sets (tokens longer than 2 characters)."""
    a, b = word_set(first), word_set(second)
    if not a and not b:
        return 1.0 if first.strip() and first.strip() == second.strip() else 0.0
    union = a | b
    return len(a & b) / len(union) if union else 0.0


def _shares_stem(first: str, second: str) -> bool:
    shorter, longer = sorted((first, second), key=len)
    if len(shorter) >= MIN_STEM_LENGTH and longer.startswith(shorter):
        return True
    return (
        len(shorter) >= SHARED_STEM_LENGTH
        and first[:SHARED_STEM_LENGTH] == second[:SHARED_STEM_LENGTH]
    )


def semantic_overlap(
    query: str, text: str, profile: LanguageProfile = ENGLISH
) -> float:
    """Synonym and stem aware term overlap in [0, 1].

    Each non-stopword query term contributes its best match against the
    text: 1.0 exact, 0.8 synonym, 0.5 shared stem. The score is the mean
    contribution over query terms.
    """
    terms = [t for t in dict.fromkeys(tokenize(query)) if t not in profile.stopwords]
    if not terms:
        return 1.0 if query.strip() and query.strip() == text.strip() else 0.0
    candidates = set(tokenize(text))
    if not candidates:
        return 0.0

    total = 0.0
    for term in terms:
        if term in candidates:
            total += EXACT_MATCH
        elif any(profile.are_synonyms(term, word) for word in candidates):
            total += SYNONYM_MATCH
        elif any(_shares_stem(term, word) for word in candidates):
            total += STEM_MATCH
    return min(1.0, total / len(terms))


class HybridScorer:
    """Combines cosine, Jaccard and semantic overlap into one ranking score."""

    def __init__(
        self,
        profile: LanguageProfile = ENGLISH,
        cosine_weight: float = COSINE_WEIGHT,
        jaccard_weight: float = JACCARD_WEIGHT,
        semantic_weight: float = SEMANTIC_WEIGHT,
    ):
        total = cosine_weight + jaccard_weight + semantic_weight
        if not math.isclose(total, 1.0):
            raise ValueError(f"Hybrid weights must sum to 1, got {total}")
        self.profile = profile
        self.cosine_weight = cosine_weight
        self.jaccard_weight = jaccard_weight
        self.semantic_weight = semantic_weight

    def breakdown(
        self,
        query_vector: Sequence[float],
        query_text: str,
        vector: Sequence[float],
        text: str,
    ) -> ScoreBreakdown:
        return ScoreBreakdown(
            cosine=cosine_similarity(query_vector, vector),
            jaccard=jaccard_similarity(query_text, text),
            semantic=semantic_overlap(query_text, text, self.profile),
        )

    def combine(self, breakdown: ScoreBreakdown) -> float:
        score = (
            self.cosine_weight * breakdown.cosine
            + self.jaccard_weight * breakdown.jaccard
            + self.semantic_weight * breakdown.semantic
        )
        return min(1.0, max(0.0, score))

    def score(
        self,
        query_vector: Sequence[float],
        query_text: str,
        vector: Sequence[float],
        text: str,
    ) -> tuple[float, ScoreBreakdown]:
        breakdown = self.breakdown(query_vector, query_text, vector, text)
        return self.combine(breakdown), breakdown
