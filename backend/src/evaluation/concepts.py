"""Concept coherence: extract concepts from context and transcript, match
them pairwise and classify what is missing, extra or distorted."""

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from adapters import BaseLLM
from errors import (
    EvaluationCancelledError,
    EvaluatorError,
    MalformedModelOutputError,
    UpstreamServiceError,
)
from models.evaluation import (
    CoherenceResult,
    CoherenceStatistics,
    Concept,
    ConceptMatch,
)
from .parsing import parse_concepts, parse_similarity
from .prompts import (
    CONCEPT_SYSTEM_PROMPT,
    SIMILARITY_SYSTEM_PROMPT,
    build_concept_prompt,
    build_similarity_prompt,
)

logger = logging.getLogger(__name__)

PRESENCE_THRESHOLD = 0.6
FAITHFUL_THRESHOLD = 0.8
DEFAULT_MAX_PAIRWISE_CANDIDATES = 5
MAX_FALLBACK_CONCEPTS = 10
MIN_FALLBACK_SENTENCE = 10
FALLBACK_CONCEPT_LENGTH = 50

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


class ConceptAnalysisError(EvaluatorError):
    """The concept-coherence check could not produce a result."""

    status_code = 500


def fallback_concepts(text: str) -> list[Concept]:
    """One concept per sentence longer than 10 characters, first 10 only."""
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text) if len(s.strip()) > MIN_FALLBACK_SENTENCE]
    return [
        Concept(
            concept=sentence[:FALLBACK_CONCEPT_LENGTH],
            context=sentence,
            importance=round(1.0 - idx * 0.1, 2),
        )
        for idx, sentence in enumerate(sentences[:MAX_FALLBACK_CONCEPTS])
    ]


def word_overlap(first: str, second: str) -> float:
    """Jaccard index of lowercase whitespace-separated words."""
    a, b = set(first.lower().split()), set(second.lower().split())
    union = a | b
    return len(a & b) / len(union) if union else 0.0


def distortion_for(similarity: float, document_concept: Concept) -> float:
    if similarity < PRESENCE_THRESHOLD:
        return 0.8 + (1.0 - similarity) * 0.2
    if similarity < FAITHFUL_THRESHOLD:
        return (1.0 - similarity) * document_concept.importance
    return 0.0


def _check_cancel(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise EvaluationCancelledError("Evaluation cancelled during concept check")


class ConceptCoherenceChecker:
    """Independent concept-level comparison of context and transcript.

    Extraction and pairwise similarity are secondary calls: each is issued
    once and falls back to a lexical heuristic on failure. Only the
    ``max_pairwise_candidates`` transcript concepts with the highest word
    overlap are sent to the model for each document concept; the others keep
    their word-overlap score.
    """

    def __init__(
        self,
        llm: BaseLLM,
        presence_threshold: float = PRESENCE_THRESHOLD,
        max_pairwise_candidates: int = DEFAULT_MAX_PAIRWISE_CANDIDATES,
        max_workers: int = 1,
    ):
        self.llm = llm
        self.presence_threshold = presence_threshold
        self.max_pairwise_candidates = max_pairwise_candidates
        self.max_workers = max(1, max_workers)

    def extract_concepts(self, text: str, source: str) -> list[Concept]:
        try:
            raw = self.llm.complete(build_concept_prompt(text), CONCEPT_SYSTEM_PROMPT)
            concepts = parse_concepts(raw)
        except (UpstreamServiceError, MalformedModelOutputError) as e:
            logger.warning(f"Concept extraction from {source} failed ({e}); using sentence split")
            return fallback_concepts(text)

        logger.info(
            f"Extracted {len(concepts)} concepts from {source}: "
            f"{[c.concept for c in concepts[:3]]}"
        )
        return concepts

    def similarity(self, first: Concept, second: Concept) -> float:
        prompt = build_similarity_prompt(
            first.concept, first.context, second.concept, second.context
        )
        try:
            return parse_similarity(self.llm.complete(prompt, SIMILARITY_SYSTEM_PROMPT))
        except (UpstreamServiceError, MalformedModelOutputError) as e:
            logger.warning(f"Similarity call failed ({e}); using word overlap")
            return word_overlap(first.concept, second.concept)

    def _candidates(self, document_concept: Concept, transcript: list[Concept]) -> list[int]:
        key = f"{document_concept.concept} {document_concept.context}"
        ranked = sorted(
            range(len(transcript)),
            key=lambda j: word_overlap(key, f"{transcript[j].concept} {transcript[j].context}"),
            reverse=True,
        )
        return sorted(ranked[: self.max_pairwise_candidates])

    def similarity_matrix(
        self,
        document: list[Concept],
        transcript: list[Concept],
        cancel_event: Optional[threading.Event] = None,
    ) -> list[list[float]]:
        matrix = [
            [word_overlap(d.concept, t.concept) for t in transcript] for d in document
        ]
        pairs = [
            (i, j)
            for i, concept in enumerate(document)
            for j in self._candidates(concept, transcript)
        ]

        def judge(pair: tuple[int, int]) -> float:
            _check_cancel(cancel_event)
            i, j = pair
            return self.similarity(document[i], transcript[j])

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            scores = list(executor.map(judge, pairs))

        for (i, j), score in zip(pairs, scores):
            matrix[i][j] = score
        logger.debug(f"Judged {len(pairs)} concept pairs with the model")
        return matrix

    def match(
        self,
        document: list[Concept],
        transcript: list[Concept],
        matrix: list[list[float]],
    ) -> list[tuple[ConceptMatch, Optional[int]]]:
        matches = []
        for i, concept in enumerate(document):
            best_index: Optional[int] = None
            best = 0.0
            for j, score in enumerate(matrix[i]):
                if score > best:
                    best, best_index = score, j

            if best_index is None:
                matches.append(
                    (ConceptMatch(document_concept=concept, distortion=1.0), None)
                )
                continue

            matches.append(
                (
                    ConceptMatch(
                        document_concept=concept,
                        transcript_concept=transcript[best_index],
                        similarity=best,
                        present=best >= self.presence_threshold,
                        distortion=distortion_for(best, concept),
                    ),
                    best_index,
                )
            )
        return matches

    def check(
        self,
        context: str,
        transcript: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> CoherenceResult:
        """Run the full concept comparison.

        Raises:
            ConceptAnalysisError: The comparison could not be completed.
            EvaluationCancelledError: ``cancel_event`` was set.
        """
        try:
            _check_cancel(cancel_event)
            document_concepts = self.extract_concepts(context, "context")
            _check_cancel(cancel_event)
            transcript_concepts = self.extract_concepts(transcript, "transcript")
            matrix = self.similarity_matrix(
                document_concepts, transcript_concepts, cancel_event
            )
            return self._classify(
                document_concepts,
                transcript_concepts,
                self.match(document_concepts, transcript_concepts, matrix),
            )
        except EvaluationCancelledError:
            raise
        except Exception as e:
            raise ConceptAnalysisError(f"Concept coherence analysis failed: {e}") from e

    def _classify(
        self,
        document: list[Concept],
        transcript: list[Concept],
        indexed_matches: list[tuple[ConceptMatch, Optional[int]]],
    ) -> CoherenceResult:
        matches = [m for m, _ in indexed_matches]
        consumed = {j for m, j in indexed_matches if m.present and j is not None}

        missing = [m.document_concept for m in matches if not m.present]
        extra = [c for j, c in enumerate(transcript) if j not in consumed]
        distorted = [
            m
            for m in matches
            if m.transcript_concept is not None
            and m.similarity < FAITHFUL_THRESHOLD
            and m.distortion > 0
        ]

        total = len(document)
        matched = len(matches) - len(missing)
        coverage = matched / total * 100 if total else 100.0
        average_similarity = (
            sum(m.similarity for m in matches) / len(matches) if matches else 0.0
        )

        fidelity = coverage
        fidelity -= len(extra) / (total or 1) * 30
        fidelity -= sum(m.distortion * 10 for m in matches if m.present) / (matched or 1)
        if average_similarity > 0.8:
            fidelity += 5
        fidelity = min(100.0, max(0.0, fidelity))

        statistics = CoherenceStatistics(
            total_document_concepts=total,
            total_transcript_concepts=len(transcript),
            matched_concepts=matched,
            missing_count=len(missing),
            extra_count=len(extra),
            distorted_count=len(distorted),
            coverage_percentage=coverage,
            fidelity_score=fidelity,
            average_similarity=average_similarity,
        )
        logger.info(
            f"Concept coherence: {matched}/{total} matched, {len(missing)} missing, "
            f"{len(extra)} extra, {len(distorted)} distorted, fidelity {fidelity:.1f}"
        )
        return CoherenceResult(
            matches=matches,
            missing=missing,
            extra=extra,
            distorted=distorted,
            statistics=statistics,
        )
