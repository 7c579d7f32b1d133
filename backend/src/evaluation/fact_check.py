"""Statement-level fact check.

Produces an accuracy estimate that is reported next to the reconciled
scores and never merged into them.
"""

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from adapters import BaseLLM
from errors import EvaluationCancelledError, MalformedModelOutputError, UpstreamServiceError
from models.evaluation import (
    SEVERITY_PENALTIES,
    AccuracyReport,
    FactCheckResult,
    Statement,
    StatementSeverity,
)
from .parsing import parse_fact_check, parse_statements
from .prompts import (
    FACT_CHECK_SYSTEM_PROMPT,
    STATEMENT_SYSTEM_PROMPT,
    build_fact_check_prompt,
    build_statement_prompt,
)

logger = logging.getLogger(__name__)

MIN_STATEMENT_LENGTH = 10
MAX_SUMMARY_ITEMS = 5
STRENGTH_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.3

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def fallback_statements(transcript: str) -> list[Statement]:
    sentences = (s.strip() for s in _SENTENCE_SPLIT.split(transcript))
    return [Statement(text=s) for s in sentences if len(s) > MIN_STATEMENT_LENGTH]


def build_report(results: list[FactCheckResult]) -> AccuracyReport:
    accurate = [r for r in results if r.is_accurate]
    base = len(accurate) / len(results) * 100 if results else 100.0
    penalty = sum(SEVERITY_PENALTIES[r.severity] for r in results if not r.is_accurate)

    def describe(severity: StatementSeverity) -> list[str]:
        return [
            f'"{r.statement}" -> {r.discrepancy or "not supported by the document"}'
            for r in results
            if r.severity is severity
        ][:MAX_SUMMARY_ITEMS]

    return AccuracyReport(
        score=round(min(100.0, max(0.0, base - penalty))),
        total_statements=len(results),
        accurate_statements=len(accurate),
        results=results,
        critical_errors=describe(StatementSeverity.CRITICAL),
        moderate_errors=describe(StatementSeverity.MODERATE),
        minor_errors=describe(StatementSeverity.MINOR),
        strengths=[
            f'Verified: "{r.statement[:60]}"'
            for r in accurate
            if r.confidence > STRENGTH_CONFIDENCE
        ][:MAX_SUMMARY_ITEMS],
    )


class FactChecker:
    def __init__(self, llm: BaseLLM, max_workers: int = 1):
        self.llm = llm
        self.max_workers = max(1, max_workers)

    def extract_statements(self, transcript: str) -> list[Statement]:
        try:
            raw = self.llm.complete(build_statement_prompt(transcript), STATEMENT_SYSTEM_PROMPT)
            statements = parse_statements(raw)
        except (UpstreamServiceError, MalformedModelOutputError) as e:
            logger.warning(f"Statement extraction failed ({e}); splitting on punctuation")
            return fallback_statements(transcript)
        return [s for s in statements if s.type == "factual"]

    def check_statement(self, statement: str, context: str) -> FactCheckResult:
        try:
            raw = self.llm.complete(
                build_fact_check_prompt(statement, context), FACT_CHECK_SYSTEM_PROMPT
            )
            return parse_fact_check(raw, statement)
        except (UpstreamServiceError, MalformedModelOutputError) as e:
            logger.warning(f"Fact check failed for {statement[:50]!r} ({e}); assuming accurate")
            return FactCheckResult(
                statement=statement, is_accurate=True, confidence=FALLBACK_CONFIDENCE
            )

    def check(
        self,
        transcript: str,
        context_texts: list[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> AccuracyReport:
        statements = self.extract_statements(transcript)
        context = "\n\n---\n\n".join(
            f"[Chunk {i + 1}]\n{text}" for i, text in enumerate(context_texts)
        )

        def verify(statement: Statement) -> FactCheckResult:
            if cancel_event is not None and cancel_event.is_set():
                raise EvaluationCancelledError("Evaluation cancelled during fact check")
            return self.check_statement(statement.text, context)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            results = list(executor.map(verify, statements))

        report = build_report(results)
        logger.info(
            f"Fact check: {report.accurate_statements}/{report.total_statements} "
            f"statements accurate, score {report.score}"
        )
        return report
