"""Permissive parsing of model output.

The model is asked for JSON but may wrap it in prose or code fences, so the
span from the first opening bracket to the last closing bracket is parsed.
The result is validated into typed models only after required fields have
been checked.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from errors import MalformedModelOutputError
from models.evaluation import (
    CRITERIA,
    Concept,
    CriteriaScores,
    FactCheckResult,
    Feedback,
    Statement,
    StatementSeverity,
)

logger = logging.getLogger(__name__)

FALLBACK_SCORE = 70

CRITERIA_ALIASES: dict[str, tuple[str, ...]] = {
    "accuracy": ("accuracy", "accuratezza"),
    "clarity": ("clarity", "chiarezza"),
    "completeness": ("completeness", "completezza"),
    "coherence": ("coherence", "coerenza"),
    "fluency": ("fluency", "fluidita", "fluidità"),
}
STRENGTH_KEYS = ("strengths", "punti_forza")
IMPROVEMENT_KEYS = ("improvements", "miglioramenti")
FEEDBACK_KEYS = ("detailed_feedback", "detailedFeedback", "feedback_dettagliato")

_CODE_FENCE = re.compile(r"```(?:json)?")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?|-?\.\d+")


def _strip_fences(raw: str) -> str:
    return _CODE_FENCE.sub("", raw or "")


def _extract_span(raw: str, opening: str, closing: str) -> str:
    text = _strip_fences(raw)
    start = text.find(opening)
    end = text.rfind(closing)
    if start == -1 or end <= start:
        raise MalformedModelOutputError(
            f"No {opening}...{closing} span in model output", raw_output=raw
        )
    return text[start : end + 1]


def extract_json_object(raw: str) -> dict[str, Any]:
    """Parse the first ``{`` to last ``}`` span of ``raw`` as a JSON object."""
    span = _extract_span(raw, "{", "}")
    try:
        value = json.loads(span)
    except json.JSONDecodeError as e:
        raise MalformedModelOutputError(f"Invalid JSON: {e}", raw_output=raw) from e
    if not isinstance(value, dict):
        raise MalformedModelOutputError("Expected a JSON object", raw_output=raw)
    return value


def extract_json_list(raw: str, key: str) -> list[Any]:
    """Return the list under ``key`` in a JSON object, or a bare JSON array."""
    text = _strip_fences(raw)
    brace, bracket = text.find("{"), text.find("[")
    if brace != -1 and (bracket == -1 or brace < bracket):
        value = extract_json_object(raw).get(key)
        if not isinstance(value, list):
            raise MalformedModelOutputError(
                f"Missing list field '{key}'", raw_output=raw
            )
        return value

    span = _extract_span(raw, "[", "]")
    try:
        value = json.loads(span)
    except json.JSONDecodeError as e:
        raise MalformedModelOutputError(f"Invalid JSON: {e}", raw_output=raw) from e
    if not isinstance(value, list):
        raise MalformedModelOutputError("Expected a JSON array", raw_output=raw)
    return value


def _first_present(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a score")
    number = float(value)
    if math.isnan(number):
        raise ValueError("NaN score")
    return number


def _as_string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


@dataclass
class ScoringOutcome:
    """Parsed primary scoring response."""

    criteria: CriteriaScores
    feedback: Feedback
    parsing_failed: bool = False
    raw_output: str = field(default="", repr=False)


def scoring_fallback(raw_output: str = "") -> ScoringOutcome:
    """Neutral evaluation used when the scoring response cannot be parsed."""
    return ScoringOutcome(
        criteria=CriteriaScores(**{name: FALLBACK_SCORE for name in CRITERIA}),
        feedback=Feedback(
            strengths=["Content present"],
            improvements=["Evaluation parsing failed"],
            detailed_feedback=(
                "The evaluation could not be parsed, so neutral scores were "
                "assigned. Please try again."
            ),
        ),
        parsing_failed=True,
        raw_output=raw_output,
    )


def parse_scoring_response(raw: str) -> ScoringOutcome:
    """Parse the five criteria and the feedback fields.

    Raises:
        MalformedModelOutputError: No JSON object, or a criterion is missing
            or not numeric.
    """
    data = extract_json_object(raw)

    scores: dict[str, float] = {}
    for name, aliases in CRITERIA_ALIASES.items():
        value = _first_present(data, aliases)
        if value is None:
            raise MalformedModelOutputError(
                f"Missing criterion '{name}'", raw_output=raw
            )
        try:
            scores[name] = _as_float(value)
        except (TypeError, ValueError) as e:
            raise MalformedModelOutputError(
                f"Criterion '{name}' is not a number: {value!r}", raw_output=raw
            ) from e

    detailed = _first_present(data, FEEDBACK_KEYS)
    feedback = Feedback(
        strengths=_as_string_list(_first_present(data, STRENGTH_KEYS)),
        improvements=_as_string_list(_first_present(data, IMPROVEMENT_KEYS)),
        detailed_feedback=str(detailed) if detailed else "Feedback not available",
    )
    return ScoringOutcome(
        criteria=CriteriaScores(**scores), feedback=feedback, raw_output=raw
    )


def _clamp_unit(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


def parse_similarity(raw: str) -> float:
    """Read the first number in ``raw`` as a similarity in [0, 1]."""
    match = _NUMBER.search(raw or "")
    if not match:
        raise MalformedModelOutputError("No similarity value in model output", raw_output=raw)
    return _clamp_unit(float(match.group(0)))


def parse_concepts(raw: str) -> list[Concept]:
    """Parse a concept list; invalid entries are skipped."""
    concepts = []
    for item in extract_json_list(raw, "concepts"):
        if not isinstance(item, dict):
            continue
        name = str(item.get("concept") or "").strip()
        if not name:
            continue
        context = item.get("context") or ""
        if not context and isinstance(item.get("sentences"), list):
            context = " ".join(str(s) for s in item["sentences"])
        try:
            importance = _clamp_unit(_as_float(item.get("importance", 0.5)))
        except (TypeError, ValueError):
            importance = 0.5
        concepts.append(Concept(concept=name, context=str(context), importance=importance))
    return concepts


def parse_statements(raw: str) -> list[Statement]:
    statements = []
    for item in extract_json_list(raw, "statements"):
        if isinstance(item, str):
            text, kind = item, "factual"
        elif isinstance(item, dict):
            text, kind = str(item.get("text") or ""), str(item.get("type") or "factual")
        else:
            continue
        if text.strip():
            statements.append(Statement(text=text.strip(), type=kind))
    return statements


def _as_text(value: Any) -> str | None:
    """Flatten a free-text field the model may return as a list or scalar."""
    if value is None:
        return None
    if isinstance(value, list):
        text = " ".join(str(item) for item in value if item is not None)
    elif isinstance(value, dict):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = str(value)
    return text.strip() or None


def parse_fact_check(raw: str, statement: str) -> FactCheckResult:
    data = extract_json_object(raw)
    accurate = _first_present(data, ("is_accurate", "isAccurate"))
    if isinstance(accurate, str):
        accurate = accurate.strip().lower() in ("true", "yes")
    try:
        confidence = _clamp_unit(_as_float(data.get("confidence", 0.5)))
    except (TypeError, ValueError):
        confidence = 0.5
    try:
        severity = StatementSeverity(str(data.get("severity") or "none").lower())
    except ValueError:
        severity = StatementSeverity.NONE

    try:
        return FactCheckResult(
            statement=statement,
            is_accurate=True if accurate is None else bool(accurate),
            confidence=confidence,
            severity=severity,
            evidence=_as_text(_first_present(data, ("evidence", "evidenceInDocument"))),
            discrepancy=_as_text(data.get("discrepancy")),
        )
    except ValidationError as e:
        raise MalformedModelOutputError(
            f"Fact check verdict has an invalid shape: {e}", raw_output=raw
        ) from e
