from typing import Optional

from adapters import BaseLLM
from errors import InputValidationError
from models.chunk import ContextBundle
from models.evaluation import CRITERIA, DetailedFeedback
from .prompts import FEEDBACK_SYSTEM_PROMPT, build_feedback_prompt, format_context

LOW_RELEVANCE = 0.3
HIGH_RELEVANCE = 0.8

FOCUS_AREA_ACTIONS = {
    "accuracy": [
        "Reread the document carefully before presenting",
        "Take notes on the key points while reading",
        "Double-check the specific facts and figures you mention",
    ],
    "clarity": [
        "Structure the talk with an introduction, development and conclusion",
        "Use simple, direct language",
        "Explain technical terms when you introduce them",
    ],
    "completeness": [
        "Make a checklist of the document's main topics",
        "Give each important section enough time",
        "Add a specific example for every point you cover",
    ],
    "coherence": [
        "Use logical connectives between sections",
        "Keep one clear thread through the whole talk",
        "Avoid jumping between unrelated topics",
    ],
    "fluency": [
        "Rehearse the presentation out loud before recording",
        "Speak at a moderate pace and pause deliberately",
        "Prepare the transitions between sections in advance",
    ],
}


def validate_focus_area(focus_area: Optional[str]) -> None:
    if focus_area is not None and focus_area not in CRITERIA:
        raise InputValidationError(
            f"Unknown focus area: {focus_area}. Expected one of {list(CRITERIA)}"
        )


def recommended_actions(
    focus_area: Optional[str] = None, context_score: Optional[float] = None
) -> list[str]:
    """Deterministic actions for a focus area and the context relevance."""
    actions = list(FOCUS_AREA_ACTIONS.get(focus_area, [])) if focus_area else []
    if context_score is not None:
        if context_score < LOW_RELEVANCE:
            actions.append("Stick closely to the content of the uploaded document")
            actions.append("Reread the document to understand its key content")
        elif context_score > HIGH_RELEVANCE:
            actions.append("Excellent alignment with the document, keep it up")
    return actions


def generate_detailed_feedback(
    llm: BaseLLM,
    transcript: str,
    bundle: ContextBundle,
    focus_area: Optional[str] = None,
) -> DetailedFeedback:
    """Narrative coaching feedback plus recommended actions.

    Upstream errors from the model propagate.
    """
    validate_focus_area(focus_area)
    context = format_context([chunk.text for chunk in bundle.relevant_chunks])
    feedback = llm.complete(
        build_feedback_prompt(context, transcript, focus_area), FEEDBACK_SYSTEM_PROMPT
    )
    return DetailedFeedback(
        feedback=feedback.strip(),
        focus_area=focus_area,
        recommended_actions=recommended_actions(focus_area, bundle.total_score),
        context_total_score=bundle.total_score,
    )
