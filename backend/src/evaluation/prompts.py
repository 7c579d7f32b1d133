"""Prompt templates for the verification pipeline.

Every response is expected to contain one JSON value; the parsers take the
span from the first opening bracket to the last closing one.
"""

from typing import Optional

SCORING_SYSTEM_PROMPT = """You are a strict examiner of oral presentations. You score a presentation ONLY against the reference context you are given.

Scoring rules:
- Information that is not present in the reference context counts as WRONG, even if it is true in the real world.
- Never correct the reference context. If the context says something unusual, the context is right.
- Paraphrases that keep the meaning are fine; changed facts, numbers, names or colours are errors.

Criteria (integers 0-100):
1. accuracy: how faithfully the presentation reflects the context
2. clarity: how understandable and well structured it is
3. completeness: how much of the context's key content is covered
4. coherence: how logical the flow of the speech is
5. fluency: how natural and smooth the delivery is

Always answer with a single valid JSON object:
{
  "accuracy": <score>,
  "clarity": <score>,
  "completeness": <score>,
  "coherence": <score>,
  "fluency": <score>,
  "strengths": ["...", "..."],
  "improvements": ["...", "..."],
  "detailed_feedback": "..."
}"""

SCORING_PROMPT = """Score this presentation against the reference context.

REFERENCE CONTEXT:
{context}

PRESENTATION TRANSCRIPT:
{transcript}

Apply the rubric and return the JSON object only."""

CONCEPT_SYSTEM_PROMPT = (
    "You are an expert in conceptual analysis. Extract concepts precisely and "
    "at a fine grain. Return ONLY valid JSON, no extra text."
)

CONCEPT_PROMPT = """Extract all the main concepts discussed in the text below.

For each concept give:
1. a short name (at most 5 words)
2. one sentence describing it in context
3. an importance score between 0.0 and 1.0 (how central it is to the text)

TEXT TO ANALYZE:
<<<
{text}
>>>

Instructions:
- Be specific: prefer "rising sea levels" over "sea".
- Keep details such as numbers, colours and names inside the concept name.
- Every concept must be distinct.

Return ONLY this JSON:
{{"concepts": [{{"concept": "...", "context": "...", "importance": 0.9}}]}}"""

SIMILARITY_SYSTEM_PROMPT = (
    "You are an expert in semantic analysis. Judge conceptual similarity "
    "precisely. Answer ONLY with a number."
)

SIMILARITY_PROMPT = """Compare these two concepts and rate how semantically similar they are.

CONCEPT 1: "{first}"
Context: {first_context}

CONCEPT 2: "{second}"
Context: {second_context}

Answer with a single number between 0.0 and 1.0:
- 1.0 identical or equivalent
- 0.8-0.9 same essence
- 0.6-0.7 related but with differences
- 0.4-0.5 loosely related
- 0.0-0.3 different or unrelated (including contradicting facts)"""

STATEMENT_SYSTEM_PROMPT = (
    "You are an expert text analyst. Extract factual claims and ignore filler "
    "and subjective opinions."
)

STATEMENT_PROMPT = """Identify every distinct FACTUAL STATEMENT in this transcript.

TRANSCRIPT:
{transcript}

Extract facts, figures, names, dates and specific claims. Ignore filler words,
greetings and transitions. Each statement must be a complete, verifiable sentence.

Answer with JSON:
{{"statements": [{{"text": "...", "type": "factual"}}]}}"""

FACT_CHECK_SYSTEM_PROMPT = (
    "You are a rigorous fact-checker. Check ONLY whether the claim is supported "
    "by the given document. Do NOT use outside knowledge."
)

FACT_CHECK_PROMPT = """Verify whether this STATEMENT is supported by the DOCUMENT.

DOCUMENT (the only source of truth):
{context}

STATEMENT:
"{statement}"

Answer with JSON:
{{
  "is_accurate": true or false,
  "confidence": 0.0-1.0,
  "evidence": "verbatim quote from the document or null",
  "discrepancy": "short description of the mismatch or null",
  "severity": "none" | "minor" | "moderate" | "critical"
}}

Severity: none = accurate; minor = insignificant difference; moderate = partly
wrong; critical = false or the opposite of the document. A claim that is absent
from the document is not accurate, even if it is true."""

FEEDBACK_SYSTEM_PROMPT = """You are an experienced public speaking coach. Give constructive, specific feedback that helps improve the presentation.

Your feedback must be specific and actionable, positive but honest, and based on the reference document."""

FEEDBACK_PROMPT = """Give detailed coaching feedback to improve this presentation.

REFERENCE DOCUMENT:
{context}

PRESENTATION:
{transcript}

{focus}Give concrete, practical advice with examples where possible."""

FOCUS_AREA_NAMES = {
    "accuracy": "content accuracy",
    "clarity": "clarity of exposition",
    "completeness": "completeness of coverage",
    "coherence": "logical coherence",
    "fluency": "fluency of delivery",
}

HEALTH_CHECK_PROMPT = "Connection test."
HEALTH_CHECK_SYSTEM_PROMPT = 'Reply only with "OK".'


def format_context(texts: list[str]) -> str:
    return "\n\n".join(f"[Section {i + 1}]\n{text}" for i, text in enumerate(texts))


def build_scoring_prompt(context: str, transcript: str) -> str:
    return SCORING_PROMPT.format(context=context, transcript=transcript)


def build_concept_prompt(text: str) -> str:
    return CONCEPT_PROMPT.format(text=text)


def build_similarity_prompt(
    first: str, first_context: str, second: str, second_context: str
) -> str:
    return SIMILARITY_PROMPT.format(
        first=first,
        first_context=first_context,
        second=second,
        second_context=second_context,
    )


def build_statement_prompt(transcript: str) -> str:
    return STATEMENT_PROMPT.format(transcript=transcript)


def build_fact_check_prompt(statement: str, context: str) -> str:
    return FACT_CHECK_PROMPT.format(statement=statement, context=context)


def build_feedback_prompt(
    context: str, transcript: str, focus_area: Optional[str] = None
) -> str:
    focus = ""
    if focus_area:
        focus = f"SPECIFIC FOCUS: concentrate on {FOCUS_AREA_NAMES[focus_area]}.\n\n"
    return FEEDBACK_PROMPT.format(context=context, transcript=transcript, focus=focus)
