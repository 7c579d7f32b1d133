import logging

from adapters import BaseLLM
from adapters.utils import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_BACKOFF, retry_call
from errors import MalformedModelOutputError
from .parsing import ScoringOutcome, parse_scoring_response, scoring_fallback
from .prompts import SCORING_SYSTEM_PROMPT, build_scoring_prompt

logger = logging.getLogger(__name__)


class LLMScorer:
    """Primary rubric scoring call.

    Upstream failures are retried and then propagate. Output that cannot be
    parsed yields the neutral fallback instead of an error.
    """

    def __init__(
        self,
        llm: BaseLLM,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
    ):
        self.llm = llm
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    def score(self, context: str, transcript: str) -> ScoringOutcome:
        prompt = build_scoring_prompt(context, transcript)
        raw = retry_call(
            lambda: self.llm.complete(prompt, SCORING_SYSTEM_PROMPT),
            attempts=self.retry_attempts,
            backoff=self.retry_backoff,
        )
        try:
            return parse_scoring_response(raw)
        except MalformedModelOutputError as e:
            logger.warning(
                f"Scoring output could not be parsed ({e.message}); using neutral "
                f"fallback. Raw output: {raw[:200]!r}"
            )
            return scoring_fallback(raw)
