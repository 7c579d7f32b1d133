"""Error taxonomy shared by ingestion, retrieval and evaluation.

Every error carries an HTTP-equivalent ``status_code`` so that an outer
surface can map it without inspecting the message.
"""

from typing import Optional


class EvaluatorError(Exception):
    """Base class for all errors raised by the evaluator."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputValidationError(EvaluatorError):
    """Rejected before any external call is made."""

    status_code = 400


class NotFoundError(EvaluatorError):
    """Unknown document, or a document with zero indexed chunks."""

    status_code = 404


class NoRelevantContextError(EvaluatorError):
    """Every candidate chunk scored below the similarity floor.

    Distinct from ``NotFoundError``: the document exists but the transcript
    is likely about something else.
    """

    status_code = 422

    def __init__(self, message: str, max_score: float, threshold: float):
        super().__init__(message)
        self.max_score = max_score
        self.threshold = threshold


class UpstreamServiceError(EvaluatorError):
    """An embedding or chat-completion call failed or timed out."""

    status_code = 502


class MalformedModelOutputError(EvaluatorError):
    """Model output could not be parsed into the expected JSON shape."""

    status_code = 502

    def __init__(self, message: str, raw_output: str = ""):
        super().__init__(message)
        self.raw_output = raw_output


class EvaluationCancelledError(EvaluatorError):
    status_code = 499
