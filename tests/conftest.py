import json
import re
import threading
from typing import Any, Callable, Optional

import pytest

from adapters import EmbeddingClient
from adapters.base import BaseEmbedder, BaseLLM
from core import PresentationEvaluator
from errors import UpstreamServiceError
from pipelines import IngestionPipeline, RetrievalPipeline
from splitters import StructuredTextSplitter
from stores import InMemoryVectorStore

ZORG_DOCUMENT = "The sky on planet Zorg is green. Zorg has two moons."
ZORG_ID = "zorg"

ZORG_DOCUMENT_CONCEPTS = [
    {"concept": "green sky of Zorg", "context": "The sky on planet Zorg is green.", "importance": 0.9},
    {"concept": "two moons of Zorg", "context": "Zorg has two moons.", "importance": 0.7},
]

DEFAULT_SCORES = {
    "accuracy": 90,
    "clarity": 85,
    "completeness": 88,
    "coherence": 86,
    "fluency": 84,
    "strengths": ["Clear structure"],
    "improvements": ["Slow down a little"],
    "detailed_feedback": "A solid presentation overall.",
}

_TOKEN = re.compile(r"[^\W_]+")
_QUOTED = re.compile(r'CONCEPT (\d): "(.*?)"')


def word_token_counter(text: str) -> int:
    return len(text.split())


class MockEmbedder(BaseEmbedder):
    """Bag-of-words embedder: every new token claims the next dimension.

    Texts that share no tokens get orthogonal vectors.
    """

    def __init__(self, dimension: int = 512, **kwargs: Any):
        super().__init__("mock-embedder", **kwargs)
        self._dimension = dimension
        self._vocabulary: dict[str, int] = {}
        self._lock = threading.Lock()
        self.calls: list[tuple[str, int]] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        with self._lock:
            for token in _TOKEN.findall(text.lower()):
                index = self._vocabulary.setdefault(token, len(self._vocabulary))
                vector[index % self._dimension] += 1.0
        return vector

    def embed(self, text: str) -> list[float]:
        self.calls.append(("embed", 1))
        return self._vector(text)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(("embed_batch", len(texts)))
        return [self._vector(text) for text in texts]


class ScriptedLLM(BaseLLM):
    """LLM double that answers each prompt kind with scripted output.

    Prompts are routed on fixed markers in the prompt text. Every call is
    recorded as ``(route, prompt)``; routes listed in ``fail_on`` raise
    ``UpstreamServiceError``.
    """

    ROUTES = (
        ("concepts", "Extract all the main concepts"),
        ("similarity", "Compare these two concepts"),
        ("statements", "Identify every distinct FACTUAL STATEMENT"),
        ("fact_check", "Verify whether this STATEMENT"),
        ("feedback", "Give detailed coaching feedback"),
        ("scoring", "REFERENCE CONTEXT:"),
        ("health", "Connection test."),
    )

    def __init__(
        self,
        scoring: dict[str, Any] | str | None = None,
        concepts: Optional[dict[str, list[dict[str, Any]]]] = None,
        similarity: Optional[Callable[[str, str], float]] = None,
        statements: Optional[list[dict[str, Any]]] = None,
        fact_checks: Optional[dict[str, dict[str, Any]]] = None,
        feedback: str = "Keep practising the opening.",
        fail_on: tuple[str, ...] = (),
        **kwargs: Any,
    ):
        super().__init__("scripted-llm", **kwargs)
        self.scoring = DEFAULT_SCORES if scoring is None else scoring
        self.concepts = concepts or {}
        self.similarity = similarity or (lambda a, b: 1.0 if a.lower() == b.lower() else 0.0)
        self.statements = statements or []
        self.fact_checks = fact_checks or {}
        self.feedback = feedback
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def routes_called(self) -> list[str]:
        return [route for route, _ in self.calls]

    def _route(self, prompt: str) -> str:
        for route, marker in self.ROUTES:
            if marker in prompt:
                return route
        return "unknown"

    def _concepts(self, prompt: str) -> str:
        text = prompt.split("<<<\n", 1)[1].split("\n>>>", 1)[0]
        for key, items in self.concepts.items():
            if key in text:
                return json.dumps({"concepts": items})
        return json.dumps({"concepts": []})

    def _similarity(self, prompt: str) -> str:
        quoted = dict(_QUOTED.findall(prompt))
        return str(self.similarity(quoted["1"], quoted["2"]))

    def _fact_check(self, prompt: str) -> str:
        statement = prompt.split('STATEMENT:\n"', 1)[1].split('"\n', 1)[0]
        verdict = self.fact_checks.get(
            statement, {"is_accurate": True, "confidence": 0.9, "severity": "none"}
        )
        return json.dumps(verdict)

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        prompt = messages[-1]["content"]
        route = self._route(prompt)
        with self._lock:
            self.calls.append((route, prompt))
        if route in self.fail_on:
            raise UpstreamServiceError(f"Scripted failure for {route}")

        if route == "concepts":
            return self._concepts(prompt)
        if route == "similarity":
            return self._similarity(prompt)
        if route == "statements":
            return json.dumps({"statements": self.statements})
        if route == "fact_check":
            return self._fact_check(prompt)
        if route == "feedback":
            return self.feedback
        if route == "scoring":
            if isinstance(self.scoring, str):
                return self.scoring
            return f"Here is the evaluation:\n{json.dumps(self.scoring)}"
        if route == "health":
            return "OK"
        return ""


@pytest.fixture
def mock_embedder() -> MockEmbedder:
    return MockEmbedder()


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def embedding_client(mock_embedder: MockEmbedder) -> EmbeddingClient:
    return EmbeddingClient(mock_embedder, batch_size=5, batch_delay=0.0, retry_backoff=0.0)


@pytest.fixture
def vector_store(mock_embedder: MockEmbedder) -> InMemoryVectorStore:
    return InMemoryVectorStore(dimension=mock_embedder.dimension)


@pytest.fixture
def splitter() -> StructuredTextSplitter:
    return StructuredTextSplitter(
        chunk_size=200, chunk_overlap=40, token_counter=word_token_counter
    )


@pytest.fixture
def ingestion_pipeline(
    embedding_client: EmbeddingClient,
    splitter: StructuredTextSplitter,
    vector_store: InMemoryVectorStore,
) -> IngestionPipeline:
    return IngestionPipeline(embedding_client, splitter, vector_store)


@pytest.fixture
def retrieval_pipeline(
    embedding_client: EmbeddingClient, vector_store: InMemoryVectorStore
) -> RetrievalPipeline:
    return RetrievalPipeline(
        embedding_client, vector_store, token_counter=word_token_counter
    )


@pytest.fixture
def test_config() -> dict[str, Any]:
    return {
        "embedding": {"batch_size": 5, "batch_delay": 0.0, "retry_backoff": 0.0},
        "llm": {"max_retries": 2, "retry_backoff": 0.0},
        "chunking": {"chunk_size": 200, "chunk_overlap": 40, "strategy": "sentence"},
        "retrieval": {"max_chunks": 3, "min_similarity": 0.1},
        "evaluation": {"concurrency": 2},
    }


def build_evaluator(
    config: dict[str, Any], embedder: MockEmbedder, llm: ScriptedLLM
) -> PresentationEvaluator:
    return PresentationEvaluator.from_config(
        config, embedder=embedder, llm=llm, token_counter=word_token_counter
    )


@pytest.fixture
def evaluator(
    test_config: dict[str, Any], mock_embedder: MockEmbedder, scripted_llm: ScriptedLLM
) -> PresentationEvaluator:
    return build_evaluator(test_config, mock_embedder, scripted_llm)


@pytest.fixture
def long_document() -> str:
    return (
        "1. Introduction to Photosynthesis\n"
        "Photosynthesis converts light energy into chemical energy. Plants capture "
        "sunlight with chlorophyll inside their chloroplasts.\n\n"
        "2. Light Reactions\n"
        "The light reactions happen in the thylakoid membranes. Water molecules are "
        "split and oxygen is released as a by-product.\n\n"
        "3. The Calvin Cycle\n"
        "The Calvin cycle fixes carbon dioxide into sugars. It uses the ATP and NADPH "
        "produced by the light reactions. The enzyme RuBisCO drives carbon fixation."
    )
