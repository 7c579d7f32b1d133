import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any, Optional

import openai
import requests
from openai import OpenAI

from adapters.base import BaseEmbedder
from adapters.utils import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_TIMEOUT,
    create_session_with_pooling,
    retry_call,
)
from errors import InputValidationError, UpstreamServiceError
from language import ENGLISH, LanguageProfile, prepare_chunk_text, prepare_query_text

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY = 0.1
DEFAULT_MAX_WORKERS = 4
DEFAULT_OLLAMA_DIMENSION = 768


class OpenAIEmbedder(BaseEmbedder):
    """OpenAI embedding provider."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        timeout: float = DEFAULT_TIMEOUT,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        api_key = kwargs.pop("api_key", None) or os.environ.get("OPENAI_API_KEY")
        base_url = kwargs.pop("base_url", None)

        self.client = OpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self._dimension: Optional[int] = kwargs.get("dimensions") or kwargs.get(
            "dimension"
        )

    @property
    def dimension(self) -> int:
        return self._dimension or EMBEDDING_DIMENSIONS.get(self.model, 1536)

    def _create_embedding_params(self, input_data: str | list[str]) -> dict[str, Any]:
        """Build parameters for embedding API call."""
        params = {"model": self.model, "input": input_data}
        if self._dimension is not None:
            params["dimensions"] = self._dimension
        return params

    def embed(self, text: str) -> list[float]:
        try:
            response = self.client.embeddings.create(
                **self._create_embedding_params(text)
            )
        except openai.OpenAIError as e:
            raise UpstreamServiceError(f"OpenAI embedding failed: {e}") from e
        return response.data[0].embedding

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = self.client.embeddings.create(
                **self._create_embedding_params(texts)
            )
        except openai.OpenAIError as e:
            raise UpstreamServiceError(f"OpenAI embedding failed: {e}") from e
        return [item.embedding for item in response.data]


class OllamaEmbedder(BaseEmbedder):
    """Ollama local embedding provider with batch processing and connection pooling."""

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        max_workers: int = DEFAULT_MAX_WORKERS,
        timeout: float = DEFAULT_TIMEOUT,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        self.base_url = base_url.rstrip("/")
        self._dimension = kwargs.get("dimension", DEFAULT_OLLAMA_DIMENSION)
        self._max_workers = max_workers
        self.timeout = timeout
        self.session = create_session_with_pooling()

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        try:
            response = self.session.post(
                f"{self.base_url}/api/embeddings",
                json={"model": self.model, "prompt": text},
                timeout=self.timeout,
            )
            response.raise_for_status()
            embedding = response.json().get("embedding")
        except requests.exceptions.RequestException as e:
            raise UpstreamServiceError(f"Ollama embedding failed: {e}") from e
        if not embedding:
            raise UpstreamServiceError("Ollama returned an empty embedding")
        return embedding

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Batch embedding using the /api/embed endpoint."""
        if not texts:
            return []

        try:
            response = self.session.post(
                f"{self.base_url}/api/embed",
                json={"model": self.model, "input": texts},
                timeout=self.timeout,
            )
            response.raise_for_status()
            embeddings = response.json().get("embeddings", [])
        except requests.exceptions.RequestException as e:
            # Older servers lack /api/embed; only a 404 means per-text requests may work
            if e.response is not None and e.response.status_code == 404:
                logger.warning("Server has no /api/embed, embedding texts individually")
                return self._embed_batch_parallel(texts)
            raise UpstreamServiceError(f"Ollama batch embedding failed: {e}") from e

        if len(embeddings) != len(texts):
            raise UpstreamServiceError(
                f"Ollama returned {len(embeddings)} embeddings for {len(texts)} texts"
            )
        return embeddings

    def _embed_batch_parallel(self, texts: list[str]) -> list[list[float]]:
        """Fallback: parallel embedding using ThreadPoolExecutor."""
        results: list[Optional[list[float]]] = [None] * len(texts)
        errors: list[tuple[int, Exception]] = []

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = {executor.submit(self.embed, text): i for i, text in enumerate(texts)}

            for future in as_completed(futures):
                idx = futures[future]
                try:
                    results[idx] = future.result()
                except Exception as e:
                    errors.append((idx, e))

        if errors:
            errors.sort(key=lambda item: item[0])
            failed_indices = [idx for idx, _ in errors]
            first_error = errors[0][1]
            raise UpstreamServiceError(
                f"Embedding failed for {len(errors)}/{len(texts)} texts "
                f"at indices {failed_indices}. First error: {first_error}"
            )

        return results  # type: ignore


class EmbeddingClient:
    """Preprocessing, batching and retry on top of a provider embedder.

    Document chunks and search queries are prepared differently before
    embedding (see ``language.preprocessing``). Batches are capped at
    ``batch_size``, submitted ``batch_delay`` seconds apart and run with at
    most ``max_workers`` in flight. Results keep input order.
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        profile: LanguageProfile = ENGLISH,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        max_workers: int = 1,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.embedder = embedder
        self.profile = profile
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.max_workers = max(1, max_workers)
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    @property
    def model(self) -> str:
        return self.embedder.model

    @property
    def dimension(self) -> int:
        return self.embedder.dimension

    def embed(self, text: str) -> list[float]:
        return retry_call(
            lambda: self.embedder.embed(text),
            attempts=self.retry_attempts,
            backoff=self.retry_backoff,
        )

    def _embed_one_batch(self, batch: list[str]) -> list[list[float]]:
        vectors = retry_call(
            lambda: self.embedder.embed_batch(batch),
            attempts=self.retry_attempts,
            backoff=self.retry_backoff,
        )
        if len(vectors) != len(batch):
            raise UpstreamServiceError(
                f"Embedder returned {len(vectors)} vectors for {len(batch)} texts"
            )
        return vectors

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        batches = [
            texts[i : i + self.batch_size] for i in range(0, len(texts), self.batch_size)
        ]
        if len(batches) == 1:
            return self._embed_one_batch(batches[0])

        futures: list[Future[list[list[float]]]] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for i, batch in enumerate(batches):
                if i > 0 and self.batch_delay > 0:
                    time.sleep(self.batch_delay)
                futures.append(executor.submit(self._embed_one_batch, batch))

        results: list[list[float]] = []
        for future in futures:
            results.extend(future.result())
        logger.debug(f"Embedded {len(texts)} texts in {len(batches)} batches")
        return results

    def embed_query(self, text: str) -> list[float]:
        prepared = prepare_query_text(text, self.profile)
        if not prepared:
            raise InputValidationError("Query is empty after preprocessing")
        return self.embed(prepared)

    def embed_chunks(self, texts: list[str]) -> list[list[float]]:
        return self.embed_batch([prepare_chunk_text(t, self.profile) for t in texts])
