import logging
import threading
from typing import Any, Optional

from models.chunk import IndexStats, RetrievalResult, VectorRecord
from .base import BaseVectorStore
from .scoring import HybridScorer

logger = logging.getLogger(__name__)


class InMemoryVectorStore(BaseVectorStore):
    """In-process vector index keyed by document.

    Writers build a new ``document_id -> records`` mapping under a lock and
    swap it in; readers work on whatever mapping they picked up, so a query
    running during ingestion sees either the old or the new records of a
    document, never a mix.
    """

    def __init__(
        self,
        dimension: int,
        scorer: Optional[HybridScorer] = None,
        **kwargs: Any,
    ):
        super().__init__(dimension, **kwargs)
        self.scorer = scorer or HybridScorer()
        self._documents: dict[str, tuple[VectorRecord, ...]] = {}
        self._lock = threading.Lock()

    def _check_dimension(self, record: VectorRecord) -> None:
        if len(record.vector) != self.dimension:
            raise ValueError(
                f"Vector for {record.id} has dimension {len(record.vector)}, "
                f"index expects {self.dimension}"
            )

    def upsert(self, records: list[VectorRecord]) -> int:
        if not records:
            return 0

        grouped: dict[str, list[VectorRecord]] = {}
        for record in records:
            self._check_dimension(record)
            grouped.setdefault(record.document_id, []).append(record)

        with self._lock:
            documents = dict(self._documents)
            for document_id, group in grouped.items():
                documents.pop(document_id, None)
                documents[document_id] = tuple(group)
            self._documents = documents

        logger.debug(f"Upserted {len(records)} vectors for {len(grouped)} document(s)")
        return len(records)

    def delete_by_document(self, document_id: str) -> int:
        with self._lock:
            if document_id not in self._documents:
                return 0
            documents = dict(self._documents)
            removed = documents.pop(document_id)
            self._documents = documents

        logger.info(f"Removed {len(removed)} vectors for document {document_id}")
        return len(removed)

    def _candidates(self, document_id: Optional[str]) -> list[VectorRecord]:
        snapshot = self._documents
        if document_id is not None:
            return list(snapshot.get(document_id, ()))
        return [record for group in snapshot.values() for record in group]

    def query(
        self,
        vector: list[float],
        query_text: str,
        top_k: int = 3,
        document_id: Optional[str] = None,
    ) -> list[RetrievalResult]:
        if top_k <= 0:
            return []

        scored = []
        for record in self._candidates(document_id):
            score, breakdown = self.scorer.score(
                vector, query_text, record.vector, record.text
            )
            scored.append(
                RetrievalResult(
                    id=record.id,
                    document_id=record.document_id,
                    text=record.text,
                    score=score,
                    breakdown=breakdown,
                    metadata=dict(record.metadata),
                )
            )

        # sorted() is stable: equal scores keep insertion order
        scored = sorted(scored, key=lambda result: result.score, reverse=True)
        return scored[:top_k]

    def count_for_document(self, document_id: str) -> int:
        return len(self._documents.get(document_id, ()))

    def records_for_document(self, document_id: str) -> list[VectorRecord]:
        return list(self._documents.get(document_id, ()))

    def stats(self) -> IndexStats:
        snapshot = self._documents
        distribution = {doc_id: len(group) for doc_id, group in snapshot.items()}
        return IndexStats(
            total_vectors=sum(distribution.values()),
            dimension=self.dimension,
            documents=len(distribution),
            distribution=distribution,
        )

    @property
    def count(self) -> int:
        return sum(len(group) for group in self._documents.values())
