from abc import ABC, abstractmethod
from typing import Any, Optional

from models.chunk import IndexStats, RetrievalResult, VectorRecord


class BaseVectorStore(ABC):
    """Abstract base class for vector stores."""

    def __init__(self, dimension: int, **kwargs: Any):
        self.dimension = dimension

    @abstractmethod
    def upsert(self, records: list[VectorRecord]) -> int:
        """Insert records, replacing every existing record of the same documents."""
        pass

    @abstractmethod
    def delete_by_document(self, document_id: str) -> int:
        """Remove all records of a document. Returns the number removed."""
        pass

    @abstractmethod
    def query(
        self,
        vector: list[float],
        query_text: str,
        top_k: int = 3,
        document_id: Optional[str] = None,
    ) -> list[RetrievalResult]:
        """Return the top-k records by hybrid score."""
        pass

    @abstractmethod
    def count_for_document(self, document_id: str) -> int:
        pass

    @abstractmethod
    def records_for_document(self, document_id: str) -> list[VectorRecord]:
        pass

    @abstractmethod
    def stats(self) -> IndexStats:
        pass

    @property
    @abstractmethod
    def count(self) -> int:
        """Return the number of vectors in the store."""
        pass
