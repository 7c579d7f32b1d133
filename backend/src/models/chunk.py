"""Data models for documents, chunks and retrieval."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """A source document registered with the ingestion pipeline.

    Attributes:
        id: Caller-supplied identifier.
        text: Normalized document text.
        word_count: Number of whitespace-separated words.
        character_count: Length of the normalized text.
        chunk_count: Number of chunks indexed for the document.
        ingested_at: Ingestion timestamp (UTC).
        degraded: True when the vectors are zero placeholders.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    word_count: int
    character_count: int
    chunk_count: int = 0
    ingested_at: datetime = Field(default_factory=_utcnow)
    degraded: bool = False


class Chunk(BaseModel):
    """A contiguous slice of a document, the unit of retrieval.

    ``text`` starts with ``overlap`` characters copied from the end of the
    previous chunk; ``text[overlap:]`` is the chunk's own slice of the
    normalized source.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    index: int
    text: str
    overlap: int = 0
    word_count: int = 0
    character_count: int = 0
    token_count: int = 0
    section: Optional[str] = None
    heading: Optional[str] = None

    @property
    def body(self) -> str:
        return self.text[self.overlap :]

    def to_metadata(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "chunk_id": self.id,
            "chunk_index": self.index,
            "section": self.section,
            "heading": self.heading,
        }


class VectorRecord(BaseModel):
    """One embedded chunk stored in the vector index.

    Records are immutable; updating a document means deleting and
    re-inserting its records.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    vector: list[float]
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ScoreBreakdown(BaseModel):
    cosine: float
    jaccard: float
    semantic: float


class RetrievalResult(BaseModel):
    """Represents a retrieved chunk with its hybrid score.

    Attributes:
        id: Chunk identifier.
        document_id: Owning document.
        text: The retrieved text content.
        score: Weighted blend of cosine, Jaccard and semantic overlap, in [0, 1].
        breakdown: Component scores for diagnostics.
        metadata: Any additional metadata from the original chunk.
    """

    id: str
    document_id: str
    text: str
    score: float
    breakdown: Optional[ScoreBreakdown] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ContextBundle(BaseModel):
    """Chunks retrieved for one transcript, above the similarity floor."""

    relevant_chunks: list[RetrievalResult]
    combined_text: str
    total_score: float
    token_count: int = 0

    @property
    def average_score(self) -> float:
        if not self.relevant_chunks:
            return 0.0
        return self.total_score / len(self.relevant_chunks)


class ChunkingStats(BaseModel):
    average_chunk_size: int = 0
    min_chunk_size: int = 0
    max_chunk_size: int = 0
    total_chunks: int = 0
    average_word_count: int = 0


class DocumentStats(BaseModel):
    document_id: str
    chunk_count: int
    total_words: int
    average_chunk_size: float
    sections: list[str] = Field(default_factory=list)
    degraded: bool = False


class IndexStats(BaseModel):
    total_vectors: int
    dimension: int
    documents: int
    distribution: dict[str, int] = Field(default_factory=dict)
