import logging
import threading
import time
from typing import Any, Callable, Optional

from adapters import EmbeddingClient
from config import get_config_value
from errors import InputValidationError, NotFoundError
from language import normalize_text
from models.chunk import Chunk, Document, DocumentStats, VectorRecord
from splitters import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    BaseTextSplitter,
    ChunkStrategy,
    StructuredTextSplitter,
    count_tokens,
)
from stores import BaseVectorStore, HybridScorer, InMemoryVectorStore
from .base import create_embedding_client_from_config, get_language_profile

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Pipeline for chunking documents, embedding the chunks and indexing them.

    Supports dependency injection. Documents are kept in memory only.
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        splitter: BaseTextSplitter,
        vector_store: BaseVectorStore,
        config: dict[str, Any] | None = None,
    ):
        self.embedding_client = embedding_client
        self.splitter = splitter
        self.vector_store = vector_store
        self.config = config or {}
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        embedding_client: Optional[EmbeddingClient] = None,
        vector_store: Optional[BaseVectorStore] = None,
        token_counter: Optional[Callable[[str], int]] = None,
    ) -> "IngestionPipeline":
        """Create pipeline from configuration dictionary."""
        embedding_client = embedding_client or create_embedding_client_from_config(config)

        splitter = StructuredTextSplitter(
            chunk_size=get_config_value(config, "chunking.chunk_size", DEFAULT_CHUNK_SIZE),
            chunk_overlap=get_config_value(
                config, "chunking.chunk_overlap", DEFAULT_CHUNK_OVERLAP
            ),
            strategy=get_config_value(
                config, "chunking.strategy", ChunkStrategy.SENTENCE.value
            ),
            token_counter=token_counter or count_tokens,
        )
        vector_store = vector_store or InMemoryVectorStore(
            dimension=embedding_client.dimension,
            scorer=HybridScorer(get_language_profile(config)),
        )

        return cls(
            embedding_client=embedding_client,
            splitter=splitter,
            vector_store=vector_store,
            config=config,
        )

    def _build_records(
        self, chunks: list[Chunk], degraded: bool
    ) -> list[VectorRecord]:
        if degraded:
            vectors = [[0.0] * self.vector_store.dimension for _ in chunks]
        else:
            vectors = self.embedding_client.embed_chunks([c.text for c in chunks])

        records = []
        for chunk, vector in zip(chunks, vectors):
            metadata = chunk.to_metadata()
            if degraded:
                metadata["degraded"] = True
            records.append(
                VectorRecord(
                    id=chunk.id,
                    document_id=chunk.document_id,
                    vector=vector,
                    text=chunk.text,
                    metadata=metadata,
                )
            )
        return records

    def process_document(
        self, text: str, document_id: str, degraded: bool = False
    ) -> dict[str, Any]:
        """Chunk, embed and index a document, replacing any previous version.

        With ``degraded=True`` the embedder is not called; chunks are stored
        with zero vectors and flagged in their metadata.

        Returns:
            Dict with ``document_id``, ``chunk_count``, ``word_count`` and
            ``degraded``.
        """
        if not document_id or not document_id.strip():
            raise InputValidationError("Document id is required")

        start = time.perf_counter()
        normalized = normalize_text(text or "")
        chunks = self.splitter.split_document(normalized, document_id)
        records = self._build_records(chunks, degraded) if chunks else []

        document = Document(
            id=document_id,
            text=normalized,
            word_count=len(normalized.split()),
            character_count=len(normalized),
            chunk_count=len(chunks),
            degraded=degraded,
        )

        with self._lock:
            # upsert swaps a document's records in one step
            if records:
                self.vector_store.upsert(records)
            else:
                self.vector_store.delete_by_document(document_id)
            self._documents[document_id] = document

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        if not chunks:
            logger.warning(f"Document {document_id} produced no chunks")
        logger.info(
            f"Processed document {document_id}: {len(chunks)} chunks, "
            f"{document.word_count} words, {len(records)} vectors"
            f"{' (degraded)' if degraded else ''} in {elapsed_ms}ms"
        )

        return {
            "document_id": document_id,
            "chunk_count": len(chunks),
            "word_count": document.word_count,
            "degraded": degraded,
        }

    def delete_document(self, document_id: str) -> None:
        """Remove a document and all of its vectors. Unknown ids are a no-op."""
        with self._lock:
            self._documents.pop(document_id, None)
            removed = self.vector_store.delete_by_document(document_id)
        logger.info(f"Deleted document {document_id} ({removed} vectors)")

    def get_document(self, document_id: str) -> Document:
        document = self._documents.get(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def has_document(self, document_id: str) -> bool:
        return document_id in self._documents

    def list_documents(self) -> list[Document]:
        return list(self._documents.values())

    def get_document_stats(self, document_id: str) -> DocumentStats:
        document = self.get_document(document_id)
        records = self.vector_store.records_for_document(document_id)

        sections: list[str] = []
        for record in records:
            section = record.metadata.get("section")
            if section and section not in sections:
                sections.append(section)

        average = sum(len(r.text) for r in records) / len(records) if records else 0.0
        return DocumentStats(
            document_id=document_id,
            chunk_count=len(records),
            total_words=document.word_count,
            average_chunk_size=average,
            sections=sections,
            degraded=document.degraded,
        )
