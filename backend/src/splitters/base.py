from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.chunk import Chunk


class BaseTextSplitter(ABC):
    """Abstract base class for text splitters."""

    @abstractmethod
    def split_document(self, text: str, document_id: str) -> list["Chunk"]:
        """Split a document into chunks with derived metadata."""
        pass

    @abstractmethod
    def split_text(self, text: str) -> list[str]:
        """Split raw text into chunk strings without metadata."""
        pass
