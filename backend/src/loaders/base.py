from abc import ABC, abstractmethod
from pathlib import Path

from llama_index.core.schema import Document as LlamaDocument


class BaseDocumentLoader(ABC):
    """Abstract base class for document loaders."""

    @abstractmethod
    def load_file(self, file_path: Path | str) -> list[LlamaDocument]:
        """Load a single file."""
        pass

    def load_text(self, file_path: Path | str) -> str:
        """Load a single file as one plain-text string, pages joined by blank lines."""
        documents = self.load_file(file_path)
        return "\n\n".join(doc.text for doc in documents if doc.text.strip())
