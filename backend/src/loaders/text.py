import logging
from pathlib import Path

from llama_index.core import SimpleDirectoryReader
from llama_index.core.schema import Document as LlamaDocument

from .base import BaseDocumentLoader

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".pdf", ".docx", ".txt", ".md")


class TextFileLoader(BaseDocumentLoader):
    """Extracts text from PDF, DOCX and plain-text files using llama-index."""

    def load_file(self, file_path: Path | str) -> list[LlamaDocument]:
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(f"No loader available for file type: {path.suffix}")

        reader = SimpleDirectoryReader(input_files=[str(path)])
        documents = reader.load_data()
        logger.info(f"Loaded {len(documents)} parts from {path.name}")
        return documents
