from pathlib import Path

from .base import BaseDocumentLoader
from .text import SUPPORTED_SUFFIXES, TextFileLoader


def get_loader_for_file(file_path: Path | str) -> BaseDocumentLoader:
    """Get the appropriate loader for a file based on extension.

    Args:
        file_path: Path to the file

    Returns:
        BaseDocumentLoader instance appropriate for the file type
    """
    suffix = Path(file_path).suffix.lower()
    if suffix in SUPPORTED_SUFFIXES:
        return TextFileLoader()

    raise ValueError(f"No loader available for file type: {suffix}")


__all__ = [
    "BaseDocumentLoader",
    "TextFileLoader",
    "SUPPORTED_SUFFIXES",
    "get_loader_for_file",
]
