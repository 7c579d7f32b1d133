from .base import BaseTextSplitter
from .structured import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    ChunkStrategy,
    StructuredTextSplitter,
    analyze_chunks,
    reconstruct,
)
from .tokens import count_tokens

TextSplitter = StructuredTextSplitter

__all__ = [
    "BaseTextSplitter",
    "StructuredTextSplitter",
    "TextSplitter",
    "ChunkStrategy",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CHUNK_OVERLAP",
    "analyze_chunks",
    "reconstruct",
    "count_tokens",
]
