"""Boundary-aware chunker with character overlap.

Every unit produced while splitting is an exact slice of the normalized
text (separators stay attached to the end of the unit), so the chunk bodies
concatenate back to the source. Chunk ``i`` is the last ``overlap``
characters of chunk ``i - 1`` followed by its own body.
"""

import logging
import re
from enum import Enum
from typing import Callable, Optional

from language import normalize_text
from models.chunk import Chunk, ChunkingStats
from .base import BaseTextSplitter
from .tokens import count_tokens

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+(?=[A-ZÀ-Ý])")
_WORD = re.compile(r"\s*\S+\s*")
_SECTION = re.compile(r"^(\d+\.?\s*[A-Z][^.\n]*)", re.MULTILINE)
_TERMINAL_PUNCTUATION = re.compile(r"[.!?]$")


class ChunkStrategy(str, Enum):
    PARAGRAPH = "paragraph"
    SENTENCE = "sentence"
    WORD = "word"


def _split_after(text: str, pattern: re.Pattern[str]) -> list[str]:
    """Cut ``text`` after every separator match, keeping the separator."""
    units = []
    start = 0
    for match in pattern.finditer(text):
        if match.end() > start:
            units.append(text[start : match.end()])
            start = match.end()
    if start < len(text):
        units.append(text[start:])
    return units


def split_paragraphs(text: str) -> list[str]:
    return _split_after(text, _PARAGRAPH_BREAK)


def split_sentences(text: str) -> list[str]:
    return _split_after(text, _SENTENCE_BREAK)


def split_words(text: str) -> list[str]:
    return _WORD.findall(text)


def extract_section(text: str) -> Optional[str]:
    """Find a numbered section title such as "2. Methods"."""
    match = _SECTION.search(text)
    return match.group(1).strip() if match else None


def extract_heading(text: str) -> Optional[str]:
    """Return the first line if it looks like a title."""
    first_line = text.split("\n", 1)[0].strip()
    if 5 < len(first_line) < 100 and first_line[0].isupper():
        if not _TERMINAL_PUNCTUATION.search(first_line):
            return first_line
    return None


def reconstruct(chunks: list[Chunk]) -> str:
    """Rebuild the normalized source by dropping each chunk's overlap prefix."""
    return "".join(chunk.body for chunk in chunks)


def analyze_chunks(chunks: list[Chunk]) -> ChunkingStats:
    if not chunks:
        return ChunkingStats()
    sizes = [len(chunk.text) for chunk in chunks]
    words = [chunk.word_count for chunk in chunks]
    return ChunkingStats(
        average_chunk_size=round(sum(sizes) / len(sizes)),
        min_chunk_size=min(sizes),
        max_chunk_size=max(sizes),
        total_chunks=len(chunks),
        average_word_count=round(sum(words) / len(words)),
    )


class StructuredTextSplitter(BaseTextSplitter):
    """Split normalized text by paragraph, sentence or word count.

    Units longer than ``chunk_size`` are refined with the next finer
    strategy (paragraph -> sentence -> word). A single word longer than
    ``chunk_size`` becomes its own oversized chunk.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        strategy: ChunkStrategy | str = ChunkStrategy.SENTENCE,
        token_counter: Callable[[str], int] = count_tokens,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap}"
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.strategy = ChunkStrategy(strategy)
        self.token_counter = token_counter

    def _units(self, text: str, strategy: ChunkStrategy) -> list[str]:
        if strategy is ChunkStrategy.PARAGRAPH:
            units, finer = split_paragraphs(text), ChunkStrategy.SENTENCE
        elif strategy is ChunkStrategy.SENTENCE:
            units, finer = split_sentences(text), ChunkStrategy.WORD
        else:
            return split_words(text)

        refined = []
        for unit in units:
            if len(unit) > self.chunk_size:
                refined.extend(self._units(unit, finer))
            else:
                refined.append(unit)
        return refined

    def _pack(self, units: list[str]) -> list[str]:
        bodies = []
        current = ""
        for unit in units:
            if current and len(current) + len(unit) > self.chunk_size:
                bodies.append(current)
                current = unit
            else:
                current += unit
        if current:
            bodies.append(current)
        return bodies

    def _split_bodies(self, text: str) -> list[str]:
        normalized = normalize_text(text)
        if not normalized:
            return []
        return self._pack(self._units(normalized, self.strategy))

    def _with_overlap(self, bodies: list[str]) -> list[tuple[str, int]]:
        pieces: list[tuple[str, int]] = []
        previous = ""
        for body in bodies:
            prefix = previous[-self.chunk_overlap :] if self.chunk_overlap and previous else ""
            chunk_text = prefix + body
            pieces.append((chunk_text, len(prefix)))
            previous = chunk_text
        return pieces

    def split_text(self, text: str) -> list[str]:
        return [chunk_text for chunk_text, _ in self._with_overlap(self._split_bodies(text))]

    def split_document(self, text: str, document_id: str) -> list[Chunk]:
        """Split a document into chunks with ids and derived metadata.

        Returns an empty list for empty or whitespace-only text.
        """
        chunks = []
        pieces = self._with_overlap(self._split_bodies(text))
        for index, (chunk_text, overlap) in enumerate(pieces):
            body = chunk_text[overlap:]
            chunks.append(
                Chunk(
                    id=f"{document_id}_chunk_{index:03d}",
                    document_id=document_id,
                    index=index,
                    text=chunk_text,
                    overlap=overlap,
                    word_count=len(chunk_text.split()),
                    character_count=len(chunk_text),
                    token_count=self.token_counter(chunk_text),
                    section=extract_section(body),
                    heading=extract_heading(body),
                )
            )

        logger.debug(
            f"Split document {document_id} into {len(chunks)} chunks "
            f"(strategy={self.strategy.value}, size={self.chunk_size}, overlap={self.chunk_overlap})"
        )
        return chunks
