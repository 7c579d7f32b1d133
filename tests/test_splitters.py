import pytest

from language import normalize_text
from splitters import (
    ChunkStrategy,
    StructuredTextSplitter,
    analyze_chunks,
    reconstruct,
)
from splitters.structured import (
    extract_heading,
    extract_section,
    split_paragraphs,
    split_sentences,
    split_words,
)
from conftest import word_token_counter

SAMPLE = (
    "Intro Heading Line\n"
    "The first paragraph talks about rivers. Rivers carry water to the sea! "
    "Do they ever stop?\n\n"
    "2. Mountains And Valleys\n"
    "Mountains rise slowly over millions of years. Valleys are carved by ice "
    "and water. “Quotes” and ‘apostrophes’ get normalized.\n\n\n"
    "A closing paragraph with a   lot   of   spaces and a final sentence."
)


def make_splitter(strategy: ChunkStrategy, chunk_size: int = 80, overlap: int = 20):
    return StructuredTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=overlap,
        strategy=strategy,
        token_counter=word_token_counter,
    )


class TestUnitSplitting:
    def test_split_sentences_keeps_separators(self) -> None:
        text = "One sentence here. Another one! And a third?"
        parts = split_sentences(text)

        assert len(parts) == 3
        assert "".join(parts) == text

    def test_split_sentences_requires_capital_after_period(self) -> None:
        parts = split_sentences("Version 2.5 is out. it continues here.")
        assert len(parts) == 1

    def test_split_paragraphs_and_words_are_exact_slices(self) -> None:
        text = "First para.\n\nSecond para with words."
        assert "".join(split_paragraphs(text)) == text
        assert "".join(split_words(text)) == text
        assert len(split_paragraphs(text)) == 2


class TestStructuredTextSplitter:
    @pytest.mark.parametrize("strategy", list(ChunkStrategy))
    def test_reconstruction(self, strategy: ChunkStrategy) -> None:
        splitter = make_splitter(strategy)
        chunks = splitter.split_document(SAMPLE, "doc")

        assert len(chunks) > 1
        assert reconstruct(chunks) == normalize_text(SAMPLE)

    def test_word_strategy_respects_size_bound(self) -> None:
        splitter = make_splitter(ChunkStrategy.WORD, chunk_size=60, overlap=15)
        chunks = splitter.split_document(SAMPLE, "doc")

        for chunk in chunks:
            assert len(chunk.text) <= 60 + 15

    def test_oversized_word_becomes_its_own_chunk(self) -> None:
        splitter = make_splitter(ChunkStrategy.WORD, chunk_size=10, overlap=2)
        chunks = splitter.split_document("tiny Supercalifragilistic word", "doc")

        bodies = [c.body for c in chunks]
        assert "Supercalifragilistic " in bodies
        assert reconstruct(chunks) == "tiny Supercalifragilistic word"

    def test_overlap_prefix_comes_from_previous_chunk(self) -> None:
        splitter = make_splitter(ChunkStrategy.SENTENCE, chunk_size=60, overlap=10)
        chunks = splitter.split_document(SAMPLE, "doc")

        assert chunks[0].overlap == 0
        for previous, current in zip(chunks, chunks[1:]):
            assert current.overlap == 10
            assert current.text[: current.overlap] == previous.text[-10:]

    @pytest.mark.parametrize("text", ["", "   ", "\n\n\t  \n"])
    def test_empty_document_yields_no_chunks(self, text: str) -> None:
        assert make_splitter(ChunkStrategy.PARAGRAPH).split_document(text, "doc") == []

    def test_chunk_ids_and_metadata(self) -> None:
        splitter = make_splitter(ChunkStrategy.PARAGRAPH, chunk_size=200, overlap=0)
        chunks = splitter.split_document(SAMPLE, "report")

        assert [c.id for c in chunks] == [f"report_chunk_{i:03d}" for i in range(len(chunks))]
        assert all(c.document_id == "report" for c in chunks)
        assert chunks[0].heading == "Intro Heading Line"
        assert chunks[1].section == "2. Mountains And Valleys"
        first = chunks[0]
        assert first.word_count == len(first.text.split())
        assert first.character_count == len(first.text)
        assert first.token_count == word_token_counter(first.text)

    def test_invalid_sizes_raise(self) -> None:
        with pytest.raises(ValueError):
            StructuredTextSplitter(chunk_size=0)
        with pytest.raises(ValueError):
            StructuredTextSplitter(chunk_size=100, chunk_overlap=100)

    def test_split_text_returns_strings(self) -> None:
        pieces = make_splitter(ChunkStrategy.SENTENCE).split_text(SAMPLE)
        assert all(isinstance(p, str) for p in pieces)


class TestMetadataHelpers:
    def test_extract_section(self) -> None:
        assert extract_section("3. Results Overview\nbody") == "3. Results Overview"
        assert extract_section("no numbered section here") is None

    def test_extract_heading(self) -> None:
        assert extract_heading("Short Title\nBody text.") == "Short Title"
        assert extract_heading("lowercase start\nBody") is None
        assert extract_heading("Ends with a period.\nBody") is None
        assert extract_heading("Tiny\nBody") is None


class TestAnalyzeChunks:
    def test_empty(self) -> None:
        stats = analyze_chunks([])
        assert stats.total_chunks == 0
        assert stats.average_chunk_size == 0

    def test_statistics(self) -> None:
        chunks = make_splitter(ChunkStrategy.SENTENCE).split_document(SAMPLE, "doc")
        stats = analyze_chunks(chunks)
        sizes = [len(c.text) for c in chunks]

        assert stats.total_chunks == len(chunks)
        assert stats.min_chunk_size == min(sizes)
        assert stats.max_chunk_size == max(sizes)
        assert stats.average_chunk_size == round(sum(sizes) / len(sizes))
