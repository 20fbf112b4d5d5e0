"""Unit tests for the TextChunker: recursive splitting with overlapping windows."""

from __future__ import annotations

import pytest

from src.services.ingestion.chunker import TextChunker


def _reconstruct(text: str, spans: list[tuple[int, int]]) -> str:
    """Rebuild the input by dropping each chunk's overlap with its predecessor."""
    rebuilt = ""
    previous_end = 0
    for start, end in spans:
        rebuilt += text[max(start, previous_end) : end]
        previous_end = end
    return rebuilt


class TestConstruction:
    def test_defaults(self) -> None:
        chunker = TextChunker()
        assert chunker.chunk_size == 1000
        assert chunker.overlap == 200

    @pytest.mark.parametrize(("size", "overlap"), [(0, 0), (100, 100), (100, 150), (100, -1)])
    def test_invalid_configuration_rejected(self, size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            TextChunker(chunk_size=size, overlap=overlap)


class TestEdgeCases:
    @pytest.mark.parametrize("text", ["", "   ", "\n\n\t  \n"])
    def test_empty_or_whitespace_gives_no_chunks(self, text: str) -> None:
        assert TextChunker().chunk(text) == []

    def test_short_text_is_single_chunk(self) -> None:
        assert TextChunker().chunk("A. B. C.") == ["A. B. C."]

    def test_text_exactly_chunk_size_is_single_chunk(self) -> None:
        text = "x" * 1000
        assert TextChunker().chunk(text) == [text]

    def test_unbroken_run_is_split_at_character_level(self) -> None:
        text = "x" * 2500
        chunks = TextChunker(chunk_size=1000, overlap=200).chunk(text)

        assert all(len(c) <= 1000 for c in chunks)
        assert len(chunks) >= 3
        assert _reconstruct(text, TextChunker().chunk_spans(text)) == text

    def test_long_whitespace_run_yields_no_blank_chunks(self) -> None:
        text = "a" * 900 + " " * 3000 + "b" * 10
        chunks = TextChunker().chunk(text)

        assert chunks
        assert all(c.strip() for c in chunks)
        assert chunks[0].startswith("a" * 900)
        assert chunks[-1].endswith("b" * 10)
        assert "".join(chunks).count("a") == 900
        assert "".join(chunks).count("b") == 10


class TestCoverageAndOverlap:
    def test_every_chunk_within_budget(self, sample_legal_text: str) -> None:
        chunker = TextChunker(chunk_size=400, overlap=80)
        for chunk in chunker.chunk(sample_legal_text):
            assert 0 < len(chunk) <= 400

    def test_chunks_are_substrings_in_order(self, sample_legal_text: str) -> None:
        chunker = TextChunker(chunk_size=400, overlap=80)
        spans = chunker.chunk_spans(sample_legal_text)

        starts = [start for start, _ in spans]
        assert starts == sorted(starts)
        for (start, end), chunk in zip(spans, chunker.chunk(sample_legal_text), strict=True):
            assert sample_legal_text[start:end] == chunk

    def test_overlap_never_exceeds_budget(self, sample_legal_text: str) -> None:
        chunker = TextChunker(chunk_size=400, overlap=80)
        spans = chunker.chunk_spans(sample_legal_text)

        for (_, previous_end), (next_start, _) in zip(spans, spans[1:]):
            assert 0 <= previous_end - next_start <= 80

    def test_overlap_is_carried_between_chunks(self, sample_legal_text: str) -> None:
        spans = TextChunker(chunk_size=200, overlap=80).chunk_spans(sample_legal_text)
        assert any(previous_end > next_start for (_, previous_end), (next_start, _) in zip(spans, spans[1:]))

    def test_concatenation_minus_overlap_reconstructs_input(self, sample_legal_text: str) -> None:
        chunker = TextChunker(chunk_size=300, overlap=60)
        assert _reconstruct(sample_legal_text, chunker.chunk_spans(sample_legal_text)) == sample_legal_text

    def test_zero_overlap_partitions_text(self, sample_legal_text: str) -> None:
        chunker = TextChunker(chunk_size=300, overlap=0)
        assert "".join(chunker.chunk(sample_legal_text)) == sample_legal_text


class TestSeparatorPriority:
    def test_prefers_paragraph_boundaries(self) -> None:
        paragraphs = ["Clause one. " * 6, "Clause two. " * 6, "Clause three. " * 6]
        text = "\n\n".join(p.strip() for p in paragraphs)
        chunks = TextChunker(chunk_size=100, overlap=0).chunk(text)

        # Each paragraph fits the budget, so every chunk but the last ends on the break.
        for chunk in chunks[:-1]:
            assert chunk.endswith("\n\n")

    def test_falls_back_to_sentences_for_long_paragraph(self) -> None:
        text = "The party agrees. " * 20
        chunks = TextChunker(chunk_size=100, overlap=0).chunk(text)

        assert len(chunks) > 1
        for chunk in chunks[:-1]:
            assert chunk.endswith(". ")

    def test_custom_separators(self) -> None:
        text = "a|b|c|d|e|f"
        chunks = TextChunker(chunk_size=4, overlap=0, separators=["|", ""]).chunk(text)
        assert "".join(chunks) == text
        assert all(len(c) <= 4 for c in chunks)


class TestDeterminism:
    def test_same_input_same_output(self, sample_legal_text: str) -> None:
        chunker = TextChunker(chunk_size=350, overlap=70)
        assert chunker.chunk(sample_legal_text) == chunker.chunk(sample_legal_text)

    def test_independent_instances_agree(self, sample_legal_text: str) -> None:
        first = TextChunker(chunk_size=350, overlap=70).chunk(sample_legal_text)
        second = TextChunker(chunk_size=350, overlap=70).chunk(sample_legal_text)
        assert first == second
