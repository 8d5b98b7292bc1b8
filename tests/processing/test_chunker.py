"""
Chunker test suite.

Covers sentence location in the original text, stop-word filtering, the
tail-biased merge policy and annotation marker placement.

Run: pytest tests/processing/test_chunker.py -v
"""

import pytest

from notefold.processing.chunker import (
    SentenceChunker,
    annotate,
    count_tokens,
    merge_sentence_chunks,
)
from notefold.utils.dataclasses import Chunk

from tests.fakes import split_sentences


def words(n, word="alpha"):
    return " ".join([word] * n)


# ============================================================================
# Merge policy
# ============================================================================

class TestMergeSentenceChunks:
    """Tail-biased merging of sentence chunks"""

    def test_three_sentences_of_190(self):
        """380 fits under 400, the third sentence starts a new chunk"""
        sentences = [
            Chunk(text=words(190), start_offset=0, end_offset=100),
            Chunk(text=words(190), start_offset=101, end_offset=200),
            Chunk(text=words(190), start_offset=201, end_offset=300),
        ]

        merged = merge_sentence_chunks(sentences, max_chunk_size=400, min_chunk_size=200)

        assert [c.token_count for c in merged] == [380, 190]
        assert (merged[0].start_offset, merged[0].end_offset) == (0, 200)
        assert (merged[1].start_offset, merged[1].end_offset) == (201, 300)

    def test_undersized_chunk_keeps_growing_past_max(self):
        """Below min the next sentence is appended even if max is exceeded"""
        sentences = [
            Chunk(text=words(150), start_offset=0, end_offset=10),
            Chunk(text=words(300), start_offset=11, end_offset=20),
            Chunk(text=words(10), start_offset=21, end_offset=30),
        ]

        merged = merge_sentence_chunks(sentences, max_chunk_size=400, min_chunk_size=200)

        assert [c.token_count for c in merged] == [450, 10]
        assert merged[0].end_offset == 20

    def test_first_chunk_starts_at_first_sentence(self):
        sentences = [Chunk(text="one two", start_offset=7, end_offset=15)]

        merged = merge_sentence_chunks(sentences, max_chunk_size=10, min_chunk_size=1)

        assert merged == [Chunk(text="one two", start_offset=7, end_offset=15)]

    def test_empty_input(self):
        assert merge_sentence_chunks([], 400, 200) == []

    def test_count_tokens(self):
        assert count_tokens("  one two\nthree ") == 3
        assert count_tokens("") == 0


# ============================================================================
# Sentence location and filtering
# ============================================================================

class TestSentenceChunker:
    """Offsets index the original text; filtering only changes chunk text"""

    @pytest.fixture
    def sentence_chunker(self):
        return SentenceChunker(
            max_chunk_size=1,
            min_chunk_size=1,
            sentence_splitter=split_sentences,
            stop_words={'the', 'a', 'is'},
        )

    def test_offsets_point_at_original_sentences(self, sentence_chunker):
        text = "  The cell is small. A leaf is green."

        chunks = sentence_chunker.chunk(text)

        assert len(chunks) == 2
        assert text[chunks[0].start_offset:chunks[0].end_offset] == "The cell is small."
        assert text[chunks[1].start_offset:chunks[1].end_offset] == "A leaf is green."

    def test_splitter_whitespace_not_in_span(self):
        chunker = SentenceChunker(
            max_chunk_size=1,
            min_chunk_size=1,
            sentence_splitter=lambda text: ["  Cells divide. ", "   ", "Roots grow.\n"],
            stop_words=set(),
        )
        text = "  Cells divide. Roots grow.\n"

        chunks = chunker.chunk(text)

        assert [(c.start_offset, c.end_offset) for c in chunks] == [(2, 15), (16, 27)]

    def test_stop_words_removed_from_text(self, sentence_chunker):
        chunks = sentence_chunker.chunk("The cell is small.")

        assert chunks[0].text == "cell small."

    def test_repeated_sentences_get_distinct_spans(self, sentence_chunker):
        """Forward search never matches the same occurrence twice"""
        text = "Cells divide. Cells divide. Cells divide."

        chunks = sentence_chunker.chunk(text)

        starts = [c.start_offset for c in chunks]
        assert starts == [0, 14, 28]

    def test_unlocatable_sentence_is_skipped(self):
        chunker = SentenceChunker(
            max_chunk_size=1,
            min_chunk_size=1,
            sentence_splitter=lambda text: ["First part.", "Not in text.", "Second part."],
            stop_words=set(),
        )

        chunks = chunker.chunk("First part. Second part.")

        assert [c.text for c in chunks] == ["First part.", "Second part."]
        assert chunks[1].start_offset == 12

    def test_chunk_ids(self, sentence_chunker):
        chunks = sentence_chunker.chunk("Cells divide. Leaves grow.")

        assert chunks[0].chunk_id("biology") == "biology-0-13"
        assert chunks[1].anchor == "14-26"


# ============================================================================
# Annotation
# ============================================================================

class TestAnnotate:
    """Markers are inserted by descending end offset"""

    def test_three_spans_keep_original_text(self):
        original = "".join(chr(ord('a') + i % 26) for i in range(60))
        chunks = [
            Chunk(text="x", start_offset=0, end_offset=10),
            Chunk(text="y", start_offset=20, end_offset=30),
            Chunk(text="z", start_offset=40, end_offset=50),
        ]

        annotated = annotate(original, chunks)

        expected = (
            original[:10] + "\n\n^0-10\n\n"
            + original[10:30] + "\n\n^20-30\n\n"
            + original[30:50] + "\n\n^40-50\n\n"
            + original[50:]
        )
        assert annotated == expected

    def test_removing_markers_restores_original(self):
        original = "Cells divide. Leaves grow. Roots drink."
        chunks = [
            Chunk(text="b", start_offset=14, end_offset=26),
            Chunk(text="a", start_offset=0, end_offset=13),
        ]

        annotated = annotate(original, chunks)

        stripped = annotated.replace("\n\n^0-13\n\n", "").replace("\n\n^14-26\n\n", "")
        assert stripped == original

    def test_no_chunks(self):
        assert annotate("unchanged", []) == "unchanged"
