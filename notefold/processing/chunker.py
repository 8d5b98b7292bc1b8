# -*- coding: utf-8 -*-
"""
Position-aware sentence chunking with stop-word filtering

Splits a document into sentences, records each sentence's character span in the
original (untrimmed) text, strips stop words to form the working text, then
merges adjacent sentences into chunks bounded by whitespace token counts.

Merge policy is tail-biased: a chunk is only closed at max_chunk_size when it
already holds min_chunk_size tokens, otherwise the next sentence is appended
anyway. The final chunk may therefore exceed max_chunk_size; an undersized
chunk is never emitted mid-document.

Sentences that cannot be located in the original text (tokenizer normalization
drift) are skipped and logged at DEBUG. Offsets of the remaining chunks stay
exact.

References:
    consolidation_config.py: CHUNKING_CONFIG for sizes and nltk resources
    notefold.utils.dataclasses.Chunk: output shape
"""
# Standard library
import logging
from typing import Callable, Iterable, List, Optional

# Third-party
import nltk

# Foundation
from notefold.utils.dataclasses import Chunk

# Config
from config.consolidation_config import CHUNKING_CONFIG

logger = logging.getLogger(__name__)


def _ensure_nltk_resource(path: str, package: str) -> None:
    try:
        nltk.data.find(path)
    except LookupError:
        nltk.download(package, quiet=True)


def count_tokens(text: str) -> int:
    """Whitespace-delimited word count."""
    return len(text.split())


def merge_sentence_chunks(
    chunks: List[Chunk],
    max_chunk_size: int,
    min_chunk_size: int,
) -> List[Chunk]:
    """
    Merge adjacent sentence chunks under the tail-biased size policy.

    Args:
        chunks: Sentence-level chunks in document order
        max_chunk_size: Token ceiling for a merged chunk
        min_chunk_size: A chunk is only closed once it has this many tokens

    Returns:
        Merged chunks spanning from the first to the last merged sentence
    """
    merged = []
    text, start, end = "", None, None

    for chunk in chunks:
        combined = f"{text} {chunk.text}" if text else chunk.text

        if count_tokens(combined) <= max_chunk_size or not text:
            text = combined
        elif count_tokens(text) >= min_chunk_size:
            merged.append(Chunk(text=text, start_offset=start, end_offset=end))
            text, start = chunk.text, None
        else:
            text = combined

        if start is None:
            start = chunk.start_offset
        end = chunk.end_offset

    if text:
        merged.append(Chunk(text=text, start_offset=start, end_offset=end))

    return merged


def annotate(original_text: str, chunks: Iterable[Chunk]) -> str:
    """
    Insert a `^start-end` block marker after every chunk.

    Markers go in by descending end offset so earlier insertions never shift
    the offsets of chunks still to be marked.
    """
    annotated = original_text
    for chunk in sorted(chunks, key=lambda c: c.end_offset, reverse=True):
        marker = f"\n\n^{chunk.anchor}\n\n"
        annotated = annotated[:chunk.end_offset] + marker + annotated[chunk.end_offset:]
    return annotated


class SentenceChunker:
    """
    Sentence-aligned chunker that keeps original character offsets.

    Example:
        chunker = SentenceChunker(max_chunk_size=400, min_chunk_size=200)
        chunks = chunker.chunk(document_text)
        annotated = chunker.annotate(document_text, chunks)

    Args:
        max_chunk_size: Token ceiling per chunk (default from CHUNKING_CONFIG)
        min_chunk_size: Token floor before a chunk may be closed
        sentence_splitter: Callable text -> list of sentences (default
            nltk.sent_tokenize)
        stop_words: Words dropped from the working text (default nltk
            stopwords for CHUNKING_CONFIG['stopwords_language'])
    """

    def __init__(
        self,
        max_chunk_size: int = CHUNKING_CONFIG['max_chunk_size'],
        min_chunk_size: int = CHUNKING_CONFIG['min_chunk_size'],
        sentence_splitter: Optional[Callable[[str], List[str]]] = None,
        stop_words: Optional[Iterable[str]] = None,
    ):
        self.max_chunk_size = max_chunk_size
        self.min_chunk_size = min_chunk_size

        if sentence_splitter is None:
            tokenizer = CHUNKING_CONFIG['sentence_tokenizer']
            _ensure_nltk_resource(f'tokenizers/{tokenizer}', tokenizer)
            sentence_splitter = nltk.sent_tokenize
        self.sentence_splitter = sentence_splitter

        if stop_words is None:
            _ensure_nltk_resource('corpora/stopwords', 'stopwords')
            from nltk.corpus import stopwords
            stop_words = stopwords.words(CHUNKING_CONFIG['stopwords_language'])
        self.stop_words = {w.lower() for w in stop_words}

        logger.debug(
            f"SentenceChunker initialized: max={max_chunk_size}, min={min_chunk_size}, "
            f"stop_words={len(self.stop_words)}"
        )

    def filter_stop_words(self, sentence: str) -> str:
        kept = [
            word for word in sentence.split()
            if word.strip('.,;:!?"\'()[]').lower() not in self.stop_words
        ]
        return " ".join(kept)

    def split_sentences(self, text: str) -> List[Chunk]:
        """Sentence-level chunks with exact offsets into `text`."""
        position = 0
        sentences = []
        for raw in self.sentence_splitter(text):
            sentence = raw.strip()
            if not sentence:
                continue
            start = text.find(sentence, position)
            if start == -1:
                logger.debug(f"Could not locate sentence, skipping: {sentence[:60]!r}")
                continue
            end = start + len(sentence)
            position = end
            sentences.append(Chunk(
                text=self.filter_stop_words(sentence),
                start_offset=start,
                end_offset=end,
            ))
        return sentences

    def chunk(self, text: str) -> List[Chunk]:
        """Split `text` into merged chunks; offsets index `text` itself."""
        sentences = self.split_sentences(text)
        chunks = merge_sentence_chunks(sentences, self.max_chunk_size, self.min_chunk_size)
        logger.info(f"Chunked {len(sentences)} sentences into {len(chunks)} chunks")
        return chunks

    def annotate(self, original_text: str, chunks: Iterable[Chunk]) -> str:
        return annotate(original_text, chunks)
