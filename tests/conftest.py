"""
Shared fixtures for the consolidation test suite.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from notefold.processing.chunker import SentenceChunker
from notefold.services.content_store import FileSystemContentStore

from tests.fakes import DIMENSION, CountingIndex, FakeLanguageModel, split_sentences


@pytest.fixture
def llm():
    return FakeLanguageModel()


@pytest.fixture
def index():
    counting = CountingIndex(dimension=DIMENSION)
    counting.create_indexes(['questions', 'topics', 'categories'])
    return counting


@pytest.fixture
def store(tmp_path):
    return FileSystemContentStore(tmp_path / "vault")


@pytest.fixture
def chunker():
    """One sentence per chunk; only 'the', 'a', 'is' are stop words."""
    return SentenceChunker(
        max_chunk_size=1,
        min_chunk_size=1,
        sentence_splitter=split_sentences,
        stop_words={'the', 'a', 'is'},
    )
