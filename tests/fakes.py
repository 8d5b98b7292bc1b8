"""
Test doubles for the consolidation pipeline.

Nothing here touches the network or downloads models: the language model is a
deterministic fake, sentence splitting is a regex, and embeddings are one-hot
vectors handed out per distinct text (identical text -> score 1.0, different
text -> score 0.0).
"""

import re

import numpy as np

from notefold.services.vector_index import VectorIndex
from notefold.utils.dataclasses import Neighbor


DIMENSION = 64


# ============================================================================
# Fakes
# ============================================================================

class FakeLanguageModel:
    """
    Deterministic stand-in for LanguageModelService.

    summary = chunk text, question = "What is <summary>", topic = "biology",
    merged question = the existing phrasing, category = "science". Any of them
    can be overridden with a callable.
    """

    def __init__(self, question_fn=None, topic_fn=None, merge_fn=None, unify_fn=None, embed_fn=None):
        self.question_fn = question_fn or (lambda text: f"What is {text}")
        self.topic_fn = topic_fn or (lambda context: "biology")
        self.merge_fn = merge_fn or (lambda first, second: first)
        self.unify_fn = unify_fn or (lambda topics: "science")
        self.embed_fn = embed_fn
        self.vectors = {}
        self.calls = []

    def summarize(self, text):
        self.calls.append(('summarize', text))
        return text

    def question(self, text):
        self.calls.append(('question', text))
        return self.question_fn(text)

    def topic(self, context, file_name=""):
        self.calls.append(('topic', context))
        return self.topic_fn(context)

    def merge_questions(self, first, second):
        self.calls.append(('merge_questions', first, second))
        return self.merge_fn(first, second)

    def unify_topics(self, topics):
        self.calls.append(('unify_topics', list(topics)))
        return self.unify_fn(topics)

    def embed(self, text):
        self.calls.append(('embed', text))
        if self.embed_fn is not None:
            return self.embed_fn(text)
        if text not in self.vectors:
            vector = np.zeros(DIMENSION, dtype=np.float32)
            vector[len(self.vectors) % DIMENSION] = 1.0
            self.vectors[text] = vector
        return self.vectors[text]

    def embedding_dimension(self):
        return DIMENSION

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


class CountingIndex(VectorIndex):
    """In-memory VectorIndex that records every mutation."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.mutations = []

    def upsert(self, name, item_id, vector, metadata):
        self.mutations.append(('upsert', name, item_id))
        return super().upsert(name, item_id, vector, metadata)

    def delete_and_upsert(self, name, old_id, new_id, vector, metadata):
        self.mutations.append(('delete_and_upsert', name, old_id, new_id))
        return super().delete_and_upsert(name, old_id, new_id, vector, metadata)

    def update_metadata(self, name, item_id, patch):
        self.mutations.append(('update_metadata', name, item_id))
        return super().update_metadata(name, item_id, patch)


class ScriptedIndex:
    """Index double whose query results are set by the test."""

    def __init__(self, hits=None):
        self.hits = hits or {}
        self.metadata = {}
        self.calls = []

    def query(self, name, vector, top_k):
        self.calls.append(('query', name, top_k))
        return list(self.hits.get(name, []))[:top_k]

    def upsert(self, name, item_id, vector, metadata):
        self.calls.append(('upsert', name, item_id, dict(metadata)))
        self.metadata[(name, item_id)] = dict(metadata)

    def delete(self, name, item_id):
        self.calls.append(('delete', name, item_id))
        return self.metadata.pop((name, item_id), None) is not None

    def fetch_metadata(self, name, item_id):
        metadata = self.metadata.get((name, item_id))
        return dict(metadata) if metadata is not None else None

    def delete_and_upsert(self, name, old_id, new_id, vector, metadata):
        self.calls.append(('delete_and_upsert', name, old_id, new_id, dict(metadata)))
        self.metadata.pop((name, old_id), None)
        self.metadata[(name, new_id)] = dict(metadata)

    def update_metadata(self, name, item_id, patch):
        self.calls.append(('update_metadata', name, item_id, dict(patch)))
        current = self.metadata.get((name, item_id), {})
        current.update(patch)
        self.metadata[(name, item_id)] = current
        return dict(current)

    def mutations(self):
        return [call for call in self.calls if call[0] != 'query']


class FailingRenameStore:
    """Wraps a store and fails the n-th rename call."""

    def __init__(self, store, fail_on):
        self._store = store
        self.fail_on = fail_on
        self.renames = 0

    def rename(self, old_path, new_path):
        self.renames += 1
        if self.renames == self.fail_on:
            raise OSError(f"simulated rename failure: {old_path} -> {new_path}")
        return self._store.rename(old_path, new_path)

    def __getattr__(self, name):
        return getattr(self._store, name)


def hit(identity, score, usage_count=1, **metadata):
    """Neighbor with string-encoded usage_count, as the index returns it."""
    return Neighbor(id=identity, score=score, metadata={'usage_count': str(usage_count), **metadata})


def split_sentences(text):
    return [s for s in re.split(r'(?<=[.!?])\s+', text) if s.strip()]
