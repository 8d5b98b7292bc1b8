"""
Merge resolver test suite.

Uses a scripted index for exact similarity scores and the in-memory FAISS
index for end-to-end merge behaviour.

Run: pytest tests/processing/test_merge_resolver.py -v
"""

import numpy as np
import pytest

from notefold.processing.merge_resolver import MergeResolver
from notefold.utils.dataclasses import ItemKind, MergeAction
from notefold.utils.errors import ExternalServiceError, ValidationError

from tests.fakes import DIMENSION, CountingIndex, FakeLanguageModel, ScriptedIndex, hit


EPSILON = 1e-8
VECTOR = np.ones(4, dtype=np.float32)


# ============================================================================
# Threshold filtering
# ============================================================================

class TestThreshold:
    """Which neighbours count as duplicates"""

    def test_score_at_threshold_is_reused(self):
        index = ScriptedIndex({'topics': [hit('biology', 0.8)]})
        resolver = MergeResolver(index, FakeLanguageModel(), epsilon=EPSILON)

        decision = resolver.resolve(ItemKind.TOPIC, 'plants', VECTOR, threshold=0.8, top_k=3)

        assert decision.action is MergeAction.REUSE
        assert decision.identity == 'biology'

    def test_score_at_threshold_minus_epsilon_is_created(self):
        index = ScriptedIndex({'topics': [hit('biology', 0.8 - EPSILON)]})
        resolver = MergeResolver(index, FakeLanguageModel(), epsilon=EPSILON)

        decision = resolver.resolve(ItemKind.TOPIC, 'plants', VECTOR, threshold=0.8, top_k=3)

        assert decision.action is MergeAction.CREATE
        assert decision.identity == 'plants'

    def test_float_noise_just_below_threshold_is_reused(self):
        index = ScriptedIndex({'topics': [hit('biology', 0.8 - EPSILON / 10)]})
        resolver = MergeResolver(index, FakeLanguageModel(), epsilon=EPSILON)

        decision = resolver.resolve(ItemKind.TOPIC, 'plants', VECTOR, threshold=0.8, top_k=3)

        assert decision.reused

    def test_top_k_passed_to_index(self):
        index = ScriptedIndex()
        resolver = MergeResolver(index, FakeLanguageModel())

        resolver.resolve(ItemKind.CATEGORY, 'science', VECTOR, threshold=0.6, top_k=5)

        assert index.calls[0] == ('query', 'categories', 5)


# ============================================================================
# Create / reuse outcomes
# ============================================================================

class TestOutcomes:
    """Index mutations issued for each decision"""

    def test_create_question_inserts_usage_one(self):
        index = ScriptedIndex()
        resolver = MergeResolver(index, FakeLanguageModel())

        decision = resolver.resolve(ItemKind.QUESTION, 'What is ATP?', VECTOR, threshold=0.9)

        assert decision.action is MergeAction.CREATE
        assert index.mutations() == [(
            'upsert', 'questions', 'What is ATP?',
            {'usage_count': '1', 'merged_from': [], 'original_id': 'What is ATP?'},
        )]

    def test_create_topic_metadata_has_only_usage(self):
        index = ScriptedIndex()
        resolver = MergeResolver(index, FakeLanguageModel())

        resolver.resolve(ItemKind.TOPIC, 'biology', VECTOR, threshold=0.8)

        assert index.mutations() == [('upsert', 'topics', 'biology', {'usage_count': '1'})]

    def test_topic_reuse_picks_highest_usage(self):
        index = ScriptedIndex({'topics': [
            hit('plants', 0.95, usage_count=2),
            hit('botany', 0.85, usage_count=7),
            hit('flora', 0.82, usage_count=3),
        ]})
        resolver = MergeResolver(index, FakeLanguageModel())

        decision = resolver.resolve(ItemKind.TOPIC, 'plant-life', VECTOR, threshold=0.8)

        assert decision.identity == 'botany'
        assert decision.previous_identity == 'botany'
        assert decision.item.usage_count == 8
        assert index.mutations() == [('update_metadata', 'topics', 'botany', {'usage_count': '8'})]

    def test_usage_tie_goes_to_first_ranked(self):
        index = ScriptedIndex({'categories': [
            hit('science', 0.9, usage_count=4),
            hit('nature', 0.7, usage_count=4),
        ]})
        resolver = MergeResolver(index, FakeLanguageModel())

        decision = resolver.resolve(ItemKind.CATEGORY, 'sciences', VECTOR, threshold=0.6)

        assert decision.identity == 'science'

    def test_question_merge_replaces_entry(self):
        index = ScriptedIndex({'questions': [hit(
            'What is ATP?', 0.95, usage_count=2,
            merged_from=['What does ATP do?'], original_id='What does ATP do?',
        )]})
        llm = FakeLanguageModel(merge_fn=lambda first, second: 'What is ATP and why   does it matter')
        resolver = MergeResolver(index, llm)

        decision = resolver.resolve(ItemKind.QUESTION, 'Why is ATP important?', VECTOR, threshold=0.9)

        assert decision.reused
        assert decision.identity == 'What is ATP and why does it matter?'
        assert decision.previous_identity == 'What is ATP?'
        assert ('merge_questions', 'What is ATP?', 'Why is ATP important?') in llm.calls
        assert ('embed', 'What is ATP and why does it matter?') in llm.calls
        assert index.mutations() == [(
            'delete_and_upsert', 'questions', 'What is ATP?', 'What is ATP and why does it matter?',
            {
                'usage_count': '3',
                'merged_from': ['What does ATP do?', 'What is ATP?'],
                'original_id': 'What does ATP do?',
            },
        )]

    def test_first_merge_records_original_identity(self):
        index = ScriptedIndex({'questions': [hit('What is ATP?', 0.99)]})
        resolver = MergeResolver(index, FakeLanguageModel())

        decision = resolver.resolve(ItemKind.QUESTION, 'What does ATP mean?', VECTOR, threshold=0.9)

        assert decision.item.original_identity == 'What is ATP?'
        assert decision.item.merged_from == ['What is ATP?']

    def test_merged_phrasing_naming_another_question_keeps_winner(self):
        index = ScriptedIndex({'questions': [hit('What is ATP?', 0.99)]})
        index.metadata[('questions', 'What is ADP?')] = {'usage_count': '4'}
        llm = FakeLanguageModel(merge_fn=lambda first, second: 'What is ADP')
        resolver = MergeResolver(index, llm)

        decision = resolver.resolve(ItemKind.QUESTION, 'What does ATP mean?', VECTOR, threshold=0.9)

        assert decision.identity == 'What is ATP?'
        assert index.metadata[('questions', 'What is ADP?')] == {'usage_count': '4'}
        assert index.mutations() == [(
            'delete_and_upsert', 'questions', 'What is ATP?', 'What is ATP?',
            {'usage_count': '2', 'merged_from': ['What is ATP?'], 'original_id': 'What is ATP?'},
        )]


# ============================================================================
# Failures
# ============================================================================

class TestFailures:
    """Errors propagate without partial index writes"""

    def test_empty_embedding_raises(self):
        index = ScriptedIndex()
        resolver = MergeResolver(index, FakeLanguageModel())

        with pytest.raises(ExternalServiceError):
            resolver.resolve(ItemKind.TOPIC, 'biology', np.zeros(0, dtype=np.float32), threshold=0.8)
        assert index.calls == []

    def test_unusable_merged_question_raises(self):
        index = ScriptedIndex({'questions': [hit('What is ATP?', 0.99)]})
        resolver = MergeResolver(index, FakeLanguageModel(merge_fn=lambda first, second: ''))

        with pytest.raises(ValidationError):
            resolver.resolve(ItemKind.QUESTION, 'What does ATP mean?', VECTOR, threshold=0.9)
        assert index.mutations() == []

    def test_failed_merged_embedding_raises(self):
        index = ScriptedIndex({'questions': [hit('What is ATP?', 0.99)]})
        llm = FakeLanguageModel(embed_fn=lambda text: np.zeros(0, dtype=np.float32))
        resolver = MergeResolver(index, llm)

        with pytest.raises(ExternalServiceError):
            resolver.resolve(ItemKind.QUESTION, 'What does ATP mean?', VECTOR, threshold=0.9)
        assert index.mutations() == []


# ============================================================================
# Rollback
# ============================================================================

class TestRevert:
    """Undoing a decision restores the index to its prior state"""

    def test_revert_create_deletes_item(self):
        index = ScriptedIndex()
        resolver = MergeResolver(index, FakeLanguageModel())
        decision = resolver.resolve(ItemKind.TOPIC, 'biology', VECTOR, threshold=0.8)

        resolver.revert(decision)

        assert index.mutations()[-1] == ('delete', 'topics', 'biology')
        assert ('topics', 'biology') not in index.metadata

    def test_revert_renamed_question_restores_previous(self):
        previous = {'usage_count': '2', 'merged_from': ['Why ATP?'], 'original_id': 'Why ATP?'}
        index = ScriptedIndex({'questions': [hit('What is ATP?', 0.99, usage_count=2,
                                                 merged_from=['Why ATP?'], original_id='Why ATP?')]})
        llm = FakeLanguageModel(merge_fn=lambda first, second: 'What does ATP store')
        resolver = MergeResolver(index, llm)
        decision = resolver.resolve(ItemKind.QUESTION, 'What is ATP for?', VECTOR, threshold=0.9)

        resolver.revert(decision)

        assert index.mutations()[-1] == (
            'delete_and_upsert', 'questions', 'What does ATP store?', 'What is ATP?', previous,
        )
        assert ('embed', 'What is ATP?') in llm.calls

    def test_revert_reused_topic_restores_usage(self):
        index = ScriptedIndex({'topics': [hit('biology', 0.95, usage_count=3)]})
        resolver = MergeResolver(index, FakeLanguageModel())
        decision = resolver.resolve(ItemKind.TOPIC, 'plants', VECTOR, threshold=0.8)

        resolver.revert(decision)

        assert index.metadata[('topics', 'biology')] == {'usage_count': '3'}


# ============================================================================
# Against the FAISS index
# ============================================================================

class TestMonotonicity:
    """Near-duplicate submissions collapse into one surviving item"""

    def test_questions_within_threshold_collapse(self):
        same = np.zeros(DIMENSION, dtype=np.float32)
        same[0] = 1.0
        llm = FakeLanguageModel(
            embed_fn=lambda text: same,
            merge_fn=lambda first, second: f"{first.rstrip('?')} too",
        )
        index = CountingIndex(dimension=DIMENSION)
        index.create_indexes(['questions'])
        resolver = MergeResolver(index, llm)

        submissions = [f"What is variant {i}?" for i in range(5)]
        for question in submissions:
            resolver.resolve(ItemKind.QUESTION, question, same, threshold=0.9)

        assert index.count('questions') == 1
        [survivor] = index.query('questions', same, top_k=3)
        assert survivor.usage_count == 5
        assert survivor.metadata['original_id'] == 'What is variant 0?'
        assert len(survivor.metadata['merged_from']) == 4

    def test_distinct_topics_stay_separate(self, llm):
        index = CountingIndex(dimension=DIMENSION)
        index.create_indexes(['topics'])
        resolver = MergeResolver(index, llm)

        for topic in ['biology', 'chemistry', 'biology']:
            resolver.resolve(ItemKind.TOPIC, topic, llm.embed(topic), threshold=0.8)

        assert index.count('topics') == 2
        assert index.fetch_metadata('topics', 'biology') == {'usage_count': '2'}
