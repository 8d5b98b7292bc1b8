# -*- coding: utf-8 -*-
"""
Similarity-threshold merge-or-create resolution for derived items

Given a candidate question, topic or category and its embedding, queries the
item's index partition for near-duplicates and decides whether to reuse an
existing identity or insert the candidate as a new one.

Algorithm:
    1. Query top_k neighbours in the kind's partition
    2. Keep hits with score > threshold - epsilon (a hit at exactly the
       threshold is kept, one at exactly threshold - epsilon is not)
    3. No hits: insert the candidate with usage_count "1"
    4. Otherwise pick the hit with the highest usage_count; ties go to the
       first one in the index's ranking
    5. Questions: merge both phrasings through the language model, validate
       and re-embed (a merged phrasing that already names another question
       falls back to the winner's identity), then replace the winner in a single delete_and_upsert
       carrying usage_count + 1, extended merged_from and the cluster's first
       identity as original_id
    6. Topics / categories: the winner's identity is kept, usage_count + 1

Nothing here catches errors. Validation, embedding and index failures
propagate so the engine can drop the whole chunk.

References:
    consolidation_config.py: SIMILARITY_CONFIG, INDEX_NAMES
    notefold.services.vector_index.VectorIndex: partition operations
"""
# Standard library
import logging
from typing import List

# Foundation
from notefold.utils.dataclasses import (
    ITEM_TYPES,
    ItemKind,
    MergeAction,
    MergeDecision,
    Neighbor,
    Question,
)
from notefold.utils.errors import ExternalServiceError
from notefold.utils.text_format import validate_question

# Config
from config.consolidation_config import INDEX_NAMES, SIMILARITY_CONFIG

logger = logging.getLogger(__name__)


class MergeResolver:
    """
    Reuse-or-create decisions against the vector index.

    Args:
        index: VectorIndex (or compatible) holding one partition per ItemKind
        llm: LanguageModelService, used for question merges and re-embedding
        epsilon: Float tolerance under the similarity threshold
        index_names: ItemKind value -> partition name
    """

    def __init__(self, index, llm, epsilon: float = SIMILARITY_CONFIG['epsilon'], index_names=None):
        self.index = index
        self.llm = llm
        self.epsilon = epsilon
        self.index_names = index_names or INDEX_NAMES

    def partition(self, kind: ItemKind) -> str:
        return self.index_names[kind.value]

    def find_similar(self, kind: ItemKind, embedding, threshold: float, top_k: int) -> List[Neighbor]:
        """Neighbours above threshold, in index ranking order."""
        hits = self.index.query(self.partition(kind), embedding, top_k)
        floor = threshold - self.epsilon
        return [hit for hit in hits if hit.score > floor]

    def resolve(
        self,
        kind: ItemKind,
        candidate_identity: str,
        embedding,
        threshold: float,
        top_k: int = SIMILARITY_CONFIG['similar_items_count'],
    ) -> MergeDecision:
        """
        Reuse a near-duplicate or insert the candidate.

        Raises:
            ExternalServiceError: empty embedding or index failure
            ValidationError: merged question phrasing is unusable
        """
        if embedding is None or len(embedding) == 0:
            raise ExternalServiceError(f"Empty embedding for {kind.value[:-1]} {candidate_identity!r}")

        similar = self.find_similar(kind, embedding, threshold, top_k)
        if not similar:
            return self._create(kind, candidate_identity, embedding)

        winner = max(similar, key=lambda hit: hit.usage_count)
        if kind is ItemKind.QUESTION:
            return self._merge_question(winner, candidate_identity)
        return self._reuse(kind, winner)

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def _create(self, kind: ItemKind, identity: str, embedding) -> MergeDecision:
        item = ITEM_TYPES[kind](identity=identity, embedding=embedding)
        self.index.upsert(self.partition(kind), identity, embedding, item.to_metadata())
        logger.info(f"New {kind.value[:-1]}: {identity!r}")
        return MergeDecision(action=MergeAction.CREATE, item=item)

    def _reuse(self, kind: ItemKind, winner: Neighbor) -> MergeDecision:
        usage_count = winner.usage_count + 1
        metadata = self.index.update_metadata(
            self.partition(kind), winner.id, {'usage_count': str(usage_count)}
        )
        item = ITEM_TYPES[kind].from_index(winner.id, metadata)
        logger.info(f"Reused {kind.value[:-1]} {winner.id!r} (usage {usage_count})")
        return MergeDecision(
            action=MergeAction.REUSE,
            item=item,
            previous_identity=winner.id,
            previous_metadata=dict(winner.metadata),
        )

    def _merge_question(self, winner: Neighbor, candidate: str) -> MergeDecision:
        partition = self.partition(ItemKind.QUESTION)
        merged = validate_question(self.llm.merge_questions(winner.id, candidate))
        if merged != winner.id and self.index.fetch_metadata(partition, merged) is not None:
            logger.warning(
                f"Merged phrasing {merged!r} already names another question, keeping {winner.id!r}"
            )
            merged = winner.id
        embedding = self.llm.embed(merged)
        if embedding is None or len(embedding) == 0:
            raise ExternalServiceError(f"Empty embedding for merged question {merged!r}")

        previous = Question.from_index(winner.id, winner.metadata)
        item = Question(
            identity=merged,
            embedding=embedding,
            usage_count=winner.usage_count + 1,
            merged_from=previous.merged_from + [winner.id],
            original_identity=previous.original_identity,
        )
        self.index.delete_and_upsert(
            partition, winner.id, merged, embedding, item.to_metadata()
        )
        logger.info(
            f"Merged question {candidate!r} into {winner.id!r} -> {merged!r} "
            f"(usage {item.usage_count})"
        )
        return MergeDecision(
            action=MergeAction.REUSE,
            item=item,
            previous_identity=winner.id,
            previous_metadata=dict(winner.metadata),
        )

    # ------------------------------------------------------------------
    # Rollback
    # ------------------------------------------------------------------

    def revert(self, decision: MergeDecision) -> None:
        """
        Undo the index mutation behind `decision`.

        Used when the content store could not be brought in line with the
        decision, so the index never names a record that was not written.
        CREATE deletes the inserted item; REUSE restores the winner's
        identity and metadata.
        """
        kind = decision.item.kind
        partition = self.partition(kind)

        if not decision.reused:
            self.index.delete(partition, decision.identity)
            logger.info(f"Reverted new {kind.value[:-1]} {decision.identity!r}")
            return

        previous = decision.previous_identity
        if decision.identity != previous:
            embedding = self.llm.embed(previous)
            if embedding is None or len(embedding) == 0:
                raise ExternalServiceError(f"Empty embedding while restoring {previous!r}")
            self.index.delete_and_upsert(
                partition, decision.identity, previous, embedding, decision.previous_metadata or {}
            )
        else:
            self.index.update_metadata(partition, previous, decision.previous_metadata or {})
        logger.info(f"Reverted {kind.value[:-1]} {decision.identity!r} to {previous!r}")
