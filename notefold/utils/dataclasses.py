# -*- coding: utf-8 -*-
"""
Core data structures for the consolidation pipeline

Single source of truth for chunks, derived items (questions, topics,
categories), nearest-neighbour hits, merge decisions and answer-record
frontmatter. Import from this module rather than redefining shapes locally.

Examples:
    from notefold.utils.dataclasses import Chunk, ItemKind, Question

    chunk = Chunk(text="Photosynthesis converts light", start_offset=0, end_offset=42)
    question = Question(identity="What is photosynthesis?", usage_count=1)

"""
# Standard library
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

# Third-party
import numpy as np


# ============================================================================
# ENUMS
# ============================================================================

class ItemKind(Enum):
    """Derived item partitions in the vector index."""
    QUESTION = "questions"
    TOPIC = "topics"
    CATEGORY = "categories"


class MergeAction(Enum):
    """Outcome of merge resolution."""
    REUSE = "reuse"
    CREATE = "create"


# ============================================================================
# CHUNKS
# ============================================================================

@dataclass(frozen=True)
class Chunk:
    """
    Span of one document, the unit of independent derivation.

    Offsets index the original, untrimmed document so annotation markers and
    back-links stay valid; `text` is the stop-word filtered working text.
    """
    text: str
    start_offset: int
    end_offset: int

    @property
    def token_count(self) -> int:
        return len(self.text.split())

    @property
    def anchor(self) -> str:
        """Block id used by annotation markers and source links."""
        return f"{self.start_offset}-{self.end_offset}"

    def chunk_id(self, document_name: str) -> str:
        """Ledger key: '<documentName>-<startOffset>-<endOffset>'."""
        return f"{document_name}-{self.start_offset}-{self.end_offset}"


# ============================================================================
# DERIVED ITEMS
# ============================================================================

@dataclass
class DerivedItem:
    """
    Question, topic or category tracked for duplication in the vector index.

    `identity` is both the display value and the index key. Merging may change
    it (questions only); lineage survives in `merged_from` and
    `original_identity`.
    """
    identity: str
    embedding: Optional[np.ndarray] = None
    usage_count: int = 1
    merged_from: List[str] = field(default_factory=list)
    original_identity: Optional[str] = None

    kind = None  # overridden per subclass

    def __post_init__(self):
        if self.original_identity is None:
            self.original_identity = self.identity

    def to_metadata(self) -> Dict[str, Any]:
        """Index metadata; usage_count is string-encoded."""
        metadata = {'usage_count': str(self.usage_count)}
        if self.kind is ItemKind.QUESTION:
            metadata['merged_from'] = list(self.merged_from)
            metadata['original_id'] = self.original_identity
        return metadata

    @classmethod
    def from_index(cls, identity: str, metadata: Dict[str, Any], embedding: Optional[np.ndarray] = None) -> "DerivedItem":
        """Rebuild an item from an index record."""
        return cls(
            identity=identity,
            embedding=embedding,
            usage_count=int(metadata.get('usage_count', 1)),
            merged_from=list(metadata.get('merged_from') or []),
            original_identity=metadata.get('original_id') or identity,
        )


@dataclass
class Question(DerivedItem):
    """Question identity; becomes the answer-record file name and an alias."""
    kind = ItemKind.QUESTION


@dataclass
class Topic(DerivedItem):
    """Topic identity; becomes a folder name and a tag."""
    kind = ItemKind.TOPIC


@dataclass
class Category(DerivedItem):
    """Category identity; parent folder for a document's topic folders."""
    kind = ItemKind.CATEGORY


ITEM_TYPES = {
    ItemKind.QUESTION: Question,
    ItemKind.TOPIC: Topic,
    ItemKind.CATEGORY: Category,
}


# ============================================================================
# MERGE RESOLUTION
# ============================================================================

@dataclass
class Neighbor:
    """Nearest-neighbour hit from a vector index partition."""
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def usage_count(self) -> int:
        return int(self.metadata.get('usage_count', 0))


@dataclass
class MergeDecision:
    """
    Result of resolving one candidate against its partition.

    REUSE: `item` is the surviving (possibly renamed) item and
    `previous_identity` the identity it had before this merge, with the
    index metadata it carried in `previous_metadata`.
    CREATE: `item` is the freshly inserted candidate.
    """
    action: MergeAction
    item: DerivedItem
    previous_identity: Optional[str] = None
    previous_metadata: Optional[Dict[str, Any]] = None

    @property
    def identity(self) -> str:
        return self.item.identity

    @property
    def reused(self) -> bool:
        return self.action is MergeAction.REUSE


# ============================================================================
# ANSWER RECORDS
# ============================================================================

def unique_ordered(values) -> List[str]:
    """Order-preserving de-duplication, dropping empty values."""
    return list(dict.fromkeys(v for v in values if v))


@dataclass
class AnswerFrontmatter:
    """
    Frontmatter schema of an answer record.

    List fields are append-only sets (order of first appearance kept).
    Unknown keys written by users survive in `extra`.
    """
    tags: List[str] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    chunk_source: List[str] = field(default_factory=list)
    category: List[str] = field(default_factory=list)
    processed_at: Optional[str] = None
    original_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    LIST_FIELDS = ('tags', 'aliases', 'links', 'chunk_source', 'category')

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AnswerFrontmatter":
        data = dict(data or {})
        values = {}
        for name in cls.LIST_FIELDS:
            raw = data.pop(name, None) or []
            if isinstance(raw, str):
                raw = [raw]
            values[name] = unique_ordered(str(v) for v in raw)
        processed_at = data.pop('processed_at', None)
        original_id = data.pop('original_id', None)
        return cls(
            processed_at=str(processed_at) if processed_at else None,
            original_id=original_id,
            extra=data,
            **values
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        for name in self.LIST_FIELDS:
            values = getattr(self, name)
            if values:
                data[name] = list(values)
        if self.processed_at:
            data['processed_at'] = self.processed_at
        if self.original_id:
            data['original_id'] = self.original_id
        return data

    def merge(
        self,
        topics: List[str],
        questions: List[str],
        source_link: str,
        chunk_source: str,
        categories: Optional[List[str]] = None,
    ) -> "AnswerFrontmatter":
        """Union new provenance into a copy; nothing is ever overwritten."""
        return AnswerFrontmatter(
            tags=unique_ordered(self.tags + list(topics)),
            aliases=unique_ordered(self.aliases + list(questions)),
            links=unique_ordered(self.links + [source_link]),
            chunk_source=unique_ordered(self.chunk_source + [chunk_source]),
            category=unique_ordered(self.category + list(categories or [])),
            processed_at=datetime.now().isoformat(),
            original_id=self.original_id,
            extra=dict(self.extra),
        )


# ============================================================================
# ENGINE OUTPUT
# ============================================================================

@dataclass
class ConsolidationResult:
    """What a document run hands back to the driver."""
    document_name: str
    annotated_content: str
    answered_questions: List[str]
    chunk_count: int
    processed_chunks: int
    failed_chunks: List[str] = field(default_factory=list)
    category: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return not self.failed_chunks
