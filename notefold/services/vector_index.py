# -*- coding: utf-8 -*-
"""
FAISS-backed vector index with named partitions and usage metadata.

Each partition (questions, topics, categories) is a flat inner-product FAISS
index wrapped in an IndexIDMap2, plus a parallel record map from the integer
FAISS id to the string identity and its metadata. Vectors are L2-normalized on
the way in, so query scores are cosine similarities. Partitions are persisted
to `<index_dir>/<name>.faiss` and `<index_dir>/<name>.json`; both files are
written to a temporary path and swapped in with os.replace, so a crash leaves
either the previous or the new state on disk.

Every mutation (upsert, delete_and_upsert, update_metadata) is applied in
memory and persisted once, which makes delete_and_upsert atomic from the
caller's point of view. Metadata always carries `usage_count` as a string.

Examples:
    from notefold.services.vector_index import VectorIndex

    index = VectorIndex(index_dir=Path("notes/.notefold_index"))
    index.create_indexes(["questions", "topics", "categories"], dimension=1024)
    index.upsert("topics", "biology", vector, {"usage_count": "1"})
    hits = index.query("topics", vector, top_k=3)

References:
    FAISS: IndexFlatIP + IndexIDMap2 (supports remove_ids)
    notefold.utils.dataclasses.Neighbor: query result shape
"""
# Standard library
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

# Third-party
import faiss
import numpy as np

# Foundation
from notefold.utils.dataclasses import Neighbor
from notefold.utils.errors import ExternalServiceError

logger = logging.getLogger(__name__)


def _normalize(vector) -> np.ndarray:
    arr = np.asarray(vector, dtype=np.float32).reshape(1, -1)
    norm = np.linalg.norm(arr)
    if norm > 0:
        arr = arr / norm
    return arr


class _Partition:
    """One named FAISS index plus its identity/metadata records."""

    def __init__(self, name: str, dimension: int):
        self.name = name
        self.dimension = dimension
        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))
        self.ids: Dict[str, int] = {}
        self.records: Dict[int, Dict[str, Any]] = {}
        self.next_id = 0

    def __len__(self) -> int:
        return len(self.ids)

    def remove(self, identity: str) -> bool:
        faiss_id = self.ids.pop(identity, None)
        if faiss_id is None:
            return False
        self.index.remove_ids(np.array([faiss_id], dtype=np.int64))
        self.records.pop(faiss_id, None)
        return True

    def add(self, identity: str, vector: np.ndarray, metadata: Dict[str, Any]) -> None:
        faiss_id = self.next_id
        self.next_id += 1
        self.index.add_with_ids(vector, np.array([faiss_id], dtype=np.int64))
        self.ids[identity] = faiss_id
        self.records[faiss_id] = {'id': identity, 'metadata': dict(metadata)}

    def state(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'dimension': self.dimension,
            'next_id': self.next_id,
            'records': {str(k): v for k, v in self.records.items()},
        }


class VectorIndex:
    """
    Partitioned nearest-neighbour index for derived items.

    Args:
        index_dir: Directory for persisted partitions; None keeps everything
            in memory
        dimension: Default vector dimension for partitions created lazily
    """

    def __init__(self, index_dir: Optional[Path] = None, dimension: Optional[int] = None):
        self.index_dir = Path(index_dir) if index_dir else None
        self.dimension = dimension
        self.partitions: Dict[str, _Partition] = {}

        if self.index_dir and self.index_dir.exists():
            self._load_all()

        logger.info(
            f"VectorIndex initialized: dir={self.index_dir}, "
            f"partitions={sorted(self.partitions)}"
        )

    # ------------------------------------------------------------------
    # Setup / persistence
    # ------------------------------------------------------------------

    def create_indexes(self, names: Iterable[str], dimension: Optional[int] = None) -> List[str]:
        """
        Create missing partitions.

        Returns:
            Names of partitions that were created
        """
        dimension = dimension or self.dimension
        if not dimension:
            raise ValueError("Vector dimension required to create partitions")
        self.dimension = dimension

        created = []
        for name in names:
            if name in self.partitions:
                continue
            logger.info(f"Creating index partition: {name} (dim={dimension})")
            self.partitions[name] = _Partition(name, dimension)
            self._persist(name)
            created.append(name)
        return created

    def _load_all(self) -> None:
        for meta_path in sorted(self.index_dir.glob("*.json")):
            name = meta_path.stem
            index_path = self.index_dir / f"{name}.faiss"
            if not index_path.exists():
                logger.warning(f"Skipping partition {name}: missing {index_path.name}")
                continue
            with open(meta_path, 'r', encoding='utf-8') as f:
                state = json.load(f)

            partition = _Partition(name, state['dimension'])
            partition.index = faiss.read_index(str(index_path))
            partition.next_id = state['next_id']
            partition.records = {int(k): v for k, v in state['records'].items()}
            partition.ids = {v['id']: k for k, v in partition.records.items()}
            self.partitions[name] = partition
            self.dimension = self.dimension or partition.dimension
            logger.debug(f"Loaded partition {name}: {len(partition)} items")

    def _persist(self, name: str) -> None:
        if not self.index_dir:
            return
        self.index_dir.mkdir(parents=True, exist_ok=True)
        partition = self.partitions[name]

        index_path = self.index_dir / f"{name}.faiss"
        meta_path = self.index_dir / f"{name}.json"
        index_tmp = index_path.with_suffix('.faiss.tmp')
        meta_tmp = meta_path.with_suffix('.json.tmp')

        faiss.write_index(partition.index, str(index_tmp))
        with open(meta_tmp, 'w', encoding='utf-8') as f:
            json.dump(partition.state(), f, ensure_ascii=False)

        os.replace(index_tmp, index_path)
        os.replace(meta_tmp, meta_path)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _partition(self, name: str, dimension: Optional[int] = None) -> _Partition:
        partition = self.partitions.get(name)
        if partition is None:
            if not (dimension or self.dimension):
                raise ExternalServiceError(f"Unknown index partition: {name}")
            self.create_indexes([name], dimension or self.dimension)
            partition = self.partitions[name]
        return partition

    def _vector(self, partition: _Partition, vector) -> np.ndarray:
        arr = np.asarray(vector, dtype=np.float32)
        if arr.size == 0:
            raise ExternalServiceError(f"Empty embedding for partition {partition.name}")
        if arr.size != partition.dimension:
            raise ExternalServiceError(
                f"Embedding dimension {arr.size} does not match partition "
                f"{partition.name} ({partition.dimension})"
            )
        return _normalize(arr)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def upsert(self, name: str, item_id: str, vector, metadata: Dict[str, Any]) -> None:
        """Insert or replace one item."""
        partition = self._partition(name, np.asarray(vector).size or None)
        arr = self._vector(partition, vector)
        try:
            partition.remove(item_id)
            partition.add(item_id, arr, metadata)
        except RuntimeError as e:
            raise ExternalServiceError(f"Failed to upsert into {name}: {e}") from e
        self._persist(name)
        logger.debug(f"Upserted {item_id!r} into {name}")

    def delete(self, name: str, item_id: str) -> bool:
        """Remove one item; returns False if it was not present."""
        partition = self._partition(name)
        removed = partition.remove(item_id)
        if removed:
            self._persist(name)
        return removed

    def delete_and_upsert(
        self,
        name: str,
        old_id: str,
        new_id: str,
        vector,
        metadata: Dict[str, Any],
    ) -> None:
        """
        Replace `old_id` with `new_id` in a single persisted step.

        Raises:
            ExternalServiceError: `new_id` already names a different item
        """
        partition = self._partition(name, np.asarray(vector).size or None)
        if new_id != old_id and new_id in partition.ids:
            raise ExternalServiceError(
                f"Cannot replace {old_id!r} with {new_id!r} in {name}: {new_id!r} already exists"
            )
        arr = self._vector(partition, vector)
        try:
            partition.remove(old_id)
            partition.add(new_id, arr, metadata)
        except RuntimeError as e:
            raise ExternalServiceError(f"Failed to replace {old_id!r} in {name}: {e}") from e
        self._persist(name)
        logger.debug(f"Replaced {old_id!r} with {new_id!r} in {name}")

    def fetch_metadata(self, name: str, item_id: str) -> Optional[Dict[str, Any]]:
        partition = self._partition(name)
        faiss_id = partition.ids.get(item_id)
        if faiss_id is None:
            return None
        return dict(partition.records[faiss_id]['metadata'])

    def update_metadata(self, name: str, item_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Merge `patch` over the item's metadata and persist."""
        partition = self._partition(name)
        faiss_id = partition.ids.get(item_id)
        if faiss_id is None:
            raise ExternalServiceError(f"Cannot update missing item {item_id!r} in {name}")
        record = partition.records[faiss_id]
        record['metadata'] = {**record['metadata'], **patch}
        self._persist(name)
        return dict(record['metadata'])

    def query(self, name: str, vector, top_k: int) -> List[Neighbor]:
        """
        Ranked neighbours (highest cosine score first).

        Returns:
            Up to top_k Neighbor objects; empty for an empty partition
        """
        partition = self._partition(name)
        if len(partition) == 0 or top_k <= 0:
            return []
        arr = self._vector(partition, vector)
        k = min(top_k, len(partition))
        try:
            scores, faiss_ids = partition.index.search(arr, k)
        except RuntimeError as e:
            raise ExternalServiceError(f"Failed to query {name}: {e}") from e

        neighbors = []
        for score, faiss_id in zip(scores[0], faiss_ids[0]):
            if faiss_id < 0:
                continue
            record = partition.records.get(int(faiss_id))
            if record is None:
                continue
            neighbors.append(Neighbor(
                id=record['id'],
                score=float(score),
                metadata=dict(record['metadata']),
            ))
        return neighbors

    def count(self, name: str) -> int:
        partition = self.partitions.get(name)
        return len(partition) if partition else 0
