# -*- coding: utf-8 -*-
"""
Answer record layout and the atomic rename-on-write update.

An answer record is one markdown file per resolved question:

    ---
    tags: [topic, ...]
    aliases: [question phrasings, ...]
    links: ['[[source-doc]]', ...]
    chunk_source: ['[[source-doc#^start-end]]', ...]
    processed_at: ...
    ---
    summary of the first chunk

    ---
    question: ...
    source: [[source-doc]]
    link: [[source-doc#^start-end]]

    ---

    summary of the next merged chunk
    ...

Frontmatter list fields only ever grow. Existing records are rewritten with
atomic_file_update so the canonical path always holds either the old or the
complete new content.
"""
# Standard library
import logging
from typing import Any, Dict, List, Optional

# Foundation
from notefold.utils.dataclasses import AnswerFrontmatter, Chunk
from notefold.utils.errors import StoreMutationError

logger = logging.getLogger(__name__)


def source_link(document_name: str) -> str:
    return f"[[{document_name}]]"


def chunk_source_link(document_name: str, chunk: Chunk) -> str:
    """Wiki link to the chunk's `^start-end` block marker."""
    return f"[[{document_name}#^{chunk.anchor}]]"


def build_location_block(question: str, document_name: str, chunk: Chunk) -> str:
    return (
        f"\n\n---\nquestion: {question}\n"
        f"source: {source_link(document_name)}\n"
        f"link: {chunk_source_link(document_name, chunk)}\n\n---\n\n"
    )


def create_frontmatter(
    existing: Optional[Dict[str, Any]],
    topics: List[str],
    questions: List[str],
    document_name: str,
    chunk_source: str,
    categories: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Union new provenance into existing frontmatter; nothing is dropped."""
    merged = AnswerFrontmatter.from_dict(existing).merge(
        topics=topics,
        questions=questions,
        source_link=source_link(document_name),
        chunk_source=chunk_source,
        categories=categories,
    )
    return merged.to_dict()


def atomic_file_update(store, path: str, content: str, new_path: Optional[str] = None) -> str:
    """
    Replace a file's content, optionally moving it, without a torn state.

    Steps: write `<path>.tmp`, rename path -> `<path>.bak`, rename tmp -> path,
    rename path -> new_path (if given), remove the backup. Any failure restores
    the backup to `path` and removes partial results.

    Returns:
        Final path of the record

    Raises:
        StoreMutationError: the update failed and the original was restored
    """
    tmp_path = f"{path}.tmp"
    backup_path = f"{path}.bak"
    final_path = new_path or path
    moved = False

    try:
        store.write(tmp_path, content)
        store.rename(path, backup_path)
        store.rename(tmp_path, path)
        if final_path != path:
            store.rename(path, final_path)
            moved = True
        store.remove(backup_path)
    except OSError as e:
        if store.exists(backup_path):
            if moved and store.exists(final_path):
                store.remove(final_path)
            if store.exists(path):
                store.remove(path)
            store.rename(backup_path, path)
            logger.warning(f"Restored {path} from backup after failed update")
        if store.exists(tmp_path):
            store.remove(tmp_path)
        raise StoreMutationError(
            f"Atomic update of {path} failed: {e}",
            details={'path': path, 'new_path': new_path},
        ) from e

    return final_path
