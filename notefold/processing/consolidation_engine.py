# -*- coding: utf-8 -*-
"""
Per-document consolidation: chunk, derive, deduplicate, write answer records

Drives one document through the pipeline:

    chunk -> for each uncommitted chunk:
                 summary -> question -> topic (from summary + chunk text)
                 validate -> embed -> resolve question -> resolve topic
                 create or merge the answer record
                 mark the chunk in the processing ledger
          -> unify topics into a category and promote topic folders
          -> annotate the source with ^start-end markers

A failing chunk (validation, external service, store mutation or anything
else) is logged with its chunk id, dropped from the ledger and skipped; the
remaining chunks still run. If the answer record cannot be written, the
chunk's index mutations are reverted so the index only names records that
exist. Category promotion failures are logged and never roll back written
records. A document with any failed chunk is reported as not succeeded: its
ledger keeps the committed chunks and its source is not flagged as
processed, so the next run retries only what is missing.

Chunk offsets index the original document. A leading frontmatter block is
excluded from chunking so markers never land inside YAML.

References:
    consolidation_config.py: SIMILARITY_CONFIG, FOLDER_CONFIG, PROCESSED_FLAG
    merge_resolver.py: reuse-or-create decisions
    answer_records.py: record layout and atomic update
"""
# Standard library
import logging
from datetime import datetime
from typing import List, Optional, Tuple

# Foundation
from notefold.utils.dataclasses import Chunk, ConsolidationResult, ItemKind, MergeDecision, unique_ordered
from notefold.utils.errors import ConsolidationError, ExternalServiceError, StoreMutationError
from notefold.utils.frontmatter import body_offset, get_frontmatter, set_frontmatter, strip_frontmatter
from notefold.utils.text_format import validate_question, validate_topic

# Local
from notefold.processing.answer_records import (
    atomic_file_update,
    build_location_block,
    chunk_source_link,
    create_frontmatter,
)
from notefold.processing.chunker import SentenceChunker
from notefold.processing.merge_resolver import MergeResolver
from notefold.processing.state_ledger import ProcessingLedger

# Config
from config.consolidation_config import FOLDER_CONFIG, LLM_CONFIG, PROCESSED_FLAG, SIMILARITY_CONFIG

logger = logging.getLogger(__name__)


class ConsolidationEngine:
    """
    Orchestrates chunking, merge resolution and content-store mutation.

    Args:
        llm: LanguageModelService (summaries, questions, topics, embeddings)
        index: VectorIndex with questions/topics/categories partitions
        store: FileSystemContentStore holding notes and answer records
        chunker: SentenceChunker (default built from CHUNKING_CONFIG)
        output_folder: Store folder for answer records and the ledger
        question_threshold / topic_threshold / category_threshold:
            Similarity needed to reuse an existing item
        similar_items_count: Neighbours fetched per lookup
    """

    def __init__(
        self,
        llm,
        index,
        store,
        chunker: Optional[SentenceChunker] = None,
        output_folder: str = FOLDER_CONFIG['output_folder'],
        question_threshold: float = SIMILARITY_CONFIG['question_similarity_threshold'],
        topic_threshold: float = SIMILARITY_CONFIG['topic_similarity_threshold'],
        category_threshold: float = SIMILARITY_CONFIG['category_similarity_threshold'],
        similar_items_count: int = SIMILARITY_CONFIG['similar_items_count'],
        resolver: Optional[MergeResolver] = None,
    ):
        self.llm = llm
        self.index = index
        self.store = store
        self.chunker = chunker or SentenceChunker()
        self.resolver = resolver or MergeResolver(index, llm)
        self.output_folder = output_folder
        self.question_threshold = question_threshold
        self.topic_threshold = topic_threshold
        self.category_threshold = category_threshold
        self.top_k = similar_items_count

    # ========================================================================
    # DOCUMENT
    # ========================================================================

    def chunk_document(self, content: str) -> List[Chunk]:
        """Chunk the body; offsets are shifted back to index `content`."""
        offset = body_offset(content)
        chunks = self.chunker.chunk(content[offset:])
        if not offset:
            return chunks
        return [
            Chunk(text=c.text, start_offset=c.start_offset + offset, end_offset=c.end_offset + offset)
            for c in chunks
        ]

    def consolidate(
        self,
        document_name: str,
        content: str,
        ledger: Optional[ProcessingLedger] = None,
    ) -> ConsolidationResult:
        """
        Consolidate one document into answer records.

        Args:
            document_name: Source note name without extension (used in links)
            content: Full source text
            ledger: Processing ledger of the output folder (loaded if omitted)

        Returns:
            ConsolidationResult; annotated_content carries the markers and the
            processed flag only when every chunk succeeded
        """
        ledger = ledger if ledger is not None else ProcessingLedger(self.store, self.output_folder)
        success = False

        try:
            chunks = self.chunk_document(content)
            logger.info(f"Processing {document_name}: {len(chunks)} chunks")

            topic_folders = []
            all_topics = []
            answered = []
            failed = []
            processed = 0

            for chunk in chunks:
                chunk_id = chunk.chunk_id(document_name)
                if ledger.is_processed(chunk_id):
                    logger.debug(f"Skipping committed chunk {chunk_id}")
                    continue

                try:
                    question, topic, created_folder = self._process_chunk(document_name, chunk)
                    ledger.mark_processed(chunk_id)
                except Exception as e:
                    if isinstance(e, ConsolidationError):
                        e.attach(chunk_id=chunk_id, document=document_name)
                    logger.error(f"Error processing chunk {chunk_id} of {document_name}: {e}")
                    ledger.discard(chunk_id)
                    failed.append(chunk_id)
                    continue

                processed += 1
                answered.append(question)
                all_topics.append(topic)
                if created_folder and created_folder not in topic_folders:
                    topic_folders.append(created_folder)

            category = None
            if len(all_topics) > 1:
                try:
                    category = self._promote_topics(all_topics, topic_folders)
                except Exception as e:
                    logger.error(f"Failed to organize common category for {document_name}: {e}")

            result = ConsolidationResult(
                document_name=document_name,
                annotated_content=content,
                answered_questions=unique_ordered(answered),
                chunk_count=len(chunks),
                processed_chunks=processed,
                failed_chunks=failed,
                category=category,
            )

            if result.succeeded:
                result.annotated_content = set_frontmatter(
                    self.chunker.annotate(content, chunks),
                    {
                        PROCESSED_FLAG: True,
                        'answered_questions': result.answered_questions,
                        'processed_at': datetime.now().isoformat(),
                    },
                )
                logger.info(f"Processed {document_name}: {processed}/{len(chunks)} chunks this run")
            else:
                logger.warning(
                    f"{document_name}: {len(failed)} of {len(chunks)} chunks failed, "
                    f"keeping ledger for retry"
                )

            success = result.succeeded
            return result
        finally:
            ledger.finalize(success, document_name=document_name)

    # ========================================================================
    # CHUNK
    # ========================================================================

    def _process_chunk(self, document_name: str, chunk: Chunk) -> Tuple[str, str, Optional[str]]:
        """
        Derive, resolve and write one chunk.

        Returns:
            (validated question, resolved topic, topic folder created or None)
        """
        summary = self.llm.summarize(chunk.text)
        if summary == LLM_CONFIG['fallback_summary']:
            raise ExternalServiceError("Language model returned no summary")
        raw_question = self.llm.question(summary)
        raw_topic = self.llm.topic(f"{summary}\n\n{chunk.text}", file_name=document_name)

        question = validate_question(raw_question)
        topic = validate_topic(raw_topic)

        question_embedding = self.llm.embed(question)
        topic_embedding = self.llm.embed(topic)

        question_decision = self.resolver.resolve(
            ItemKind.QUESTION, question, question_embedding, self.question_threshold, self.top_k
        )
        try:
            topic_decision = self.resolver.resolve(
                ItemKind.TOPIC, topic, topic_embedding, self.topic_threshold, self.top_k
            )
        except ConsolidationError:
            self._revert([question_decision])
            raise

        final_question = question_decision.identity
        final_topic = topic_decision.identity
        chunk_link = chunk_source_link(document_name, chunk)
        location_block = build_location_block(question, document_name, chunk)
        aliases = unique_ordered([question, final_question])

        try:
            if question_decision.reused:
                existing = self.store.find_file_by_name(
                    f"{question_decision.previous_identity}.md", under=self.output_folder
                )
                if existing:
                    self._merge_into_record(
                        existing, summary, final_topic, final_question, aliases,
                        document_name, chunk_link, location_block,
                    )
                    return question, final_topic, None
                logger.warning(
                    f"Answer record for {question_decision.previous_identity!r} not found, "
                    f"creating a new one"
                )

            folder = self._create_record(
                summary, final_topic, final_question, aliases, document_name, chunk_link, location_block
            )
            return question, final_topic, folder
        except (StoreMutationError, OSError):
            self._revert([question_decision, topic_decision])
            raise

    def _revert(self, decisions: List[MergeDecision]) -> None:
        """Roll the index back to match a record write that did not happen."""
        for decision in reversed(decisions):
            try:
                self.resolver.revert(decision)
            except (ConsolidationError, OSError) as e:
                logger.error(f"Could not revert {decision.identity!r} in the index: {e}")

    def _create_record(
        self,
        summary: str,
        topic: str,
        question: str,
        aliases: List[str],
        document_name: str,
        chunk_link: str,
        location_block: str,
    ) -> str:
        folder = f"{self.output_folder}/{topic}"
        if not self.store.exists(folder):
            self.store.create_folder(folder)

        frontmatter = create_frontmatter({}, [topic], aliases, document_name, chunk_link)
        path = f"{folder}/{question}.md"
        self.store.write(path, set_frontmatter(summary, frontmatter) + location_block)
        logger.info(f"Created answer record {path}")
        return topic

    def _merge_into_record(
        self,
        path: str,
        summary: str,
        topic: str,
        question: str,
        aliases: List[str],
        document_name: str,
        chunk_link: str,
        location_block: str,
    ) -> str:
        content = self.store.read(path)
        existing = get_frontmatter(content) or {}
        body = f"{strip_frontmatter(content)}\n\n{summary}"
        updated = set_frontmatter(
            body, create_frontmatter(existing, [topic], aliases, document_name, chunk_link)
        )

        folder = path.rsplit('/', 1)[0]
        new_path = f"{folder}/{question}.md"
        final_path = atomic_file_update(self.store, path, updated + location_block, new_path)
        logger.info(f"Merged chunk into answer record {final_path}")
        return final_path

    # ========================================================================
    # CATEGORY PROMOTION
    # ========================================================================

    def _promote_topics(self, topics: List[str], topic_folders: List[str]) -> str:
        """
        Resolve a unifying category and move this run's topic folders under it.

        Returns:
            Resolved category identity
        """
        category = validate_topic(self.llm.unify_topics(unique_ordered(topics)))
        embedding = self.llm.embed(category)
        decision = self.resolver.resolve(
            ItemKind.CATEGORY, category, embedding, self.category_threshold, self.top_k
        )
        final_category = decision.identity
        parent = f"{self.output_folder}/{final_category}"

        for topic in topic_folders:
            if topic == final_category:
                logger.debug(f"Topic folder {topic!r} is the category itself, not moving")
                continue
            source = f"{self.output_folder}/{topic}"
            if not self.store.exists(source):
                continue
            if not self.store.exists(parent):
                self.store.create_folder(parent)

            moved = self._move_folder(source, f"{parent}/{topic}")
            for path in moved:
                self._tag_category(path, final_category)

        logger.info(f"Promoted {len(topic_folders)} topic folders under {final_category!r}")
        return final_category

    def _move_folder(self, source: str, target: str) -> List[str]:
        """Move a folder; merges file by file when the target exists."""
        if not self.store.exists(target):
            self.store.rename(source, target)
            files, _ = self.store.list(target)
            return files

        moved = []
        files, _ = self.store.list(source)
        for path in files:
            destination = f"{target}/{path.rsplit('/', 1)[-1]}"
            if self.store.exists(destination):
                logger.warning(f"Not moving {path}: {destination} already exists")
                continue
            self.store.rename(path, destination)
            moved.append(destination)

        remaining_files, remaining_folders = self.store.list(source)
        if not remaining_files and not remaining_folders:
            self.store.remove_folder(source)
        return moved

    def _tag_category(self, path: str, category: str) -> None:
        if not path.endswith(FOLDER_CONFIG['note_extension']):
            return
        content = self.store.read(path)
        frontmatter = get_frontmatter(content) or {}
        categories = frontmatter.get('category') or []
        if isinstance(categories, str):
            categories = [categories]
        self.store.write(path, set_frontmatter(content, {'category': unique_ordered(categories + [category])}))
