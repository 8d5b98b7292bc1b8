# -*- coding: utf-8 -*-
"""
Note processing driver: consolidate every note in the input folder

Walks the markdown notes under the input folder one at a time, skips notes
whose frontmatter already carries the processed flag, runs the consolidation
engine on the rest and writes the annotated note back only when every chunk
succeeded. A failing note is logged and the run moves on to the next one.

Commands:
    process    consolidate unprocessed notes
    reset      clear the processed flag on every note and drop the ledger
    rebuild    reset, then process

Examples:
    python -m notefold.processing.note_processor process --root vault/
    python -m notefold.processing.note_processor reset --root vault/
    python -m notefold.processing.note_processor rebuild --question-threshold 0.92

References:
    consolidation_engine.py: per-document pipeline
    consolidation_config.py: FOLDER_CONFIG, SIMILARITY_CONFIG, CHUNKING_CONFIG
"""
# Standard library
import logging
from pathlib import Path
from typing import Dict, Optional

# Third-party
from tqdm import tqdm

# Foundation
from notefold.utils.frontmatter import get_frontmatter, set_frontmatter

# Local
from notefold.processing.chunker import SentenceChunker
from notefold.processing.consolidation_engine import ConsolidationEngine
from notefold.processing.state_ledger import ProcessingLedger
from notefold.services.content_store import FileSystemContentStore

# Config
from config.consolidation_config import (
    CHUNKING_CONFIG,
    DATA_PATH,
    FOLDER_CONFIG,
    INDEX_NAMES,
    LOGGING_CONFIG,
    PROCESSED_FLAG,
    SIMILARITY_CONFIG,
)

logger = logging.getLogger(__name__)


class NoteProcessor:
    """
    Runs the consolidation engine over a folder of notes.

    Args:
        store: Content store holding input notes and answer records
        input_folder: Folder with source notes
        output_folder: Folder for answer records and the processing ledger
        llm: LanguageModelService (built from TOGETHER_API_KEY when omitted)
        index: VectorIndex (persisted under FOLDER_CONFIG['index_dir'] when omitted)
        chunker: SentenceChunker (built from CHUNKING_CONFIG when omitted)
        **engine_options: Thresholds and neighbour count for ConsolidationEngine
    """

    def __init__(
        self,
        store: FileSystemContentStore,
        input_folder: str = FOLDER_CONFIG['input_folder'],
        output_folder: str = FOLDER_CONFIG['output_folder'],
        llm=None,
        index=None,
        chunker: Optional[SentenceChunker] = None,
        **engine_options
    ):
        self.store = store
        self.input_folder = input_folder
        self.output_folder = output_folder
        self._llm = llm
        self._index = index
        self._chunker = chunker
        self.engine_options = engine_options
        self._engine = None

    @property
    def engine(self) -> ConsolidationEngine:
        if self._engine is None:
            llm = self._llm
            if llm is None:
                from notefold.services.language_model import LanguageModelService
                llm = LanguageModelService()

            index = self._index
            if index is None:
                from notefold.services.vector_index import VectorIndex
                index = VectorIndex(index_dir=self.store.root / FOLDER_CONFIG['index_dir'])

            names = list(INDEX_NAMES.values())
            if any(name not in index.partitions for name in names):
                index.create_indexes(names, dimension=index.dimension or llm.embedding_dimension())

            self._engine = ConsolidationEngine(
                llm=llm,
                index=index,
                store=self.store,
                chunker=self._chunker,
                output_folder=self.output_folder,
                **self.engine_options
            )
        return self._engine

    def _notes(self):
        return self.store.list_markdown_files(self.input_folder, FOLDER_CONFIG['note_extension'])

    def process_notes(self) -> Dict[str, int]:
        """
        Consolidate every unprocessed note.

        Returns:
            Counts of processed, skipped and failed notes
        """
        stats = {'processed': 0, 'skipped': 0, 'failed': 0}
        notes = self._notes()
        logger.info(f"Found {len(notes)} notes in {self.input_folder}")

        for path in tqdm(notes, desc="Consolidating notes"):
            try:
                content = self.store.read(path)
            except OSError as e:
                logger.error(f"Failed to read {path}, skipping: {e}")
                stats['failed'] += 1
                continue

            frontmatter = get_frontmatter(content) or {}
            if frontmatter.get(PROCESSED_FLAG) is True:
                logger.debug(f"Already processed: {path}")
                stats['skipped'] += 1
                continue

            document_name = Path(path).stem
            try:
                result = self.engine.consolidate(document_name, content)
            except Exception as e:
                logger.error(f"Failed to process {path}, skipping: {e}")
                stats['failed'] += 1
                continue

            if not result.succeeded:
                stats['failed'] += 1
                continue

            try:
                self.store.write(path, result.annotated_content)
            except OSError as e:
                logger.error(f"Failed to save {path}: {e}")
                stats['failed'] += 1
                continue

            stats['processed'] += 1
            logger.info(f"{path} processed ({len(result.answered_questions)} questions)")

        logger.info(
            f"Processing complete: {stats['processed']} processed, "
            f"{stats['skipped']} skipped, {stats['failed']} failed"
        )
        return stats

    def reset(self) -> int:
        """
        Clear the processed flag on every note and drop the ledger.

        Returns:
            Number of notes whose flag was cleared
        """
        cleared = 0
        for path in self._notes():
            content = self.store.read(path)
            frontmatter = get_frontmatter(content) or {}
            if frontmatter.get(PROCESSED_FLAG):
                self.store.write(path, set_frontmatter(content, {PROCESSED_FLAG: False}))
                cleared += 1

        ProcessingLedger(self.store, self.output_folder).clear()
        logger.info(f"Cleared processed flag on {cleared} notes")
        return cleared

    def rebuild(self) -> Dict[str, int]:
        self.reset()
        return self.process_notes()


# ============================================================================
# CLI
# ============================================================================

def parse_args(argv=None):
    """Parse command line arguments."""
    import argparse

    parser = argparse.ArgumentParser(
        description='Consolidate notes into deduplicated, topic-organized answer records',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Defaults from consolidation_config:
    root:                  {DATA_PATH}
    input-folder:          {FOLDER_CONFIG['input_folder']}
    output-folder:         {FOLDER_CONFIG['output_folder']}
    question-threshold:    {SIMILARITY_CONFIG['question_similarity_threshold']}
    topic-threshold:       {SIMILARITY_CONFIG['topic_similarity_threshold']}
    category-threshold:    {SIMILARITY_CONFIG['category_similarity_threshold']}
    similar-items:         {SIMILARITY_CONFIG['similar_items_count']}
    min/max-chunk-size:    {CHUNKING_CONFIG['min_chunk_size']}/{CHUNKING_CONFIG['max_chunk_size']}
        """
    )

    parser.add_argument(
        'command', choices=['process', 'reset', 'rebuild'],
        help='process unprocessed notes, reset processed flags, or both'
    )
    parser.add_argument('--root', type=Path, default=DATA_PATH, help='Content store root')
    parser.add_argument('--input-folder', default=FOLDER_CONFIG['input_folder'])
    parser.add_argument('--output-folder', default=FOLDER_CONFIG['output_folder'])
    parser.add_argument(
        '--question-threshold', type=float,
        default=SIMILARITY_CONFIG['question_similarity_threshold']
    )
    parser.add_argument(
        '--topic-threshold', type=float,
        default=SIMILARITY_CONFIG['topic_similarity_threshold']
    )
    parser.add_argument(
        '--category-threshold', type=float,
        default=SIMILARITY_CONFIG['category_similarity_threshold']
    )
    parser.add_argument(
        '--similar-items', type=int, default=SIMILARITY_CONFIG['similar_items_count'],
        help='Neighbours fetched per similarity lookup'
    )
    parser.add_argument('--min-chunk-size', type=int, default=CHUNKING_CONFIG['min_chunk_size'])
    parser.add_argument('--max-chunk-size', type=int, default=CHUNKING_CONFIG['max_chunk_size'])
    parser.add_argument(
        '--log-level', default=LOGGING_CONFIG['level'],
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR']
    )
    parser.add_argument('--log-file', default=LOGGING_CONFIG['log_file'])

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    from notefold.utils.logger import setup_logging

    args = parse_args(argv)
    setup_logging(level=getattr(logging, args.log_level), log_file=args.log_file)

    logger.info("=" * 60)
    logger.info(f"NOTE CONSOLIDATION: {args.command.upper()}")
    logger.info("=" * 60)
    logger.info(f"Root: {args.root}")
    logger.info(f"Input: {args.input_folder} -> Output: {args.output_folder}")
    logger.info(
        f"Thresholds: question={args.question_threshold}, topic={args.topic_threshold}, "
        f"category={args.category_threshold}"
    )
    logger.info("=" * 60)

    chunker = None
    if args.command != 'reset':
        chunker = SentenceChunker(
            max_chunk_size=args.max_chunk_size,
            min_chunk_size=args.min_chunk_size,
        )

    processor = NoteProcessor(
        store=FileSystemContentStore(args.root),
        input_folder=args.input_folder,
        output_folder=args.output_folder,
        chunker=chunker,
        question_threshold=args.question_threshold,
        topic_threshold=args.topic_threshold,
        category_threshold=args.category_threshold,
        similar_items_count=args.similar_items,
    )

    if args.command == 'reset':
        return processor.reset()
    if args.command == 'rebuild':
        return processor.rebuild()
    return processor.process_notes()


if __name__ == '__main__':
    main()
