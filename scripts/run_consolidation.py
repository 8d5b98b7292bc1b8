# -*- coding: utf-8 -*-
"""
Note Consolidation Runner

Command-line entry point for the consolidation pipeline. Reads notes from the
input folder of a content store root, consolidates them into deduplicated
answer records in the output folder, and keeps the FAISS partitions
(questions, topics, categories) under the root's .notefold_index directory.

Commands:
    process    Consolidate every note not yet flagged as processed
    reset      Clear the processed flag on all notes and delete the ledger
    rebuild    reset followed by process

Examples:
    # Consolidate new notes under data/raw_notes
    python scripts/run_consolidation.py process

    # Another vault, stricter question merging
    python scripts/run_consolidation.py process --root ~/vault --question-threshold 0.93

    # Start over
    python scripts/run_consolidation.py rebuild --log-level DEBUG

References:
    notefold/processing/note_processor.py: NoteProcessor and argument parsing
    config/consolidation_config.py: defaults for every flag
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from notefold.processing.note_processor import main


if __name__ == '__main__':
    main()
