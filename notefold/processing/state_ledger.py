# -*- coding: utf-8 -*-
"""
Durable per-chunk processing ledger for resumable runs.

One JSON object per output folder, `{"<document>-<start>-<end>": true}`,
stored at `<output_folder>/.notefold_state.json` through the content store.
A chunk is recorded only after every side effect for it has been applied, so
an entry means "committed" and a missing entry means "redo from scratch".

Several documents share the ledger. Closing out one document only ever
touches that document's entries.

Lifecycle:
    load       missing file is an empty ledger
    mark       chunk committed; persisted immediately
    discard    chunk failed; entry dropped and persisted
    finalize   success drops the document's entries (file deleted once
               empty), failure keeps committed entries

Example:
    ledger = ProcessingLedger(store, "summarized_notes")
    if not ledger.is_processed(chunk_id):
        ...
        ledger.mark_processed(chunk_id)
    ledger.finalize(success=result.succeeded, document_name="cells")
"""
# Standard library
import logging
import re
from typing import Dict, Optional

# Config
from config.consolidation_config import FOLDER_CONFIG

logger = logging.getLogger(__name__)


def _document_pattern(document_name: str):
    return re.compile(rf"^{re.escape(document_name)}-\d+-\d+$")


class ProcessingLedger:
    """Per-output-folder chunk completion map."""

    def __init__(self, store, output_folder: str, file_name: str = FOLDER_CONFIG['state_file_name']):
        self.store = store
        self.output_folder = output_folder
        self.path = f"{output_folder}/{file_name}"
        self.entries: Dict[str, bool] = self._load()

    def _load(self) -> Dict[str, bool]:
        data = self.store.read_json(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed ledger at {self.path}")
            return {}
        entries = {str(k): bool(v) for k, v in data.items()}
        logger.info(f"Loaded ledger {self.path}: {sum(entries.values())} committed chunks")
        return entries

    def _persist(self) -> None:
        self.store.write_json(self.path, self.entries)

    def __len__(self) -> int:
        return sum(1 for v in self.entries.values() if v)

    def is_processed(self, chunk_id: str) -> bool:
        return self.entries.get(chunk_id, False) is True

    def mark_processed(self, chunk_id: str) -> None:
        self.entries[chunk_id] = True
        self._persist()

    def discard(self, chunk_id: str) -> None:
        self.entries.pop(chunk_id, None)
        self._persist()

    def finalize(self, success: bool, document_name: Optional[str] = None) -> None:
        """
        Close out a document run.

        Success drops the entries of `document_name` (every entry when no
        document is named) and deletes the file once nothing is left. On
        failure only committed entries are kept, so a retry skips them.
        """
        if success:
            if document_name is None:
                self.entries = {}
            else:
                pattern = _document_pattern(document_name)
                self.entries = {k: v for k, v in self.entries.items() if not pattern.match(k)}
            if self.entries:
                self._persist()
            elif self.store.exists(self.path):
                self.store.remove(self.path)
            logger.debug(f"Ledger {self.path} closed for {document_name or 'all documents'}")
            return

        self.entries = {k: True for k, v in self.entries.items() if v}
        self._persist()
        logger.info(f"Ledger {self.path} kept with {len(self.entries)} committed chunks")

    def clear(self) -> None:
        """Drop the ledger regardless of its contents (used by reset)."""
        self.finalize(success=True)
