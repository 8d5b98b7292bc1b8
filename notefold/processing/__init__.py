# -*- coding: utf-8 -*-
"""
Processing package for chunking, deduplication and consolidation.

Contains chunker (position-aware sentence chunking), merge_resolver
(similarity-threshold merge-or-create), state_ledger (resumable per-chunk
ledger), answer_records (frontmatter merge + atomic rename-on-write),
consolidation_engine (per-document orchestrator) and note_processor (driver).
"""
