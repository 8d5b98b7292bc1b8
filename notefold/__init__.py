# -*- coding: utf-8 -*-
"""
notefold: incremental consolidation of free-form notes into a deduplicated,
topic-organized knowledge base.

Subpackages: utils (data model, errors, logging, formatting), prompts,
services (language model, vector index, content store) and processing
(chunking, merge resolution, processing ledger, consolidation engine).
"""

__version__ = "0.1.0"
