# -*- coding: utf-8 -*-
"""
External collaborators behind narrow interfaces.

Contains language_model (Together.ai chat + sentence-transformers embeddings),
vector_index (FAISS partitions with usage metadata) and content_store
(file-system backed hierarchical note store).
"""
