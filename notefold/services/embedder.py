# -*- coding: utf-8 -*-
"""
BGE-M3 embedder for questions, topics and categories

Model: BAAI/bge-m3 (1024 dimensions, multilingual) through sentence-transformers.
Vectors are L2-normalized so inner product equals cosine similarity in the
FAISS partitions.
"""

# Standard library
import logging
from typing import List, Optional

# Third-party
import numpy as np
from sentence_transformers import SentenceTransformer

# Config
from config.consolidation_config import EMBEDDING_CONFIG

logger = logging.getLogger(__name__)


class BGEEmbedder:
    """
    Sentence-transformers wrapper used by the language-model service.

    Example:
        embedder = BGEEmbedder(device='cpu')
        vector = embedder.embed_single("What is photosynthesis?")
    """

    def __init__(
        self,
        model_name: str = EMBEDDING_CONFIG['model_name'],
        device: Optional[str] = EMBEDDING_CONFIG['device'],
        normalize: bool = EMBEDDING_CONFIG['normalize'],
    ):
        """
        Args:
            model_name: HuggingFace model identifier
            device: 'cpu', 'cuda', or None for auto-detect
            normalize: L2-normalize output vectors
        """
        logger.info(f"Loading embedding model: {model_name}")
        self.model = SentenceTransformer(model_name, device=device)
        self.normalize = normalize
        self.embedding_dim = self.model.get_sentence_embedding_dimension()
        logger.info(f"Model loaded on {self.model.device}, dimension={self.embedding_dim}")

    def embed_single(self, text: str) -> np.ndarray:
        """Embed one text as a float32 vector."""
        embedding = self.model.encode(
            text,
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
            show_progress_bar=False,
        )
        return embedding.astype(np.float32)

    def embed_batch(self, texts: List[str], batch_size: int = 32) -> np.ndarray:
        """Embed many texts; shape (n_texts, embedding_dim)."""
        embeddings = self.model.encode(
            texts,
            batch_size=batch_size,
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
            show_progress_bar=False,
        )
        return embeddings.astype(np.float32)

    def get_embedding_dim(self) -> int:
        return self.embedding_dim
