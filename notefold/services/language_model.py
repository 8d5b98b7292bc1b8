# -*- coding: utf-8 -*-
"""
Language-model service: summaries, questions, topics and embeddings.

Wraps a Together.ai chat client for text generation and a BGE-M3
sentence-transformers model for embeddings. Every call waits on the rate
limiter first. Provider failures never raise: text calls return a fallback
sentinel ("Cannot Summarized", "UnQuestionable", "Misc") and embedding
returns an empty vector. The engine validates results afterwards, so a
sentinel can still fail its chunk.

Examples:
    from notefold.services.language_model import LanguageModelService

    service = LanguageModelService()
    summary = service.summarize(chunk.text)
    question = service.question(summary)
    topic = service.topic(f"{summary}\\n\\n{chunk.text}", file_name="biology")
    vector = service.embed(question)

References:
    Together.ai API: chat completions for generation
    config.consolidation_config.LLM_CONFIG / EMBEDDING_CONFIG
"""
# Standard library
import logging
import os
from typing import List, Optional

# Third-party
import numpy as np
from together import Together

# Config
from config.consolidation_config import LLM_CONFIG

# Local
from notefold.prompts.prompts import (
    QUESTION_SYSTEM,
    SUMMARY_SYSTEM,
    TOPIC_SYSTEM,
    common_topic_prompt,
    merge_questions_prompt,
    question_prompt,
    summary_prompt,
    topic_prompt,
)
from notefold.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class LanguageModelService:
    """
    Generation + embedding facade consumed by the consolidation engine.

    Args:
        api_key: Together.ai API key (or TOGETHER_API_KEY env var)
        model: Chat model name (default from LLM_CONFIG)
        embedder: Object with embed_single(text) -> np.ndarray; a BGEEmbedder
            is loaded on first use when omitted
        rate_limiter: Shared limiter (default built from LLM_CONFIG)
        client: Pre-built chat client, mainly for tests
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        embedder=None,
        rate_limiter: Optional[RateLimiter] = None,
        client=None,
    ):
        if client is None:
            api_key = api_key or os.getenv("TOGETHER_API_KEY")
            if not api_key:
                raise ValueError(
                    "Together.ai API key required. "
                    "Set TOGETHER_API_KEY env var or pass api_key parameter."
                )
            client = Together(api_key=api_key)

        self.client = client
        self.model = model or LLM_CONFIG['model_name']
        self._embedder = embedder
        self.rate_limiter = rate_limiter or RateLimiter(
            delay_seconds=LLM_CONFIG['delay_seconds'],
            max_calls_per_minute=LLM_CONFIG['max_calls_per_minute'],
        )

        logger.info(f"LanguageModelService initialized with {self.model}")

    @property
    def embedder(self):
        if self._embedder is None:
            from notefold.services.embedder import BGEEmbedder
            self._embedder = BGEEmbedder()
        return self._embedder

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _complete(
        self,
        system: str,
        prompt: str,
        max_tokens: int,
        fallback: str,
        temperature: float = LLM_CONFIG['temperature'],
    ) -> str:
        """Single chat completion; returns `fallback` on any provider failure."""
        self.rate_limiter.acquire()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"Error calling Together API: {e}")
            return fallback
        return content.strip() or fallback

    def summarize(self, text: str) -> str:
        return self._complete(
            SUMMARY_SYSTEM,
            summary_prompt(text),
            LLM_CONFIG['summary_max_tokens'],
            LLM_CONFIG['fallback_summary'],
        )

    def question(self, text: str) -> str:
        return self._complete(
            QUESTION_SYSTEM,
            question_prompt(text),
            LLM_CONFIG['question_max_tokens'],
            LLM_CONFIG['fallback_question'],
        )

    def topic(self, context: str, file_name: str = "") -> str:
        """Topic for a chunk; `context` carries summary and chunk text together."""
        return self._complete(
            TOPIC_SYSTEM,
            topic_prompt(file_name, context),
            LLM_CONFIG['topic_max_tokens'],
            LLM_CONFIG['fallback_topic'],
            temperature=LLM_CONFIG['topic_temperature'],
        )

    def merge_questions(self, first: str, second: str) -> str:
        """One phrasing covering both questions."""
        return self._complete(
            QUESTION_SYSTEM,
            merge_questions_prompt(first, second),
            LLM_CONFIG['question_max_tokens'],
            LLM_CONFIG['fallback_question'],
        )

    def unify_topics(self, topics: List[str]) -> str:
        """Parent category name over a document's topics."""
        return self._complete(
            TOPIC_SYSTEM,
            common_topic_prompt(topics),
            LLM_CONFIG['topic_max_tokens'],
            LLM_CONFIG['fallback_topic'],
            temperature=LLM_CONFIG['topic_temperature'],
        )

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    def embed(self, text: str) -> np.ndarray:
        """Embedding vector, or an empty array if the model fails."""
        self.rate_limiter.acquire()
        try:
            return np.asarray(self.embedder.embed_single(text), dtype=np.float32)
        except Exception as e:
            logger.error(f"Error creating embedding: {e}")
            return np.zeros(0, dtype=np.float32)

    def embedding_dimension(self) -> int:
        return self.embedder.get_embedding_dim()
