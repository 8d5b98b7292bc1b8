# -*- coding: utf-8 -*-
"""
Exception hierarchy for the consolidation pipeline.

Every failure that can abort a chunk carries an ErrorKind plus the chunk id and
document it happened in, so the engine can log it and move on without
inspecting exception types by name.

Example:
    try:
        question = validate_question(raw)
    except ValidationError as e:
        e.attach(chunk_id="note-0-120", document="note")
        logger.error(str(e))
"""
# Standard library
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Failure categories handled by the engine."""
    VALIDATION = "validation"
    EXTERNAL_SERVICE = "external_service"
    STORE_MUTATION = "store_mutation"


class ConsolidationError(Exception):
    """Base exception for all consolidation errors."""

    kind: Optional[ErrorKind] = None

    def __init__(
        self,
        message: str,
        chunk_id: Optional[str] = None,
        document: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.chunk_id = chunk_id
        self.document = document
        self.details = details or {}
        super().__init__(message)

    def attach(self, chunk_id: Optional[str] = None, document: Optional[str] = None) -> "ConsolidationError":
        """Fill in chunk/document context if the raiser did not know it."""
        if chunk_id and not self.chunk_id:
            self.chunk_id = chunk_id
        if document and not self.document:
            self.document = document
        return self

    def __str__(self) -> str:
        context = []
        if self.kind:
            context.append(f"kind={self.kind.value}")
        if self.document:
            context.append(f"document={self.document}")
        if self.chunk_id:
            context.append(f"chunk={self.chunk_id}")
        if self.details:
            context.append(f"details={self.details}")
        if context:
            return f"{self.message} | {', '.join(context)}"
        return self.message


class ValidationError(ConsolidationError):
    """Derived question/topic failed emptiness or length checks."""
    kind = ErrorKind.VALIDATION


class ExternalServiceError(ConsolidationError):
    """Language model, embedding or vector index call failed."""
    kind = ErrorKind.EXTERNAL_SERVICE


class StoreMutationError(ConsolidationError):
    """Content store write/rename sequence failed (backup already restored)."""
    kind = ErrorKind.STORE_MUTATION
