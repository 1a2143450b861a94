"""Transaction extraction from colloquial chat messages."""

from __future__ import annotations

from .contracts import (
    VALID_CATEGORIES,
    VALID_DIRECTIONS,
    ExtractedTransaction,
    ExtractionOptions,
    ExtractionOutcome,
)
from .model_client import ModelClient
from .presenter import build_confirmation_message, format_extracted_transaction
from .rules import extract_with_rules, is_rules_extraction_valid
from .service import extract_transaction, extract_transactions_batch

__all__ = [
    "VALID_CATEGORIES",
    "VALID_DIRECTIONS",
    "ExtractedTransaction",
    "ExtractionOptions",
    "ExtractionOutcome",
    "ModelClient",
    "build_confirmation_message",
    "extract_transaction",
    "extract_transactions_batch",
    "extract_with_rules",
    "format_extracted_transaction",
    "is_rules_extraction_valid",
]
