"""Rules-based extraction: regexes plus the merchant/keyword vocabulary.

No network, no state. Handles the common short messages ("gasté 50 mil en
biggie", "uber 45 lucas") in well under a millisecond, so it always runs
before the model is considered.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from finbot.core.config import get_settings

from .contracts import ExtractedTransaction
from .vocabulary import Vocabulary, get_vocabulary, normalize

logger = logging.getLogger(__name__)


def _decimal(raw: str) -> float:
    return float(raw.replace(",", "."))


def _dotted(raw: str) -> float:
    return float(raw.replace(".", ""))


# Words after a bare number that make it a quantity, not a price.
_UNIT_WORDS = (
    "litros?",
    "lts?",
    "kilos?",
    "kg",
    "gramos?",
    "cuotas?",
    "meses",
    "mes",
    "dias?",
    "horas?",
    "semanas?",
    "anos?",
    "unidades",
    "personas?",
    "veces",
)


# (pattern over the normalised message, parser, multiplier); first match wins.
AMOUNT_PATTERNS: tuple[tuple[re.Pattern[str], Callable[[str], float], int], ...] = (
    (re.compile(r"(\d+(?:[.,]\d+)?)\s*millon(?:es)?\b"), _decimal, 1_000_000),
    (re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:mil|lucas|k)\b"), _decimal, 1_000),
    (re.compile(r"(\d+)\s*miles\b"), float, 1_000),
    (re.compile(r"(?<![\d.,])(\d{1,3}(?:\.\d{3})+)(?![\d.,])"), _dotted, 1),
    (re.compile(r"(?<![\d.,])(\d{4,})(?![\d.,])"), float, 1),
    # "nafta 120": a standalone small number is thousands of guaraníes,
    # unless it is part of a token ("4g", "2x1") or counts a unit.
    (
        re.compile(r"(?<![\w.,/:])(\d{1,3})(?![\w.,/:%])(?!\s*(?:" + "|".join(_UNIT_WORDS) + r")\b)"),
        float,
        1_000,
    ),
)

DIRECTION_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("expense", re.compile(r"gaste|pague|compre|sali|egreso")),
    ("income", re.compile(r"cobre|recibi|deposit|ingreso|sueldo|salario")),
    ("transfer", re.compile(r"transfer|envie|mande")),
)

MERCHANT_PATTERN = re.compile(
    r"\b(?:en\s+el|en\s+la|en|del|de)\s+"
    r"(?P<merchant>\w[\w ]{0,29}?)"
    r"(?=\s+(?:y|para|de|por|con)\b|\s*[,.;!?]|\s*$)",
    re.IGNORECASE,
)


def extract_amount(message: str) -> int | None:
    normalized = normalize(message)
    for pattern, parse, multiplier in AMOUNT_PATTERNS:
        match = pattern.search(normalized)
        if match:
            amount = int(round(parse(match.group(1)) * multiplier))
            return amount if amount > 0 else None
    return None


def extract_direction(message: str) -> tuple[str, bool]:
    """Return ``(direction, explicit)``; ``explicit`` is False for the default."""
    normalized = normalize(message)
    for direction, pattern in DIRECTION_PATTERNS:
        if pattern.search(normalized):
            return direction, True
    return "expense", False


def extract_merchant(message: str) -> str | None:
    match = MERCHANT_PATTERN.search(message)
    if match:
        merchant = match.group("merchant").strip()
        return merchant or None
    return None


def extract_category(message: str, merchant: str | None, vocabulary: Vocabulary) -> str | None:
    if merchant:
        category = vocabulary.category_for_merchant(merchant)
        if category:
            return category
    return vocabulary.category_for_text(normalize(message))


def calculate_confidence(
    amount: int | None,
    explicit_direction: bool,
    category: str | None,
    merchant: str | None,
) -> float:
    confidence = 0.0
    if amount is not None and amount > 0:
        confidence += 0.4
    if explicit_direction:
        confidence += 0.2
    if category is not None:
        confidence += 0.2
    if merchant is not None:
        confidence += 0.2
    return round(min(confidence, 1.0), 2)


def extract_with_rules(message: str, vocabulary: Vocabulary | None = None) -> ExtractedTransaction:
    """Extract a transaction from *message* using only patterns and tables."""
    settings = get_settings()
    vocabulary = vocabulary or get_vocabulary()

    amount = extract_amount(message)
    direction, explicit = extract_direction(message)
    merchant = extract_merchant(message)
    category = extract_category(message, merchant, vocabulary)
    confidence = calculate_confidence(amount, explicit, category, merchant)

    result = ExtractedTransaction(
        amount=amount,
        direction=direction,
        category=category,
        merchant=merchant,
        notes=None,
        confidence=confidence,
        method="rules",
        original_message=message,
    )

    if settings.ai_log_extractions:
        logger.info(
            "[rules] amount=%s direction=%s category=%s merchant=%s confidence=%.2f",
            result.amount,
            result.direction,
            result.category,
            result.merchant,
            result.confidence,
        )

    return result


def is_rules_extraction_valid(extraction: ExtractedTransaction, min_confidence: float | None = None) -> bool:
    """Good enough to skip the model: an amount and enough confidence."""
    if min_confidence is None:
        min_confidence = get_settings().ai_min_confidence_rules
    if not extraction.amount or extraction.amount <= 0:
        return False
    return extraction.confidence >= min_confidence
