"""Transaction extract scope contracts: extraction result and outcome envelope."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, field_validator

TransactionDirection = Literal["expense", "income", "transfer"]
ExtractionMethod = Literal["rules", "model"]

VALID_DIRECTIONS = frozenset({"expense", "income", "transfer"})

TransactionCategory = Literal[
    "Comida",
    "Transporte",
    "Entretenimiento",
    "Salud",
    "Compras",
    "Servicios",
    "Educación",
    "Hogar",
    "Otros",
]

VALID_CATEGORIES: tuple[str, ...] = (
    "Comida",
    "Transporte",
    "Entretenimiento",
    "Salud",
    "Compras",
    "Servicios",
    "Educación",
    "Hogar",
    "Otros",
)


class ExtractedTransaction(BaseModel):
    """Best guess at the transaction described by a chat message."""

    amount: int | None = None
    direction: TransactionDirection = "expense"
    category: TransactionCategory | None = None
    merchant: str | None = None
    notes: str | None = None
    confidence: float = 0.0
    method: ExtractionMethod = "rules"
    original_message: str | None = None

    @field_validator("amount")
    @classmethod
    def amount_positive_or_none(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            return None
        return v

    @field_validator("confidence")
    @classmethod
    def confidence_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            msg = f"Confidence must be 0.0–1.0, got {v}"
            raise ValueError(msg)
        return v


class ExtractionOutcome(BaseModel):
    """What ``extract_transaction`` hands back to the message handler."""

    success: bool
    data: ExtractedTransaction | None = None
    error: str | None = None
    fallback_used: bool = False


class ExtractionOptions(BaseModel):
    force_ai: bool = False
    # Passed through untouched; only ``user_id`` is read, for log lines.
    user_context: dict[str, Any] | None = None
