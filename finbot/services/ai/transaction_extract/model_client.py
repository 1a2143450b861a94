"""Model-backed extraction, used only when the rules are not confident enough."""

from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import Any

import httpx
from pydantic import ValidationError

from finbot.core.config import get_settings
from finbot.utils.rate_limit import AIRequestBudget, get_ai_request_budget

from ..common import router as ai_router
from ..common.audit import log_ai_run
from ..common.json_tools import extract_json_object
from .contracts import VALID_CATEGORIES, VALID_DIRECTIONS, ExtractedTransaction

logger = logging.getLogger(__name__)

SCOPE = "transaction_extract"
DEFAULT_MODEL_CONFIDENCE = 0.5

TRANSACTION_EXTRACT_SYSTEM_PROMPT = """Sos un asistente que extrae información de transacciones financieras.
El usuario escribe en español paraguayo coloquial (puede usar "lucas", "mil", "k" para miles).

IMPORTANTE:
- SIEMPRE responde SOLO con un objeto JSON válido
- NO agregues texto adicional antes o después del JSON
- NO uses bloques de código markdown

Formato de respuesta (JSON):
{
  "amount": number (monto en guaraníes, null si no detectado),
  "type": "expense" | "income" | "transfer",
  "category": string | null (una de: Comida, Transporte, Entretenimiento, Salud, Compras, Servicios, Educación, Hogar, Otros),
  "merchant": string | null (nombre del comercio/lugar),
  "notes": string | null (información adicional relevante),
  "confidence": number (0-1, qué tan seguro estás)
}

Reglas:
1. "mil", "lucas", "k" = multiplicar por 1000. Ej: "50 mil" = 50000
2. Si no está claro el tipo, asumir "expense"
3. Categorías válidas: Comida, Transporte, Entretenimiento, Salud, Compras, Servicios, Educación, Hogar, Otros
4. Confidence alto (>0.8) solo si tenés toda la info

Ejemplos:
Entrada: "gasté 50 mil en biggie"
Salida: {"amount": 50000, "type": "expense", "category": "Compras", "merchant": "Biggie", "notes": null, "confidence": 0.95}

Entrada: "cargué nafta 120"
Salida: {"amount": 120000, "type": "expense", "category": "Transporte", "merchant": null, "notes": "nafta", "confidence": 0.85}

Entrada: "me depositaron el sueldo"
Salida: {"amount": null, "type": "income", "category": null, "merchant": null, "notes": "sueldo", "confidence": 0.7}

Entrada: "compré en el super"
Salida: {"amount": null, "type": "expense", "category": "Compras", "merchant": "super", "notes": null, "confidence": 0.6}"""

_CATEGORY_LOOKUP = {c.lower(): c for c in VALID_CATEGORIES}
_CATEGORY_LOOKUP["educacion"] = "Educación"


class ModelClient:
    """Asks the configured provider to extract a transaction.

    ``extract`` never raises: a missing credential, an exhausted budget, a
    timeout or a malformed reply all come back as ``None``.
    """

    def __init__(
        self,
        budget: AIRequestBudget | None = None,
        *,
        override_provider: str | None = None,
        override_model: str | None = None,
    ) -> None:
        self._budget = budget
        self._override_provider = override_provider
        self._override_model = override_model

    @property
    def budget(self) -> AIRequestBudget:
        return self._budget or get_ai_request_budget()

    def _resolve(self) -> ai_router.ResolvedConfig:
        return ai_router.resolve(
            SCOPE,
            override_provider=self._override_provider,
            override_model=self._override_model,
        )

    def is_available(self) -> bool:
        settings = get_settings()
        if not settings.ai_enabled or not settings.ai_use_fallback:
            return False
        return self._resolve().available

    async def extract(self, message: str) -> ExtractedTransaction | None:
        settings = get_settings()

        if not self.is_available():
            logger.warning("Model extraction unavailable (disabled or no credential)")
            return None

        budget = self.budget
        if not budget.can_proceed():
            logger.warning("Cannot make AI request: budget exhausted")
            return None

        try:
            config = self._resolve()

            if settings.ai_log_extractions:
                logger.info("[model] Extracting with %s:%s", config.provider.name, config.model)

            # Recorded before the call: failed calls still spend budget.
            budget.record()
            # Bounds the whole call; the httpx timeout is per phase.
            result = await asyncio.wait_for(
                config.provider.generate(
                    message,
                    system_prompt=TRANSACTION_EXTRACT_SYSTEM_PROMPT,
                    model=config.model,
                    temperature=config.temperature,
                    max_tokens=config.max_tokens,
                    timeout_seconds=config.timeout_seconds,
                    json_mode=True,
                ),
                timeout=config.timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.warning("[model] Provider call timed out")
            return None
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 429:
                logger.warning("[model] Provider rate limit exceeded")
            else:
                logger.warning("[model] Provider returned HTTP %s", exc.response.status_code)
            return None
        except Exception:
            logger.exception("[model] Provider call failed")
            return None

        try:
            parsed = extract_json_object(result.raw_text)
            extraction = parse_model_reply(parsed, message) if parsed is not None else None

            log_ai_run(
                scope=SCOPE,
                provider_result=result,
                prompt_text=message,
                parsed_output=extraction.model_dump() if extraction else None,
                extra_meta={"input_length": len(message)},
            )
        except Exception:
            logger.exception("[model] Could not handle provider reply")
            return None

        if extraction is None:
            logger.warning("[model] Invalid response structure: %s", result.raw_text[:200])
            return None

        if settings.ai_log_extractions:
            logger.info(
                "[model] amount=%s direction=%s category=%s merchant=%s confidence=%.2f",
                extraction.amount,
                extraction.direction,
                extraction.category,
                extraction.merchant,
                extraction.confidence,
            )
        return extraction


def parse_model_reply(parsed: Any, message: str) -> ExtractedTransaction | None:
    """Validate a decoded reply into an ``ExtractedTransaction``.

    Rejects non-objects and unknown directions. A missing or out-of-range
    confidence becomes 0.5; an unknown category becomes ``None``.
    """
    if not isinstance(parsed, dict):
        return None

    direction = parsed.get("type", parsed.get("direction"))
    if not isinstance(direction, str) or direction.strip().lower() not in VALID_DIRECTIONS:
        return None

    try:
        return ExtractedTransaction(
            amount=_coerce_amount(parsed.get("amount")),
            direction=direction.strip().lower(),
            category=_coerce_category(parsed.get("category")),
            merchant=_coerce_text(parsed.get("merchant")),
            notes=_coerce_text(parsed.get("notes")),
            confidence=_coerce_confidence(parsed.get("confidence")),
            method="model",
            original_message=message,
        )
    except ValidationError as exc:
        logger.warning("[model] Reply failed validation: %s", exc)
        return None


def _coerce_amount(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and re.fullmatch(r"\s*\d{1,3}(?:[.,]\d{3})+\s*", value):
        value = re.sub(r"[.,\s]", "", value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    amount = int(round(number))
    return amount if amount > 0 else None


def _coerce_category(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return _CATEGORY_LOOKUP.get(value.strip().lower())


def _coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_MODEL_CONFIDENCE
    if not 0.0 <= value <= 1.0:
        return DEFAULT_MODEL_CONFIDENCE
    return float(value)
