"""Hybrid transaction extraction: rules first, model only when needed.

Strategy:
  1. Rules (free, instant) always run first.
  2. If they lack an amount or confidence, ask the model (rate limited).
  3. If the model is unavailable, fails, or scores lower, return the rules
     result and flag ``fallback_used``.

A caller only ever sees ``success=False`` for an empty message or when even
the last-resort rules pass raises.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from finbot.core.config import get_settings

from .contracts import ExtractionOptions, ExtractionOutcome
from .model_client import ModelClient
from .rules import extract_with_rules, is_rules_extraction_valid

logger = logging.getLogger(__name__)

EMPTY_MESSAGE_ERROR = "empty message"


def _coerce_options(options: ExtractionOptions | dict[str, Any] | None) -> ExtractionOptions:
    if options is None:
        return ExtractionOptions()
    if isinstance(options, ExtractionOptions):
        return options
    return ExtractionOptions.model_validate(options)


async def extract_transaction(
    message: str | None,
    options: ExtractionOptions | dict[str, Any] | None = None,
    *,
    model_client: ModelClient | None = None,
) -> ExtractionOutcome:
    """Extract a transaction from a chat *message*.

    ``options.force_ai`` skips the rules-first step. The rules still answer
    (with ``fallback_used=True``) when the model returns nothing.
    """
    if not message or not message.strip():
        return ExtractionOutcome(success=False, error=EMPTY_MESSAGE_ERROR)

    text = message.strip()

    try:
        settings = get_settings()
        if not settings.ai_enabled:
            return ExtractionOutcome(success=True, data=extract_with_rules(text))

        opts = _coerce_options(options)
        client = model_client or ModelClient()
        user_id = (opts.user_context or {}).get("user_id")

        if opts.force_ai:
            model_result = await client.extract(text)
            if model_result is not None:
                return ExtractionOutcome(success=True, data=model_result)
            logger.info("[hybrid] Forced model extraction failed, using rules (user=%s)", user_id)
            return ExtractionOutcome(success=True, data=extract_with_rules(text), fallback_used=True)

        rules_result = extract_with_rules(text)

        if is_rules_extraction_valid(rules_result, settings.ai_min_confidence_rules):
            if settings.ai_log_extractions:
                logger.info("[hybrid] Using rules result (confidence %.2f)", rules_result.confidence)
            return ExtractionOutcome(success=True, data=rules_result)

        if not client.is_available():
            if settings.ai_log_extractions:
                logger.info(
                    "[hybrid] Rules confidence low (%.2f) and model unavailable, using rules",
                    rules_result.confidence,
                )
            return ExtractionOutcome(success=True, data=rules_result, fallback_used=True)

        if settings.ai_log_extractions:
            logger.info(
                "[hybrid] Rules confidence low (%.2f), trying model (user=%s)",
                rules_result.confidence,
                user_id,
            )
        model_result = await client.extract(text)

        # Ties go to the model.
        if model_result is not None and model_result.confidence >= rules_result.confidence:
            if settings.ai_log_extractions:
                logger.info("[hybrid] Using model result (confidence %.2f)", model_result.confidence)
            return ExtractionOutcome(success=True, data=model_result)

        if settings.ai_log_extractions:
            logger.info(
                "[hybrid] Model failed or scored lower, using rules (confidence %.2f)",
                rules_result.confidence,
            )
        return ExtractionOutcome(success=True, data=rules_result, fallback_used=True)

    except Exception as exc:
        logger.exception("[hybrid] Unexpected error during extraction")
        try:
            rules_result = extract_with_rules(text)
        except Exception as fallback_exc:
            logger.exception("[hybrid] Rules fallback failed too")
            return ExtractionOutcome(success=False, error=f"Error: {fallback_exc}")
        return ExtractionOutcome(
            success=True,
            data=rules_result,
            fallback_used=True,
            error=str(exc),
        )


async def extract_transactions_batch(
    messages: Sequence[str],
    options: ExtractionOptions | dict[str, Any] | None = None,
    *,
    model_client: ModelClient | None = None,
    delay_seconds: float | None = None,
) -> list[ExtractionOutcome]:
    """Extract each message in order, one at a time.

    A short pause between items keeps bursts under the model budget. One
    outcome per message, same order; failures do not stop the batch.
    """
    if delay_seconds is None:
        delay_seconds = get_settings().ai_batch_delay_seconds
    client = model_client or ModelClient()

    results: list[ExtractionOutcome] = []
    for index, message in enumerate(messages):
        results.append(await extract_transaction(message, options, model_client=client))
        if index < len(messages) - 1 and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
    return results
