"""AI audit: one structured log record per model run."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from finbot.core.config import get_settings

from .providers.base import ProviderResult

logger = logging.getLogger(__name__)

SCOPE_ACTIONS: dict[str, str] = {
    "transaction_extract": "AI_TRANSACTION_EXTRACTED",
}


def build_audit_metadata(
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Metadata for an audit entry.

    PII: prompt and reply are always hashed; raw text is only included when
    ``AI_DEBUG_STORE_RAW=true``.
    """
    settings = get_settings()

    metadata: dict[str, Any] = {
        "action": SCOPE_ACTIONS.get(scope, "AI_RUN"),
        "scope": scope,
        "provider": provider_result.provider,
        "model": provider_result.model,
        "prompt_tokens": provider_result.prompt_tokens,
        "completion_tokens": provider_result.completion_tokens,
        "latency_ms": provider_result.latency_ms,
        "prompt_hash": hashlib.sha256(prompt_text.encode()).hexdigest(),
        "response_hash": hashlib.sha256(provider_result.raw_text.encode()).hexdigest(),
    }

    if settings.ai_debug_store_raw:
        metadata["prompt_raw"] = prompt_text
        metadata["response_raw"] = provider_result.raw_text

    if extra_meta:
        metadata.update(extra_meta)

    return metadata


def log_ai_run(
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    parsed_output: dict[str, Any] | None,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Emit the audit record on this module's logger and return its metadata."""
    metadata = build_audit_metadata(
        scope=scope,
        provider_result=provider_result,
        prompt_text=prompt_text,
        extra_meta=extra_meta,
    )
    logger.info(
        "%s provider=%s model=%s latency_ms=%.2f parsed=%s",
        metadata["action"],
        provider_result.provider,
        provider_result.model,
        provider_result.latency_ms,
        parsed_output is not None,
        extra={"ai_audit": metadata, "ai_output": parsed_output},
    )
    return metadata
