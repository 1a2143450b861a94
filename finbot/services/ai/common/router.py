"""AI Router — resolves provider + model with override > ENV > default chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from finbot.core.config import get_settings

from .providers import BaseProvider, get_provider, is_provider_available

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + model after the override chain."""

    provider: BaseProvider
    provider_name: str
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float
    available: bool


def resolve_provider_name(scope: str, override_provider: str | None = None) -> str:
    settings = get_settings()

    if settings.enable_ai_overrides and override_provider:
        return override_provider.lower().strip()

    if scope == "transaction_extract" and settings.ai_transaction_extract_provider:
        return settings.ai_transaction_extract_provider

    return "mock"


def resolve(
    scope: str,
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
) -> ResolvedConfig:
    """Resolve provider + model for a given *scope*.

    Resolution chain (first non-empty wins):
      1. ``override_provider`` / ``override_model`` (runtime param, only when
         ``enable_ai_overrides=True``).
      2. ENV scope-specific: ``AI_TRANSACTION_EXTRACT_PROVIDER`` /
         ``AI_TRANSACTION_EXTRACT_MODEL``.
      3. Fallback: ``"mock"`` with empty model.

    If the resolved model is not in the allowlist for that provider, the
    first allowed model is used instead.
    """
    settings = get_settings()

    provider_name = resolve_provider_name(scope, override_provider)

    model = ""
    if settings.enable_ai_overrides and override_model:
        model = override_model.strip()

    if not model and scope == "transaction_extract":
        model = settings.ai_transaction_extract_model.strip()

    allowed_models = settings.ai_allowed_models.get(provider_name, [])
    if allowed_models and model and model not in allowed_models:
        logger.warning(
            "Model %r not in allowlist for %r — using first allowed: %r",
            model,
            provider_name,
            allowed_models[0],
        )
        model = allowed_models[0]

    if allowed_models and not model:
        model = allowed_models[0]

    return ResolvedConfig(
        provider=get_provider(provider_name),
        provider_name=provider_name,
        model=model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=settings.ai_timeout_seconds,
        available=is_provider_available(provider_name),
    )
