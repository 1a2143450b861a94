"""Provider factory — returns the right provider instance or falls back to mock."""

from __future__ import annotations

import logging

from finbot.core.config import get_settings

from .base import BaseProvider, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = [
    "get_provider",
    "is_provider_available",
    "BaseProvider",
    "ProviderResult",
    "MockProvider",
]

_KEY_SETTINGS = {
    "groq": "groq_api_key",
    "openai": "openai_api_key",
}


def is_provider_available(provider_name: str) -> bool:
    """True when *provider_name* is allowlisted and has its credential.

    ``mock`` needs no credential.
    """
    settings = get_settings()
    name = provider_name.lower().strip()

    if name not in settings.ai_allowed_providers:
        return False
    if name == "mock":
        return True

    key_attr = _KEY_SETTINGS.get(name)
    if key_attr is None:
        return False
    return bool(getattr(settings, key_attr))


def get_provider(provider_name: str) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    If the requested provider is not in the allowlist, has no API key,
    or is unknown, we fall back to ``MockProvider``. Callers that must not
    talk to the mock should check ``is_provider_available`` first.
    """
    settings = get_settings()
    name = provider_name.lower().strip()

    if name not in settings.ai_allowed_providers:
        logger.warning("Provider %r not in allowlist – falling back to mock", name)
        return MockProvider()

    if name == "mock":
        return MockProvider()

    if name == "groq":
        if not settings.groq_api_key:
            logger.warning("GROQ_API_KEY not set – falling back to mock")
            return MockProvider()
        from .groq import GroqProvider

        return GroqProvider(api_key=settings.groq_api_key)

    if name == "openai":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set – falling back to mock")
            return MockProvider()
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=settings.openai_api_key)

    logger.warning("Unknown provider %r – falling back to mock", name)
    return MockProvider()
