import pytest

from finbot.core.config import get_settings
from finbot.services.ai.transaction_extract.vocabulary import get_vocabulary
from finbot.utils.rate_limit import reset_ai_request_budget

_AI_ENV_VARS = (
    "AI_ENABLED",
    "AI_USE_FALLBACK",
    "ENABLE_AI_OVERRIDES",
    "GROQ_API_KEY",
    "OPENAI_API_KEY",
    "AI_TRANSACTION_EXTRACT_PROVIDER",
    "AI_TRANSACTION_EXTRACT_MODEL",
    "AI_ALLOWED_PROVIDERS",
    "AI_MAX_DAILY_REQUESTS",
    "AI_MAX_REQUESTS_PER_MINUTE",
    "MAX_DAILY_AI_REQUESTS",
    "MAX_AI_REQUESTS_PER_MINUTE",
    "AI_MIN_CONFIDENCE_RULES",
    "AI_BATCH_DELAY_SECONDS",
    "AI_DEBUG_STORE_RAW",
    "AI_VOCABULARY_PATH",
    "AI_TIMEOUT_SECONDS",
    "AI_LOG_EXTRACTIONS",
)


@pytest.fixture(autouse=True)
def _reset_settings_cache(monkeypatch):
    # Tests mutate env vars; never leak a cached Settings, vocabulary or
    # budget built from another test's environment.
    for name in _AI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    get_vocabulary.cache_clear()
    reset_ai_request_budget()
    yield
    get_settings.cache_clear()
    get_vocabulary.cache_clear()
    reset_ai_request_budget()
