from functools import lru_cache
import json
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except Exception:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )

    ai_enabled: bool = True
    ai_use_fallback: bool = True
    enable_ai_overrides: bool = False

    groq_api_key: str = ""
    openai_api_key: str = ""

    ai_transaction_extract_provider: str = "groq"
    ai_transaction_extract_model: str = ""

    ai_allowed_providers_raw: str = Field(
        default="groq,openai,mock",
        validation_alias=AliasChoices("AI_ALLOWED_PROVIDERS"),
    )
    ai_allowed_models_groq_raw: str = Field(
        default="llama-3.3-70b-versatile,llama-3.1-8b-instant",
        validation_alias=AliasChoices("AI_ALLOWED_MODELS_GROQ"),
    )
    ai_allowed_models_openai_raw: str = Field(
        default="gpt-4o-mini-2024-07-18",
        validation_alias=AliasChoices("AI_ALLOWED_MODELS_OPENAI"),
    )

    ai_temperature: float = 0.3
    ai_max_tokens: int = 150
    ai_timeout_seconds: float = 5.0

    ai_max_daily_requests: int = Field(
        default=1000,
        validation_alias=AliasChoices("AI_MAX_DAILY_REQUESTS", "MAX_DAILY_AI_REQUESTS"),
    )
    ai_max_requests_per_minute: int = Field(
        default=20,
        validation_alias=AliasChoices("AI_MAX_REQUESTS_PER_MINUTE", "MAX_AI_REQUESTS_PER_MINUTE"),
    )

    ai_min_confidence_rules: float = 0.7
    ai_batch_delay_seconds: float = 0.1

    ai_log_extractions: bool = True
    ai_debug_store_raw: bool = False
    ai_vocabulary_path: str = ""

    @field_validator("ai_transaction_extract_provider", mode="before")
    @classmethod
    def _normalise_provider(cls, value):
        if value is None:
            return ""
        return str(value).lower().strip()

    @field_validator("ai_min_confidence_rules")
    @classmethod
    def _confidence_range(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            msg = f"AI_MIN_CONFIDENCE_RULES must be 0.0-1.0, got {value}"
            raise ValueError(msg)
        return value

    @property
    def ai_allowed_providers(self) -> list[str]:
        return [item.lower() for item in _parse_list_value(self.ai_allowed_providers_raw)]

    @property
    def ai_allowed_models(self) -> dict[str, list[str]]:
        return {
            "groq": _parse_list_value(self.ai_allowed_models_groq_raw),
            "openai": _parse_list_value(self.ai_allowed_models_openai_raw),
            "mock": [],
        }

@lru_cache

def get_settings() -> Settings:
    return Settings()
