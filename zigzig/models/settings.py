"""
Runtime settings for the LLM client and the matching pipeline
"""
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from zigzig.utils.exceptions import ConfigurationError

DEFAULT_MODELS = ["llama-3.3-70b-versatile", "llama-3.1-8b-instant"]


class LLMSettings(BaseModel):
    """Groq (OpenAI-compatible) chat completion settings"""
    api_key: Optional[str] = Field(default=None, description="Groq API key")
    base_url: str = Field(default="https://api.groq.com/openai/v1", description="Chat completions base URL")
    timeout: int = Field(default=60, ge=1, le=300, description="Request timeout in seconds")
    retry_attempts: int = Field(default=2, ge=1, le=10, description="Attempts per model on rate limiting")
    retry_backoff: float = Field(default=1.0, ge=0.0, le=60.0, description="Backoff factor between retries")


class MatchingSettings(BaseModel):
    """Scoring and orchestration knobs"""
    batch_size: int = Field(default=10, ge=1, le=100, description="Candidates scored concurrently per batch")
    batch_delay_seconds: float = Field(default=0.5, gt=0.0, le=30.0, description="Pause between batches")
    min_match_score: float = Field(default=20.0, ge=0.0, le=100.0, description="Lowest score kept as a match")
    max_match_reasons: int = Field(default=5, ge=1, le=20)
    scoring_models: List[str] = Field(default_factory=lambda: list(DEFAULT_MODELS))
    extraction_models: List[str] = Field(default_factory=lambda: list(DEFAULT_MODELS))
    scoring_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    extraction_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    scoring_max_tokens: int = Field(default=1000, ge=1)
    extraction_max_tokens: int = Field(default=1500, ge=1)
    overall_score_tolerance: float = Field(
        default=15.0, ge=0.0, le=100.0,
        description="How far an LLM overall score may drift from the weighted rubric"
    )

    @field_validator("scoring_models", "extraction_models")
    @classmethod
    def validate_models(cls, v):
        models = [m.strip() for m in v if m and m.strip()]
        if not models:
            raise ValueError("At least one model must be configured")
        return models


class AppSettings(BaseModel):
    """Complete service configuration"""
    mongo_url: str = Field(default="mongodb://localhost:27017")
    db_name: str = Field(default="zigzig")
    llm: LLMSettings = Field(default_factory=LLMSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)


def _split_env_list(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def _env_number(key: str, default: str, cast=float):
    raw = os.getenv(key, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {key}", config_key=key, config_value=raw, cause=e) from e


def load_settings() -> AppSettings:
    """Build settings from the environment (and a local .env file)"""
    load_dotenv()

    llm = LLMSettings(
        api_key=os.getenv("GROQ_API_KEY"),
        base_url=os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1"),
        timeout=_env_number("LLM_TIMEOUT", "60", int),
        retry_attempts=_env_number("LLM_RETRY_ATTEMPTS", "2", int),
        retry_backoff=_env_number("LLM_RETRY_BACKOFF", "1.0"),
    )

    matching_kwargs = {
        "batch_size": _env_number("MATCH_BATCH_SIZE", "10", int),
        "batch_delay_seconds": _env_number("MATCH_BATCH_DELAY", "0.5"),
        "min_match_score": _env_number("MIN_MATCH_SCORE", "20"),
    }
    scoring_models = _split_env_list(os.getenv("SCORING_MODELS"))
    if scoring_models:
        matching_kwargs["scoring_models"] = scoring_models
    extraction_models = _split_env_list(os.getenv("EXTRACTION_MODELS"))
    if extraction_models:
        matching_kwargs["extraction_models"] = extraction_models

    return AppSettings(
        mongo_url=os.getenv("MONGO_DETAILS", "mongodb://localhost:27017"),
        db_name=os.getenv("DB_NAME", "zigzig"),
        llm=llm,
        matching=MatchingSettings(**matching_kwargs),
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()
