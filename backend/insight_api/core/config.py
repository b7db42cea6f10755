from functools import lru_cache
import json
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Scopes whose candidate lists can be overridden via AI_<SCOPE>_CANDIDATES.
AI_SCOPES = (
    "course_layout",
    "course_content",
    "quiz",
    "grammar",
    "image_to_text",
    "chat",
    "chatpdf",
    "summarize",
    "image",
    "thumbnail",
)


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
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )
    environment: str = Field(default="development", validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"))
    log_level: str = "INFO"
    database_url: str = ""
    expose_error_details: bool = False

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)

    jwt_secret: str = ""
    jwt_audience: str = ""

    # --- Provider credentials (provider-wide) ---
    gemini_api_key: str = ""
    nvidia_api_key: str = ""
    openrouter_api_key: str = ""

    # --- Provider credentials (per scope, override the provider-wide key) ---
    gemini_api_key_course_layout: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY_COURSE_LAYOUT", "GEMINI_API_COURSE"),
    )
    gemini_api_key_chat: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY_CHAT", "GEMINI_API_KEY_THINK_BOT"),
    )
    gemini_api_key_thumbnail: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY_THUMBNAIL", "GEMINI_API_KEY_T"),
    )
    nvidia_api_key_quiz: str = ""
    nvidia_api_key_course_content: str = Field(
        default="",
        validation_alias=AliasChoices("NVIDIA_API_KEY_COURSE_CONTENT", "NVIDIA_API_KEY_CONTENT"),
    )
    openrouter_api_key_grammar: str = ""
    openrouter_api_key_image_to_text: str = Field(
        default="",
        validation_alias=AliasChoices("OPENROUTER_API_KEY_IMAGE_TO_TEXT", "OPENROUTER_API_KEY_CONTENT"),
    )
    openrouter_api_key_summarize: str = ""
    openrouter_api_key_chatpdf: str = ""

    openrouter_referer: str = "https://ai-insights-web.vercel.app"
    openrouter_title: str = "AI Insight"

    # --- Candidate overrides ("provider:model,provider:model") ---
    ai_course_layout_candidates: str = ""
    ai_course_content_candidates: str = ""
    ai_quiz_candidates: str = ""
    ai_grammar_candidates: str = ""
    ai_image_to_text_candidates: str = ""
    ai_chat_candidates: str = ""
    ai_chatpdf_candidates: str = ""
    ai_summarize_candidates: str = ""
    ai_image_candidates: str = ""
    ai_thumbnail_candidates: str = ""

    # --- Retry / fallback policy ---
    ai_max_retries_per_candidate: int = 3
    ai_transient_max_attempts: int = 2
    ai_backoff_base_seconds: float = 1.0
    ai_backoff_cap_seconds: float = 30.0
    ai_backoff_jitter_seconds: float = 0.5
    ai_max_provider_wait_seconds: float = 60.0
    ai_default_retry_after_seconds: int = 30
    ai_breaker_cooldown_seconds: int = 60
    ai_batch_delay_seconds: float = 2.0
    ai_timeout_seconds: float = 0.0

    # --- Auxiliary services ---
    youtube_api_key: str = ""
    unsplash_access_key: str = ""
    pdf_max_upload_bytes: int = 20 * 1024 * 1024

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_from_email: str = Field(
        default="",
        validation_alias=AliasChoices("SMTP_FROM_EMAIL", "EMAIL_FROM"),
    )
    password_reset_otp_minutes: int = 10
    password_reset_max_attempts: int = 5
    password_reset_requests_per_hour: int = 3

    rate_limit_ai_enabled: bool = False
    rate_limit_ai_per_min: int = 30
    trusted_proxy_cidrs: Annotated[list[str], NoDecode] = Field(default_factory=list)

    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])
    cors_allow_methods: Annotated[list[str], NoDecode] = Field(default_factory=lambda: [
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "OPTIONS",
    ])
    cors_allow_headers: Annotated[list[str], NoDecode] = Field(default_factory=lambda: [
        "Authorization",
        "Content-Type",
        "Accept",
    ])

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        "trusted_proxy_cidrs",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return _parse_list_value(value)
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    def candidate_overrides(self, scope: str) -> list[str]:
        return _parse_list_value(getattr(self, f"ai_{scope}_candidates", ""))

    def credential_for(self, provider: str, scope: str) -> str:
        """Scope-specific key first, then the provider-wide key."""
        scoped = getattr(self, f"{provider}_api_key_{scope}", "") or ""
        if scoped.strip():
            return scoped.strip()
        return (getattr(self, f"{provider}_api_key", "") or "").strip()

    def validate_required_config(self) -> list[str]:
        from insight_api.services.ai.common.router import unconfigured_scopes

        problems: list[str] = []
        if not self.database_url:
            problems.append("DATABASE_URL is not set")
        for scope in unconfigured_scopes(self):
            problems.append(f"No credentialed AI candidate for scope {scope!r}")
        return problems


@lru_cache

def get_settings() -> Settings:
    return Settings()
