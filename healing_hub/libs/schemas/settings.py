"""Application settings management leveraging pydantic v2."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if os.getenv("ENV", "development") in {"development", "dev", "local"}:
    from dotenv import load_dotenv

    # Containers should not rely on .env presence; load_dotenv is a no-op without one.
    load_dotenv(override=False)


class AppSettings(BaseSettings):
    """Typed configuration sourced from environment variables."""

    app_name: str = Field(
        default="Sacred Healing Hub",
        validation_alias=AliasChoices("APP_NAME", "HEALING_HUB_APP_NAME"),
    )
    app_version: str = Field(
        default="1.0.0",
        validation_alias=AliasChoices("APP_VERSION", "HEALING_HUB_APP_VERSION"),
    )
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("NODE_ENV", "ENVIRONMENT", "HEALING_HUB_ENVIRONMENT"),
    )
    port: int = Field(default=3001, validation_alias=AliasChoices("PORT", "HEALING_HUB_PORT"))
    forwarded_allow_ips: str = Field(
        default="127.0.0.1",
        validation_alias=AliasChoices("FORWARDED_ALLOW_IPS", "HEALING_HUB_FORWARDED_ALLOW_IPS"),
    )
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        validation_alias=AliasChoices("CORS_ORIGINS", "CLIENT_URL", "HEALING_HUB_CORS_ORIGINS"),
    )

    # Auth
    jwt_secret: str = Field(
        default="development-access-secret",
        validation_alias=AliasChoices("JWT_SECRET", "HEALING_HUB_JWT_SECRET"),
    )
    jwt_refresh_secret: str = Field(
        default="development-refresh-secret",
        validation_alias=AliasChoices("JWT_REFRESH_SECRET", "HEALING_HUB_JWT_REFRESH_SECRET"),
    )
    access_token_ttl_seconds: int = Field(
        default=15 * 60,
        validation_alias=AliasChoices("ACCESS_TOKEN_TTL", "HEALING_HUB_ACCESS_TOKEN_TTL"),
    )
    refresh_token_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60,
        validation_alias=AliasChoices("REFRESH_TOKEN_TTL", "HEALING_HUB_REFRESH_TOKEN_TTL"),
    )
    internal_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("INTERNAL_API_KEY", "HEALING_HUB_INTERNAL_API_KEY"),
    )
    typeform_webhook_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TYPEFORM_WEBHOOK_SECRET", "HEALING_HUB_TYPEFORM_WEBHOOK_SECRET"),
    )

    # OpenAI
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "HEALING_HUB_OPENAI_API_KEY"),
    )
    model_chat: str = Field(
        default="gpt-4o",
        validation_alias=AliasChoices("OPENAI_MODEL_CHAT", "MODEL_CHAT", "HEALING_HUB_MODEL_CHAT"),
    )
    chat_temperature: float = Field(
        default=0.7,
        validation_alias=AliasChoices("CHAT_TEMPERATURE", "HEALING_HUB_CHAT_TEMPERATURE"),
    )
    chat_max_tokens: int = Field(
        default=500,
        validation_alias=AliasChoices("CHAT_MAX_TOKENS", "HEALING_HUB_CHAT_MAX_TOKENS"),
    )
    openai_daily_budget: float | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_DAILY_BUDGET", "HEALING_HUB_OPENAI_DAILY_BUDGET"),
    )

    # Storage
    storage_backend: str = Field(
        default="auto",
        validation_alias=AliasChoices("STORAGE_BACKEND", "HEALING_HUB_STORAGE_BACKEND"),
    )
    airtable_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AIRTABLE_API_KEY", "AIRTABLE_TOKEN", "HEALING_HUB_AIRTABLE_API_KEY"),
    )
    airtable_base_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AIRTABLE_BASE_ID", "HEALING_HUB_AIRTABLE_BASE_ID"),
    )
    google_sheets_spreadsheet_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "GOOGLE_SHEETS_SPREADSHEET_ID", "GOOGLE_SHEETS_ID", "HEALING_HUB_GOOGLE_SHEETS_ID"
        ),
    )
    google_credentials_file: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "GOOGLE_APPLICATION_CREDENTIALS", "GOOGLE_CREDENTIALS_FILE", "HEALING_HUB_GOOGLE_CREDENTIALS_FILE"
        ),
    )
    google_client_email: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_CLIENT_EMAIL", "HEALING_HUB_GOOGLE_CLIENT_EMAIL"),
    )
    google_private_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_PRIVATE_KEY", "HEALING_HUB_GOOGLE_PRIVATE_KEY"),
    )
    google_project_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_PROJECT_ID", "HEALING_HUB_GOOGLE_PROJECT_ID"),
    )

    # Mailchimp
    mailchimp_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("MAILCHIMP_API_KEY", "HEALING_HUB_MAILCHIMP_API_KEY"),
    )
    mailchimp_server_prefix: str | None = Field(
        default=None,
        validation_alias=AliasChoices("MAILCHIMP_SERVER_PREFIX", "HEALING_HUB_MAILCHIMP_SERVER_PREFIX"),
    )
    mailchimp_list_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("MAILCHIMP_LIST_ID", "HEALING_HUB_MAILCHIMP_LIST_ID"),
    )
    mailchimp_welcome_template_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "MAILCHIMP_WELCOME_TEMPLATE_ID", "HEALING_HUB_MAILCHIMP_WELCOME_TEMPLATE_ID"
        ),
    )
    reply_to_email: str = Field(
        default="support@sacredhealing.com",
        validation_alias=AliasChoices("REPLY_TO_EMAIL", "HEALING_HUB_REPLY_TO_EMAIL"),
    )

    # Monitoring
    sentry_dsn: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SENTRY_DSN", "HEALING_HUB_SENTRY_DSN"),
    )
    sentry_traces_sample_rate: float = Field(
        default=0.1,
        validation_alias=AliasChoices("SENTRY_TRACES_SAMPLE_RATE", "HEALING_HUB_SENTRY_TRACES_SAMPLE_RATE"),
    )

    # Rate limiting
    rate_limit_storage: str = Field(
        default="memory",
        validation_alias=AliasChoices("RATE_LIMIT_STORAGE", "HEALING_HUB_RATE_LIMIT_STORAGE"),
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "HEALING_HUB_REDIS_URL"),
    )

    model_config = SettingsConfigDict(
        env_file=(".env", "healing_hub/.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"production", "prod"}

    @property
    def allowed_origins(self) -> list[str]:
        """Split the comma separated CORS origin list."""

        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def airtable_configured(self) -> bool:
        return bool(self.airtable_api_key and self.airtable_base_id)

    @property
    def sheets_configured(self) -> bool:
        has_credentials = bool(
            self.google_credentials_file or (self.google_client_email and self.google_private_key)
        )
        return bool(self.google_sheets_spreadsheet_id and has_credentials)

    @property
    def mailchimp_configured(self) -> bool:
        return bool(self.mailchimp_api_key and self.mailchimp_list_id)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Load environment variables and return a cached settings instance."""

    return AppSettings()


__all__ = ["AppSettings", "get_settings"]
