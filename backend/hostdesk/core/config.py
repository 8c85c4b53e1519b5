from functools import lru_cache
import json
import os

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RESERVED_SUBDOMAINS = ["admin", "root", "test", "blog", "api", "shop", "neka", "www"]
KNOWN_AI_PROVIDERS = ("mock", "gemini", "openai")


def _parse_list_value(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )
    database_url: str = ""

    auth_jwt_secret: str = ""
    auth_jwks_url: str = ""
    auth_jwt_audience: str = ""

    # Identities granted admin capability. Exact match on the token subject.
    admin_user_ids_raw: str = Field(
        default="",
        validation_alias=AliasChoices("ADMIN_USER_IDS"),
    )
    reserved_subdomains_raw: str = Field(
        default="",
        validation_alias=AliasChoices("RESERVED_SUBDOMAINS"),
    )

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False

    pii_redaction_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("PII_REDACTION_ENABLED"),
    )
    pii_redaction_fields: list[str] = Field(
        default_factory=lambda: ["email", "whatsapp", "phone"],
        validation_alias=AliasChoices("PII_REDACTION_FIELDS"),
    )

    rate_limit_ai_enabled: bool = True
    rate_limit_ai_per_min: int = 20
    trusted_proxy_cidrs_raw: str = Field(
        default="",
        validation_alias=AliasChoices("TRUSTED_PROXY_CIDRS"),
    )

    security_headers_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("SECURITY_HEADERS_ENABLED", "SECURE_HEADERS_ENABLED"),
    )

    cors_allow_origins: list[str] = Field(default_factory=list)
    cors_allow_methods: list[str] = Field(default_factory=lambda: [
        "GET",
        "POST",
        "PUT",
        "PATCH",
        "OPTIONS",
    ])
    cors_allow_headers: list[str] = Field(default_factory=lambda: [
        "Authorization",
        "Content-Type",
        "Accept",
    ])

    enable_ai_enrichment: bool = True
    ai_enrichment_provider: str = "mock"
    ai_enrichment_model: str = ""
    ai_allowed_providers_raw: str = Field(
        default="mock",
        validation_alias=AliasChoices("AI_ALLOWED_PROVIDERS"),
    )
    ai_timeout_seconds: float = 20.0
    ai_temperature: float = 0.4
    ai_max_tokens: int = 1024
    ai_debug_store_raw: bool = False

    gemini_api_key: str = ""
    openai_api_key: str = ""

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        "pii_redaction_fields",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def admin_user_ids(self) -> frozenset[str]:
        return frozenset(_parse_list_value(self.admin_user_ids_raw))

    @property
    def reserved_subdomains(self) -> frozenset[str]:
        configured = _parse_list_value(self.reserved_subdomains_raw)
        return frozenset(configured or DEFAULT_RESERVED_SUBDOMAINS)

    @property
    def trusted_proxy_cidrs(self) -> list[str]:
        return _parse_list_value(self.trusted_proxy_cidrs_raw)

    @property
    def ai_allowed_providers(self) -> list[str]:
        """Allowed provider names; ``mock`` is always allowed."""
        providers = [item.lower() for item in _parse_list_value(self.ai_allowed_providers_raw)]
        if "mock" not in providers:
            providers.append("mock")
        return providers

    @property
    def ai_allowed_models(self) -> dict[str, list[str]]:
        """Per-provider model allowlists read from ``AI_ALLOWED_MODELS_<PROVIDER>``."""
        return {
            name: _parse_list_value(os.getenv(f"AI_ALLOWED_MODELS_{name.upper()}", ""))
            for name in KNOWN_AI_PROVIDERS
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
