from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Needed for server-side credential writes

    # Credential encryption (64 hex chars = 32 bytes for AES-256-GCM)
    encryption_key: Optional[str] = None

    # System-wide OpenAI key: fallback provider and model listing
    openai_api_key: Optional[str] = None

    # ServiceNow fallbacks when no stored integration credential exists
    servicenow_instance_url: Optional[str] = None
    servicenow_scope_id: Optional[str] = None

    # AI providers
    openai_default_model: str = "gpt-4o"
    claude_default_model: str = "claude-3-5-sonnet-20241022"
    gemini_default_model: str = "gemini-1.5-flash"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4000
    llm_timeout_seconds: float = 120.0

    # Outbound HTTP
    http_timeout_seconds: float = 30.0
    model_cache_ttl_seconds: int = 15 * 60

    # App
    app_name: str = "client-intel-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    fetch_models_rate_limit: str = "10/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
