from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "tenant-ats-api"
    environment: str = "dev"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    auth_timeout_seconds: float = 5.0
    notification_webhook_url: str | None = None
    notification_timeout_seconds: float = 5.0
    template_destroy_usage_limit: int = 5
    duplicate_template_active: bool = False
    otel_enabled: bool = True
    otel_service_name: str = "tenant-ats-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="ATS_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
