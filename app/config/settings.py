from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Document store
    store_backend: str = "supabase"  # supabase | memory
    workshops_table: str = "workshops"
    steps_table: str = "workshop_steps"
    batch_rpc: str = "commit_document_batch"  # Postgres function applying a batch in one transaction

    # App
    app_name: str = "lean-inception-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    auth_cache_ttl_seconds: int = 60

    # Workshop sessions
    session_ttl_seconds: int = 3600  # Idle sessions are dropped from the registry after this
    create_latch_ttl_seconds: int = 600  # How long a create request_id is remembered

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def uses_memory_store(self) -> bool:
        return self.store_backend.lower() == "memory"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
