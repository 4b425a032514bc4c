"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000", "*"]
    log_level: str = "INFO"

    # Storage
    storage_backend: str = "memory"  # "memory" or "supabase"
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Download processing
    unit_delay_seconds: float = 1.0
    default_limit: int = 10
    max_limit: int = 50
    bulk_min_files: int = 20
    bulk_max_files: int = 100  # exclusive

    # Fetch retries (per work unit)
    fetch_max_retries: int = 2
    fetch_retry_backoff_seconds: float = 0.5

    # Retention of finished downloads
    job_retention_hours: int = 24
    cleanup_interval_seconds: int = 30 * 60

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
