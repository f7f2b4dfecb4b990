"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class PersistenceConfig(BaseSettings):
    """Auto-save and local snapshot configuration."""

    model_config = {"env_prefix": "ONBOARDFLOW_PERSISTENCE_"}

    debounce_seconds: float = 1.0
    local_dir: str = "data/onboarding"
    progress_key_prefix: str = "onboarding_progress_"
    form_data_key: str = "onboarding_form_data"


class RemoteStoreConfig(BaseSettings):
    """Durable remote progress store (HTTP) configuration."""

    model_config = {"env_prefix": "ONBOARDFLOW_REMOTE_"}

    base_url: str = "http://localhost:8000"
    api_key: str | None = None
    timeout_seconds: float = 10.0
    max_retries: int = 1
    retry_backoff_seconds: float = 0.5


class DatabaseConfig(BaseSettings):
    """Database backing the progress store service."""

    model_config = {"env_prefix": "ONBOARDFLOW_DATABASE_"}

    url: str | None = None
    echo: bool = False
    pool_size: int = 5


class FlowConfig(BaseSettings):
    """Flow definition configuration."""

    model_config = {"env_prefix": "ONBOARDFLOW_FLOWS_"}

    flows_dir: str | None = None
    default_variant: str = "new_business"


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "ONBOARDFLOW_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    remote: RemoteStoreConfig = Field(default_factory=RemoteStoreConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    flows: FlowConfig = Field(default_factory=FlowConfig)
