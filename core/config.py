"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Catalog loaded at API startup (JSON: data_sources, transformation_rules, jobs)
    CATALOG_PATH: Optional[str] = None

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "UTC"

    # ETL Configuration
    JOB_EXECUTION_TIMEOUT_SECONDS: Optional[float] = 3600.0
    MAX_RUN_HISTORY: int = 50
    ETL_BATCH_SIZE: int = 500
    MAX_RETRIES: int = 3
    RETRY_DELAY_SECONDS: float = 1.0
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Data quality (score 0-100; lower scores raise a data-quality alert)
    DATA_QUALITY_THRESHOLD: float = 80.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
