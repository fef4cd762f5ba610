from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    # Database settings
    database_url: str = "sqlite:///./allowance.db"

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    # Pagination for the transaction ledger
    default_page_size: int = 50
    max_page_size: int = 500

    app_version: str = "1.0.0"

    class Config:
        env_file = ".env"

@lru_cache()
def get_settings():
    return Settings()
