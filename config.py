from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "video_sharing"
    log_level: str = "INFO"
    search_backend: str = "atlas"  # "atlas" ($search, fuzzy) or "text" ($text index)
    search_index: str = "default"
    upload_dir: str = "uploads"
    cors_origins: List[str] = ["*"]
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
