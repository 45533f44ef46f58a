# pdfmerge/config.py
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache
from pathlib import Path
import os


class Settings(BaseSettings):
    """Application settings with validation."""

    # App Info
    app_name: str = Field(default="Record PDF Merge Service")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Storage
    data_dir: str = Field(default="/tmp/pdfmerge/records")
    upload_root: str = Field(default="/tmp/pdfmerge/uploads")

    # Download
    max_records_per_download: int = Field(default=100)

    # Rate Limiting
    rate_limit_per_minute: int = Field(default=30)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    workers: int = Field(default=4)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def upload_path(self) -> Path:
        return Path(self.upload_root)

    @property
    def rate_limit(self) -> str:
        return f"{self.rate_limit_per_minute}/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "PDFMERGE_"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    settings = Settings()
    os.makedirs(settings.data_dir, exist_ok=True)
    os.makedirs(settings.upload_root, exist_ok=True)
    return settings
