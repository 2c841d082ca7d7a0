# backend/devcamper/config.py
from typing import Literal
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./devcamper.db"  # Default if not in .env

    # Storage Paths
    STORAGE_PATH: Path = Path("storage")
    LOG_PATH: Path | None = None  # Will be set based on STORAGE_PATH
    LOG_LEVEL: str = "INFO"

    # Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Query Settings
    DEFAULT_PAGE_LIMIT: int = 25
    MAX_PAGE_LIMIT: int = 100
    # "collection" counts the whole (scoped) collection for pagination links,
    # "filtered" counts with the same filter as the page query
    PAGINATION_TOTAL: Literal["collection", "filtered"] = "collection"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def model_post_init(self, __context) -> None:
        """Post initialization hook to set derived paths"""
        if isinstance(self.STORAGE_PATH, str):
            self.STORAGE_PATH = Path(self.STORAGE_PATH)

        self.LOG_PATH = Path(self.LOG_PATH) if self.LOG_PATH else self.STORAGE_PATH / "logs"

        self.create_storage_dirs()

    def create_storage_dirs(self) -> None:
        """Create necessary storage directories if they don't exist"""
        for path in [self.STORAGE_PATH, self.LOG_PATH]:
            path.mkdir(parents=True, exist_ok=True)

settings = Settings()
