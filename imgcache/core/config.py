from pydantic_settings import BaseSettings
from pathlib import Path
from typing import Optional

class Settings(BaseSettings):
    # Load env from .env file
    model_config = {"env_file": ".env", "extra": "ignore"}

    # Storage
    STORAGE_ROOT: str = "storage"
    IMAGE_DIR: Optional[str] = None  # defaults to <STORAGE_ROOT>/images
    METADATA_DIR: Optional[str] = None  # defaults to <STORAGE_ROOT>/metadata

    # Source fetching
    FETCH_TIMEOUT_SECONDS: float = 10.0
    MAX_SOURCE_BYTES: int = 50 * 1024 * 1024
    FOLLOW_REDIRECTS: bool = True

    # Derivation
    ENCODE_QUALITY: int = 75
    MAX_TALLEST_SIDE: int = 8192

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 9090
    LOG_LEVEL: str = "INFO"

    def image_dir(self) -> Path:
        return Path(self.IMAGE_DIR or Path(self.STORAGE_ROOT) / "images").expanduser()

    def metadata_dir(self) -> Path:
        return Path(self.METADATA_DIR or Path(self.STORAGE_ROOT) / "metadata").expanduser()

# Instantiate settings
settings = Settings()
