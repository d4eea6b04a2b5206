# memory_vault/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from loguru import logger
from pathlib import Path
from typing import List


def find_dotenv_path(filename: str = '.env', usecwd: bool = False) -> str | None:
    """Walks up from this package (or the CWD) looking for a dotenv file."""
    start_dir = Path.cwd() if usecwd else Path(__file__).resolve().parent
    current_dir = start_dir
    for _ in range(10):
        env_path = current_dir / filename
        if env_path.is_file():
            logger.debug(f"Found {filename} at: {env_path}")
            return str(env_path)
        parent_dir = current_dir.parent
        if parent_dir == current_dir:
            break
        current_dir = parent_dir
    if not usecwd:
        env_path_cwd = Path.cwd() / filename
        if env_path_cwd.is_file():
            logger.debug(f"Found {filename} at CWD: {env_path_cwd}")
            return str(env_path_cwd)
    return None


class Settings(BaseSettings):
    PROJECT_NAME: str = "Memory Vault"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    HOST: str = "0.0.0.0"
    PORT: int = 5000

    # Document store
    MONGODB_URI: str
    MONGODB_DEFAULT_DB: str = "memory_vault"

    # Media host (Cloudinary)
    CLOUDINARY_CLOUD_NAME: str
    CLOUDINARY_API_KEY: str
    CLOUDINARY_API_SECRET: str
    CLOUDINARY_API_BASE_URL: str = "https://api.cloudinary.com/v1_1"
    MEDIA_FOLDER: str = Field(default="memories")
    MEDIA_TIMEOUT_SECONDS: float = 30.0

    CORS_ORIGINS: str = "*"
    STATIC_DIR: str = "client/build"

    model_config = SettingsConfigDict(
        # .env.local overrides .env
        env_file=tuple(p for p in (find_dotenv_path('.env'), find_dotenv_path('.env.local')) if p) or None,
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> List[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Loads and validates the application settings."""
    logger.info("Loading application settings...")
    env_files_found = [p for p in [find_dotenv_path('.env'), find_dotenv_path('.env.local')] if p]
    if env_files_found:
        logger.info(f"Loading environment variables from: {', '.join(env_files_found)}")
    else:
        logger.warning("No .env file found. Loading settings from system environment variables only.")

    try:
        settings_instance = Settings()

        required_vars = ['MONGODB_URI', 'CLOUDINARY_CLOUD_NAME', 'CLOUDINARY_API_KEY', 'CLOUDINARY_API_SECRET']
        missing = [k for k in required_vars if not getattr(settings_instance, k, None)]
        if missing:
            logger.critical(f"Missing critical environment variables: {', '.join(missing)}")
            raise ValueError(f"Missing critical environment variables: {', '.join(missing)}")

        logger.info("Settings loaded and validated successfully.")
        return settings_instance
    except ValueError as val_err:
        logger.critical(f"CRITICAL ERROR in settings validation: {val_err}")
        raise SystemExit(f"Settings validation failed: {val_err}")


settings = get_settings()
