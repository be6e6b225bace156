"""
Application configuration settings.

Responsibilities:
- Load environment variables (optionally from a .env file)
- Define the shared storage directory for uploads and results
- Configure API settings (host, port, CORS)
- Bound the background-removal engine and the storage janitor
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = "BG Remover"
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))
    CORS_ORIGINS: list = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    ALLOWED_TYPES: tuple = ("jpeg", "jpg", "png", "gif")

    REMBG_MODEL: str = os.getenv("REMBG_MODEL", "u2net")
    ENGINE_TIMEOUT_SECONDS: float = float(os.getenv("ENGINE_TIMEOUT_SECONDS", "120"))
    RETAIN_FAILED_UPLOADS: bool = _env_bool("RETAIN_FAILED_UPLOADS", False)

    JANITOR_INTERVAL_SECONDS: float = float(os.getenv("JANITOR_INTERVAL_SECONDS", "300"))
    MAX_FILE_AGE_SECONDS: float = float(os.getenv("MAX_FILE_AGE_SECONDS", "3600"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "")

settings = Settings()
