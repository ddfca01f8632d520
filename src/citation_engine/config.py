"""Configuration loader with environment variable support."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Config:
    """Application configuration."""

    # Catalog service
    CATALOG_URL: str = os.getenv("CATALOG_URL", "http://127.0.0.1:54321")
    CATALOG_API_KEY: str = os.getenv("CATALOG_API_KEY", "")
    CATALOG_TIMEOUT: float = _float_env("CATALOG_TIMEOUT", 10.0)

    # Citation styles
    FORMAT_SIMPLE: str = "simple"
    FORMAT_APA: str = "apa"
    FORMAT_MLA: str = "mla"
    FORMAT_CHICAGO: str = "chicago"
    DEFAULT_CITATION_FORMAT: str = os.getenv("DEFAULT_CITATION_FORMAT", FORMAT_SIMPLE)

    # Editor behaviour
    AUTOSAVE_DELAY_SECONDS: float = _float_env("AUTOSAVE_DELAY_SECONDS", 2.0)
    SOURCES_STALE_SECONDS: float = _float_env("SOURCES_STALE_SECONDS", 60.0)

    # Export
    EXPORT_FOLDER: str = os.getenv("EXPORT_FOLDER", "exports")
    EXPORT_FILENAME: str = os.getenv("EXPORT_FILENAME", "bibliography.docx")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    @classmethod
    def get_export_path(cls) -> str:
        """Get the full path to the exported bibliography."""
        return str(Path(cls.EXPORT_FOLDER) / cls.EXPORT_FILENAME)
