"""Centralised settings for the SiteIntel pipeline.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SITEINTEL_WORKSPACE", Path.home() / ".siteintel_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "siteintel.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # Bytes of raw markup kept per persisted PageSnapshot.
    snapshot_max_bytes: int = field(
        default_factory=lambda: int(os.environ.get("SNAPSHOT_MAX_BYTES", "10000"))
    )

    # ------------------------------------------------------------------
    # Crawler
    # ------------------------------------------------------------------
    default_page_budget: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_PAGE_BUDGET", "20"))
    )
    max_page_budget: int = field(
        default_factory=lambda: int(os.environ.get("MAX_PAGE_BUDGET", "50"))
    )
    crawl_workers: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_WORKERS", "3"))
    )
    crawl_delay: float = field(
        default_factory=lambda: float(os.environ.get("CRAWL_DELAY", "1.0"))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    fetch_retries: int = field(
        default_factory=lambda: int(os.environ.get("FETCH_RETRIES", "2"))
    )
    retry_backoff: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_BACKOFF", "0.5"))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "CRAWLER_USER_AGENT",
            "Mozilla/5.0 (compatible; SiteIntel-Bot/1.0; +https://github.com/siteintel)",
        )
    )
    browser_fallback: bool = field(
        default_factory=lambda: _env_bool("BROWSER_FALLBACK", "true")
    )
    capture_screenshots: bool = field(
        default_factory=lambda: _env_bool("CAPTURE_SCREENSHOTS", "false")
    )

    # ------------------------------------------------------------------
    # Extraction caps
    # ------------------------------------------------------------------
    max_products: int = field(
        default_factory=lambda: int(os.environ.get("MAX_PRODUCTS", "50"))
    )
    max_forms: int = field(
        default_factory=lambda: int(os.environ.get("MAX_FORMS", "10"))
    )
    max_keywords: int = field(
        default_factory=lambda: int(os.environ.get("MAX_KEYWORDS", "50"))
    )

    # ------------------------------------------------------------------
    # External collaborators
    # ------------------------------------------------------------------
    ocr_service_url: str = field(
        default_factory=lambda: os.environ.get("OCR_SERVICE_URL", "")
    )
    enrichment_enabled: bool = field(
        default_factory=lambda: _env_bool("ENRICHMENT_ENABLED", "false")
    )
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "ollama")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "ministral-3:8b")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Install a stderr handler for the ``siteintel`` logger tree."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


# Module-level singleton, import this everywhere:
#   from siteintel.config import settings
settings = Settings()
