from __future__ import annotations

import logging
import os
from pathlib import Path


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./standings.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_export_dir() -> Path:
    """Directory workbooks are written to; EXPORT_DIR or ./exports."""
    return Path(os.getenv("EXPORT_DIR", "./exports")).expanduser().resolve()


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
