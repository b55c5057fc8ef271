"""
Logging setup shared by the API server and the CLI
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from app.core.config import settings


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure root logging: console always, rotating file when configured."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    target = log_file if log_file is not None else settings.log_file
    if target:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                target, maxBytes=5 * 1024 * 1024, backupCount=2, encoding="utf-8"
            )
        )
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format=settings.log_format,
        datefmt=settings.log_date_format,
        handlers=handlers,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
