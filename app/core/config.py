"""
Application configuration using Pydantic Settings
"""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # API Settings
    api_title: str = "Duration Scout API"
    api_description: str = "Resolve video durations without decoding the media"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Logging Settings
    log_level: str = "INFO"
    log_format: str = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    log_file: Optional[str] = "data/app.log"

    # Container Scan Settings
    scan_head_window_bytes: int = 256 * 1024
    scan_tail_window_bytes: int = 512 * 1024
    scan_top_level_attempts: int = 50
    scan_movie_attempts: int = 100
    # Max 'moov' tag candidates tried inside the tail window
    scan_tail_max_candidates: int = 8

    # Playback Probe Settings
    probe_enabled: bool = True
    ffprobe_binary_path: str = "ffprobe"
    probe_timeout: float = 5.0
    # Seconds of packets re-read before the reported end when verifying
    probe_seek_window: float = 5.0
    # Seek target used when the initial duration is unusable (fragmented streams)
    probe_far_seek_position: float = 999999.0
    # Where non-file sources are spilled for ffprobe (None = system temp dir)
    probe_spill_dir: Optional[str] = None

    # Remote Fallback Settings
    remote_fallback_enabled: bool = False
    ai_pydantic_model: str = "gpt-4o-mini"
    openai_api_key: str = ""
    remote_timeout: float = 60.0
    remote_max_bytes: int = 20 * 1024 * 1024
    remote_instruction: str = (
        "Return only the numeric duration of this video in seconds. "
        "Reply with the number and nothing else."
    )

    # Download Settings
    download_timeout: int = 300  # 5 minutes for large video files

    # Queue Settings
    queue_max_items: int = 1000
    # 1 = strictly sequential, > 1 = bounded-parallel
    queue_max_workers: int = 1

    @field_validator("queue_max_workers", "queue_max_items")
    @classmethod
    def ensure_positive(cls, v: int) -> int:
        """Reject zero/negative queue limits.

        Example:
            >>> Settings(queue_max_workers=0)
            Traceback (most recent call last):
            ...
            pydantic_core._pydantic_core.ValidationError: ...
        """
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("scan_head_window_bytes", "scan_tail_window_bytes")
    @classmethod
    def ensure_window(cls, v: int) -> int:
        if v < 16:
            raise ValueError("scan window must hold at least one extended box header")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Global settings instance
settings = Settings()
