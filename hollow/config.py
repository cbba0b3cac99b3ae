"""
Configuration - Process-level settings read from the environment.

Environment variables:
    HOLLOW_ENV          deployment name (default: development)
    HOLLOW_SAVE_DIR     save directory; unset keeps saves in memory
    HOLLOW_STORY_DIR    extra JSON stories loaded next to the built-ins
    HOLLOW_LOG_LEVEL    logging level name (default: INFO)
    ALLOWED_ORIGINS     comma separated CORS origins (default: *)

Reader preferences (volume, text speed) are not configuration; they live
in GameSettings inside the player state.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class HollowConfig:
    env: str = "development"
    save_dir: str | None = None
    story_dir: str | None = None
    log_level: str = "INFO"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> HollowConfig:
        origins = os.getenv("ALLOWED_ORIGINS", "*")
        return cls(
            env=os.getenv("HOLLOW_ENV", "development"),
            save_dir=os.getenv("HOLLOW_SAVE_DIR") or None,
            story_dir=os.getenv("HOLLOW_STORY_DIR") or None,
            log_level=os.getenv("HOLLOW_LOG_LEVEL", "INFO"),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


def configure_logging(level: str | int = "INFO"):
    """Configure root logging once. Later calls only adjust the level."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
