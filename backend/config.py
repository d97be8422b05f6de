"""Environment-driven configuration and logging setup for the editing core."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables from .env file
load_dotenv()

LOG_FORMAT = '[%(asctime)s] [editcore] [%(levelname)s] %(message)s'
LOG_DATEFMT = '%Y-%m-%dT%H:%M:%S'

logger = logging.getLogger(__name__)


class EditorConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    # 0 keeps the undo history unbounded
    undo_limit: int = Field(default=0, ge=0)
    clone_max_attempts: int = Field(default=6, ge=1)
    clone_min_offset: float = Field(default=6.0, ge=0)
    clone_offset_ratio: float = Field(default=0.06, ge=0)
    log_level: str = "INFO"

    @property
    def undo_max_depth(self) -> Optional[int]:
        return self.undo_limit or None


def get_config() -> EditorConfig:
    """Get configuration from environment variables"""
    return EditorConfig(
        undo_limit=int(os.getenv("EDITOR_UNDO_LIMIT", "0")),
        clone_max_attempts=int(os.getenv("CLONE_MAX_ATTEMPTS", "6")),
        clone_min_offset=float(os.getenv("CLONE_MIN_OFFSET", "6")),
        clone_offset_ratio=float(os.getenv("CLONE_OFFSET_RATIO", "0.06")),
        log_level=os.getenv("EDITOR_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(config: Optional[EditorConfig] = None) -> None:
    level_name = (config.log_level if config else os.getenv("EDITOR_LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    logger.info(f"🪵 Logging configured at {logging.getLevelName(level)}")
