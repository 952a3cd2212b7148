from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .logger import get_logger

log = get_logger(__name__)

CONFIG_ENV_VAR = "ANIMSET_EDITOR_CONFIG"


class EditorConfigModel(BaseModel):
    # Sprite count assumed for a directory tree that has no SD/mainSD.anim
    speculative_sprite_count: int = Field(999, ge=0, le=0xFFFF)
    temp_prefix: str = Field("__temp__", min_length=1)
    backup_prefix: str = Field("__backup__", min_length=1)
    # None defers to ANIMSET_LOG_LEVEL, then INFO
    log_level: Optional[str] = None


class EditorConfig:
    def __init__(self, path: Path):
        self.path = path
        self.model: Optional[EditorConfigModel] = None

    def load(self) -> EditorConfigModel:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.model = EditorConfigModel.model_validate(data)
        return self.model


def load_config(path: Optional[Path] = None) -> EditorConfigModel:
    """
    Load editor settings.

    Uses *path* when given, otherwise the JSON file named by the
    ANIMSET_EDITOR_CONFIG environment variable, otherwise defaults.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            path = Path(env_path)
            log.debug(f"Using config from {CONFIG_ENV_VAR}: {path}")
    if path is None:
        return EditorConfigModel()
    return EditorConfig(path).load()
