# ==========================================
# CONFIGURATION
# ==========================================
"""
User settings for bundling a workspace.

Settings come from the first file that exists among an explicit path,
./ttsbundle.json and ~/.ttsbundle/config.json; with none of them present
the defaults apply.
"""
import json
import os
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

CONFIG_FILE = "ttsbundle.json"
USER_CONFIG_FILE = os.path.join("~", ".ttsbundle", "config.json")


class Settings(BaseModel):
    include_paths: List[str] = Field(
        default_factory=lambda: [os.path.join("~", "Documents", "Tabletop Simulator")]
    )
    output_dir: str = ".tts"
    encoding: str = "utf-8"

    def search_paths(self, workspace_root="."):
        """Include paths with ~ expanded and relative entries anchored at the workspace."""
        paths = []
        for path in self.include_paths:
            path = os.path.expanduser(path)
            paths.append(os.path.normpath(os.path.join(workspace_root, path)))
        return paths


def config_candidates(path=None):
    paths = [CONFIG_FILE, os.path.expanduser(USER_CONFIG_FILE)]
    if path:
        paths.insert(0, path)
    return paths


def load_settings(path=None):
    """Load settings from the first existing config file."""
    if path and not os.path.exists(path):
        raise ConfigError(f"Config file '{path}' not found")

    for candidate in config_candidates(path):
        if not os.path.exists(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as f:
                data = json.load(f)
            return Settings(**data)
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            raise ConfigError(f"Invalid config file '{candidate}': {e}") from e
    return Settings()
