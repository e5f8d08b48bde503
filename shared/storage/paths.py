"""
Shared storage path utilities.

Canonical filesystem locations for the persisted link and server
documents. LIVEWATCH_DATA_DIR overrides the default `data/` directory
(resolved against the working directory the runtime is launched from).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

# ----------------------------------------------------------------------
# BASE DIRECTORIES
# ----------------------------------------------------------------------

DEFAULT_DATA_DIR = Path("data")

TWITCH_LINKS_FILE = "tbs.json"
YOUTUBE_LINKS_FILE = "youtubers.json"
SERVER_SETTINGS_FILE = "serverSettings.json"


def get_data_dir(override: Optional[Path | str] = None) -> Path:
    if override:
        return Path(override)
    env = os.getenv("LIVEWATCH_DATA_DIR")
    return Path(env) if env else DEFAULT_DATA_DIR


# ----------------------------------------------------------------------
# DOCUMENT PATH HELPERS
# ----------------------------------------------------------------------

def get_data_path(name: str, data_dir: Optional[Path | str] = None) -> Path:
    """
    Return a path inside the data directory.

    This function DOES NOT write files and does not create the
    directory; the atomic writer does that on first save.
    """

    return get_data_dir(data_dir) / name
