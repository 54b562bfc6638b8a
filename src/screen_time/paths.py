"""Helpers for locating the macOS usage store."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


# macOS keeps the Screen Time event store under Application Support/Knowledge.
KNOWLEDGE_DIR_NAME = "Knowledge"
KNOWLEDGE_DB_NAME = "knowledgeC.db"


def get_default_store_path() -> Path:
    """Return the default location of ``knowledgeC.db``."""
    dirs = PlatformDirs(appname=KNOWLEDGE_DIR_NAME, appauthor=False)
    return Path(dirs.user_data_path) / KNOWLEDGE_DB_NAME
