"""Configuration models and helpers for the screen time tools."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .models import RawInterval
from .paths import get_default_store_path
from .store import QueryRunner, SqliteCliQueryRunner, query_usage


@dataclass(slots=True)
class ScreenTimeSettings:
    """Runtime configuration shared by the CLI, note writer and dashboard."""

    note_folder: Path = Path("life/daily")
    minimum_duration_seconds: int = 60
    store_path: Optional[Path] = None
    query_timeout: float = 10.0
    sqlite_binary: Optional[str] = None
    dashboard_host: str = "127.0.0.1"
    dashboard_port: int = 8766

    @classmethod
    def from_options(
        cls,
        note_folder: Optional[Path] = None,
        minimum_duration_seconds: Optional[int] = None,
        store_path: Optional[str | Path] = None,
        query_timeout: Optional[float] = None,
        sqlite_binary: Optional[str] = None,
        dashboard_host: Optional[str] = None,
        dashboard_port: Optional[int] = None,
    ) -> "ScreenTimeSettings":
        defaults = cls()
        if minimum_duration_seconds is not None and minimum_duration_seconds < 0:
            raise ValueError("minimum_duration_seconds must be >= 0")
        if query_timeout is not None and query_timeout <= 0:
            raise ValueError("query_timeout must be > 0")
        # An empty store path means "use the default knowledgeC.db".
        store = Path(store_path) if store_path else None
        return cls(
            note_folder=Path(note_folder) if note_folder else defaults.note_folder,
            minimum_duration_seconds=(
                minimum_duration_seconds
                if minimum_duration_seconds is not None
                else defaults.minimum_duration_seconds
            ),
            store_path=store,
            query_timeout=query_timeout if query_timeout is not None else defaults.query_timeout,
            sqlite_binary=sqlite_binary or None,
            dashboard_host=dashboard_host or defaults.dashboard_host,
            dashboard_port=dashboard_port or defaults.dashboard_port,
        )

    def resolved_store_path(self) -> Path:
        return self.store_path or get_default_store_path()

    def query_runner(self) -> Optional[QueryRunner]:
        """Return the sqlite3-binary runner when one is configured."""
        if self.sqlite_binary:
            return SqliteCliQueryRunner(binary=self.sqlite_binary)
        return None

    def fetch_usage(self, day: str) -> list[RawInterval]:
        """Query one day of usage with this configuration's store, runner and timeout."""
        return query_usage(
            day,
            self.store_path,
            runner=self.query_runner(),
            timeout=self.query_timeout,
        )

    def dashboard_url(self) -> str:
        return f"http://{self.dashboard_host}:{self.dashboard_port}"
