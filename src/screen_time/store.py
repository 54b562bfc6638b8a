"""Read application usage intervals from the macOS Screen Time store."""

from __future__ import annotations

import logging
import os
import re
import sqlite3
import subprocess
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from .models import RawInterval
from .paths import get_default_store_path

logger = logging.getLogger(__name__)

# 2001-01-01 00:00:00 UTC as a Unix timestamp; Core Data dates count from here.
CORE_DATA_EPOCH = 978307200
APP_USAGE_STREAM = "/app/usage"
DEFAULT_TIMEOUT = 10.0

_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
_TIME_PATTERN = re.compile(r"([01]\d|2[0-3]):[0-5]\d:[0-5]\d")


class InvalidInputError(ValueError):
    """Raised when a caller passes a malformed date."""


class QueryFailedError(RuntimeError):
    """Raised when the usage store could not be read."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class QueryRunner(Protocol):
    def run(self, query: str, store_path: Path, timeout: float) -> list[list[str]]:
        ...


class SqliteQueryRunner:
    """Run queries in-process through a read-only SQLite connection.

    ``timeout`` bounds both the wait for a lock and the query itself; a query
    still running at the deadline is interrupted with ``OperationalError``.
    """

    progress_interval = 10_000

    def run(self, query: str, store_path: Path, timeout: float) -> list[list[str]]:
        path = Path(store_path)
        if not path.exists():
            raise FileNotFoundError(f"Usage store not found: {path}")
        deadline = time.monotonic() + timeout
        conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True, timeout=timeout)
        try:
            conn.set_progress_handler(lambda: time.monotonic() > deadline, self.progress_interval)
            rows = conn.execute(query).fetchall()
        finally:
            conn.close()
        return [["" if value is None else str(value) for value in row] for row in rows]


class SqliteCliQueryRunner:
    """Run queries through the ``sqlite3`` binary.

    The query is written to a temporary script fed on stdin, so the script
    never appears on the command line. The script is removed on every path.
    """

    separator = "|"

    def __init__(self, binary: str = "sqlite3", tmp_dir: Optional[Path] = None) -> None:
        self.binary = binary
        self.tmp_dir = tmp_dir

    def run(self, query: str, store_path: Path, timeout: float) -> list[list[str]]:
        fd, script_name = tempfile.mkstemp(
            prefix="screentime_",
            suffix=".sql",
            dir=str(self.tmp_dir) if self.tmp_dir else None,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(query)
            with open(script_name, "r", encoding="utf-8") as script:
                result = subprocess.run(
                    [self.binary, "-separator", self.separator, str(store_path)],
                    stdin=script,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                    check=True,
                )
        finally:
            try:
                os.unlink(script_name)
            except FileNotFoundError:
                pass
        output = result.stdout.strip()
        if not output:
            return []
        return [line.split(self.separator) for line in output.splitlines()]


def build_usage_query(date: str) -> str:
    """Return the SQL selecting one local calendar day of app usage."""
    start = f"ZSTARTDATE + {CORE_DATA_EPOCH}"
    end = f"ZENDDATE + {CORE_DATA_EPOCH}"
    return (
        "SELECT ZVALUESTRING, "
        f"strftime('%H:%M:%S', {start}, 'unixepoch', 'localtime'), "
        f"strftime('%H:%M:%S', {end}, 'unixepoch', 'localtime'), "
        "CAST(ROUND(ZENDDATE - ZSTARTDATE) AS INTEGER) "
        "FROM ZOBJECT "
        f"WHERE ZSTREAMNAME = '{APP_USAGE_STREAM}' "
        f"AND date({start}, 'unixepoch', 'localtime') = '{date}' "
        "AND ZENDDATE > ZSTARTDATE "
        "ORDER BY ZSTARTDATE;\n"
    )


def validate_date(value: str) -> str:
    if not isinstance(value, str) or not _DATE_PATTERN.fullmatch(value):
        raise InvalidInputError(f"Invalid date format: {value!r}")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise InvalidInputError(f"Invalid date: {value!r}") from exc
    return value


def query_usage(
    date: str,
    store_path: Optional[Path] = None,
    *,
    runner: Optional[QueryRunner] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[RawInterval]:
    """Return the app usage intervals that started on ``date``.

    Raises ``InvalidInputError`` before touching the store when ``date`` is not
    ``YYYY-MM-DD``, and ``QueryFailedError`` for any failure while reading.
    """
    validate_date(date)
    db_path = Path(store_path) if store_path else get_default_store_path()
    runner = runner or SqliteQueryRunner()

    try:
        rows = runner.run(build_usage_query(date), db_path, timeout)
        intervals = [
            interval for interval in (_row_to_interval(row) for row in rows) if interval
        ]
    except (OSError, sqlite3.Error, subprocess.SubprocessError, ValueError) as exc:
        raise QueryFailedError(f"Failed to query {db_path}: {_describe(exc)}", exc) from exc

    logger.debug("Fetched %d usage intervals for %s from %s", len(intervals), date, db_path)
    return intervals


def _row_to_interval(row: list[str]) -> Optional[RawInterval]:
    if len(row) < 4:
        logger.debug("Skipping malformed usage row: %r", row)
        return None
    identifier, start_time, end_time, duration = (value.strip() for value in row[:4])
    try:
        seconds = int(duration)
    except ValueError:
        logger.debug("Skipping usage row with bad duration: %r", row)
        return None
    if not identifier or seconds <= 0:
        return None
    if not (_TIME_PATTERN.fullmatch(start_time) and _TIME_PATTERN.fullmatch(end_time)):
        logger.debug("Skipping usage row with bad times: %r", row)
        return None
    return RawInterval(
        identifier=identifier,
        start_time=start_time,
        end_time=end_time,
        duration_seconds=seconds,
    )


def _describe(exc: BaseException) -> str:
    if isinstance(exc, subprocess.CalledProcessError) and exc.stderr:
        return str(exc.stderr).strip()
    return str(exc)
