"""Write the daily screen time table into a Markdown daily note."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .aggregation import format_minutes
from .models import DailySummary

logger = logging.getLogger(__name__)

SECTION_MARKER = "## Screen Time"

_NEXT_HEADING = re.compile(r"\n## ")
# Tag lines such as "#2026-02 #daily" close a daily note.
_TAG_LINE = re.compile(r"\n(#\d{4}-\d{2}\s)")


@dataclass(frozen=True, slots=True)
class NoteResult:
    ok: bool
    path: Path
    message: str


def render_markdown_table(summary: DailySummary) -> str:
    lines = [
        SECTION_MARKER,
        "",
        "| Hour | App | Duration |",
        "|------|-----|----------|",
    ]
    for bucket in summary.hourly:
        for app in bucket.apps:
            lines.append(f"| {bucket.hour} | {app.name} | {format_minutes(app.minutes)} |")
    lines.append(f"| **Total** | - | **{format_minutes(summary.total_minutes)}** |")
    lines.append("")
    return "\n".join(lines)


def daily_note_path(date: str, note_folder: Path) -> Path:
    year, month, _ = date.split("-")
    return Path(note_folder) / year / month / f"{date}.md"


def splice_section(content: str, markdown: str) -> str:
    """Place ``markdown`` into ``content``.

    An existing Screen Time section is replaced up to the next level-two
    heading. Otherwise the block goes before the trailing tag line, or at the
    end of the note when there is none.
    """
    start = content.find(SECTION_MARKER)
    if start != -1:
        after_marker = start + len(SECTION_MARKER)
        match = _NEXT_HEADING.search(content, after_marker)
        end = match.start() if match else len(content)
        return content[:start] + markdown + content[end:]

    match = _TAG_LINE.search(content)
    if match:
        insert_at = match.start()
        return content[:insert_at] + "\n" + markdown + content[insert_at:]

    return content.rstrip() + "\n\n" + markdown


def insert_screen_time_section(summary: DailySummary, note_folder: Path) -> NoteResult:
    path = daily_note_path(summary.date, note_folder)
    if not path.is_file():
        logger.info("Daily note not found: %s", path)
        return NoteResult(ok=False, path=path, message=f"Daily note not found: {path}")

    content = path.read_text(encoding="utf-8")
    path.write_text(splice_section(content, render_markdown_table(summary)), encoding="utf-8")
    logger.info("Screen time inserted into %s", path)
    return NoteResult(ok=True, path=path, message=f"Screen Time inserted into {path}")
