"""Resolve application bundle identifiers to human-readable names."""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

KNOWN_APPS: dict[str, str] = {
    "com.apple.Safari": "Safari",
    "com.apple.finder": "Finder",
    "com.apple.mail": "Mail",
    "com.apple.MobileSMS": "Messages",
    "com.apple.iCal": "Calendar",
    "com.apple.reminders": "Reminders",
    "com.apple.Notes": "Notes",
    "com.apple.Preview": "Preview",
    "com.apple.Terminal": "Terminal",
    "com.apple.dt.Xcode": "Xcode",
    "com.apple.Music": "Music",
    "com.apple.Passwords": "Passwords",
    "com.apple.systempreferences": "System Settings",
    "com.apple.ActivityMonitor": "Activity Monitor",
    "com.microsoft.VSCode": "VS Code",
    "com.github.wez.wezterm": "WezTerm",
    "company.thebrowser.Browser": "Arc",
    "com.tinyspeck.slackmacgap": "Slack",
    "com.hnc.Discord": "Discord",
    "md.obsidian": "Obsidian",
    "com.ableton.live": "Ableton Live",
    "com.toggl.daneel": "Toggl Track",
    "com.spotify.client": "Spotify",
    "com.google.Chrome": "Chrome",
    "org.mozilla.firefox": "Firefox",
    "com.figma.Desktop": "Figma",
    "notion.id": "Notion",
    "com.linear": "Linear",
    "us.zoom.xos": "Zoom",
    "com.readdle.smartemail-macos": "Spark",
    "com.culturedcode.ThingsMac": "Things",
    "com.flexibits.fantastical2.mac": "Fantastical",
    "com.1password.1password": "1Password",
    "com.openai.chat": "ChatGPT",
    "dev.zed.Zed": "Zed",
}

_NULL_NAME = "(null)"


class MetadataLookup(Protocol):
    """Locate an application bundle and read its display name."""

    def find_path(self, identifier: str) -> Optional[str]:
        ...

    def display_name(self, path: str) -> Optional[str]:
        ...


class SpotlightLookup:
    """Metadata lookup backed by the ``mdfind``/``mdls`` command-line tools."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout

    def find_path(self, identifier: str) -> Optional[str]:
        query = f"kMDItemCFBundleIdentifier == '{_escape_single_quotes(identifier)}'"
        output = self._run(["mdfind", query])
        if not output:
            return None
        first_line = output.splitlines()[0].strip()
        return first_line or None

    def display_name(self, path: str) -> Optional[str]:
        name = self._run(["mdls", "-name", "kMDItemDisplayName", "-raw", path])
        if not name or name == _NULL_NAME:
            return None
        return name

    def _run(self, args: list[str]) -> Optional[str]:
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("Metadata lookup %s failed: %s", args[0], exc)
            return None
        return result.stdout.strip()


class NameResolver:
    """Tiered identifier-to-name resolution with a process-lifetime cache.

    Tiers are tried in order and the first hit is cached:

    1. the static ``known`` table,
    2. the metadata lookup (Spotlight on macOS),
    3. the capitalized last dot-separated segment of the identifier.
    """

    def __init__(
        self,
        lookup: Optional[MetadataLookup] = None,
        known: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._lookup = lookup if lookup is not None else SpotlightLookup()
        self._known = dict(KNOWN_APPS if known is None else known)
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def resolve(self, identifier: str) -> str:
        with self._lock:
            cached = self._cache.get(identifier)
            if cached is not None:
                return cached
            name = (
                self._known.get(identifier)
                or self._lookup_name(identifier)
                or fallback_name(identifier)
            )
            self._cache[identifier] = name
            return name

    def cached(self, identifier: str) -> Optional[str]:
        with self._lock:
            return self._cache.get(identifier)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
        logger.debug("Name cache cleared.")

    def _lookup_name(self, identifier: str) -> Optional[str]:
        try:
            path = self._lookup.find_path(identifier)
            if not path:
                return None
            name = self._lookup.display_name(path)
        except Exception:  # lookup failures fall through to the next tier
            logger.debug("Metadata lookup raised for %s.", identifier, exc_info=True)
            return None
        if not name or name == _NULL_NAME:
            return None
        name = name.removesuffix(".app")
        logger.debug("Resolved %s to %r via metadata lookup.", identifier, name)
        return name or None


def fallback_name(identifier: str) -> str:
    """Capitalize the first character of the identifier's last segment."""
    last = identifier.split(".")[-1]
    return last[:1].upper() + last[1:]


def _escape_single_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")
