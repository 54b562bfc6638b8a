from __future__ import annotations

import subprocess
import unittest
from typing import Optional
from unittest import mock

from screen_time.resolver import NameResolver, SpotlightLookup, fallback_name


class FakeLookup:
    def __init__(self, paths: Optional[dict[str, str]] = None, names: Optional[dict[str, str]] = None):
        self.paths = paths or {}
        self.names = names or {}
        self.find_calls: list[str] = []

    def find_path(self, identifier: str) -> Optional[str]:
        self.find_calls.append(identifier)
        return self.paths.get(identifier)

    def display_name(self, path: str) -> Optional[str]:
        return self.names.get(path)


class BrokenLookup(FakeLookup):
    def find_path(self, identifier: str) -> Optional[str]:
        self.find_calls.append(identifier)
        raise subprocess.TimeoutExpired(cmd="mdfind", timeout=5)


class ResolverTests(unittest.TestCase):
    def test_known_identifier_skips_lookup(self) -> None:
        lookup = FakeLookup()
        resolver = NameResolver(lookup=lookup)
        self.assertEqual(resolver.resolve("com.apple.Safari"), "Safari")
        self.assertEqual(lookup.find_calls, [])

    def test_metadata_lookup_strips_app_suffix(self) -> None:
        lookup = FakeLookup(
            paths={"com.acme.Tool": "/Applications/Tool.app"},
            names={"/Applications/Tool.app": "Acme Tool.app"},
        )
        resolver = NameResolver(lookup=lookup)
        self.assertEqual(resolver.resolve("com.acme.Tool"), "Acme Tool")

    def test_null_display_name_falls_through(self) -> None:
        lookup = FakeLookup(
            paths={"com.acme.widget": "/Applications/Widget.app"},
            names={"/Applications/Widget.app": "(null)"},
        )
        resolver = NameResolver(lookup=lookup)
        self.assertEqual(resolver.resolve("com.acme.widget"), "Widget")

    def test_fallback_capitalizes_first_character_only(self) -> None:
        resolver = NameResolver(lookup=FakeLookup())
        self.assertEqual(resolver.resolve("com.example.fooBar"), "FooBar")

    def test_lookup_errors_fall_back(self) -> None:
        lookup = BrokenLookup()
        resolver = NameResolver(lookup=lookup)
        self.assertEqual(resolver.resolve("org.example.editor"), "Editor")

    def test_cached_result_does_not_repeat_lookup(self) -> None:
        lookup = FakeLookup()
        resolver = NameResolver(lookup=lookup)
        first = resolver.resolve("io.example.thing")
        second = resolver.resolve("io.example.thing")
        self.assertEqual(first, second)
        self.assertEqual(lookup.find_calls, ["io.example.thing"])
        self.assertEqual(resolver.cached("io.example.thing"), "Thing")

    def test_clear_cache_forces_new_lookup(self) -> None:
        lookup = FakeLookup()
        resolver = NameResolver(lookup=lookup)
        resolver.resolve("io.example.thing")
        resolver.clear_cache()
        self.assertIsNone(resolver.cached("io.example.thing"))
        resolver.resolve("io.example.thing")
        self.assertEqual(len(lookup.find_calls), 2)

    def test_fallback_name_without_dots(self) -> None:
        self.assertEqual(fallback_name("notion"), "Notion")
        self.assertEqual(fallback_name(""), "")


class SpotlightLookupTests(unittest.TestCase):
    def test_find_path_returns_first_line(self) -> None:
        completed = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="/Applications/A.app\n/Applications/B.app\n"
        )
        with mock.patch("screen_time.resolver.subprocess.run", return_value=completed) as run:
            path = SpotlightLookup().find_path("com.acme.A")
        self.assertEqual(path, "/Applications/A.app")
        args = run.call_args.args[0]
        self.assertEqual(args[0], "mdfind")
        self.assertIn("kMDItemCFBundleIdentifier == 'com.acme.A'", args[1])

    def test_missing_binary_returns_none(self) -> None:
        with mock.patch("screen_time.resolver.subprocess.run", side_effect=FileNotFoundError("mdfind")):
            self.assertIsNone(SpotlightLookup().find_path("com.acme.A"))

    def test_null_display_name_returns_none(self) -> None:
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="(null)")
        with mock.patch("screen_time.resolver.subprocess.run", return_value=completed):
            self.assertIsNone(SpotlightLookup().display_name("/Applications/A.app"))


if __name__ == "__main__":
    unittest.main()
