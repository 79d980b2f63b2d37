"""Tests for build revision lookup."""

from __future__ import annotations

import subprocess
from types import SimpleNamespace

from zipstreamer.build_info import get_vcs_revision, user_agent


class TestBuildInfo:
    def test_revision_from_env(self):
        assert get_vcs_revision() == "abcdef01"
        assert user_agent() == "zipstreamer/abcdef01"

    def test_revision_from_git(self, monkeypatch):
        monkeypatch.delenv("ZIPSTREAMER_REVISION")
        get_vcs_revision.cache_clear()
        monkeypatch.setattr(
            "zipstreamer.build_info.subprocess.run",
            lambda *args, **kwargs: SimpleNamespace(returncode=0, stdout="0123456789abcdef\n"),
        )

        assert get_vcs_revision() == "01234567"

    def test_fallback_without_git(self, monkeypatch):
        monkeypatch.delenv("ZIPSTREAMER_REVISION")
        get_vcs_revision.cache_clear()

        def missing_git(*args, **kwargs):
            raise FileNotFoundError("git")

        monkeypatch.setattr("zipstreamer.build_info.subprocess.run", missing_git)

        assert get_vcs_revision() == "dev"
        assert user_agent() == "zipstreamer/dev"

    def test_fallback_outside_checkout(self, monkeypatch):
        monkeypatch.delenv("ZIPSTREAMER_REVISION")
        get_vcs_revision.cache_clear()
        monkeypatch.setattr(
            "zipstreamer.build_info.subprocess.run",
            lambda *args, **kwargs: SimpleNamespace(returncode=128, stdout=""),
        )

        assert get_vcs_revision() == "dev"

    def test_timeout(self, monkeypatch):
        monkeypatch.delenv("ZIPSTREAMER_REVISION")
        get_vcs_revision.cache_clear()

        def slow_git(*args, **kwargs):
            raise subprocess.TimeoutExpired("git", 5)

        monkeypatch.setattr("zipstreamer.build_info.subprocess.run", slow_git)

        assert get_vcs_revision() == "dev"
