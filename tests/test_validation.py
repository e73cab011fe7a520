"""Tests for scribeline.validation module."""

from __future__ import annotations

import subprocess

import pytest

from scribeline.config import ScribelineConfig
from scribeline.exceptions import DependencyError
from scribeline.validation import (
    check_api_key,
    check_backend_library,
    check_disk_space,
    check_ffmpeg,
    run_preflight_checks,
)


class TestCheckFfmpeg:
    def test_reports_versions(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("scribeline.validation.shutil.which", lambda tool: f"/usr/bin/{tool}")
        monkeypatch.setattr(
            "scribeline.validation.subprocess.run",
            lambda cmd, **kw: subprocess.CompletedProcess(
                cmd, 0, stdout=f"{cmd[0].rsplit('/', 1)[-1]} version 6.1.1 Copyright\n", stderr=""
            ),
        )

        assert check_ffmpeg() == {"ffmpeg_version": "6.1.1", "ffprobe_version": "6.1.1"}

    def test_missing_tool_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("scribeline.validation.shutil.which", lambda tool: None)

        with pytest.raises(DependencyError) as exc_info:
            check_ffmpeg()

        assert exc_info.value.dependency == "ffmpeg"
        assert "ffmpeg" in exc_info.value.install_hint


class TestCheckBackendLibrary:
    def test_missing_library(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fail(name: str):
            raise ImportError(name)

        monkeypatch.setattr("scribeline.validation.importlib.import_module", fail)

        with pytest.raises(DependencyError, match="google-generativeai"):
            check_backend_library("upload")

    def test_installed_library(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class Module:
            __version__ = "1.2.3"

        monkeypatch.setattr("scribeline.validation.importlib.import_module", lambda name: Module)

        assert check_backend_library("inline") == {"module": "litellm", "version": "1.2.3"}


class TestCheckApiKey:
    def test_present(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "abc")
        assert check_api_key(ScribelineConfig()) == {"env_var": "GEMINI_API_KEY", "present": True}

    def test_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        result = check_api_key(ScribelineConfig())
        assert result["present"] is False
        assert "GEMINI_API_KEY" in result["error"]


class TestCheckDiskSpace:
    def test_small_requirement_is_sufficient(self, tmp_path) -> None:
        result = check_disk_space(1, tmp_path)
        assert result["sufficient"] is True
        assert result["required_mb"] == 0

    def test_impossible_requirement(self, tmp_path) -> None:
        result = check_disk_space(1024**6, tmp_path)
        assert result["sufficient"] is False


class TestRunPreflightChecks:
    def test_all_checks_reported(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("scribeline.validation.check_ffmpeg", lambda: {"ffmpeg_version": "6"})
        monkeypatch.setattr(
            "scribeline.validation.check_backend_library",
            lambda backend: {"module": "litellm", "version": "1"},
        )
        monkeypatch.setenv("GEMINI_API_KEY", "abc")

        results = run_preflight_checks(ScribelineConfig(backend="inline"))

        assert set(results["checks"]) == {"ffmpeg", "backend", "api_key", "disk_space"}
        assert results["passed"] is True

    def test_missing_ffmpeg_fails(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def missing():
            raise DependencyError("ffmpeg", "ffmpeg not found in PATH", "Install it")

        monkeypatch.setattr("scribeline.validation.check_ffmpeg", missing)
        monkeypatch.setattr(
            "scribeline.validation.check_backend_library",
            lambda backend: {"module": "litellm", "version": "1"},
        )
        monkeypatch.setenv("GEMINI_API_KEY", "abc")

        results = run_preflight_checks(ScribelineConfig())

        assert results["passed"] is False
        assert results["checks"]["ffmpeg"]["install_hint"] == "Install it"

    def test_missing_key_fails(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("scribeline.validation.check_ffmpeg", lambda: {"ffmpeg_version": "6"})
        monkeypatch.setattr(
            "scribeline.validation.check_backend_library",
            lambda backend: {"module": "litellm", "version": "1"},
        )
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        assert run_preflight_checks(ScribelineConfig())["passed"] is False
