"""
scribeline.validation - Dependency checks and environment validation.

Validates that FFmpeg, the configured backend library, the API key and
enough temporary disk space are available before a transcription starts.
"""

from __future__ import annotations

import importlib
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any

from scribeline.config import ScribelineConfig, resolve_api_key
from scribeline.exceptions import ConfigError, DependencyError

FFMPEG_INSTALL_HINT = "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)"

BACKEND_LIBRARIES = {
    "inline": ("litellm", "litellm"),
    "upload": ("google.generativeai", "google-generativeai"),
}


def _tool_version(tool: str) -> str:
    """Return the version of an FFmpeg tool, raising if it is not on PATH."""
    tool_path = shutil.which(tool)
    if not tool_path:
        raise DependencyError(tool, f"{tool} not found in PATH", FFMPEG_INSTALL_HINT)

    try:
        proc = subprocess.run(
            [tool_path, "-version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        version_line = proc.stdout.split("\n")[0]
        return version_line.split()[2] if version_line else "unknown"
    except (subprocess.TimeoutExpired, IndexError):
        return "unknown"


def check_ffmpeg() -> dict[str, str]:
    """Check if FFmpeg and FFprobe are installed and get versions.

    Returns:
        Dict with 'ffmpeg_version' and 'ffprobe_version'

    Raises:
        DependencyError: If FFmpeg or FFprobe not found
    """
    return {
        "ffmpeg_version": _tool_version("ffmpeg"),
        "ffprobe_version": _tool_version("ffprobe"),
    }


def check_backend_library(backend: str) -> dict[str, str]:
    """Check that the Python library behind a backend can be imported.

    Returns:
        Dict with 'module' and 'version'

    Raises:
        DependencyError: If the library is not installed
    """
    module_name, dist_name = BACKEND_LIBRARIES[backend]
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise DependencyError(
            dist_name, f"{dist_name} not installed", f"Install with: pip install {dist_name}"
        ) from e
    return {"module": module_name, "version": getattr(module, "__version__", "unknown")}


def check_api_key(config: ScribelineConfig) -> dict[str, Any]:
    """Check that the API key environment variable is set.

    Returns:
        Dict with 'env_var', 'present' and, if missing, 'error'
    """
    try:
        resolve_api_key(config)
    except ConfigError as e:
        return {"env_var": config.api_key_env, "present": False, "error": str(e)}
    return {"env_var": config.api_key_env, "present": True}


def check_disk_space(required_bytes: int, path: Path | None = None) -> dict[str, Any]:
    """Check if there's enough free space for temporary segments.

    Args:
        required_bytes: Space needed
        path: Directory to check (default: the system temp directory)

    Returns:
        Dict with 'available_mb', 'required_mb', 'sufficient'
    """
    check_path = path or Path(tempfile.gettempdir())
    stat = shutil.disk_usage(check_path)
    return {
        "available_mb": stat.free // (1024 * 1024),
        "required_mb": required_bytes // (1024 * 1024),
        "sufficient": stat.free >= required_bytes,
    }


def run_preflight_checks(config: ScribelineConfig) -> dict[str, Any]:
    """Run all environment checks.

    Args:
        config: Pipeline configuration

    Returns:
        Dict with 'passed' and per-check 'checks' results
    """
    results: dict[str, Any] = {
        "passed": True,
        "checks": {},
    }

    try:
        results["checks"]["ffmpeg"] = check_ffmpeg()
    except DependencyError as e:
        results["checks"]["ffmpeg"] = {"error": str(e), "install_hint": e.install_hint}
        results["passed"] = False

    try:
        results["checks"]["backend"] = check_backend_library(config.backend)
    except DependencyError as e:
        results["checks"]["backend"] = {"error": str(e), "install_hint": e.install_hint}
        results["passed"] = False

    results["checks"]["api_key"] = check_api_key(config)
    if not results["checks"]["api_key"]["present"]:
        results["passed"] = False

    disk = check_disk_space(config.max_chunk_bytes * 2)
    results["checks"]["disk_space"] = disk
    if not disk["sufficient"]:
        results["passed"] = False

    return results
