"""
scribeline.io - Text and JSON output helpers with atomic writes.

Transcripts and result documents are written to a temp file in the
destination directory first, then renamed into place, so an interrupted
run never leaves a half-written transcript behind.
"""

from __future__ import annotations

import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any


def _atomic_write(path: Path, write: Callable[[IO[str]], None]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            write(tmp)
        except Exception:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    tmp_path.replace(path)


def write_text(path: Path, content: str) -> None:
    """Write a transcript (or any text) atomically.

    A trailing newline is added if the content lacks one.

    Args:
        path: Destination path
        content: Text content to write
    """
    if content and not content.endswith("\n"):
        content += "\n"
    _atomic_write(path, lambda f: f.write(content))


def write_json(path: Path, data: dict[str, Any], indent: int = 2) -> None:
    """Write a JSON document atomically with pretty formatting.

    Args:
        path: Destination path for JSON file
        data: Data to write
        indent: Indentation level for pretty printing (default: 2)
    """
    _atomic_write(path, lambda f: json.dump(data, f, indent=indent, ensure_ascii=False))


def transcript_path_for(source: Path) -> Path:
    """Default transcript location: ``<stem>.txt`` next to the source file."""
    return source.with_suffix(".txt")
