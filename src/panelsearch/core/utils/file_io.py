"""
File I/O utilities: atomic writes and JSON helpers.

All functions operate on explicit paths; no implicit directory lookups.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write(filepath: str | os.PathLike[str], content: str | bytes, encoding: str = "utf-8") -> None:
    """Write content so readers see either the old file or the complete new one.

    Data goes to a temporary file in the target directory, is flushed to disk,
    and then renamed over the destination with ``os.replace``.
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode(encoding) if isinstance(content, str) else content

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def write_json(filepath: str | os.PathLike[str], obj: Any, *, indent: int | None = None) -> int:
    """Atomically write ``obj`` as JSON. Returns the number of bytes written."""
    separators = None if indent else (",", ":")
    data = json.dumps(obj, indent=indent, ensure_ascii=False, separators=separators).encode("utf-8")
    atomic_write(filepath, data)
    return len(data)


def format_size(num_bytes: int) -> str:
    """Human-readable size in megabytes, two decimals."""
    return f"{num_bytes / 1024 / 1024:.2f} MB"

