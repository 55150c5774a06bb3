from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

PathLike = Union[str, Path]


def ensure_dir(p: PathLike) -> Path:
    """Ensure that a directory exists, returning it as a Path."""
    p = Path(p)
    try:
        p.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OSError(f"Failed to create directory {p}: {e}") from e
    return p


def read_json(path: PathLike) -> Any:
    """Read and parse a whole JSON document."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def atomic_write_json(path: PathLike, data: Any) -> None:
    """Write a JSON document atomically: temp file in the same dir, fsync, replace.

    Either the old document or the new one is on disk afterwards, never a
    partial write.
    """
    p = Path(path)
    ensure_dir(p.parent)
    text = json.dumps(data, ensure_ascii=False, indent=2)
    tmp = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", delete=False, dir=str(p.parent), suffix=".tmp"
    )
    try:
        with tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, p)
    except Exception:
        Path(tmp.name).unlink(missing_ok=True)
        raise
