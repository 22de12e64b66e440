"""Filesystem helpers for the provenance tree.

Listing, ordering, reading and writing of artifact files. Batches of stats
and reads run concurrently in worker threads; each operation touches a
distinct path.
"""

import asyncio
import json
from pathlib import Path
from typing import Any


def list_json_files(directory: Path) -> list[Path]:
    """JSON files directly inside ``directory``; empty if it is unreadable."""
    try:
        return sorted(
            p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".json"
        )
    except OSError:
        return []


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


async def sort_by_mtime_desc(files: list[Path]) -> list[Path]:
    """Order files most recently modified first.

    Files that cannot be stat'ed sort last.
    """
    mtimes = await asyncio.gather(*(asyncio.to_thread(_mtime, f) for f in files))
    ranked = sorted(zip(files, mtimes), key=lambda item: item[1], reverse=True)
    return [f for f, _ in ranked]


async def recent_json_files(
    directory: Path, limit: int, exclude_suffix: str | None = None
) -> list[Path]:
    """Most recently modified JSON files in a directory.

    Args:
        directory: Directory to scan
        limit: Maximum number of files to return
        exclude_suffix: Skip files whose name ends with this (case-insensitive)
    """
    files = await sort_by_mtime_desc(list_json_files(directory))
    if exclude_suffix:
        suffix = exclude_suffix.lower()
        files = [f for f in files if not f.name.lower().endswith(suffix)]
    return files[:limit]


def read_json(path: Path) -> Any:
    """Parse a JSON file.

    Raises:
        OSError: If the file cannot be read
        json.JSONDecodeError: If the content is not valid JSON
    """
    return json.loads(path.read_text(encoding="utf-8"))


def read_json_or_none(path: Path) -> Any:
    """Parse a JSON file, returning None if it is unreadable or malformed."""
    try:
        return read_json(path)
    except (OSError, ValueError):
        return None


def write_json(path: Path, data: Any) -> None:
    """Write pretty-printed JSON with a trailing newline, replacing any file."""
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def write_if_missing(path: Path, content: str) -> bool:
    """Create a file only if it does not exist yet.

    Returns:
        True if the file was created, False if it already existed
    """
    try:
        with open(path, "x", encoding="utf-8") as f:
            f.write(content)
    except FileExistsError:
        return False
    return True
