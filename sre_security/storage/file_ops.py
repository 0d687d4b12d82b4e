"""
Async file helpers for connectors that persist to the local disk.

Resource data and ACL sidecars are always replaced atomically: content goes
to a temp file in the target directory, is fsynced, then renamed over the
target. Readers therefore see either the old or the new file, never a torn
one. Every OS-level failure surfaces as StorageIOError.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import StorageIOError


async def ensure_directory(path: Path) -> None:
    """Create path and its parents if missing."""
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise StorageIOError("create_directory", str(path), e) from e


async def _read(path: Path, operation: str) -> bytes | None:
    try:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StorageIOError(operation, str(path), e) from e


async def _replace(path: Path, payload: bytes, operation: str) -> None:
    await ensure_directory(path.parent)

    try:
        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        os.close(fd)
    except OSError as e:
        raise StorageIOError(operation, str(path), e) from e

    try:
        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(payload)
            await f.flush()
            os.fsync(f.fileno())
        await aiofiles.os.replace(temp_path, path)
    except OSError as e:
        # The temp file must not outlive a failed write
        try:
            await aiofiles.os.remove(temp_path)
        except FileNotFoundError:
            pass
        raise StorageIOError(operation, str(path), e) from e


async def read_json(path: Path) -> Any:
    """Read a JSON document.

    Args:
        path: File to read

    Returns:
        The parsed document, or None if the file is missing or blank
    """
    return parse_json(await _read(path, "read_json"), path)


def parse_json(content: bytes | None, path: Path) -> Any:
    """Parse JSON read from path. Missing or blank content is None."""
    if content is None or not content.strip():
        return None
    try:
        return json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StorageIOError("parse_json", str(path), e) from e


async def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Atomically replace path with data as indented JSON."""
    await _replace(path, json.dumps(data, indent=2, default=str).encode("utf-8"), "write_json")


async def read_bytes(path: Path) -> bytes | None:
    """Read a file's raw content, or None if it does not exist."""
    return await _read(path, "read_bytes")


async def write_bytes_atomic(path: Path, data: bytes) -> None:
    """Atomically replace path with data."""
    await _replace(path, data, "write_bytes")


async def file_exists(path: Path) -> bool:
    return await aiofiles.os.path.isfile(path)


async def remove_file(path: Path) -> bool:
    """Remove a file.

    Returns:
        True if the file was removed, False if it did not exist
    """
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageIOError("remove", str(path), e) from e
    return True
