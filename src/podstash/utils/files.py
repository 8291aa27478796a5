"""File helpers."""

import asyncio
import os
from pathlib import Path

import aiofiles

TEMP_SUFFIX = ".download"


def temp_path_for(destination: Path) -> Path:
    """Sibling path content is written to before it is renamed into place."""
    return destination.with_name(destination.name + TEMP_SUFFIX)


async def write_atomic(path: Path, content: bytes) -> None:
    """Write content to path through a temp file and rename (async).

    Readers of path see either the old or the new content, never a partial
    write.
    """
    temp_path = temp_path_for(path)
    try:
        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(content)
        await asyncio.to_thread(os.replace, temp_path, path)
    finally:
        temp_path.unlink(missing_ok=True)
