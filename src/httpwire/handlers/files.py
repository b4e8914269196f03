"""
=============================================================================
FILE LOOKUP
=============================================================================

Resolves a request target to a file under the served root directory.

    target "/docs/a%20b.txt?v=2"
        │  unquote, drop query
        ▼
    "docs/a b.txt"
        │  (root / path).resolve()
        ▼
    /srv/www/docs/a b.txt
        │  relative_to(root)?   ── no ──►  treated as missing
        ▼
    FileInfo(exists, is_dir, is_regular, size, path)

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

A target like /../../etc/passwd normalizes to a path outside the root.
resolve() collapses ".." and follows symlinks, then relative_to() raises
ValueError if the result is not inside the root. Such targets are
reported as non-existent so the server answers 404, the same answer a
missing file gets.

=============================================================================
"""

import logging
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union
from urllib.parse import unquote

from ..http.body import DEFAULT_BLOCK_SIZE


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileInfo:
    """What the GET handler needs to know about a resolved target."""

    path: Optional[Path]
    exists: bool = False
    is_dir: bool = False
    is_regular: bool = False
    size: int = 0

    @property
    def is_servable(self) -> bool:
        """Only regular files are served; sockets, FIFOs and devices are not."""
        return self.exists and self.is_regular


MISSING = FileInfo(path=None)


def lookup_file(root_dir: Union[str, Path], target: str) -> FileInfo:
    """
    Resolve `target` under `root_dir`.

    Never raises for a bad target: anything that cannot be served from
    inside the root comes back with exists=False.
    """
    root = Path(root_dir).resolve()
    relative = unquote(target.split("?", 1)[0]).lstrip("/")

    if "\x00" in relative:
        return MISSING

    try:
        full_path = (root / relative).resolve()
        full_path.relative_to(root)
    except ValueError:
        logger.warning(f"Path traversal attempt: {target}")
        return MISSING
    except OSError as e:
        logger.debug(f"Cannot resolve {target}: {e}")
        return MISSING

    try:
        st = full_path.stat()
    except OSError:
        return FileInfo(path=full_path)

    return FileInfo(
        path=full_path,
        exists=True,
        is_dir=stat.S_ISDIR(st.st_mode),
        is_regular=stat.S_ISREG(st.st_mode),
        size=st.st_size,
    )


class FileBody:
    """
    An already opened file, iterated in blocks.

    The file is opened before the response head is written, so a file
    that cannot be read never gets a 200. close() releases the handle
    whether or not iteration ever started.
    """

    def __init__(self, file: BinaryIO, block_size: int = DEFAULT_BLOCK_SIZE):
        self.file = file
        self.block_size = block_size

    def __iter__(self) -> Iterator[bytes]:
        while True:
            block = self.file.read(self.block_size)
            if not block:
                return
            yield block

    def close(self) -> None:
        self.file.close()


def open_file(info: FileInfo, block_size: int = DEFAULT_BLOCK_SIZE) -> Optional[FileBody]:
    """Open a servable file for streaming; None if it cannot be read."""
    if not info.is_servable:
        return None
    try:
        return FileBody(open(info.path, "rb"), block_size)
    except OSError as e:
        logger.warning(f"Cannot open {info.path}: {e}")
        return None
