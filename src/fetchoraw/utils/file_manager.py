"""
File Management Utilities

This module provides the filesystem port used by file-producing resolvers and
the resolution cache: directory creation, existence checks and UTF-8 text /
raw byte reads and writes.
"""

import os
import logging
from pathlib import Path
from typing import Union


PathLike = Union[str, os.PathLike]


class LocalFileSystem:
    """
    Filesystem access backed by the local disk.

    Every write creates missing parent directories first, so callers can
    hand over any derived save path without preparing the tree themselves.
    """

    def __init__(self, encoding: str = "utf-8"):
        """
        Initialize the filesystem port.

        Args:
            encoding: Text encoding used by read_text/write_text
        """
        self.encoding = encoding
        self.logger = logging.getLogger(__name__)

    def makedirs(self, path: PathLike) -> None:
        """Create a directory and all missing parents."""
        if not str(path):
            return
        Path(path).mkdir(parents=True, exist_ok=True)

    def exists(self, path: PathLike) -> bool:
        return os.path.exists(path)

    def read_text(self, path: PathLike) -> str:
        with open(path, "r", encoding=self.encoding) as f:
            return f.read()

    def write_text(self, path: PathLike, content: str) -> str:
        """
        Write text content to a file.

        Args:
            path: Destination file path
            content: Text to write

        Returns:
            The path that was written
        """
        self.makedirs(os.path.dirname(str(path)))
        with open(path, "w", encoding=self.encoding) as f:
            f.write(content)
        self.logger.debug(f"Wrote {len(content)} chars: {path}")
        return str(path)

    def write_bytes(self, path: PathLike, data: bytes) -> str:
        """
        Write raw bytes to a file.

        Args:
            path: Destination file path
            data: Bytes to write

        Returns:
            The path that was written
        """
        self.makedirs(os.path.dirname(str(path)))
        with open(path, "wb") as f:
            f.write(data)
        self.logger.debug(f"Wrote {len(data)} bytes: {path}")
        return str(path)
