"""
File handling utilities for Solana program sources.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


class FileHandler:
    """Discover and read Rust source files."""

    # Rust sources
    DEFAULT_EXTENSIONS = ('.rs',)
    DEFAULT_EXCLUDE_DIRS = ('target', '.git', 'node_modules', '.anchor')

    def __init__(
        self,
        extensions: Optional[Iterable[str]] = None,
        exclude_dirs: Optional[Iterable[str]] = None,
        max_file_size_bytes: Optional[int] = None,
    ):
        self.extensions = tuple(ext.lower() for ext in (extensions or self.DEFAULT_EXTENSIONS))
        self.exclude_dirs = set(exclude_dirs if exclude_dirs is not None else self.DEFAULT_EXCLUDE_DIRS)
        self.max_file_size_bytes = max_file_size_bytes

    def discover_sources(self, path: Union[str, Path]) -> List[Path]:
        """
        Collect source files under a path (file or directory).

        A file path is returned as-is regardless of its extension. Directories
        are walked recursively; the result is sorted so that scans of the same
        tree always visit files in the same order.

        Raises:
            FileNotFoundError: if *path* does not exist
        """
        target_path = Path(path)

        if not target_path.exists():
            raise FileNotFoundError(f"Path not found: {path}")

        if target_path.is_file():
            return [target_path]

        sources = []
        for dirpath, dirnames, filenames in os.walk(target_path):
            # Prune excluded dirs in-place
            dirnames[:] = [d for d in dirnames if d not in self.exclude_dirs]
            for fname in filenames:
                if fname.lower().endswith(self.extensions):
                    sources.append(Path(dirpath) / fname)

        sources.sort(key=lambda p: p.as_posix())
        logger.debug(f"Discovered {len(sources)} source file(s) under {target_path}")
        return sources

    def read_source_lines(self, file_path: Union[str, Path]) -> List[str]:
        """
        Read a source file as a list of lines (line endings removed).

        Raises:
            UnicodeDecodeError: if the file is not valid UTF-8
            OSError: if the file cannot be read or exceeds the size limit
        """
        file_path = Path(file_path)
        if self.max_file_size_bytes is not None:
            size = file_path.stat().st_size
            if size > self.max_file_size_bytes:
                raise OSError(f"File too large ({size} bytes): {file_path}")

        with open(file_path, 'r', encoding='utf-8-sig') as f:
            content = f.read()

        # Split on newlines only; splitlines() also breaks on form feeds and Unicode separators
        lines = content.split('\n')
        if lines[-1] == '':
            lines.pop()
        return lines
