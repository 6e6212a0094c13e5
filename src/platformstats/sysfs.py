"""Single-value file access for sysfs and procfs.

Most sysfs attributes hold exactly one token (``45000``, ``irps5401``,
``pout1``). :class:`SysfsReader` reads that token, parses it, and turns every
failure into one of the recoverable errors from :mod:`platformstats.errors`.
Callers treat a missing path as a normal condition: many attributes only
exist on some boards.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .errors import DirectoryUnavailable, MalformedValue, PathUnavailable

log = logging.getLogger(__name__)


class SysfsReader:
    """Read scalar attributes and list directories.

    The resolver and reporters only touch the filesystem through this class,
    so tests can subclass it to count or fake individual calls.
    """

    def _read(self, path: Path | str) -> str:
        try:
            with open(path, encoding="utf-8") as fp:
                return fp.read()
        except OSError as exc:
            log.debug("Unable to open %s: %s", path, exc)
            raise PathUnavailable(f"unable to open {path}", path) from exc
        except UnicodeDecodeError as exc:
            raise MalformedValue(f"{path} is not valid text", path) from exc

    def read_str(self, path: Path | str) -> str:
        """Return the first whitespace-delimited token in *path*.

        Raises:
            PathUnavailable: the file cannot be opened or read.
            MalformedValue: the file is empty or not valid text.
        """
        tokens = self._read(path).split()
        if not tokens:
            raise MalformedValue(f"{path} is empty", path)
        return tokens[0]

    def read_int(self, path: Path | str) -> int:
        """Return the first token in *path* parsed as an integer.

        Raises:
            PathUnavailable: the file cannot be opened or read.
            MalformedValue: the token is missing or not an integer.
        """
        token = self.read_str(path)
        try:
            return int(token)
        except ValueError as exc:
            raise MalformedValue(f"{path}: {token!r} is not an integer", path) from exc

    def read_text(self, path: Path | str) -> str:
        """Return the whole content of *path* (for multi-line procfs files)."""
        return self._read(path)

    def list_dir(self, path: Path | str) -> list[str]:
        """Return entry names of directory *path* in OS enumeration order.

        The order is whatever the kernel hands back and is deliberately not
        sorted; label matching depends on it.

        Raises:
            DirectoryUnavailable: the directory cannot be opened.
        """
        try:
            with os.scandir(path) as it:
                return [entry.name for entry in it]
        except OSError as exc:
            log.debug("Unable to open directory %s: %s", path, exc)
            raise DirectoryUnavailable(f"unable to open {path}", path) from exc
