"""Recoverable error kinds raised while probing sysfs and procfs.

None of these are fatal to a report: the resolver and reporter catch them
and skip the affected rail or section.
"""

from __future__ import annotations


class PlatformStatsError(Exception):
    """Base class for all recoverable probing errors."""

    def __init__(self, message: str, path: object = None) -> None:
        super().__init__(message)
        self.path = path


class PathUnavailable(PlatformStatsError):
    """A file does not exist or cannot be opened."""


class MalformedValue(PlatformStatsError):
    """A file was read but its content is not of the expected type."""


class DirectoryUnavailable(PlatformStatsError):
    """A directory (e.g. the hwmon class root) cannot be listed."""


class NotFound(PlatformStatsError):
    """A search over devices, channels or labels ended without a match."""


# Every kind the reporter treats as "skip this entry"
RECOVERABLE = (PathUnavailable, MalformedValue, DirectoryUnavailable, NotFound)
