"""CPU frequency readings.

Prefers the ``cpu MHz`` lines of /proc/cpuinfo. ARM kernels do not report
them, so the sysfs cpufreq ``scaling_cur_freq`` (KHz) is used as fallback.
"""

from __future__ import annotations

from pathlib import Path

from ..errors import RECOVERABLE, MalformedValue, PathUnavailable
from ..sysfs import SysfsReader


def parse_cpuinfo_mhz(text: str) -> dict[int, float]:
    """Map ``processor`` index to its ``cpu MHz`` value."""
    result: dict[int, float] = {}
    processor: int | None = None
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        try:
            if key == "processor":
                processor = int(value)
            elif key == "cpu MHz" and processor is not None:
                result[processor] = float(value)
        except ValueError:
            continue
    return result


class CpufreqReader:
    """Read current CPU frequencies in MHz."""

    def __init__(
        self,
        proc_root: str | Path = "/proc",
        sysfs_root: str | Path = "/sys/devices/system/cpu",
        reader: SysfsReader | None = None,
    ) -> None:
        self._cpuinfo_path = Path(proc_root) / "cpuinfo"
        self._sysfs_root = Path(sysfs_root)
        self._reader = reader if reader is not None else SysfsReader()

    def discover_cpufreq(self) -> list[int]:
        """Return sorted CPU indices that have a cpufreq/scaling_cur_freq file."""
        try:
            names = self._reader.list_dir(self._sysfs_root)
        except RECOVERABLE:
            return []

        indices: list[int] = []
        for name in names:
            if not name.startswith("cpu"):
                continue
            suffix = name[3:]
            if not suffix.isdigit():
                continue
            if (self._sysfs_root / name / "cpufreq" / "scaling_cur_freq").exists():
                indices.append(int(suffix))
        return sorted(indices)

    def _read_sysfs(self) -> dict[int, float]:
        result: dict[int, float] = {}
        for idx in self.discover_cpufreq():
            path = self._sysfs_root / f"cpu{idx}" / "cpufreq" / "scaling_cur_freq"
            try:
                result[idx] = self._reader.read_int(path) / 1000.0
            except RECOVERABLE:
                continue
        return result

    def read_mhz(self) -> dict[int, float]:
        """Return MHz per CPU index, empty when neither source is available."""
        try:
            from_cpuinfo = parse_cpuinfo_mhz(self._reader.read_text(self._cpuinfo_path))
        except (PathUnavailable, MalformedValue):
            from_cpuinfo = {}
        if from_cpuinfo:
            return from_cpuinfo
        return self._read_sysfs()
