"""CPU utilization and memory figures from /proc/stat and /proc/meminfo.

CPU utilization is the busy share of the jiffies elapsed between two
samples of the per-CPU ``cpuN`` lines. Memory figures come straight from
the kB values in meminfo.
"""

from __future__ import annotations

import contextlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from ..errors import MalformedValue, PathUnavailable
from ..sysfs import SysfsReader

if TYPE_CHECKING:
    from collections.abc import Callable

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CpuTimes:
    """Jiffy counters of one ``cpuN`` line."""

    user: int
    nice: int
    system: int
    idle: int
    iowait: int
    irq: int
    softirq: int

    @property
    def idle_total(self) -> int:
        return self.idle + self.iowait

    @property
    def busy_total(self) -> int:
        return self.user + self.nice + self.system + self.irq + self.softirq

    def format(self) -> str:
        return (
            f"{self.user} {self.nice} {self.system} {self.idle} "
            f"{self.iowait} {self.irq} {self.softirq}"
        )


def parse_cpu_line(line: str) -> tuple[int, CpuTimes] | None:
    """Parse a per-CPU ``cpuN ...`` line from /proc/stat.

    Returns:
        ``(N, CpuTimes)``, or None for the aggregate ``cpu`` line and
        anything unparsable.
    """
    parts = line.split()
    if not parts or not parts[0].startswith("cpu"):
        return None
    suffix = parts[0][3:]
    if not suffix.isdigit():
        return None
    try:
        values = [int(p) for p in parts[1:8]]
    except ValueError:
        return None
    # Pad with zeros if the kernel exposes fewer fields
    while len(values) < 7:
        values.append(0)
    return int(suffix), CpuTimes(*values)


def cpu_utilization(prev: CpuTimes, curr: CpuTimes) -> float:
    """Percentage of non-idle time between two samples."""
    idle_delta = curr.idle_total - prev.idle_total
    total_delta = (curr.idle_total + curr.busy_total) - (
        prev.idle_total + prev.busy_total
    )
    if total_delta <= 0:
        return 0.0
    return round((total_delta - idle_delta) / total_delta * 100.0, 2)


class CpuStatReader:
    """Sample per-CPU jiffy counters from /proc/stat."""

    def __init__(
        self,
        proc_root: str | Path = "/proc",
        reader: SysfsReader | None = None,
    ) -> None:
        self._stat_path = Path(proc_root) / "stat"
        self._reader = reader if reader is not None else SysfsReader()

    def sample(self) -> dict[int, CpuTimes]:
        """Return the current counters per CPU index, empty if unavailable."""
        try:
            text = self._reader.read_text(self._stat_path)
        except (PathUnavailable, MalformedValue):
            return {}

        samples: dict[int, CpuTimes] = {}
        for line in text.splitlines():
            parsed = parse_cpu_line(line)
            if parsed is not None:
                samples[parsed[0]] = parsed[1]
        return samples

    def utilization(
        self,
        interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> dict[int, float]:
        """Sample, wait *interval* seconds, sample again.

        Returns:
            Busy percentage per CPU index present in both samples.
        """
        first = self.sample()
        if not first:
            return {}
        sleep(interval)
        second = self.sample()

        result: dict[int, float] = {}
        for cpu, prev in first.items():
            curr = second.get(cpu)
            if curr is None:
                continue
            log.debug("cpu%d t0: %s", cpu, prev.format())
            log.debug("cpu%d t1: %s", cpu, curr.format())
            result[cpu] = cpu_utilization(prev, curr)
        return result


class MeminfoReader:
    """Read RAM, swap and CMA figures (kB) from /proc/meminfo."""

    KEYS: ClassVar[dict[str, str]] = {
        "MemTotal:": "mem_total_kb",
        "MemFree:": "mem_free_kb",
        "MemAvailable:": "mem_available_kb",
        "SwapTotal:": "swap_total_kb",
        "SwapFree:": "swap_free_kb",
        "CmaTotal:": "cma_total_kb",
        "CmaFree:": "cma_free_kb",
    }

    def __init__(
        self,
        proc_root: str | Path = "/proc",
        reader: SysfsReader | None = None,
    ) -> None:
        self._meminfo_path = Path(proc_root) / "meminfo"
        self._reader = reader if reader is not None else SysfsReader()

    def read(self) -> dict[str, int | None]:
        """Parse meminfo for the known keys.

        Returns:
            Dict with every value of KEYS; absent fields are None.
        """
        result: dict[str, int | None] = {col: None for col in self.KEYS.values()}

        try:
            text = self._reader.read_text(self._meminfo_path)
        except (PathUnavailable, MalformedValue):
            return result

        for line in text.splitlines():
            parts = line.split()
            if not parts:
                continue
            key = parts[0]
            if key in self.KEYS:
                with contextlib.suppress(IndexError, ValueError):
                    result[self.KEYS[key]] = int(parts[1])

        return result
