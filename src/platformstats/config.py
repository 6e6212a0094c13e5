"""Configuration for a platformstats run."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class StatsConfig:
    """Runtime configuration for one report."""

    # Report sections
    cpu_util: bool = True
    ram: bool = True
    swap: bool = True
    power: bool = True
    cma: bool = True
    cpu_freq: bool = True

    # Emit the probe trace and debug logging
    verbose: bool = False

    # Board identifier (None = detect from the host name)
    board: str | None = None

    # Single-instance hwmon devices to read by name (e.g. "ina260_u14", "ams")
    devices: list[str] = field(default_factory=list)

    # Seconds between the two /proc/stat samples
    interval: float = 1.0

    # Filesystem roots
    hwmon_root: Path = Path("/sys/class/hwmon")
    proc_root: Path = Path("/proc")
    cpu_root: Path = Path("/sys/devices/system/cpu")

    def __post_init__(self) -> None:
        self.hwmon_root = Path(self.hwmon_root)
        self.proc_root = Path(self.proc_root)
        self.cpu_root = Path(self.cpu_root)
