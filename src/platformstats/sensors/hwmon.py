"""Hardware monitor enumeration over the sysfs hwmon class tree.

Walks /sys/class/hwmon/hwmon*/ to count registered instances, read their
``name`` attribute, and find single-instance devices by name. Also reads
fixed channel lists from such devices (the SOM INA260 and the AMS sysmon).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import RECOVERABLE, NotFound
from ..sysfs import SysfsReader

if TYPE_CHECKING:
    from collections.abc import Sequence

log = logging.getLogger(__name__)

HWMON_ROOT = "/sys/class/hwmon"

_INSTANCE_RE = re.compile(r"^hwmon(\d+)$")


def hwmon_instance_index(entry_name: str) -> int | None:
    """Return N for an entry named ``hwmon<N>``, else None."""
    match = _INSTANCE_RE.match(entry_name)
    return int(match.group(1)) if match else None


def scale_value(raw: int, divisor: int) -> int:
    """Divide a raw milli-unit reading, truncating toward zero."""
    quotient = abs(raw) // divisor
    return -quotient if raw < 0 else quotient


@dataclass(frozen=True)
class HwmonDevice:
    """An hwmon instance seen during a single lookup."""

    index: int  # N in hwmonN
    name: str  # Contents of hwmonN/name


@dataclass(frozen=True)
class ChannelSpec:
    """One fixed attribute of a single-instance hwmon device."""

    attribute: str  # e.g. "power1_input"
    alias: str  # e.g. "SOM total power"
    unit: str
    scale_divisor: int = 1


@dataclass(frozen=True)
class ChannelReading:
    """A scaled value read from a :class:`ChannelSpec`."""

    device: str
    attribute: str
    alias: str
    value: int
    unit: str

    def format(self) -> str:
        return f"{self.device}-{self.attribute} ({self.alias}) = {self.value} {self.unit}"


class HwmonEnumerator:
    """Count and name hwmon instances under a class root."""

    def __init__(
        self,
        reader: SysfsReader | None = None,
        hwmon_root: Path | str = HWMON_ROOT,
    ) -> None:
        self.reader = reader if reader is not None else SysfsReader()
        self.root = Path(hwmon_root)

    def instance_dir(self, index: int) -> Path:
        return self.root / f"hwmon{index}"

    def count_devices(self) -> int:
        """Count ``hwmon<N>`` entries under the class root.

        Raises:
            DirectoryUnavailable: the class root itself cannot be listed.
        """
        names = self.reader.list_dir(self.root)
        return sum(1 for name in names if hwmon_instance_index(name) is not None)

    def device_name_at(self, index: int) -> str:
        """Read the ``name`` attribute of ``hwmon<index>``.

        Raises:
            PathUnavailable: the name file is missing.
            MalformedValue: the name file is empty.
        """
        return self.reader.read_str(self.instance_dir(index) / "name")

    def device_at(self, index: int) -> HwmonDevice:
        return HwmonDevice(index=index, name=self.device_name_at(index))

    def find_index_by_name(self, name: str) -> int:
        """Return the first hwmon index whose ``name`` equals *name*.

        Assumes a single instance per device name, so it only suits the
        non-PMBus devices.

        Raises:
            NotFound: no instance carries that name.
            DirectoryUnavailable: the class root cannot be listed.
        """
        for index in range(self.count_devices()):
            try:
                device = self.device_at(index)
            except RECOVERABLE as exc:
                log.debug("Skipping hwmon%d: %s", index, exc)
                continue
            log.debug("%s => %s", self.instance_dir(index) / "name", device.name)
            if device.name == name:
                return device.index
        raise NotFound(f"no hwmon device found for {name} under {self.root}", self.root)

    def read_channels(
        self, device_name: str, channels: Sequence[ChannelSpec]
    ) -> list[ChannelReading]:
        """Read *channels* from the single instance named *device_name*.

        Channels whose attribute is missing or unparsable are left out.

        Raises:
            NotFound: no instance carries that name.
            DirectoryUnavailable: the class root cannot be listed.
        """
        base = self.instance_dir(self.find_index_by_name(device_name))
        readings: list[ChannelReading] = []
        for channel in channels:
            try:
                raw = self.reader.read_int(base / channel.attribute)
            except RECOVERABLE as exc:
                log.debug("Skipping %s-%s: %s", device_name, channel.attribute, exc)
                continue
            readings.append(
                ChannelReading(
                    device=device_name,
                    attribute=channel.attribute,
                    alias=channel.alias,
                    value=scale_value(raw, channel.scale_divisor),
                    unit=channel.unit,
                )
            )
        return readings
