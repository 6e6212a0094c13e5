"""PMBus power-rail resolution and the power report.

Boards carry several chips of the same model (five ``irps5401`` on an
UltraZed-7EV carrier), so the hwmon ``name`` alone is ambiguous. A rail is
located in two steps:

1. Walk the driver-binding side of sysfs,
   ``hwmon<N>/device/driver/<address>/``, to find the chip bound at the
   rail's bus address, then read the true instance index from its
   ``hwmon/hwmon<M>`` entry.
2. Use the rail's explicit attribute, or scan ``hwmon<M>/*_label`` for the
   rail's label and read the sibling ``*_input`` file. The derived attribute
   is cached on the descriptor for the rest of the run.

Label files are scanned in the order the kernel lists them. If two channels
ever carried the same label the first one listed wins; that order is not
sorted and not guaranteed stable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ..boards import rail_table
from ..errors import RECOVERABLE, DirectoryUnavailable, NotFound
from ..sysfs import SysfsReader
from .hwmon import HWMON_ROOT, HwmonEnumerator, hwmon_instance_index, scale_value

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..boards import RailDescriptor

log = logging.getLogger(__name__)

_LABEL_SUFFIX = "_label"
_INPUT_SUFFIX = "_input"


@dataclass(frozen=True)
class RailReading:
    """A resolved and scaled rail value."""

    chip_model: str
    bus_address: str
    label: str
    display_alias: str
    value: int
    unit: str
    path: Path

    def format(self) -> str:
        return (
            f"{self.chip_model}@{self.bus_address}-{self.label} "
            f"({self.display_alias}) = {self.value} {self.unit}"
        )


@dataclass
class PowerReport:
    """Rails read for one board, in table order."""

    board: str | None = None
    readings: list[RailReading] = field(default_factory=list)
    # Probe/comparison trace, only filled in verbose mode
    trace: list[str] = field(default_factory=list)
    # False when the hwmon class root could not be listed at all
    hwmon_available: bool = True

    def lines(self) -> list[str]:
        return [reading.format() for reading in self.readings]

    def __len__(self) -> int:
        return len(self.readings)


class RailResolver:
    """Resolve rail descriptors to the sysfs file holding their reading."""

    def __init__(
        self,
        reader: SysfsReader | None = None,
        hwmon_root: Path | str = HWMON_ROOT,
        trace: list[str] | None = None,
    ) -> None:
        self.enumerator = HwmonEnumerator(reader, hwmon_root)
        self.reader = self.enumerator.reader
        self._trace = trace

    def note(self, message: str) -> None:
        """Record a probe in the verbose trace, or log it at debug level."""
        if self._trace is not None:
            self._trace.append(message)
        else:
            log.debug(message)

    def find_instance(self, rail: RailDescriptor) -> int:
        """Return the hwmon index of the chip bound at ``rail.bus_address``.

        Raises:
            NotFound: no hwmon instance is bound at that address.
            DirectoryUnavailable: the hwmon class root cannot be listed.
        """
        enum = self.enumerator
        for index in range(enum.count_devices()):
            binding = enum.instance_dir(index) / "device" / "driver" / rail.bus_address
            try:
                bound_name = self.reader.read_str(binding / "name")
            except RECOVERABLE as exc:
                self.note(str(exc))
                continue
            self.note(f"{binding / 'name'} => {bound_name}")
            if bound_name != rail.chip_model:
                continue

            try:
                entries = self.reader.list_dir(binding / "hwmon")
            except DirectoryUnavailable as exc:
                self.note(f"unable to open {exc.path}")
                continue
            for entry in entries:
                instance = hwmon_instance_index(entry)
                if instance is not None:
                    self.note(f"{binding / 'hwmon'} => {entry}")
                    return instance
            self.note(f"no hwmon instance under {binding / 'hwmon'}")

        raise NotFound(
            f"no {rail.chip_model} bound at {rail.bus_address}", rail.bus_address
        )

    def _scan_labels(self, rail: RailDescriptor, instance_dir: Path) -> str:
        """Return the ``*_input`` attribute whose label equals ``rail.label``."""
        self.note(f"Searching for name that matches label {rail.label}")
        for entry in self.reader.list_dir(instance_dir):
            if not entry.endswith(_LABEL_SUFFIX):
                continue
            try:
                channel_label = self.reader.read_str(instance_dir / entry)
            except RECOVERABLE as exc:
                self.note(str(exc))
                continue
            self.note(f"{entry}: {channel_label!r} == {rail.label!r}?")
            if channel_label == rail.label:
                return entry[: -len(_LABEL_SUFFIX)] + _INPUT_SUFFIX
        raise NotFound(f"no channel labelled {rail.label} in {instance_dir}", instance_dir)

    def resolve(self, rail: RailDescriptor) -> Path:
        """Return the path of the file holding *rail*'s raw reading.

        Raises:
            NotFound: the chip or the labelled channel does not exist.
            DirectoryUnavailable: a directory on the way cannot be listed.
        """
        instance_dir = self.enumerator.instance_dir(self.find_instance(rail))

        if rail.explicit_attribute:
            attribute = rail.explicit_attribute
        elif rail.resolved_attribute:
            attribute = rail.resolved_attribute
        else:
            attribute = self._scan_labels(rail, instance_dir)
            rail.resolved_attribute = attribute

        path = instance_dir / attribute
        self.note(f"{rail.key} => {path}")
        return path


class PowerReporter:
    """Resolve, read and scale a sequence of rails."""

    def __init__(
        self,
        reader: SysfsReader | None = None,
        hwmon_root: Path | str = HWMON_ROOT,
        verbose: bool = False,
    ) -> None:
        self.reader = reader if reader is not None else SysfsReader()
        self.hwmon_root = Path(hwmon_root)
        self.verbose = verbose

    def report(
        self, rails: Iterable[RailDescriptor], board: str | None = None
    ) -> PowerReport:
        """Build a report over *rails*; unresolvable rails are left out."""
        report = PowerReport(board=board)
        resolver = RailResolver(
            self.reader, self.hwmon_root, trace=report.trace if self.verbose else None
        )

        try:
            resolver.enumerator.count_devices()
        except DirectoryUnavailable as exc:
            log.warning("hwmon is not available: %s", exc)
            report.hwmon_available = False
            return report

        for i, rail in enumerate(rails):
            resolver.note(
                f"[{i}] {rail.chip_model},{rail.bus_address},{rail.label},"
                f"{rail.explicit_attribute or rail.resolved_attribute},{rail.unit}"
            )
            try:
                path = resolver.resolve(rail)
                raw = self.reader.read_int(path)
            except RECOVERABLE as exc:
                resolver.note(f"skipping {rail.key}: {exc}")
                continue
            report.readings.append(
                RailReading(
                    chip_model=rail.chip_model,
                    bus_address=rail.bus_address,
                    label=rail.label,
                    display_alias=rail.display_alias,
                    value=scale_value(raw, rail.scale_divisor),
                    unit=rail.unit,
                    path=path,
                )
            )
        return report


def generate_report(
    board: str | None,
    verbose: bool = False,
    reader: SysfsReader | None = None,
    hwmon_root: Path | str = HWMON_ROOT,
) -> PowerReport:
    """Read every rail of *board*'s table.

    An unknown board gives an empty report without touching sysfs.
    """
    rails = rail_table(board)
    if not rails:
        return PowerReport(board=board)
    return PowerReporter(reader, hwmon_root, verbose).report(rails, board=board)
