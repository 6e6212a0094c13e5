"""Print a one-shot platform report.

Sections follow the legacy tool's order: CPU utilization, RAM, swap,
power, CMA and CPU frequency. Report text goes to *out*; the verbose probe
trace and warnings go to *err*.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

from .boards import BOARD_NAMES, NAMED_DEVICE_CHANNELS, detect_board, read_hostname
from .errors import DirectoryUnavailable, NotFound
from .sensors.cpufreq import CpufreqReader
from .sensors.hwmon import HwmonEnumerator
from .sensors.pmbus import generate_report
from .sensors.procfs import CpuStatReader, MeminfoReader

if TYPE_CHECKING:
    from .config import StatsConfig

log = logging.getLogger(__name__)


def _kb(value: int | None) -> str:
    return "n/a" if value is None else f"{value} kB"


def print_cpu_utilization(config: StatsConfig, out: TextIO) -> None:
    usage = CpuStatReader(config.proc_root).utilization(config.interval)
    print("\nCPU Utilization", file=out)
    for cpu, pct in sorted(usage.items()):
        print(f"CPU{cpu}\t:     {pct:.2f}%", file=out)


def print_memory(config: StatsConfig, out: TextIO, section: str) -> None:
    """Print one of the ``ram``, ``swap`` or ``cma`` sections."""
    mem = MeminfoReader(config.proc_root).read()
    if section == "ram":
        print("\nRAM Utilization", file=out)
        print(f"MemTotal      :     {_kb(mem['mem_total_kb'])}", file=out)
        print(f"MemFree       :     {_kb(mem['mem_free_kb'])}", file=out)
        print(f"MemAvailable  :     {_kb(mem['mem_available_kb'])}", file=out)
    elif section == "swap":
        print("\nSwap Mem Utilization", file=out)
        print(f"SwapTotal     :     {_kb(mem['swap_total_kb'])}", file=out)
        print(f"SwapFree      :     {_kb(mem['swap_free_kb'])}", file=out)
    elif section == "cma":
        print("\nCMA Mem Utilization", file=out)
        print(f"CmaTotal      :     {_kb(mem['cma_total_kb'])}", file=out)
        print(f"CmaFree       :     {_kb(mem['cma_free_kb'])}", file=out)
    else:
        raise ValueError(f"unknown memory section {section!r}")


def print_cpu_frequency(config: StatsConfig, out: TextIO) -> None:
    freqs = CpufreqReader(config.proc_root, config.cpu_root).read_mhz()
    print("\nCPU Frequency", file=out)
    for cpu, mhz in sorted(freqs.items()):
        print(f"CPU{cpu}\t:     {mhz:.3f} MHz", file=out)


def resolve_board(config: StatsConfig, err: TextIO) -> str | None:
    """Return the configured board, or the one matching the host name."""
    if config.board is not None:
        return config.board
    hostname = read_hostname()
    board = detect_board(hostname)
    if config.verbose:
        print(f"hostname={hostname}", file=err)
        if board is not None:
            print(BOARD_NAMES[board], file=err)
    return board


def print_power(config: StatsConfig, out: TextIO, err: TextIO) -> int:
    """Print the PMBus rails of the detected board.

    Returns:
        1 if hwmon could not be enumerated for a known board, else 0.
    """
    board = resolve_board(config, err)
    report = generate_report(board, verbose=config.verbose, hwmon_root=config.hwmon_root)

    if board in BOARD_NAMES:
        print("\nPower Utilization:", file=out)
    for line in report.trace:
        print(f"\t{line}", file=err)
    for line in report.lines():
        print(f"\t{line}", file=out)

    if not report.hwmon_available:
        print(f"Unable to open {config.hwmon_root} path", file=err)
        return 1
    return 0


def print_named_devices(config: StatsConfig, out: TextIO, err: TextIO) -> int:
    """Print the fixed channels of each requested single-instance device."""
    status = 0
    enumerator = HwmonEnumerator(hwmon_root=config.hwmon_root)
    for name in config.devices:
        channels = NAMED_DEVICE_CHANNELS.get(name)
        if channels is None:
            print(f"Unknown device {name}", file=err)
            continue
        try:
            readings = enumerator.read_channels(name, channels)
        except NotFound as exc:
            print(exc, file=err)
            continue
        except DirectoryUnavailable as exc:
            print(exc, file=err)
            status = 1
            continue
        print(f"\n{name}", file=out)
        for reading in readings:
            print(f"\t{reading.format()}", file=out)
    return status


def print_stats(
    config: StatsConfig,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Print every section enabled in *config*.

    Returns:
        The process exit status.
    """
    out = out if out is not None else sys.stdout
    err = err if err is not None else sys.stderr
    status = 0

    if config.cpu_util:
        print_cpu_utilization(config, out)
    if config.ram:
        print_memory(config, out, "ram")
    if config.swap:
        print_memory(config, out, "swap")
    if config.power:
        status |= print_power(config, out, err)
    if config.devices:
        status |= print_named_devices(config, out, err)
    if config.cma:
        print_memory(config, out, "cma")
    if config.cpu_freq:
        print_cpu_frequency(config, out)

    log.debug("Report finished with status %d", status)
    return status
