"""Command-line interface for platformstats."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .boards import NAMED_DEVICE_CHANNELS, RAIL_TABLES
from .config import StatsConfig

_SECTIONS = ("cpu_util", "ram", "swap", "power", "cma", "cpu_freq")


def parse_args(argv: list[str] | None = None) -> StatsConfig:
    """Parse command-line arguments and return a StatsConfig."""
    parser = argparse.ArgumentParser(
        prog="platformstats",
        description="Print CPU, memory and power-rail statistics for Zynq boards",
    )
    parser.add_argument(
        "-a",
        "--all",
        action="store_true",
        help="Print every section (default when no section is selected)",
    )
    parser.add_argument(
        "-c", "--cpu-util", action="store_true", help="Print CPU utilization"
    )
    parser.add_argument("-r", "--ram", action="store_true", help="Print RAM usage")
    parser.add_argument("-s", "--swap", action="store_true", help="Print swap usage")
    parser.add_argument(
        "-p", "--power", action="store_true", help="Print PMBus power rails"
    )
    parser.add_argument("-m", "--cma", action="store_true", help="Print CMA usage")
    parser.add_argument(
        "-f", "--cpu-freq", action="store_true", help="Print CPU frequency"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print every sysfs path probed and label compared",
    )
    parser.add_argument(
        "-b",
        "--board",
        choices=sorted(RAIL_TABLES),
        default=None,
        help="Board rail table to use (default: detect from host name)",
    )
    parser.add_argument(
        "-d",
        "--device",
        action="append",
        choices=sorted(NAMED_DEVICE_CHANNELS),
        default=None,
        help="Also read a single-instance hwmon device by name (repeatable)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between CPU utilization samples (default: 1.0)",
    )
    parser.add_argument(
        "--hwmon-root",
        type=Path,
        default=Path("/sys/class/hwmon"),
        help="hwmon class directory (default: /sys/class/hwmon)",
    )
    parser.add_argument(
        "--proc-root",
        type=Path,
        default=Path("/proc"),
        help="procfs mount point (default: /proc)",
    )
    parser.add_argument(
        "--cpu-root",
        type=Path,
        default=Path("/sys/devices/system/cpu"),
        help="CPU sysfs directory (default: /sys/devices/system/cpu)",
    )

    args = parser.parse_args(argv)

    selected = {name: getattr(args, name) for name in _SECTIONS}
    # Nothing selected means everything, unless only --device was given
    if args.all or not (any(selected.values()) or args.device):
        selected = dict.fromkeys(_SECTIONS, True)

    return StatsConfig(
        **selected,
        verbose=args.verbose,
        board=args.board,
        devices=args.device or [],
        interval=args.interval,
        hwmon_root=args.hwmon_root,
        proc_root=args.proc_root,
        cpu_root=args.cpu_root,
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for the platformstats CLI."""
    config = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    # Import here so --help works on any platform
    from .report import print_stats

    try:
        status = print_stats(config)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)
    sys.exit(status)
