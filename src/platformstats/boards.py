"""Board-specific rail tables and host identity detection.

Each supported carrier board has a fixed, ordered table of PMBus rails.
The table is picked once per run from the board identity, which is derived
from the host name (``u96v2``, ``uz7ev``, ``uz3eg`` fragments) unless given
explicitly.
"""

from __future__ import annotations

import logging
import socket
import subprocess
from dataclasses import dataclass, field, replace

from .sensors.hwmon import ChannelSpec

log = logging.getLogger(__name__)

# Timeout for the hostname invocation.
_CMD_TIMEOUT_S = 5.0

ULTRA96V2 = "ultra96v2"
UZ7EV_EVCC = "uz7ev_evcc"
UZ3EG = "uz3eg"


@dataclass
class RailDescriptor:
    """One measured rail of a board.

    ``explicit_attribute`` wins over the label search when set. The
    ``resolved_attribute`` cache is filled by the first successful label
    search and reused for the rest of the run.
    """

    chip_model: str  # e.g. "irps5401", matched against driver/<address>/name
    bus_address: str  # e.g. "6-0043"
    label: str  # expected content of a *_label file, e.g. "pout1"
    display_alias: str  # e.g. "VCCAUX"
    unit: str  # "mW", "mA", "mV" or "C"
    scale_divisor: int = 1
    explicit_attribute: str = ""  # e.g. "temp1_input"
    resolved_attribute: str = field(default="", compare=False)

    @property
    def key(self) -> str:
        return f"{self.chip_model}@{self.bus_address}-{self.label}"


def _rail(
    chip: str,
    address: str,
    label: str,
    alias: str,
    unit: str,
    divisor: int,
    attribute: str = "",
) -> RailDescriptor:
    return RailDescriptor(
        chip_model=chip,
        bus_address=address,
        label=label,
        display_alias=alias,
        unit=unit,
        scale_divisor=divisor,
        explicit_attribute=attribute,
    )


def _irps5401(
    address: str, aliases: tuple[str, ...], temperature: bool = True
) -> tuple[RailDescriptor, ...]:
    """Output power rails pout1..pout5 (empty alias = unused) and die temperature."""
    rails = [
        _rail("irps5401", address, f"pout{n}", alias, "mW", 1000)
        for n, alias in enumerate(aliases, start=1)
        if alias
    ]
    if temperature:
        rails.append(
            _rail("irps5401", address, "temp1", "Temperature", "C", 1000, "temp1_input")
        )
    return tuple(rails)


ULTRA96V2_RAILS: tuple[RailDescriptor, ...] = (
    _rail("ir38060", "6-0045", "pout1", "5V", "mW", 1000),
    _rail("ir38060", "6-0045", "iout1", "5V", "mA", 1),
    _rail("ir38060", "6-0045", "vout1", "5V", "mV", 1),
    _rail("ir38060", "6-0045", "temp1", "Temperature", "C", 1000, "temp1_input"),
    *_irps5401(
        "6-0043", ("VCCAUX", "VCCO 1.2V", "VCCO 1.1V", "VCCINT", "3.3V DP")
    ),
    *_irps5401(
        "6-0044", ("VCCPSAUX", "PSINT_LP", "VCCO 3.3V", "PSINT_FP", "PSPLL 1.2V")
    ),
)

UZ7EV_EVCC_RAILS: tuple[RailDescriptor, ...] = (
    _rail("ir38063", "6-004c", "pout1", "Carrier 3V3", "mW", 1000),
    _rail("ir38063", "6-004b", "pout1", "Carrier 1V8", "mW", 1000),
    # pout4 of the 0x4a regulator is unused on this carrier
    *_irps5401(
        "6-004a",
        (
            "Carrier 0V9 MGTAVCC",
            "Carrier 1V2 MGTAVTT",
            "Carrier 1V1 HDMI",
            "",
            "Carrier 1V8 MGTVCCAUX LDO",
        ),
        temperature=False,
    ),
    *_irps5401(
        "6-0049",
        (
            "Carrier 0V85 MGTRAVCC",
            "Carrier 1V8 VCCO",
            "Carrier 3V3 VCCO",
            "Carrier 5V MAIN",
            "Carrier 1V8 MGTRAVTT LDO",
        ),
    ),
    _rail("ir38063", "6-0048", "pout1", "SOM 0V85 VCCINT", "mW", 1000),
    *_irps5401(
        "6-0047",
        (
            "SOM 1V8 VCCAUX",
            "SOM 3V3",
            "SOM 0V9 VCUINT",
            "SOM 1V2 VCCO_HP_66",
            "SOM 1V8 PSDDR_PLL LDO",
        ),
    ),
    *_irps5401(
        "6-0046",
        (
            "SOM 1V2 VCCO_PSIO",
            "SOM 0V85 VCC_PSINTLP",
            "SOM 1V2 VCCO_PSDDR4_504",
            "SOM 0V85 VCC_PSINTFP",
            "SOM 1V2 VCC_PSPLL LDO",
        ),
    ),
)

UZ3EG_RAILS: tuple[RailDescriptor, ...] = (
    *_irps5401("6-0043", ("PSIO", "VCCAUX", "PSINTLP", "PSINTFP", "PSPLL")),
    *_irps5401("6-0044", ("PSDDR4", "INT_IO", "3.3V", "INT", "PSDDRPLL")),
    *_irps5401("6-0045", ("MGTAVCC", "5V", "3.3V", "VCCO 1.8V", "MGTAVTT")),
)

RAIL_TABLES: dict[str, tuple[RailDescriptor, ...]] = {
    ULTRA96V2: ULTRA96V2_RAILS,
    UZ7EV_EVCC: UZ7EV_EVCC_RAILS,
    UZ3EG: UZ3EG_RAILS,
}

BOARD_NAMES: dict[str, str] = {
    ULTRA96V2: "Ultra96-V2",
    UZ7EV_EVCC: "UltraZed-7EV-EVCC",
    UZ3EG: "UltraZed-3EG",
}

# Host name fragment -> board identifier, checked in this order
_HOSTNAME_FRAGMENTS: tuple[tuple[str, str], ...] = (
    ("u96v2", ULTRA96V2),
    ("uz7ev", UZ7EV_EVCC),
    ("uz3eg", UZ3EG),
)

# Single-instance hwmon devices located by name alone
NAMED_DEVICE_CHANNELS: dict[str, tuple[ChannelSpec, ...]] = {
    "ina260_u14": (
        ChannelSpec("power1_input", "SOM total power", "mW", 1000),
        ChannelSpec("curr1_input", "SOM total current", "mA"),
        ChannelSpec("in1_input", "SOM total voltage", "mV"),
    ),
    "ams": (
        ChannelSpec("in1_input", "VCC_PSPLL", "mV"),
        ChannelSpec("in3_input", "PL VCCINT", "mV"),
        ChannelSpec("in6_input", "VCC_PSDDR_PLL", "mV"),
        ChannelSpec("in7_input", "VCC_PSINTFP_DDR", "mV"),
        ChannelSpec("temp1_input", "LPD temperature", "C", 1000),
        ChannelSpec("temp2_input", "FPD temperature", "C", 1000),
        ChannelSpec("in9_input", "VCC PS FPD", "mV"),
        ChannelSpec("in13_input", "PS IO Bank 500", "mV"),
        ChannelSpec("in16_input", "VCC PS GTR", "mV"),
        ChannelSpec("in17_input", "VTT PS GTR", "mV"),
        ChannelSpec("temp3_input", "PL temperature", "C", 1000),
    ),
}


def rail_table(board: str | None) -> list[RailDescriptor]:
    """Return fresh copies of the rail table for *board*.

    Unknown boards yield an empty list. Copies keep the per-run
    ``resolved_attribute`` cache off the module constants.
    """
    if board is None:
        return []
    return [replace(rail) for rail in RAIL_TABLES.get(board, ())]


def detect_board(hostname: str) -> str | None:
    """Map a host name to a supported board identifier, if any."""
    for fragment, board in _HOSTNAME_FRAGMENTS:
        if fragment in hostname:
            return board
    return None


def read_hostname() -> str:
    """Return the host name as reported by the ``hostname`` tool.

    Falls back to :func:`socket.gethostname` when the tool is missing or
    fails.
    """
    try:
        result = subprocess.run(
            ["hostname"],
            capture_output=True,
            text=True,
            timeout=_CMD_TIMEOUT_S,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        log.debug("hostname invocation failed: %s", exc)
        return socket.gethostname()
    if result.returncode != 0:
        log.debug("hostname exited with code %d", result.returncode)
        return socket.gethostname()
    return result.stdout.strip()
