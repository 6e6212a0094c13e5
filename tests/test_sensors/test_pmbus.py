"""Tests for PMBus rail resolution and the power report.

Fake trees use symlinks to mirror the driver-binding layout, so these
tests are skipped on Windows.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from sysfs_tree import FakeHwmonTree, irps5401_attrs

from platformstats.boards import UZ3EG, UZ3EG_RAILS, RailDescriptor
from platformstats.errors import NotFound
from platformstats.sensors.pmbus import (
    PowerReporter,
    RailResolver,
    generate_report,
)
from platformstats.sysfs import SysfsReader

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="Symlinks needed for driver bindings"
)


class RecordingReader(SysfsReader):
    """SysfsReader that records every file read and directory listed.

    Listings are returned sorted (or reverse sorted) so label scans run in
    a known order.
    """

    def __init__(self, reverse: bool = False) -> None:
        self.reads: list[Path] = []
        self.listings: list[Path] = []
        self.reverse = reverse

    def read_str(self, path: Path | str) -> str:
        self.reads.append(Path(path))
        return super().read_str(path)

    def list_dir(self, path: Path | str) -> list[str]:
        self.listings.append(Path(path))
        return sorted(super().list_dir(path), reverse=self.reverse)

    def label_reads(self) -> list[str]:
        return [p.name for p in self.reads if p.name.endswith("_label")]


def _rail(
    address: str = "6-0043",
    label: str = "temp1",
    alias: str = "Temperature",
    unit: str = "C",
    divisor: int = 1000,
    attribute: str = "",
    chip: str = "irps5401",
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


@pytest.fixture()
def tree(tmp_path: Path) -> FakeHwmonTree:
    """A board with an AMS block, an IR38060 and two IRPS5401 regulators."""
    tree = FakeHwmonTree(tmp_path)
    tree.add_device(0, "ams", {"temp1_input": "48000"})
    tree.add_chip(
        1,
        "ir38060",
        "6-0045",
        {"power1_label": "pout1", "power1_input": "5123000", "temp1_input": "39000"},
    )
    tree.add_chip(
        2,
        "irps5401",
        "6-0043",
        irps5401_attrs(45000, (1_000_000, 2_000_000, 3_000_000, 4_000_000, 5_000_000)),
    )
    tree.add_chip(
        3,
        "irps5401",
        "6-0044",
        irps5401_attrs(52000, (610_000, 720_000, 830_000, 940_000, 1_050_000)),
    )
    return tree


class TestFindInstance:
    """Tests for locating the hwmon instance bound at an address."""

    def test_first_chip(self, tree: FakeHwmonTree) -> None:
        resolver = RailResolver(hwmon_root=tree.root)
        assert resolver.find_instance(_rail("6-0043")) == 2

    def test_same_model_other_address(self, tree: FakeHwmonTree) -> None:
        resolver = RailResolver(hwmon_root=tree.root)
        assert resolver.find_instance(_rail("6-0044")) == 3

    def test_model_mismatch(self, tree: FakeHwmonTree) -> None:
        resolver = RailResolver(hwmon_root=tree.root)
        with pytest.raises(NotFound):
            resolver.find_instance(_rail("6-0045", chip="irps5401"))

    def test_unbound_address(self, tree: FakeHwmonTree) -> None:
        resolver = RailResolver(hwmon_root=tree.root)
        with pytest.raises(NotFound):
            resolver.find_instance(_rail("6-0046"))

    def test_unreadable_binding_name_traced(self, tree: FakeHwmonTree) -> None:
        trace: list[str] = []
        resolver = RailResolver(hwmon_root=tree.root, trace=trace)
        with pytest.raises(NotFound):
            resolver.find_instance(_rail("6-0046"))
        missed = [t for t in trace if "6-0046" in t and t.startswith("unable to open")]
        assert len(missed) == 4

    def test_binding_without_hwmon_entry(self, tree: FakeHwmonTree) -> None:
        client = tree.drivers / "irps5401" / "6-0047"
        (client / "hwmon").mkdir(parents=True)
        (client / "name").write_text("irps5401\n")
        resolver = RailResolver(hwmon_root=tree.root)
        with pytest.raises(NotFound):
            resolver.find_instance(_rail("6-0047"))


class TestResolve:
    """Tests for RailResolver.resolve()."""

    def test_label_search(self, tree: FakeHwmonTree) -> None:
        rail = _rail("6-0044", label="pout2", alias="PSINT_LP", unit="mW")
        path = RailResolver(hwmon_root=tree.root).resolve(rail)
        assert path == tree.root / "hwmon3" / "power7_input"
        assert rail.resolved_attribute == "power7_input"

    def test_label_not_found(self, tree: FakeHwmonTree) -> None:
        rail = _rail("6-0043", label="pout9")
        with pytest.raises(NotFound):
            RailResolver(hwmon_root=tree.root).resolve(rail)
        assert rail.resolved_attribute == ""

    def test_explicit_attribute_skips_label_scan(self, tree: FakeHwmonTree) -> None:
        reader = RecordingReader()
        rail = _rail("6-0043", attribute="temp1_input")
        path = RailResolver(reader, tree.root).resolve(rail)

        assert path == tree.root / "hwmon2" / "temp1_input"
        assert reader.label_reads() == []
        assert tree.root / "hwmon2" not in reader.listings
        # The explicit attribute is not copied into the cache
        assert rail.resolved_attribute == ""

    def test_scans_labels_in_listing_order(self, tree: FakeHwmonTree) -> None:
        reader = RecordingReader()
        rail = _rail("6-0043", label="pout3", unit="mW")
        RailResolver(reader, tree.root).resolve(rail)
        assert reader.label_reads() == [
            "power10_label",
            "power6_label",
            "power7_label",
            "power8_label",
        ]

    def test_exhausts_every_label_before_not_found(self, tree: FakeHwmonTree) -> None:
        reader = RecordingReader()
        with pytest.raises(NotFound):
            RailResolver(reader, tree.root).resolve(_rail("6-0043", label="vout1"))
        assert reader.label_reads() == [
            "power10_label",
            "power6_label",
            "power7_label",
            "power8_label",
            "power9_label",
            "temp1_label",
        ]

    def test_second_resolve_uses_cache(self, tree: FakeHwmonTree) -> None:
        reader = RecordingReader()
        resolver = RailResolver(reader, tree.root)
        rail = _rail("6-0044", label="pout5", unit="mW")

        first = resolver.resolve(rail)
        assert reader.label_reads() != []
        reader.reads.clear()
        second = resolver.resolve(rail)

        assert first == second == tree.root / "hwmon3" / "power10_input"
        assert reader.label_reads() == []

    def test_duplicate_label_first_listed_wins(self, tmp_path: Path) -> None:
        tree = FakeHwmonTree(tmp_path)
        tree.add_chip(
            0,
            "irps5401",
            "6-0043",
            {
                "power1_label": "pout1",
                "power1_input": "1000",
                "power2_label": "pout1",
                "power2_input": "2000",
            },
        )
        forward = RailResolver(RecordingReader(), tree.root).resolve(_rail(label="pout1"))
        backward = RailResolver(RecordingReader(reverse=True), tree.root).resolve(
            _rail(label="pout1")
        )
        assert forward.name == "power1_input"
        assert backward.name == "power2_input"

    def test_unreadable_label_skipped(self, tree: FakeHwmonTree) -> None:
        (tree.root / "hwmon2" / "curr1_label").mkdir()
        path = RailResolver(hwmon_root=tree.root).resolve(_rail(label="pout1"))
        assert path.name == "power6_input"

    def test_trace_records_probes(self, tree: FakeHwmonTree) -> None:
        trace: list[str] = []
        RailResolver(hwmon_root=tree.root, trace=trace).resolve(_rail(label="pout1"))
        assert any("Searching for name that matches label pout1" in t for t in trace)
        assert any("'pout1' == 'pout1'" in t for t in trace)
        assert trace[-1].startswith("irps5401@6-0043-pout1 => ")


class TestPowerReporter:
    """Tests for PowerReporter.report()."""

    def test_scenario_label_resolution(self, tmp_path: Path) -> None:
        tree = FakeHwmonTree(tmp_path)
        tree.add_chip(0, "ams", "0-0000", {})
        tree.add_device(1, "cpu_thermal")
        tree.add_device(2, "ina260_u14")
        tree.add_chip(3, "irps5401", "6-0043", {"temp1_label": "temp1", "temp1_input": "45000"})

        report = PowerReporter(hwmon_root=tree.root).report([_rail()])
        assert report.lines() == ["irps5401@6-0043-temp1 (Temperature) = 45 C"]

    def test_scenario_unbound_address_skipped(self, tree: FakeHwmonTree) -> None:
        rails = [
            _rail("6-0046"),
            _rail("6-0044", label="pout1", alias="VCCPSAUX", unit="mW"),
        ]
        report = PowerReporter(hwmon_root=tree.root).report(rails)
        assert report.lines() == ["irps5401@6-0044-pout1 (VCCPSAUX) = 610 mW"]

    def test_scenario_explicit_attribute(self, tree: FakeHwmonTree) -> None:
        reader = RecordingReader()
        report = PowerReporter(reader, tree.root).report(
            [_rail("6-0044", attribute="temp1_input")]
        )
        assert report.lines() == ["irps5401@6-0044-temp1 (Temperature) = 52 C"]
        assert reader.label_reads() == []

    def test_malformed_reading_skipped(self, tree: FakeHwmonTree) -> None:
        (tree.root / "hwmon1" / "power1_input").write_text("garbage\n")
        rails = [
            _rail("6-0045", label="pout1", alias="5V", unit="mW", chip="ir38060"),
            _rail("6-0045", alias="Temperature", chip="ir38060", attribute="temp1_input"),
        ]
        report = PowerReporter(hwmon_root=tree.root).report(rails)
        assert report.lines() == ["ir38060@6-0045-temp1 (Temperature) = 39 C"]

    def test_undecodable_label_skipped(self, tree: FakeHwmonTree) -> None:
        (tree.root / "hwmon2" / "power1_label").write_bytes(b"\xff\xfe\n")
        rails = [
            _rail("6-0043", label="pout9", alias="Missing", unit="mW"),
            _rail("6-0043", label="pout1", alias="PSIO", unit="mW"),
            _rail("6-0044", attribute="temp1_input"),
        ]
        report = PowerReporter(hwmon_root=tree.root).report(rails)
        assert report.lines() == [
            "irps5401@6-0043-pout1 (PSIO) = 1000 mW",
            "irps5401@6-0044-temp1 (Temperature) = 52 C",
        ]

    def test_missing_explicit_attribute_skipped(self, tree: FakeHwmonTree) -> None:
        report = PowerReporter(hwmon_root=tree.root).report(
            [_rail("6-0043", attribute="temp2_input")]
        )
        assert report.readings == []
        assert report.hwmon_available

    def test_preserves_table_order(self, tree: FakeHwmonTree) -> None:
        rails = [
            _rail("6-0044", label="pout3", alias="B", unit="mW"),
            _rail("6-0043", label="pout3", alias="A", unit="mW"),
        ]
        report = PowerReporter(hwmon_root=tree.root).report(rails)
        assert [r.display_alias for r in report.readings] == ["B", "A"]

    def test_verbose_changes_only_trace(self, tree: FakeHwmonTree) -> None:
        quiet = PowerReporter(hwmon_root=tree.root).report(_sample_rails())
        loud = PowerReporter(hwmon_root=tree.root, verbose=True).report(_sample_rails())
        assert quiet.lines() == loud.lines()
        assert quiet.trace == []
        assert loud.trace

    def test_missing_hwmon_root(self, tmp_path: Path) -> None:
        report = PowerReporter(hwmon_root=tmp_path / "nonexistent").report([_rail()])
        assert not report.hwmon_available
        assert report.readings == []


def _sample_rails() -> list[RailDescriptor]:
    return [
        _rail("6-0043", label="pout1", alias="PSIO", unit="mW"),
        _rail("6-0046"),
        _rail("6-0044", attribute="temp1_input"),
    ]


class TestGenerateReport:
    """Tests for generate_report()."""

    def test_board_table(self, tree: FakeHwmonTree) -> None:
        report = generate_report(UZ3EG, hwmon_root=tree.root)
        assert report.board == UZ3EG
        assert report.lines() == [
            "irps5401@6-0043-pout1 (PSIO) = 1000 mW",
            "irps5401@6-0043-pout2 (VCCAUX) = 2000 mW",
            "irps5401@6-0043-pout3 (PSINTLP) = 3000 mW",
            "irps5401@6-0043-pout4 (PSINTFP) = 4000 mW",
            "irps5401@6-0043-pout5 (PSPLL) = 5000 mW",
            "irps5401@6-0043-temp1 (Temperature) = 45 C",
            "irps5401@6-0044-pout1 (PSDDR4) = 610 mW",
            "irps5401@6-0044-pout2 (INT_IO) = 720 mW",
            "irps5401@6-0044-pout3 (3.3V) = 830 mW",
            "irps5401@6-0044-pout4 (INT) = 940 mW",
            "irps5401@6-0044-pout5 (PSDDRPLL) = 1050 mW",
            "irps5401@6-0044-temp1 (Temperature) = 52 C",
        ]

    def test_table_constants_untouched(self, tree: FakeHwmonTree) -> None:
        generate_report(UZ3EG, hwmon_root=tree.root)
        assert all(rail.resolved_attribute == "" for rail in UZ3EG_RAILS)

    def test_unknown_board_is_empty(self, tree: FakeHwmonTree) -> None:
        reader = RecordingReader()
        report = generate_report("zcu102", reader=reader, hwmon_root=tree.root)
        assert len(report) == 0
        assert report.hwmon_available
        assert reader.reads == []
        assert reader.listings == []

    def test_no_board_is_empty(self, tree: FakeHwmonTree) -> None:
        assert generate_report(None, hwmon_root=tree.root).readings == []
