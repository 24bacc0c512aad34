"""Tests for randommac.cli, driven through main() with temp paths."""
from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from randommac.cli import build_parser, main
from randommac.errors import InterfaceError
from randommac.mac import MacAddress

REGISTRY = (
    b"Registry,Assignment,Organization Name,Organization Address\n"
    b"MA-L,ACDE48,Intel Corporate,Kulim MY\n"
    b"MA-L,001B21,Intel Corp,Santa Clara US\n"
    b"MA-L,00000C,\"Cisco Systems, Inc\",San Jose US\n"
)


@pytest.fixture(autouse=True)
def _no_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "home")
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def paths(tmp_path):
    registry = tmp_path / "oui.csv"
    registry.write_bytes(REGISTRY)
    datasource = tmp_path / "datasource.json"
    datasource.write_text(json.dumps({"url": str(registry), "name": "ieee-csv"}))
    return ["--database", str(tmp_path / "db.sqlite"), "--datasource", str(datasource)]


class TestParser:
    def test_random_vendor_interfaces(self):
        args = build_parser().parse_args(["random", "vendor", "intel", "eth0", "wlan0"])
        assert args.vendor == "intel"
        assert args.interface == ["eth0", "wlan0"]

    def test_random_interface_requires_interface(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["random", "interface"])


class TestUpdate:
    def test_update_from_datasource(self, paths, capsys):
        assert main(paths + ["update"]) == 0
        assert "found 3 entries (0 rejected)" in capsys.readouterr().out

    def test_update_from_file_with_format(self, paths, tmp_path, capsys):
        manuf = tmp_path / "manuf"
        manuf.write_bytes(b"00:00:0C\tCisco\tCisco Systems, Inc\n")
        main(paths + ["update", "--file", str(manuf), "--format", "manuf"])
        assert "found 1 entries" in capsys.readouterr().out

    def test_update_from_file_detects_format(self, tmp_path, capsys):
        # default datasource names maclookupapp; the file is an IEEE CSV
        registry = tmp_path / "oui.csv"
        registry.write_bytes(REGISTRY)
        main(["--database", str(tmp_path / "db.sqlite"), "update", "--file", str(registry)])
        assert "found 3 entries (0 rejected)" in capsys.readouterr().out

    def test_empty_registry_is_an_error(self, paths, tmp_path):
        empty = tmp_path / "empty.csv"
        empty.write_bytes(b"")
        with pytest.raises(SystemExit) as excinfo:
            main(paths + ["update", "--file", str(empty)])
        assert "no valid records" in str(excinfo.value.code)


class TestRandom:
    def test_vendor_prints_address(self, paths, capsys):
        main(paths + ["random", "vendor", "cisco"])
        out = capsys.readouterr().out
        assert "Database not found, downloading..." in out
        assert "Random MAC address: 00:00:0C:" in out

    def test_vendor_no_match(self, paths):
        main(paths + ["update"])
        with pytest.raises(SystemExit) as excinfo:
            main(paths + ["random", "vendor", "juniper"])
        assert "juniper" in str(excinfo.value.code)

    def test_prefix_prints_address(self, paths, capsys):
        main(paths + ["random", "prefix", "AC:DE:48"])
        assert "Random MAC address: AC:DE:48:" in capsys.readouterr().out

    def test_apply_requires_root(self, paths):
        main(paths + ["update"])
        with patch("randommac.iface.is_root", return_value=False):
            with pytest.raises(SystemExit) as excinfo:
                main(paths + ["random", "vendor", "cisco", "eth0"])
        assert "root" in str(excinfo.value.code)

    @patch("randommac.cli.apply_mac")
    @patch("randommac.cli.current_mac", return_value=MacAddress(0x525400123456))
    def test_vendor_applies_and_journals(self, _current, mock_apply, paths, tmp_path, capsys):
        journal = tmp_path / "changes.jsonl"
        with patch("randommac.iface.is_root", return_value=True):
            main(paths + ["random", "vendor", "cisco", "eth0", "--jsonl", str(journal)])
        iface, mac = mock_apply.call_args[0]
        assert iface == "eth0"
        assert str(mac).startswith("00:00:0C:")
        entry = json.loads(journal.read_text().splitlines()[0])
        assert entry["interface"] == "eth0"
        assert entry["old_mac"] == "52:54:00:12:34:56"
        assert entry["vendor"] == "Cisco Systems, Inc"
        assert "Updated MAC address of eth0" in capsys.readouterr().out

    @patch("randommac.cli.apply_mac")
    @patch("randommac.cli.current_mac", return_value=MacAddress(0x001B21AABBCC))
    def test_interface_change_keeps_vendor(self, _current, mock_apply, paths):
        main(paths + ["random", "interface", "-c", "--dry-run", "eth0"])
        _iface, mac = mock_apply.call_args[0]
        assert str(mac).startswith("00:1B:21:")
        assert mock_apply.call_args.kwargs["dry_run"] is True

    @patch("randommac.cli.current_mac", return_value=MacAddress(0x525400123456))
    def test_interface_unknown_vendor_notice(self, _current, paths, capsys):
        main(paths + ["random", "interface", "eth0"])
        out = capsys.readouterr().out
        assert "No registered vendor found for eth0" in out
        assert "MAC address for interface eth0:" in out

    @patch("randommac.cli.current_mac", side_effect=InterfaceError("eth9", "no such interface"))
    def test_interface_failure_exit_code(self, _current, paths):
        with pytest.raises(SystemExit) as excinfo:
            main(paths + ["random", "interface", "eth9"])
        assert excinfo.value.code == 1


class TestQueries:
    def test_search(self, paths, capsys):
        main(paths + ["search", "INTEL"])
        out = capsys.readouterr().out
        assert "Intel Corporate" in out
        assert "Intel Corp\n" in out

    def test_search_limit(self, paths, capsys):
        main(paths + ["search", "intel", "--limit", "1"])
        assert "... 1 more" in capsys.readouterr().out

    def test_lookup(self, paths, capsys):
        main(paths + ["lookup", "ac:de:48:01:02:03"])
        assert "Intel Corporate" in capsys.readouterr().out

    def test_lookup_unknown(self, paths):
        with pytest.raises(SystemExit):
            main(paths + ["lookup", "52:54:00:12:34:56"])

    def test_stats(self, paths, capsys):
        main(paths + ["update"])
        main(paths + ["stats"])
        out = capsys.readouterr().out
        assert "records:  3" in out
        assert "MA-L" in out

    def test_stats_without_database(self, paths):
        with pytest.raises(SystemExit) as excinfo:
            main(paths + ["stats"])
        assert "update" in str(excinfo.value.code)

    @patch("randommac.cli.list_interfaces", return_value=[{"iface": "eth0", "mac": "00:1b:21:aa:bb:cc"}])
    def test_interfaces(self, _list, paths, capsys):
        main(paths + ["update"])
        main(paths + ["interfaces"])
        assert "vendor=Intel Corp" in capsys.readouterr().out
