"""Registry parsing and vendor-name resolution.

Supported registry formats:

* ``ieee-csv``      IEEE ``oui.csv`` / ``mam.csv`` / ``oui36.csv``
* ``ieee-txt``      IEEE ``oui.txt`` (24-bit ``(hex)`` lines only)
* ``maclookupapp``  maclookup.app JSON database
* ``manuf``         Wireshark ``manuf`` file
* ``csv``           plain ``prefix,vendor`` lines
"""
from __future__ import annotations

import csv
import io
import json
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, Optional, Sequence, Union

from randommac.errors import EmptyRegistryError, FormatError, NoMatchError
from randommac.log import get_logger
from randommac.mac import MacAddress
from randommac.models import OuiRecord, normalize_hex

if TYPE_CHECKING:
    from randommac.storage import OuiDatabase

logger = get_logger("oui")

FORMATS = ("ieee-csv", "ieee-txt", "maclookupapp", "manuf", "csv")

# IEEE registry column -> prefix length. CID assignments are not MAC
# prefixes and are skipped.
_IEEE_REGISTRIES = {"MA-L": 24, "MA-M": 28, "MA-S": 36, "IAB": 36}
_IEEE_SKIPPED = {"CID"}

_IEEE_HEX_LINE = re.compile(
    r"^\s*([0-9A-Fa-f]{2}-[0-9A-Fa-f]{2}-[0-9A-Fa-f]{2})\s+\(hex\)\s+(.*)$"
)

# (line number, hex digits, vendor name, prefix length or None)
_Entry = tuple[int, str, str, Optional[int]]
_Item = Union[_Entry, FormatError]


@dataclass
class ParseResult(Sequence):
    records: list[OuiRecord] = field(default_factory=list)
    errors: list[FormatError] = field(default_factory=list)
    fmt: str = "csv"

    @property
    def rejected(self) -> int:
        return len(self.errors)

    def __getitem__(self, index):
        return self.records[index]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[OuiRecord]:
        return iter(self.records)


def detect_format(text: str) -> str:
    stripped = text.lstrip()
    if stripped.startswith("["):
        return "maclookupapp"
    first = ""
    for line in stripped.splitlines():
        if line.strip() and not line.lstrip().startswith("#"):
            first = line.strip()
            break
    if first.lower().startswith("registry,"):
        return "ieee-csv"
    # oui.txt opens with a tab separated preamble before the first (hex) line
    if "(hex)" in text:
        return "ieee-txt"
    if "\t" in first:
        return "manuf"
    return "csv"


def _iter_ieee_csv(text: str) -> Iterator[_Item]:
    reader = csv.reader(io.StringIO(text))
    for row in reader:
        line_no = reader.line_num
        if not row or not any(cell.strip() for cell in row):
            continue
        registry = row[0].strip().upper()
        if registry == "REGISTRY" or registry.startswith("#"):
            continue
        if registry in _IEEE_SKIPPED:
            continue
        if len(row) < 3:
            yield FormatError("expected Registry,Assignment,Organization Name", line_no)
            continue
        length = _IEEE_REGISTRIES.get(registry)
        if length is None:
            yield FormatError(f"unknown registry {row[0]!r}", line_no)
            continue
        yield (line_no, row[1], row[2], length)


def _iter_ieee_txt(text: str) -> Iterator[_Item]:
    for line_no, line in enumerate(text.splitlines(), start=1):
        if "(hex)" not in line:
            continue
        match = _IEEE_HEX_LINE.match(line)
        if not match:
            yield FormatError(f"malformed (hex) line {line.strip()!r}", line_no)
            continue
        yield (line_no, match.group(1), match.group(2), 24)


def _iter_maclookupapp(text: str) -> Iterator[_Item]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        yield FormatError(f"invalid JSON: {exc}")
        return
    if not isinstance(data, list):
        yield FormatError("expected a JSON array of vendor entries")
        return
    for index, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            yield FormatError("entry is not an object", index)
            continue
        prefix = entry.get("macPrefix")
        vendor = entry.get("vendorName")
        if not isinstance(prefix, str) or not isinstance(vendor, str):
            yield FormatError("missing macPrefix or vendorName", index)
            continue
        yield (index, prefix, vendor, None)


def _iter_manuf(text: str) -> Iterator[_Item]:
    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = [part.strip() for part in line.split("\t") if part.strip()]
        if len(parts) < 2:
            yield FormatError("expected prefix and vendor columns", line_no)
            continue
        prefix, vendor = parts[0], parts[-1]
        if "/" not in prefix:
            yield (line_no, prefix, vendor, None)
            continue
        prefix, _, bits = prefix.partition("/")
        try:
            length = int(bits)
        except ValueError:
            yield FormatError(f"invalid prefix length {bits!r}", line_no)
            continue
        digits = normalize_hex(prefix)
        keep = length // 4
        if length % 4 or digits[keep:].strip("0"):
            yield FormatError(f"{prefix}/{length} has bits set below the mask", line_no)
            continue
        yield (line_no, digits[:keep], vendor, length)


def _iter_csv(text: str) -> Iterator[_Item]:
    reader = csv.reader(io.StringIO(text))
    seen_data = False
    for row in reader:
        line_no = reader.line_num
        if not row or not row[0].strip() or row[0].lstrip().startswith("#"):
            continue
        if len(row) < 2:
            yield FormatError("expected prefix,vendor", line_no)
            continue
        if not seen_data and not re.fullmatch(r"[0-9A-Fa-f:.\-\s]+", row[0]):
            # header row such as "Mac Prefix,Vendor Name"
            seen_data = True
            continue
        seen_data = True
        yield (line_no, row[0], row[1], None)


_PARSERS = {
    "ieee-csv": _iter_ieee_csv,
    "ieee-txt": _iter_ieee_txt,
    "maclookupapp": _iter_maclookupapp,
    "manuf": _iter_manuf,
    "csv": _iter_csv,
}


def parse_registry(raw: bytes, fmt: Optional[str] = None) -> ParseResult:
    """Parse a raw registry blob into records, in source order.

    Malformed entries are collected in ``errors`` and skipped. Raises
    :class:`EmptyRegistryError` when nothing valid remains.
    """
    text = raw.decode("utf-8-sig", errors="replace")
    fmt = (fmt or detect_format(text)).lower()
    parser = _PARSERS.get(fmt)
    if parser is None:
        raise FormatError(f"unknown registry format {fmt!r} (expected one of {', '.join(FORMATS)})")

    result = ParseResult(fmt=fmt)
    for item in parser(text):
        if isinstance(item, FormatError):
            result.errors.append(item)
            continue
        line_no, digits, vendor, length = item
        try:
            result.records.append(OuiRecord.from_hex(digits, vendor, length))
        except FormatError as exc:
            result.errors.append(FormatError(str(exc), line_no))

    for error in result.errors:
        logger.debug("rejected registry entry: %s", error)
    if not result.records:
        raise EmptyRegistryError(result.rejected)
    logger.info("parsed %d %s records (%d rejected)", len(result.records), fmt, result.rejected)
    return result


def resolve(query: str, database: "OuiDatabase") -> list[OuiRecord]:
    """Return every record whose vendor name contains ``query``, ignoring case."""
    needle = (query or "").casefold()
    if not needle.strip():
        raise NoMatchError(query)
    matches = [record for folded, record in database.vendor_index if needle in folded]
    if not matches:
        raise NoMatchError(query)
    return matches


def lookup_vendor(mac: str, database: "OuiDatabase") -> Optional[str]:
    if not mac:
        return None
    try:
        address = MacAddress.parse(mac)
    except FormatError:
        return None
    record = database.find_by_prefix(address)
    return record.vendor_name if record else None
