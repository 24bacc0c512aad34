from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from randommac.errors import FormatError

MAC_BITS = 48
MULTICAST_BIT = 1 << 40
LOCAL_BIT = 1 << 41

# Prefix length -> block name. 48 only appears for ad-hoc records built
# from a fully specified address, never from a registry.
BLOCK_TYPES = {24: "MA-L", 28: "MA-M", 36: "MA-S", 48: "EUI-48"}
REGISTRY_LENGTHS = (24, 28, 36)

_SEPARATORS = re.compile(r"[\s:.\-]")
_HEX = re.compile(r"[0-9A-F]+")


def normalize_hex(text: str) -> str:
    return _SEPARATORS.sub("", text).upper()


@dataclass(frozen=True)
class OuiRecord:
    prefix: int
    prefix_length: int
    vendor_name: str

    def __post_init__(self) -> None:
        if self.prefix_length not in BLOCK_TYPES:
            raise FormatError(f"unsupported prefix length /{self.prefix_length}")
        if not 0 <= self.prefix < 1 << MAC_BITS:
            raise FormatError(f"prefix out of range: {self.prefix:#x}")
        if self.prefix & ((1 << (MAC_BITS - self.prefix_length)) - 1):
            raise FormatError(f"prefix has bits set below /{self.prefix_length}")
        if self.prefix & MULTICAST_BIT:
            raise FormatError(f"{self} is a group address prefix")
        if not self.vendor_name or not self.vendor_name.strip():
            raise FormatError(f"empty vendor name for {self}")

    @classmethod
    def from_hex(
        cls,
        digits: str,
        vendor_name: str,
        prefix_length: Optional[int] = None,
    ) -> "OuiRecord":
        """Build a record from hex text such as ``AC-DE-48`` or ``70B3D51F3``.

        Without an explicit ``prefix_length`` the width is taken from the
        number of hex digits.
        """
        digits = normalize_hex(digits)
        if not _HEX.fullmatch(digits):
            raise FormatError(f"invalid hex prefix {digits!r}")
        width = len(digits) * 4
        if prefix_length is None:
            prefix_length = width
        if width != prefix_length:
            raise FormatError(f"prefix {digits} is {width} bits, expected /{prefix_length}")
        if prefix_length not in BLOCK_TYPES:
            raise FormatError(f"unsupported prefix length /{prefix_length}")
        value = int(digits, 16) << (MAC_BITS - prefix_length)
        return cls(value, prefix_length, (vendor_name or "").strip())

    @property
    def key(self) -> tuple[int, int]:
        return (self.prefix, self.prefix_length)

    @property
    def block_type(self) -> str:
        return BLOCK_TYPES[self.prefix_length]

    @property
    def prefix_hex(self) -> str:
        digits = self.prefix_length // 4
        return f"{self.prefix >> (MAC_BITS - self.prefix_length):0{digits}X}"

    def matches(self, mac: int) -> bool:
        shift = MAC_BITS - self.prefix_length
        return mac >> shift == self.prefix >> shift

    def __str__(self) -> str:
        digits = self.prefix_hex
        return ":".join(digits[i:i + 2] for i in range(0, len(digits), 2))


class RecordOut(BaseModel):
    prefix: str
    prefix_length: int
    block_type: str
    vendor: str

    @classmethod
    def from_record(cls, record: OuiRecord) -> "RecordOut":
        return cls(
            prefix=str(record),
            prefix_length=record.prefix_length,
            block_type=record.block_type,
            vendor=record.vendor_name,
        )


class GenerateRequest(BaseModel):
    vendor: Optional[str] = None
    prefix: Optional[str] = None
    current_mac: Optional[str] = None


class GenerateResult(BaseModel):
    mac: str
    record: RecordOut
    candidates: int = 1
