"""MAC address value type and the randomized-address synthesizer."""
from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Optional

from randommac.errors import FormatError
from randommac.models import LOCAL_BIT, MAC_BITS, MULTICAST_BIT, OuiRecord, normalize_hex

_MAC_HEX = re.compile(r"[0-9A-F]{12}")


@dataclass(frozen=True)
class MacAddress:
    value: int

    @classmethod
    def parse(cls, text: str) -> "MacAddress":
        digits = normalize_hex(text or "")
        if not _MAC_HEX.fullmatch(digits):
            raise FormatError(f"invalid MAC address {text!r}")
        return cls(int(digits, 16))

    @property
    def octets(self) -> tuple[int, ...]:
        return tuple(self.value.to_bytes(6, "big"))

    @property
    def is_multicast(self) -> bool:
        return bool(self.value & MULTICAST_BIT)

    @property
    def is_local(self) -> bool:
        return bool(self.value & LOCAL_BIT)

    def __str__(self) -> str:
        return ":".join(f"{octet:02X}" for octet in self.octets)


def synthesize(record: OuiRecord, rng: Optional[random.Random] = None) -> MacAddress:
    """Fill the host bits below ``record``'s prefix with random bits.

    The multicast bit is always cleared. The locally-administered bit and
    every other prefix bit come from the record unchanged.
    """
    host_bits = MAC_BITS - record.prefix_length
    if host_bits == 0:
        return MacAddress(record.prefix)
    rng = rng or random.Random()
    value = record.prefix | rng.getrandbits(host_bits)
    return MacAddress(value & ~MULTICAST_BIT)


def record_from_prefix(text: str, vendor_name: str = "Unknown") -> OuiRecord:
    """Build an ad-hoc record from a user supplied prefix.

    Accepts 6, 7, 9 or 12 hex digits with any of the usual separators.
    """
    return OuiRecord.from_hex(text, vendor_name)
