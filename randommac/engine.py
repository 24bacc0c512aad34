from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Union

from randommac.errors import NotFoundError
from randommac.log import get_logger
from randommac.mac import MacAddress, record_from_prefix, synthesize
from randommac.models import OuiRecord
from randommac.oui import parse_registry, resolve
from randommac.storage import OuiDatabase, OuiStore

logger = get_logger("engine")


@dataclass
class UpdateSummary:
    records: int
    rejected: int
    fmt: str


@dataclass
class Generated:
    mac: MacAddress
    record: OuiRecord
    candidates: int = 1
    # True when the current interface vendor was unknown and the record was
    # drawn from the whole database.
    fallback: bool = False


class MacEngine:
    """update / generate / load / persist over one :class:`OuiStore`."""

    def __init__(self, store: OuiStore, rng: Optional[random.Random] = None) -> None:
        self.store = store
        self.rng = rng or random.Random()
        self._database: Optional[OuiDatabase] = None
        self._stamp: Optional[tuple[int, int, int]] = None

    def load(self) -> OuiDatabase:
        """Return the stored database, re-reading it after any replacement
        of the snapshot file (including one made by another process)."""
        stamp = self.store.stamp()
        if self._database is None or stamp is None or stamp != self._stamp:
            self._database = self.store.load()
            self._stamp = stamp
        return self._database

    def _remember(self, database: OuiDatabase) -> OuiDatabase:
        self._database = database
        self._stamp = self.store.stamp()
        return database

    def persist(self, database: OuiDatabase, source: str = "") -> OuiDatabase:
        return self._remember(self.store.persist(database, source=source))

    def update(self, raw: bytes, fmt: Optional[str] = None, source: str = "") -> UpdateSummary:
        result = parse_registry(raw, fmt)
        database = self._remember(self.store.replace_all(result.records, source=source))
        duplicates = len(result.records) - len(database)
        if duplicates:
            logger.info("collapsed %d duplicate prefixes", duplicates)
        return UpdateSummary(records=len(database), rejected=result.rejected, fmt=result.fmt)

    def generate(
        self,
        vendor: Optional[str] = None,
        current_mac: Optional[Union[MacAddress, str]] = None,
        prefix: Optional[str] = None,
    ) -> Generated:
        """Generate an address from exactly one of a vendor query, the current
        interface MAC, or an explicit hex prefix."""
        given = [arg for arg in (vendor, current_mac, prefix) if arg is not None]
        if len(given) != 1:
            raise ValueError("exactly one of vendor, current_mac or prefix is required")

        if prefix is not None:
            return self._generate_from_prefix(prefix)
        if vendor is not None:
            candidates = resolve(vendor, self.load())
            record = self.rng.choice(candidates)
            logger.debug("%d candidates for %r, chose %s %s", len(candidates), vendor, record, record.vendor_name)
            return Generated(synthesize(record, self.rng), record, candidates=len(candidates))

        if isinstance(current_mac, str):
            current_mac = MacAddress.parse(current_mac)
        database = self.load()
        record = database.find_by_prefix(current_mac)
        if record is not None:
            return Generated(synthesize(record, self.rng), record)
        record = database.random_record(self.rng)
        logger.info("vendor of %s unknown, using random vendor %s", current_mac, record.vendor_name)
        return Generated(synthesize(record, self.rng), record, fallback=True)

    def _generate_from_prefix(self, prefix: str) -> Generated:
        record = record_from_prefix(prefix)
        try:
            known = self.load().find_by_prefix(MacAddress(record.prefix))
        except NotFoundError:
            known = None
        if known is not None and known.prefix_length <= record.prefix_length:
            record = OuiRecord(record.prefix, record.prefix_length, known.vendor_name)
        return Generated(synthesize(record, self.rng), record)

    def lookup(self, mac: Union[MacAddress, str]) -> Optional[OuiRecord]:
        if isinstance(mac, str):
            mac = MacAddress.parse(mac)
        return self.load().find_by_prefix(mac)

