from __future__ import annotations

import os
import random
import sqlite3
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Iterable, Iterator, Optional, Union

from randommac.errors import CorruptError, FormatError, NotFoundError, PersistenceError
from randommac.log import get_logger
from randommac.mac import MacAddress
from randommac.models import REGISTRY_LENGTHS, OuiRecord

logger = get_logger("storage")

SCHEMA_VERSION = "1"

_SCHEMA = (
    """
    CREATE TABLE meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE ouis (
        position INTEGER PRIMARY KEY,
        prefix INTEGER NOT NULL,
        prefix_length INTEGER NOT NULL,
        vendor TEXT NOT NULL,
        UNIQUE (prefix, prefix_length)
    )
    """,
)


class OuiDatabase:
    """Immutable, deduplicated set of OUI records with lookup indexes.

    Records sharing ``(prefix, prefix_length)`` collapse to the one seen
    last; it keeps the position of the first occurrence.
    """

    def __init__(self, records: Iterable[OuiRecord] = ()) -> None:
        by_key: dict[tuple[int, int], OuiRecord] = {}
        for record in records:
            by_key[record.key] = record
        self._records = tuple(by_key.values())
        self._by_key = by_key
        self._vendor_index = tuple((r.vendor_name.casefold(), r) for r in self._records)

    @property
    def records(self) -> tuple[OuiRecord, ...]:
        return self._records

    @property
    def vendor_index(self) -> tuple[tuple[str, OuiRecord], ...]:
        return self._vendor_index

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[OuiRecord]:
        return iter(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OuiDatabase):
            return NotImplemented
        return self._records == other._records

    def find_by_vendor_substring(self, query: str) -> list[OuiRecord]:
        from randommac.oui import resolve

        return resolve(query, self)

    def find_by_prefix(self, mac: Union[MacAddress, str]) -> Optional[OuiRecord]:
        """Longest registered prefix covering ``mac``, if any."""
        if isinstance(mac, str):
            mac = MacAddress.parse(mac)
        for length in sorted(REGISTRY_LENGTHS, reverse=True):
            shift = 48 - length
            record = self._by_key.get(((mac.value >> shift) << shift, length))
            if record is not None:
                return record
        return None

    def random_record(self, rng: Optional[random.Random] = None) -> OuiRecord:
        if not self._records:
            raise NotFoundError("database is empty")
        return (rng or random.Random()).choice(self._records)

    def block_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for record in self._records:
            counts[record.block_type] = counts.get(record.block_type, 0) + 1
        return counts


class OuiStore:
    """Single-file SQLite snapshot of an :class:`OuiDatabase`.

    Every write builds a complete new file next to the target and renames it
    into place, so readers see the old or the new snapshot and nothing else.
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path = Path(db_path)

    def exists(self) -> bool:
        return self.db_path.is_file()

    def stamp(self) -> Optional[tuple[int, int, int]]:
        """Identity of the current snapshot file, ``None`` when absent.

        Each write renames a fresh file into place, so the stamp changes
        whenever another process replaces the database.
        """
        try:
            st = os.stat(self.db_path)
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    @contextmanager
    def _connect(self, path: Path) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(str(path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def replace_all(self, records: Iterable[OuiRecord], source: str = "") -> OuiDatabase:
        database = records if isinstance(records, OuiDatabase) else OuiDatabase(records)
        if not database.records:
            raise PersistenceError("refusing to store an empty database")

        tmp_path: Optional[Path] = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(
                prefix=f".{self.db_path.name}.", suffix=".tmp", dir=str(self.db_path.parent)
            )
            os.close(fd)
            tmp_path = Path(name)
            self._write(tmp_path, database, source)
            # mkstemp creates the file 0600
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, self.db_path)
        except (OSError, sqlite3.Error) as exc:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except FileNotFoundError:
                    pass
            raise PersistenceError(f"failed to write {self.db_path}: {exc}") from exc

        logger.info("stored %d records in %s", len(database), self.db_path)
        return database

    def persist(self, database: OuiDatabase, source: str = "") -> OuiDatabase:
        return self.replace_all(database, source=source)

    def _write(self, path: Path, database: OuiDatabase, source: str) -> None:
        with self._connect(path) as conn:
            cursor = conn.cursor()
            for statement in _SCHEMA:
                cursor.execute(statement)
            cursor.executemany(
                "INSERT INTO ouis (position, prefix, prefix_length, vendor) VALUES (?, ?, ?, ?)",
                [
                    (position, record.prefix, record.prefix_length, record.vendor_name)
                    for position, record in enumerate(database.records)
                ],
            )
            cursor.executemany(
                "INSERT INTO meta (key, value) VALUES (?, ?)",
                [
                    ("schema_version", SCHEMA_VERSION),
                    ("record_count", str(len(database))),
                    ("updated_at", str(time.time())),
                    ("source", source),
                ],
            )
            conn.commit()

    def _read_meta(self, conn: sqlite3.Connection) -> dict[str, str]:
        rows = conn.execute("SELECT key, value FROM meta").fetchall()
        return {row["key"]: row["value"] for row in rows}

    def load(self) -> OuiDatabase:
        if not self.exists():
            raise NotFoundError(f"no database at {self.db_path}; run 'random-mac update' first")
        try:
            with self._connect(self.db_path) as conn:
                meta = self._read_meta(conn)
                rows = conn.execute(
                    "SELECT prefix, prefix_length, vendor FROM ouis ORDER BY position"
                ).fetchall()
        except sqlite3.Error as exc:
            raise CorruptError(f"{self.db_path} is not a valid database: {exc}") from exc

        version = meta.get("schema_version")
        if version != SCHEMA_VERSION:
            raise CorruptError(f"{self.db_path}: unsupported schema version {version!r}")
        if meta.get("record_count") != str(len(rows)):
            raise CorruptError(
                f"{self.db_path}: expected {meta.get('record_count')} records, found {len(rows)}"
            )
        try:
            records = [OuiRecord(row["prefix"], row["prefix_length"], row["vendor"]) for row in rows]
        except (FormatError, TypeError) as exc:
            raise CorruptError(f"{self.db_path}: invalid record: {exc}") from exc

        logger.debug("loaded %d records from %s", len(records), self.db_path)
        return OuiDatabase(records)

    def find_by_vendor_substring(self, query: str) -> list[OuiRecord]:
        return self.load().find_by_vendor_substring(query)

    def stats(self) -> dict[str, Any]:
        database = self.load()
        with self._connect(self.db_path) as conn:
            meta = self._read_meta(conn)
        updated_at = meta.get("updated_at")
        return {
            "records": len(database),
            "blocks": database.block_counts(),
            "source": meta.get("source") or None,
            "updated_at": float(updated_at) if updated_at else None,
            "path": str(self.db_path),
        }
