from __future__ import annotations

import json
import time
from typing import Optional

from randommac.engine import Generated


class ChangeJournal:
    """Append-only JSONL record of generated and applied addresses."""

    def __init__(self, path: Optional[str]) -> None:
        self._path = path
        self._handle = open(path, "a", encoding="utf-8") if path else None

    def record(
        self,
        iface: Optional[str],
        old_mac: Optional[str],
        generated: Generated,
        dry_run: bool = False,
    ) -> None:
        if not self._handle:
            return
        payload = {
            "ts": time.time(),
            "interface": iface,
            "old_mac": old_mac,
            "new_mac": str(generated.mac),
            "vendor": generated.record.vendor_name,
            "prefix": str(generated.record),
            "prefix_length": generated.record.prefix_length,
            "dry_run": dry_run,
        }
        self._handle.write(json.dumps(payload, ensure_ascii=False))
        self._handle.write("\n")
        self._handle.flush()

    def close(self) -> None:
        if self._handle:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "ChangeJournal":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
