from __future__ import annotations

import random

import pytest

from randommac.models import OuiRecord
from randommac.storage import OuiDatabase, OuiStore

IEEE_CSV = (
    "Registry,Assignment,Organization Name,Organization Address\n"
    "MA-L,ACDE48,Intel Corporate,\"Lot 8, Jalan Hi-Tech 2/3  Kulim  Kedah  MY 09000 \"\n"
    "MA-L,001B21,Intel Corp,2200 Mission College Blvd Santa Clara CA US 95052 \n"
    "MA-L,00000C,\"Cisco Systems, Inc\",170 West Tasman Drive San Jose CA US 95134 \n"
    "MA-M,70B3D51,Acme Widgets GmbH,Somewhere DE\n"
    "MA-S,70B3D5F2C,Zürich Sensor AG,Zürich CH\n"
).encode("utf-8")


@pytest.fixture
def tmp_store(tmp_path):
    """OuiStore pointing at a file inside a temp directory."""
    return OuiStore(tmp_path / "data" / "database.sqlite")


@pytest.fixture
def ieee_csv() -> bytes:
    return IEEE_CSV


@pytest.fixture
def sample_records():
    return [
        OuiRecord.from_hex("AC:DE:48", "Intel Corporate"),
        OuiRecord.from_hex("00:1B:21", "Intel Corp"),
        OuiRecord.from_hex("00:00:0C", "Cisco Systems, Inc"),
        OuiRecord.from_hex("02:00:00", "Locally Assigned Labs"),
        OuiRecord.from_hex("70B3D51", "Acme Widgets GmbH"),
        OuiRecord.from_hex("70B3D5F2C", "Zürich Sensor AG"),
    ]


@pytest.fixture
def sample_db(sample_records):
    return OuiDatabase(sample_records)


@pytest.fixture
def rng():
    return random.Random(1234)
