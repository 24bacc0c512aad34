"""Where the raw registry comes from and how it is fetched."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Union
from urllib import error, request
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, ValidationError, field_validator

from randommac.config import VERSION
from randommac.errors import DatasourceError
from randommac.log import get_logger
from randommac.oui import FORMATS

logger = get_logger("datasource")

DEFAULT_URL = "https://maclookup.app/downloads/json-database/get-db"
DEFAULT_FORMAT = "maclookupapp"
USER_AGENT = f"random-mac/{VERSION}"


class DataSource(BaseModel):
    url: str = DEFAULT_URL
    name: str = DEFAULT_FORMAT

    @field_validator("name")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in FORMATS:
            raise ValueError(f"unknown registry format {value!r}")
        return value


def load_datasource(path: Union[str, Path]) -> DataSource:
    """Read the datasource file, writing the default one when it is missing."""
    path = Path(path)
    if not path.exists():
        source = DataSource()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(source.model_dump_json(), encoding="utf-8")
        except OSError as exc:
            raise DatasourceError(f"failed to write default datasource {path}: {exc}") from exc
        logger.info("wrote default datasource to %s", path)
        return source
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return DataSource.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise DatasourceError(f"invalid datasource {path}: {exc}") from exc


def fetch_registry_source(source: DataSource, timeout: float = 30.0) -> bytes:
    parsed = urlparse(source.url)
    if parsed.scheme in {"http", "https"}:
        req = request.Request(source.url, headers={"User-Agent": USER_AGENT})
        logger.info("downloading registry from %s", source.url)
        try:
            with request.urlopen(req, timeout=timeout) as resp:
                return resp.read()
        except (error.URLError, OSError) as exc:
            raise DatasourceError(f"failed to fetch {source.url}: {exc}") from exc

    path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(source.url)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise DatasourceError(f"failed to read {path}: {exc}") from exc
