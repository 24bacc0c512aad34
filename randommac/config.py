from __future__ import annotations

import argparse
import os
import sys
import tomllib
from pathlib import Path
from typing import Any, Dict

APP_NAME = "random-mac"
VERSION = "1.0.0"
DATABASE_FILE = "database.sqlite"
DATASOURCE_FILE = "datasource.json"


def load_config() -> Dict[str, Any]:
    """
    Load configuration from:
    1. ~/.random-mac.toml
    2. ./random-mac.toml

    The local file overrides the global one.
    """
    paths = [
        Path.home() / f".{APP_NAME}.toml",
        Path(f"{APP_NAME}.toml"),
    ]

    config: Dict[str, Any] = {}
    for path in paths:
        if path.exists():
            try:
                with path.open("rb") as f:
                    _deep_update(config, tomllib.load(f))
            except (OSError, tomllib.TOMLDecodeError) as e:
                print(f"warning: failed to load config {path}: {e}", file=sys.stderr)

    return config


def _deep_update(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and key in target and isinstance(target[key], dict):
            _deep_update(target[key], value)
        else:
            target[key] = value


def apply_config(parser: argparse.ArgumentParser, config: Dict[str, Any]) -> None:
    """
    Apply configuration values to the argument parser defaults.

    Example config:
    [global]
    database = "/var/lib/random-mac/database.sqlite"

    [update]
    format = "ieee-csv"

    Keys map to argument destinations. The ``[web]`` section is consumed by
    the web API and never becomes a CLI default.
    """
    defaults: Dict[str, Any] = {}
    defaults.update(config.get("global", {}))
    for section, values in config.items():
        if section in {"global", "web"}:
            continue
        if isinstance(values, dict):
            defaults.update(values)

    parser.set_defaults(**defaults)
    _push_defaults(parser, defaults)


def _push_defaults(parser: argparse.ArgumentParser, defaults: Dict[str, Any]) -> None:
    # Subparser defaults win over values parsed by the parent, so only hand
    # a subparser the keys it declares itself.
    for action in parser._actions:
        if not isinstance(action, argparse._SubParsersAction):
            continue
        for subparser in action.choices.values():
            dests = {sub_action.dest for sub_action in subparser._actions}
            subparser.set_defaults(**{k: v for k, v in defaults.items() if k in dests})
            _push_defaults(subparser, defaults)


def app_dir() -> Path:
    base = os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / APP_NAME


def ensure_app_dir() -> Path:
    path = app_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_database_path() -> Path:
    return app_dir() / DATABASE_FILE


def default_datasource_path() -> Path:
    return app_dir() / DATASOURCE_FILE
