from __future__ import annotations

import os
import subprocess
from typing import Union

from scapy.all import get_if_hwaddr, get_if_list  # type: ignore

from randommac.errors import FormatError, InterfaceError
from randommac.log import get_logger
from randommac.mac import MacAddress

logger = get_logger("iface")


def is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def require_root() -> None:
    if not is_root():
        raise PermissionError("You need to be root to change a MAC address (or use --dry-run)")


def list_interfaces() -> list[dict[str, str]]:
    interfaces = []
    for iface in get_if_list():
        try:
            mac = get_if_hwaddr(iface)
        except (OSError, ValueError):
            mac = "unknown"
        interfaces.append({"iface": iface, "mac": mac})
    return interfaces


def validate_iface(iface: str) -> str:
    if iface not in get_if_list():
        raise InterfaceError(iface, "no such interface")
    return iface


def current_mac(iface: str) -> MacAddress:
    validate_iface(iface)
    try:
        return MacAddress.parse(get_if_hwaddr(iface))
    except (OSError, ValueError, FormatError) as exc:
        raise InterfaceError(iface, f"failed to read hardware address: {exc}") from exc


def _ip_link(iface: str, *args: str) -> None:
    cmd = ["ip", "link", "set", "dev", iface, *args]
    logger.debug("running %s", " ".join(cmd))
    subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)


def apply_mac(iface: str, mac: Union[MacAddress, str], dry_run: bool = False) -> None:
    """Bring ``iface`` down, set its hardware address to ``mac`` and bring it up."""
    address = str(mac).lower()
    if dry_run:
        logger.info("dry run: would set %s to %s", iface, address)
        return
    try:
        _ip_link(iface, "down")
        _ip_link(iface, "address", address)
    except (OSError, subprocess.CalledProcessError) as exc:
        detail = exc.stderr.decode(errors="replace").strip() if getattr(exc, "stderr", None) else str(exc)
        try:
            _ip_link(iface, "up")
        except (OSError, subprocess.CalledProcessError):
            logger.warning("failed to bring %s back up", iface)
        raise InterfaceError(iface, f"failed to set address {address}: {detail}") from exc
    try:
        _ip_link(iface, "up")
    except (OSError, subprocess.CalledProcessError) as exc:
        raise InterfaceError(iface, f"address set but failed to bring link up: {exc}") from exc
    logger.info("set %s to %s", iface, address)
