"""Process and host identity helpers used to build client identifiers."""

from __future__ import annotations

import ipaddress
import os
import socket
from collections.abc import Iterator
from functools import lru_cache

CURRENT_VERSION = "v0.0.1"

_PID = str(os.getpid())

# UDP "connect" sends no packets; it only makes the OS pick an outgoing interface.
_PROBE_ADDRESS = ("10.254.254.254", 1)


def pid() -> str:
    """Return the id of the current process as a string."""
    return _PID


def build_mesh_tcp_client_id(sys: str, purpose: str, cluster: str) -> str:
    """Build the identifier of a TCP client of the mesh."""
    parts = (sys, purpose, cluster, CURRENT_VERSION, pid())
    return "-".join(part.strip() for part in parts)


def build_mesh_client_id(group: str, cluster: str) -> str:
    """Build the identifier of a mesh client from its group and cluster."""
    return (
        f"{group.strip()}-({cluster.strip()})-"
        f"{CURRENT_VERSION.strip()}-{pid().strip()}"
    )


def _host_addresses() -> Iterator[str]:
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        infos = []
    for info in infos:
        yield info[4][0]
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
            probe.connect(_PROBE_ADDRESS)
            yield probe.getsockname()[0]
    except OSError:
        return


@lru_cache(maxsize=None)
def get_ip() -> str:
    """Return the first IPv4 address of this host that is not a loopback address."""
    for candidate in _host_addresses():
        try:
            address = ipaddress.ip_address(candidate)
        except ValueError:
            continue
        if address.version == 4 and not address.is_loopback and not address.is_unspecified:
            return str(address)
    raise RuntimeError("can not find the client ip address")