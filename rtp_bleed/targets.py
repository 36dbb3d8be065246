from __future__ import annotations

import ipaddress
import socket


def resolve_target(target: str) -> str:
    """
    Supports:
      - IPv4 literal: "10.0.0.5"
      - Hostname: "sbc.example.net" (resolves to one IPv4 address)
    """
    target = target.strip()
    if not target:
        raise ValueError("Empty target")

    try:
        ip = ipaddress.ip_address(target)
    except ValueError:
        pass
    else:
        if ip.version != 4:
            raise ValueError(f"Only IPv4 targets are supported: {target}")
        return str(ip)

    try:
        return socket.gethostbyname(target)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve target '{target}': {e}") from e
