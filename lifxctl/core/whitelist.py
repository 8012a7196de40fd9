"""Whitelist criteria and per-dimension device matching."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Iterable
from dataclasses import dataclass

from lifxctl.core.errors import WhitelistError

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_MAC_RE = re.compile(
    r"^[0-9a-f]{2}([:-])[0-9a-f]{2}(?:\1[0-9a-f]{2}){4}(?:(?:\1[0-9a-f]{2}){2})?$",
    re.IGNORECASE,
)
_DOTTED_MAC_RE = re.compile(r"^[0-9a-f]{4}(?:\.[0-9a-f]{4}){2,3}$", re.IGNORECASE)


def parse_mac(text: str) -> bytes:
    """Parse a 48-bit MAC or 64-bit EUI-64 address into raw bytes."""
    value = text.strip()
    if _MAC_RE.match(value):
        return bytes.fromhex(value.replace(":", "").replace("-", ""))
    if _DOTTED_MAC_RE.match(value):
        return bytes.fromhex(value.replace(".", ""))
    raise WhitelistError(f"Invalid MAC address '{text}'")


def parse_ip(text: str) -> IPAddress:
    try:
        return ipaddress.ip_address(text.strip())
    except ValueError as exc:
        raise WhitelistError(f"Invalid IP address '{text}'") from exc


@dataclass(frozen=True)
class Whitelist:
    """Filter dimensions. An empty dimension accepts every device."""

    macs: tuple[bytes, ...] = ()
    ips: tuple[IPAddress, ...] = ()
    labels: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()
    count: int = 0

    @classmethod
    def parse(
        cls,
        *,
        macs: Iterable[str] = (),
        ips: Iterable[str] = (),
        labels: Iterable[str] = (),
        groups: Iterable[str] = (),
        count: int = 0,
    ) -> Whitelist:
        if count < 0:
            raise WhitelistError(f"Count {count} is invalid; use 0 for unlimited or a positive number")
        return cls(
            macs=tuple(parse_mac(m) for m in macs),
            ips=tuple(parse_ip(i) for i in ips),
            labels=tuple(labels),
            groups=tuple(groups),
            count=count,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.macs or self.ips or self.labels or self.groups or self.count > 0)


def mac_matches(whitelist: Iterable[bytes], mac: bytes) -> bool:
    entries = tuple(whitelist)
    if not entries:
        return True
    # A 6-byte address equals an EUI-64 entry padded with two leading zero bytes.
    wanted = int.from_bytes(mac, "big")
    return any(int.from_bytes(entry, "big") == wanted for entry in entries)


def ip_matches(whitelist: Iterable[IPAddress], host: str) -> bool:
    entries = tuple(whitelist)
    if not entries:
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address in entries


def text_matches(whitelist: Iterable[str], value: str) -> bool:
    lowered = value.lower()
    return any(lowered == entry.lower() for entry in whitelist)
