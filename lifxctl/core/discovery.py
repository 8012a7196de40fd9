"""Device discovery and multi-criteria whitelist filtering."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from lifxctl.core.builder import build_message
from lifxctl.core.correlate import correlate, decode_response, expected_response_code
from lifxctl.core.model import SERVICE_UDP, Device
from lifxctl.core.registry import Registry
from lifxctl.core.whitelist import Whitelist, ip_matches, mac_matches, text_matches
from lifxctl.transports.base import Connection

LOGGER = logging.getLogger(__name__)


def discover(
    connection: Connection,
    registry: Registry,
    whitelist: Whitelist,
    timeout_s: float | None,
) -> list[Device]:
    """Discover devices and narrow them by every configured whitelist dimension.

    The count only caps the listening phase. Label and group pruning run
    afterwards, in that order, and never trigger another discovery round.
    """
    devices = _listen(connection, registry, whitelist, timeout_s)
    if whitelist.labels:
        devices = _prune_by_label(connection, registry, devices, "GetLabel", whitelist.labels, timeout_s)
    if whitelist.groups:
        devices = _prune_by_label(connection, registry, devices, "GetGroup", whitelist.groups, timeout_s)
    return devices


def _listen(
    connection: Connection,
    registry: Registry,
    whitelist: Whitelist,
    timeout_s: float | None,
) -> list[Device]:
    get_service = build_message(registry, "GetService")
    service_code = expected_response_code(registry, get_service, require_ack=False)

    connection.send(get_service)

    accepted: list[Device] = []
    seen: set[bytes] = set()
    remaining = whitelist.count
    for reply in connection.receive(timeout_s):
        frame = reply.frame
        if frame.type != service_code or frame.mac in seen:
            continue
        response = decode_response(registry, frame)
        if response is None or response.payload is None:
            continue
        if response.payload["Service"] != SERVICE_UDP:
            continue

        seen.add(frame.mac)
        device = Device(
            mac=frame.mac,
            host=reply.device.host,
            port=response.payload["Port"],
            service=response.payload["Service"],
        )
        accept = mac_matches(whitelist.macs, device.mac) and ip_matches(whitelist.ips, device.host)
        LOGGER.debug("Discovered %s at %s:%d (accepted=%s)", device.mac_str, device.host, device.port, accept)

        if accept:
            accepted.append(device)
        if whitelist.count > 0:
            if accept:
                remaining -= 1
            if remaining <= 0:
                break

    return accepted


def _prune_by_label(
    connection: Connection,
    registry: Registry,
    devices: Sequence[Device],
    query_type: str,
    entries: Sequence[str],
    timeout_s: float | None,
) -> list[Device]:
    if not devices:
        return []
    query = build_message(registry, query_type)
    responses = correlate(connection, registry, query, devices, require_ack=False, timeout_s=timeout_s)

    kept: list[Device] = []
    for device in devices:
        response = responses.get(device)
        if response is None or response.payload is None:
            LOGGER.debug("Dropping %s: no reply to %s", device.mac_str, query_type)
            continue
        if text_matches(entries, response.payload["Label"]):
            kept.append(device)
        else:
            LOGGER.debug("Dropping %s: %s '%s' not whitelisted", device.mac_str, query_type, response.payload["Label"])
    return kept
