"""Send a message once and collect matching replies within a time window."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from lifxctl.core.codec import decode_payload, humanize
from lifxctl.core.errors import CorrelationError, FrameError
from lifxctl.core.model import Device, Frame, Message, Response, ResponseSet
from lifxctl.core.registry import Registry
from lifxctl.transports.base import Connection

LOGGER = logging.getLogger(__name__)


def expected_response_code(registry: Registry, message: Message, require_ack: bool) -> int | None:
    """Return the reply type to wait for, or None when the message declares none."""
    if require_ack:
        return registry.acknowledgement.code
    if message.descriptor.response is None:
        return None
    return registry.responses[message.descriptor.response].code


def dispatch(connection: Connection, message: Message, targets: Sequence[Device] | None) -> None:
    """Send-only delivery; replies are not evaluated."""
    if targets is not None and not targets:
        LOGGER.info("No devices to send %s to", message.name)
        return
    connection.send(message, list(targets) if targets is not None else None)


def decode_response(registry: Registry, frame: Frame) -> Response | None:
    descriptor = registry.response_for_code(frame.type)
    if descriptor is None:
        return None
    try:
        payload = decode_payload(descriptor.payload, frame.payload)
    except FrameError as exc:
        LOGGER.debug("Discarding undecodable %s: %s", descriptor.name, exc)
        return None
    if descriptor.code == registry.acknowledgement.code:
        return Response(name=descriptor.name, code=descriptor.code)
    return Response(name=descriptor.name, code=descriptor.code, payload=humanize(descriptor, payload))


def correlate(
    connection: Connection,
    registry: Registry,
    message: Message,
    targets: Sequence[Device] | None,
    *,
    require_ack: bool,
    timeout_s: float | None,
) -> ResponseSet:
    """Send ``message`` to ``targets`` (or broadcast) and gather replies by device.

    Only frames of the expected type are kept; a later reply from the same
    device replaces the earlier one. Reaching the timeout is the normal end of
    collection. With no timeout and a known target set, collection ends once
    every target has replied.
    """
    code = expected_response_code(registry, message, require_ack)
    if code is None:
        raise CorrelationError(f"No response can be expected for message type '{message.name}'")

    by_mac: dict[bytes, Device] | None = None
    if targets is not None:
        by_mac = {device.mac: device for device in targets}
        if not by_mac:
            return {}

    connection.send(message, list(by_mac.values()) if by_mac is not None else None)

    responses: ResponseSet = {}
    for reply in connection.receive(timeout_s):
        if reply.frame.type != code:
            continue

        device = reply.device
        if by_mac is not None:
            known = by_mac.get(device.mac)
            if known is None:
                LOGGER.debug("Ignoring reply from untargeted device %s", device.mac_str)
                continue
            device = known

        response = decode_response(registry, reply.frame)
        if response is None:
            continue
        responses.pop(device, None)
        responses[device] = response

        if timeout_s is None and by_mac is not None and len(responses) == len(by_mac):
            break

    LOGGER.debug("Collected %d %s response(s)", len(responses), message.name)
    return responses
