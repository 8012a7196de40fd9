from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from lifxctl.core.codec import encode_payload
from lifxctl.core.model import Device, Frame, Message, Reply
from lifxctl.core.registry import Registry


class FakeConnection:
    """In-memory connection that replays scripted replies per sent message type."""

    def __init__(self) -> None:
        self.sent: list[tuple[Message, list[Device] | None]] = []
        self.timeouts: list[float | None] = []
        self.replies: dict[str, list[Reply]] = {}
        self.closed = False

    def on(self, type_name: str, *replies: Reply) -> FakeConnection:
        self.replies.setdefault(type_name, []).extend(replies)
        return self

    def send(self, message: Message, devices: Sequence[Device] | None = None) -> None:
        self.sent.append((message, None if devices is None else list(devices)))

    def receive(self, timeout_s: float | None) -> Iterator[Reply]:
        self.timeouts.append(timeout_s)
        if not self.sent:
            return
        yield from self.replies.get(self.sent[-1][0].name, [])

    def close(self) -> None:
        self.closed = True

    @property
    def sent_names(self) -> list[str]:
        return [message.name for message, _ in self.sent]


def make_device(n: int, *, host: str | None = None, port: int = 56700) -> Device:
    return Device(mac=bytes([0xD0, 0x73, 0xD5, 0x00, 0x00, n]), host=host or f"192.168.1.{n}", port=port)


def reply(
    registry: Registry,
    response_name: str,
    device: Device,
    payload: dict[str, Any] | None = None,
    *,
    raw: bytes | None = None,
) -> Reply:
    descriptor = registry.responses[response_name]
    data = raw if raw is not None else encode_payload(descriptor.payload, payload or {})
    frame = Frame(type=descriptor.code, source=4242, target=device.target, sequence=1, payload=data)
    return Reply(device=Device(mac=device.mac, host=device.host, port=56700), frame=frame)


def service_reply(registry: Registry, device: Device, *, service: int = 1) -> Reply:
    return reply(registry, "StateService", device, {"Service": service, "Port": device.port})


def _label(text: str) -> bytes:
    return text.encode("utf-8").ljust(32, b"\x00")


def label_reply(registry: Registry, device: Device, text: str) -> Reply:
    return reply(registry, "StateLabel", device, {"Label": _label(text)})


def group_reply(registry: Registry, device: Device, text: str) -> Reply:
    return reply(
        registry,
        "StateGroup",
        device,
        {"Group": bytes(16), "Label": _label(text), "UpdatedAt": 0},
    )


def power_reply(registry: Registry, device: Device, level: int) -> Reply:
    return reply(registry, "StatePower", device, {"Level": level})


def ack_reply(registry: Registry, device: Device) -> Reply:
    return reply(registry, "Acknowledgement", device)
