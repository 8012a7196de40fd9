from __future__ import annotations

import socket
from collections.abc import Iterator

import pytest

from lifxctl.core.builder import build_message
from lifxctl.core.codec import decode_frame, encode_frame
from lifxctl.core.model import Device, Message, MessageDescriptor
from lifxctl.transports.udp import UDPConnection, generate_source_id

MAC = bytes.fromhex("d073d5010203")


@pytest.fixture
def lamp() -> Iterator[socket.socket]:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2)
    yield sock
    sock.close()


def _state_service(registry, *, source: int) -> bytes:
    descriptor = registry.responses["StateService"]
    message = Message(
        descriptor=MessageDescriptor(name=descriptor.name, code=descriptor.code, payload=descriptor.payload),
        payload={"Service": 1, "Port": 56700},
    )
    return encode_frame(message, source=source, sequence=1, target=MAC + b"\x00\x00")


def test_source_id_avoids_reserved_values() -> None:
    for _ in range(100):
        assert 2 <= generate_source_id() <= 0xFFFFFFFF


def test_broadcast_and_reply_over_loopback(lamp, registry) -> None:
    with UDPConnection(lamp.getsockname(), source=4242, bind_addr=("127.0.0.1", 0)) as connection:
        connection.send(build_message(registry, "GetService"))

        data, addr = lamp.recvfrom(1024)
        frame = decode_frame(data)
        assert frame.tagged
        assert frame.source == 4242
        assert frame.type == 2

        lamp.sendto(_state_service(registry, source=4242), addr)
        replies = list(connection.receive(0.3))

    assert len(replies) == 1
    assert replies[0].device.mac == MAC
    assert replies[0].device.host == "127.0.0.1"
    assert replies[0].frame.type == 3


def test_foreign_and_malformed_frames_are_dropped(lamp, registry) -> None:
    with UDPConnection(lamp.getsockname(), source=4242, bind_addr=("127.0.0.1", 0)) as connection:
        connection.send(build_message(registry, "GetService"))
        _, addr = lamp.recvfrom(1024)

        lamp.sendto(b"junk", addr)
        lamp.sendto(_state_service(registry, source=999), addr)
        lamp.sendto(_state_service(registry, source=4242), addr)
        replies = list(connection.receive(0.3))

    assert [reply.frame.source for reply in replies] == [4242]


def test_unicast_targets_each_device(lamp, registry) -> None:
    host, port = lamp.getsockname()
    device = Device(mac=MAC, host=host, port=port)
    with UDPConnection(("127.0.0.1", 9), source=7, bind_addr=("127.0.0.1", 0)) as connection:
        connection.send(build_message(registry, "GetLabel").with_flags(res_required=True), [device])
        frame = decode_frame(lamp.recvfrom(1024)[0])

    assert not frame.tagged
    assert frame.res_required
    assert frame.mac == MAC


def test_receive_without_traffic_ends_at_timeout(registry) -> None:
    with UDPConnection(("127.0.0.1", 9), bind_addr=("127.0.0.1", 0)) as connection:
        assert list(connection.receive(0.05)) == []


def test_close_is_idempotent() -> None:
    connection = UDPConnection(bind_addr=("127.0.0.1", 0))
    connection.close()
    connection.close()
