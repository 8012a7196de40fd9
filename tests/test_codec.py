from __future__ import annotations

import struct

import pytest

from lifxctl.core.builder import build_message
from lifxctl.core.codec import (
    BROADCAST_TARGET,
    HEADER_SIZE,
    decode_frame,
    decode_payload,
    encode_frame,
    trim_text,
)
from lifxctl.core.errors import FrameError


def test_broadcast_frame_is_tagged(registry) -> None:
    data = encode_frame(build_message(registry, "GetService"), source=1234, sequence=7)
    assert len(data) == HEADER_SIZE

    size, flags, source = struct.unpack_from("<HHI", data)
    assert size == HEADER_SIZE
    assert flags & 0x0FFF == 1024
    assert flags & (1 << 12)
    assert flags & (1 << 13)
    assert source == 1234
    assert data[23] == 7
    assert struct.unpack_from("<H", data, 32)[0] == 2


def test_unicast_frame_is_not_tagged_and_carries_flags(registry) -> None:
    message = build_message(registry, "SetPower", ["Level:65535"]).with_flags(ack_required=True)
    target = bytes.fromhex("d073d5010203") + b"\x00\x00"
    data = encode_frame(message, source=99, sequence=1, target=target)

    frame = decode_frame(data)
    assert not frame.tagged
    assert frame.ack_required
    assert not frame.res_required
    assert frame.type == 21
    assert frame.mac == bytes.fromhex("d073d5010203")
    assert frame.payload == struct.pack("<H", 65535)


def test_decode_frame_rejects_short_data() -> None:
    with pytest.raises(FrameError):
        decode_frame(b"\x00" * 10)


def test_decode_frame_rejects_oversized_declaration(registry) -> None:
    data = bytearray(encode_frame(build_message(registry, "GetService"), source=1, sequence=1))
    struct.pack_into("<H", data, 0, 200)
    with pytest.raises(FrameError):
        decode_frame(bytes(data))


def test_decode_payload_trims_labels(registry) -> None:
    fields = registry.responses["StateLabel"].payload
    assert decode_payload(fields, b"Kitchen".ljust(32, b"\x00")) == {"Label": "Kitchen"}


def test_decode_payload_rejects_short_payload(registry) -> None:
    with pytest.raises(FrameError):
        decode_payload(registry.responses["StatePower"].payload, b"\x01")


def test_decode_nested_light_state(registry) -> None:
    fields = registry.responses["LightState"].payload
    data = struct.pack("<HHHHhH32sQ", 1, 2, 3, 3500, 0, 65535, b"Desk", 0)
    decoded = decode_payload(fields, data)
    assert decoded["Color"] == {"Hue": 1, "Saturation": 2, "Brightness": 3, "Kelvin": 3500}
    assert decoded["Power"] == 65535
    assert decoded["Label"] == "Desk"


def test_trim_text_strips_trailing_nuls() -> None:
    assert trim_text({"Payload": b"hello\x00\x00\x00", "Other": 3}) == {"Payload": "hello", "Other": 3}


def test_broadcast_target_is_all_zero() -> None:
    assert BROADCAST_TARGET == bytes(8)
