"""Protocol frame header and schema-driven payload encoding.

Header layout (36 bytes, little-endian):

- Frame header: size (uint16), protocol/addressable/tagged/origin (uint16), source (uint32)
- Frame address: target (8 bytes), reserved (6 bytes), res/ack flags (uint8), sequence (uint8)
- Protocol header: reserved (uint64), type (uint16), reserved (uint16)
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterator
from typing import Any

from lifxctl.core.errors import FrameError
from lifxctl.core.model import FieldSpec, Frame, Message, ResponseDescriptor

HEADER_SIZE = 36
PROTOCOL_NUMBER = 1024
BROADCAST_TARGET = b"\x00" * 8

_HEADER = struct.Struct("<HHI8s6sBBQHH")
_ADDRESSABLE = 1 << 12
_TAGGED = 1 << 13
_RES_REQUIRED = 0x01
_ACK_REQUIRED = 0x02

LEAF_FORMATS = {
    "uint8": "B",
    "uint16": "H",
    "uint32": "I",
    "uint64": "Q",
    "int16": "h",
    "float32": "f",
}
SIZED_TYPES = frozenset({"bytes", "label"})
LEAF_TYPES = frozenset(LEAF_FORMATS) | SIZED_TYPES


def _leaf_formats(fields: tuple[FieldSpec, ...]) -> Iterator[str]:
    for spec in fields:
        if spec.is_struct:
            yield from _leaf_formats(spec.fields)
        elif spec.type in SIZED_TYPES:
            yield f"{spec.size}s"
        elif spec.type in LEAF_FORMATS:
            yield LEAF_FORMATS[spec.type]
        else:
            raise FrameError(f"Field '{spec.name}' has unsupported type '{spec.type}'")


def payload_struct(fields: tuple[FieldSpec, ...]) -> struct.Struct:
    return struct.Struct("<" + "".join(_leaf_formats(fields)))


def _flatten(fields: tuple[FieldSpec, ...], values: dict[str, Any]) -> Iterator[Any]:
    for spec in fields:
        if spec.is_struct:
            yield from _flatten(spec.fields, values[spec.name])
        else:
            yield values[spec.name]


def _unflatten(fields: tuple[FieldSpec, ...], flat: Iterator[Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for spec in fields:
        if spec.is_struct:
            values[spec.name] = _unflatten(spec.fields, flat)
            continue
        raw = next(flat)
        if spec.type == "label":
            raw = raw.rstrip(b"\x00").decode("utf-8", errors="replace")
        values[spec.name] = raw
    return values


def encode_payload(fields: tuple[FieldSpec, ...], values: dict[str, Any]) -> bytes:
    try:
        return payload_struct(fields).pack(*_flatten(fields, values))
    except (KeyError, struct.error) as exc:
        raise FrameError(f"Could not encode payload: {exc}") from exc


def decode_payload(fields: tuple[FieldSpec, ...], data: bytes) -> dict[str, Any]:
    layout = payload_struct(fields)
    if len(data) < layout.size:
        raise FrameError(f"Payload has {len(data)} bytes, expected at least {layout.size}")
    return _unflatten(fields, iter(layout.unpack_from(data)))


def encode_frame(
    message: Message,
    *,
    source: int,
    sequence: int,
    target: bytes = BROADCAST_TARGET,
) -> bytes:
    descriptor = message.descriptor
    payload = b""
    if descriptor.payload is not None:
        payload = encode_payload(descriptor.payload, message.payload or {})

    flags = PROTOCOL_NUMBER | _ADDRESSABLE
    if target == BROADCAST_TARGET:
        flags |= _TAGGED

    address_flags = 0
    if message.res_required:
        address_flags |= _RES_REQUIRED
    if message.ack_required:
        address_flags |= _ACK_REQUIRED

    header = _HEADER.pack(
        HEADER_SIZE + len(payload),
        flags,
        source,
        target.ljust(8, b"\x00"),
        b"\x00" * 6,
        address_flags,
        sequence & 0xFF,
        0,
        descriptor.code,
        0,
    )
    return header + payload


def decode_frame(data: bytes) -> Frame:
    if len(data) < HEADER_SIZE:
        raise FrameError(f"Frame has {len(data)} bytes, shorter than the {HEADER_SIZE}-byte header")

    size, flags, source, target, _, address_flags, sequence, _, msg_type, _ = _HEADER.unpack_from(data)
    if flags & 0x0FFF != PROTOCOL_NUMBER:
        raise FrameError(f"Unsupported protocol number {flags & 0x0FFF}")
    if size < HEADER_SIZE or size > len(data):
        raise FrameError(f"Frame declares size {size} but {len(data)} bytes were received")

    return Frame(
        type=msg_type,
        source=source,
        target=target,
        sequence=sequence,
        payload=data[HEADER_SIZE:size],
        tagged=bool(flags & _TAGGED),
        ack_required=bool(address_flags & _ACK_REQUIRED),
        res_required=bool(address_flags & _RES_REQUIRED),
    )


def trim_text(payload: dict[str, Any]) -> dict[str, Any]:
    """Render byte buffers as text with trailing NUL bytes removed."""
    return {
        name: value.rstrip(b"\x00").decode("utf-8", errors="replace") if isinstance(value, bytes) else value
        for name, value in payload.items()
    }


HUMANIZERS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    "trim_text": trim_text,
}


def humanize(descriptor: ResponseDescriptor, payload: dict[str, Any]) -> dict[str, Any]:
    if descriptor.humanize is None:
        return payload
    return HUMANIZERS[descriptor.humanize](payload)
