"""Core data models used across registry, builder, pipeline, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

ACKNOWLEDGEMENT = "Acknowledgement"
SERVICE_UDP = 1


@dataclass(frozen=True)
class Device:
    """A discovered device. Identity is the hardware address alone."""

    mac: bytes
    host: str = field(compare=False)
    port: int = field(compare=False)
    service: int = field(default=SERVICE_UDP, compare=False)

    @property
    def mac_str(self) -> str:
        return ":".join(f"{b:02x}" for b in self.mac)

    @property
    def target(self) -> bytes:
        return self.mac + b"\x00\x00"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str
    size: int | None = None
    fields: tuple[FieldSpec, ...] = ()

    @property
    def is_struct(self) -> bool:
        return self.type == "struct"


@dataclass(frozen=True)
class MessageDescriptor:
    name: str
    code: int
    payload: tuple[FieldSpec, ...] | None = None
    response: str | None = None
    wait: bool = False

    @property
    def takes_payload(self) -> bool:
        return self.payload is not None


@dataclass(frozen=True)
class ResponseDescriptor:
    name: str
    code: int
    payload: tuple[FieldSpec, ...] = ()
    humanize: str | None = None


@dataclass(frozen=True)
class Message:
    descriptor: MessageDescriptor
    payload: dict[str, Any] | None = None
    ack_required: bool = False
    res_required: bool = False

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def code(self) -> int:
        return self.descriptor.code

    def with_flags(self, *, ack_required: bool = False, res_required: bool = False) -> Message:
        return replace(self, ack_required=ack_required, res_required=res_required)


@dataclass(frozen=True)
class Frame:
    """Decoded protocol header plus the raw payload bytes."""

    type: int
    source: int
    target: bytes
    sequence: int
    payload: bytes = b""
    tagged: bool = False
    ack_required: bool = False
    res_required: bool = False

    @property
    def mac(self) -> bytes:
        return self.target[:6]


@dataclass(frozen=True)
class Reply:
    device: Device
    frame: Frame


@dataclass(frozen=True)
class Response:
    name: str
    code: int
    payload: dict[str, Any] | None = None

    @property
    def is_ack(self) -> bool:
        return self.name == ACKNOWLEDGEMENT


ResponseSet = dict[Device, Response]
