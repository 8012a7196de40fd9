"""Build typed outgoing messages from a type name and textual field assignments."""

from __future__ import annotations

import logging
import math
import struct
from collections.abc import Iterable
from typing import Any

from lifxctl.core.codec import SIZED_TYPES
from lifxctl.core.errors import PayloadError
from lifxctl.core.model import FieldSpec, Message
from lifxctl.core.registry import Registry

LOGGER = logging.getLogger(__name__)

PATH_DELIMITER = ":"
FIELD_SEPARATOR = "."

_INT_RANGES = {
    "uint8": (0, 2**8 - 1),
    "uint16": (0, 2**16 - 1),
    "uint32": (0, 2**32 - 1),
    "uint64": (0, 2**64 - 1),
    "int16": (-(2**15), 2**15 - 1),
}
_FLOAT32 = struct.Struct("<f")


def zero_payload(fields: tuple[FieldSpec, ...]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for spec in fields:
        if spec.is_struct:
            values[spec.name] = zero_payload(spec.fields)
        elif spec.type in SIZED_TYPES:
            values[spec.name] = bytes(spec.size or 0)
        elif spec.type == "float32":
            values[spec.name] = 0.0
        else:
            values[spec.name] = 0
    return values


def convert_leaf(spec: FieldSpec, text: str) -> Any:
    if spec.type in _INT_RANGES:
        try:
            value = int(text.strip(), 10)
        except ValueError as exc:
            raise PayloadError(f"Field '{spec.name}' expects a decimal {spec.type}, got '{text}'") from exc
        low, high = _INT_RANGES[spec.type]
        if not low <= value <= high:
            raise PayloadError(f"Value {value} overflows {spec.type} field '{spec.name}' ({low}..{high})")
        return value

    if spec.type in SIZED_TYPES:
        size = spec.size or 0
        return text.encode("utf-8")[:size].ljust(size, b"\x00")

    if spec.type == "float32":
        try:
            value = float(text)
        except ValueError as exc:
            raise PayloadError(f"Field '{spec.name}' expects a decimal float32, got '{text}'") from exc
        if not math.isfinite(value):
            raise PayloadError(f"Field '{spec.name}' must be a finite number, got '{text}'")
        try:
            return _FLOAT32.unpack(_FLOAT32.pack(value))[0]
        except OverflowError as exc:
            raise PayloadError(f"Value {text} overflows float32 field '{spec.name}'") from exc

    raise PayloadError(f"Could not convert '{text}' to unsupported field type '{spec.type}'")


def _field(fields: tuple[FieldSpec, ...], name: str, owner: str) -> FieldSpec:
    for spec in fields:
        if spec.name == name:
            return spec
    available = ", ".join(spec.name for spec in fields)
    raise PayloadError(f"Unknown field '{name}' on {owner}. Available: {available}")


def _assign(fields: tuple[FieldSpec, ...], payload: dict[str, Any], assignment: str, owner: str) -> None:
    # Field names are consumed while the current node is a struct; everything
    # after the first leaf is the value, colons included.
    parts = assignment.split(PATH_DELIMITER)
    path: list[str] = []
    for index, part in enumerate(parts):
        names = part.split(FIELD_SEPARATOR)
        for position, name in enumerate(names):
            spec = _field(fields, name, PATH_DELIMITER.join([owner, *path]))
            path.append(name)
            if spec.is_struct:
                fields, payload = spec.fields, payload[name]
                continue
            where = PATH_DELIMITER.join(path)
            if position != len(names) - 1:
                raise PayloadError(f"Field '{where}' is not a struct")
            if index == len(parts) - 1:
                raise PayloadError(f"Assignment '{assignment}' has no value for field '{where}'")
            payload[name] = convert_leaf(spec, PATH_DELIMITER.join(parts[index + 1 :]))
            return
    raise PayloadError(
        f"Assignment '{assignment}' stops at struct '{PATH_DELIMITER.join(path)}' without naming a field"
    )


def build_message(registry: Registry, type_name: str, assignments: Iterable[str] = ()) -> Message:
    """Resolve ``type_name`` and apply every assignment, or raise on the first failure."""
    descriptor = registry.message(type_name)
    assignments = list(assignments)

    if descriptor.payload is None:
        if assignments:
            raise PayloadError(
                f"Message type '{descriptor.name}' takes no payload, got {len(assignments)} assignment(s)"
            )
        return Message(descriptor=descriptor)

    payload = zero_payload(descriptor.payload)
    for assignment in assignments:
        _assign(descriptor.payload, payload, assignment, descriptor.name)

    LOGGER.debug("Built %s with %d assignment(s)", descriptor.name, len(assignments))
    return Message(descriptor=descriptor, payload=payload)
