"""Message descriptor registry loaded from YAML and validated with jsonschema."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

from lifxctl.core.codec import HUMANIZERS, LEAF_TYPES, SIZED_TYPES
from lifxctl.core.documents import config_home, normalize_bool, read_yaml, validate_document
from lifxctl.core.errors import RegistryLoadError, RegistryValidationError, UnknownMessageTypeError
from lifxctl.core.model import ACKNOWLEDGEMENT, FieldSpec, MessageDescriptor, ResponseDescriptor

LOGGER = logging.getLogger(__name__)

_SCHEMA = "messages.schema.json"


@dataclass(frozen=True)
class Registry:
    messages: dict[str, MessageDescriptor]
    responses: dict[str, ResponseDescriptor]
    warnings: tuple[str, ...] = ()

    def message(self, name: str) -> MessageDescriptor:
        descriptor = self.messages.get(name)
        if descriptor is not None:
            return descriptor
        lowered = name.lower()
        for candidate in self.messages.values():
            if candidate.name.lower() == lowered:
                return candidate
        available = ", ".join(sorted(self.messages))
        raise UnknownMessageTypeError(f"Unknown message type '{name}'. Available: {available}")

    def response(self, name: str) -> ResponseDescriptor | None:
        return self.responses.get(name)

    def response_for_code(self, code: int) -> ResponseDescriptor | None:
        for descriptor in self.responses.values():
            if descriptor.code == code:
                return descriptor
        return None

    @property
    def acknowledgement(self) -> ResponseDescriptor:
        return self.responses[ACKNOWLEDGEMENT]


def _build_fields(
    raw_fields: list[dict[str, Any]],
    structs: dict[str, tuple[FieldSpec, ...]],
    *,
    context: str,
) -> tuple[FieldSpec, ...]:
    fields: list[FieldSpec] = []
    seen: set[str] = set()
    for raw in raw_fields:
        name = raw["name"]
        where = f"{context}.{name}"
        if name in seen:
            raise RegistryValidationError(f"{where} is defined more than once")
        seen.add(name)

        field_type = raw["type"]
        size = raw.get("size")
        if field_type in LEAF_TYPES:
            if field_type in SIZED_TYPES and size is None:
                raise RegistryValidationError(f"{where} of type '{field_type}' requires a size")
            if field_type not in SIZED_TYPES and size is not None:
                raise RegistryValidationError(f"{where} of type '{field_type}' does not take a size")
            fields.append(FieldSpec(name=name, type=field_type, size=size))
        elif field_type in structs:
            if size is not None:
                raise RegistryValidationError(f"{where} is a struct and does not take a size")
            fields.append(FieldSpec(name=name, type="struct", fields=structs[field_type]))
        else:
            raise RegistryValidationError(f"{where} has unknown type '{field_type}'")
    return tuple(fields)


def _apply_document(
    doc: dict[str, Any],
    source: Path | Traversable,
    *,
    structs: dict[str, tuple[FieldSpec, ...]],
    messages: dict[str, MessageDescriptor],
    responses: dict[str, ResponseDescriptor],
    overridable: bool,
    warnings: list[str],
) -> None:
    validate_document(doc, _SCHEMA, source, validation_error=RegistryValidationError)

    for struct_name, raw_fields in doc.get("structs", {}).items():
        if struct_name in LEAF_TYPES or struct_name == "struct":
            raise RegistryValidationError(f"Struct name '{struct_name}' in {source} shadows a leaf type")
        structs[struct_name] = _build_fields(raw_fields, structs, context=struct_name)

    for raw in doc.get("messages", []):
        name = raw["name"]
        if name in messages:
            if not overridable:
                raise RegistryValidationError(f"Message '{name}' is defined more than once in {source}")
            _warn(f"User message '{name}' overrides packaged descriptor", warnings)
        payload = raw.get("payload")
        messages[name] = MessageDescriptor(
            name=name,
            code=int(raw["code"]),
            payload=_build_fields(payload, structs, context=name) if payload is not None else None,
            response=raw.get("response"),
            wait=normalize_bool(
                raw.get("wait", False),
                context=f"{name}.wait",
                validation_error=RegistryValidationError,
            ),
        )

    for raw in doc.get("responses", []):
        name = raw["name"]
        if name in responses:
            if not overridable:
                raise RegistryValidationError(f"Response '{name}' is defined more than once in {source}")
            _warn(f"User response '{name}' overrides packaged descriptor", warnings)
        humanize = raw.get("humanize")
        if humanize is not None and humanize not in HUMANIZERS:
            raise RegistryValidationError(f"{name}.humanize names unknown hook '{humanize}'")
        responses[name] = ResponseDescriptor(
            name=name,
            code=int(raw["code"]),
            payload=_build_fields(raw.get("payload", []), structs, context=name),
            humanize=humanize,
        )


def _warn(warning: str, warnings: list[str]) -> None:
    LOGGER.warning(warning)
    warnings.append(warning)


def _check_consistency(
    messages: dict[str, MessageDescriptor],
    responses: dict[str, ResponseDescriptor],
) -> None:
    if ACKNOWLEDGEMENT not in responses:
        raise RegistryValidationError(f"Registry must define the '{ACKNOWLEDGEMENT}' response")

    for kind, table in (("message", messages), ("response", responses)):
        codes: dict[int, str] = {}
        for descriptor in table.values():
            other = codes.get(descriptor.code)
            if other is not None:
                raise RegistryValidationError(
                    f"{kind.capitalize()} code {descriptor.code} is used by both '{other}' and '{descriptor.name}'"
                )
            codes[descriptor.code] = descriptor.name

    for descriptor in messages.values():
        if descriptor.response is not None and descriptor.response not in responses:
            raise RegistryValidationError(
                f"Message '{descriptor.name}' expects unknown response '{descriptor.response}'"
            )


def _iter_packaged_paths() -> list[Traversable]:
    root = resources.files("lifxctl.messages")
    return sorted(
        (item for item in root.iterdir() if item.name.endswith((".yml", ".yaml"))),
        key=lambda item: item.name,
    )


def _iter_user_paths() -> list[Path]:
    directory = config_home() / "messages"
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"})


def load_registry() -> Registry:
    structs: dict[str, tuple[FieldSpec, ...]] = {}
    messages: dict[str, MessageDescriptor] = {}
    responses: dict[str, ResponseDescriptor] = {}
    warnings: list[str] = []

    for overridable, paths in ((False, _iter_packaged_paths()), (True, _iter_user_paths())):
        for path in paths:
            doc = read_yaml(path, load_error=RegistryLoadError, validation_error=RegistryValidationError)
            _apply_document(
                doc,
                path,
                structs=structs,
                messages=messages,
                responses=responses,
                overridable=overridable,
                warnings=warnings,
            )
            LOGGER.debug("Loaded message descriptors from %s", path)

    _check_consistency(messages, responses)
    return Registry(messages=messages, responses=responses, warnings=tuple(warnings))
