"""Stable public API for building tooling on top of lifxctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from lifxctl.core.color import color_assignments, hsbk_from_args
from lifxctl.core.config import InvocationOptions, resolve_options
from lifxctl.core.errors import (
    ColorError,
    ConfigError,
    CorrelationError,
    InputError,
    LifxctlError,
    PayloadError,
    RegistryError,
    TransportError,
    UnknownMessageTypeError,
    WhitelistError,
)
from lifxctl.core.model import Device, Message, MessageDescriptor, Response, ResponseSet
from lifxctl.core.service import ConnectionFactory, ExecutionResult, LifxService
from lifxctl.core.whitelist import Whitelist

__all__ = [
    "LifxctlError",
    "ColorError",
    "ConfigError",
    "CorrelationError",
    "InputError",
    "PayloadError",
    "RegistryError",
    "TransportError",
    "UnknownMessageTypeError",
    "WhitelistError",
    "Device",
    "ExecutionResult",
    "InvocationOptions",
    "Message",
    "MessageDescriptor",
    "Response",
    "ResponseSet",
    "Whitelist",
    "Client",
]


class Client:
    """Public client for interacting with lifxctl core capabilities.

    A `Client` instance wraps registry loading, discovery/filtering, message
    building, and response correlation behind a stable API intended for
    third-party tools (GUI/TUI/services/scripts).
    """

    def __init__(self, *, connection_factory: ConnectionFactory | None = None) -> None:
        self._service = LifxService(connection_factory=connection_factory)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_types(self) -> list[MessageDescriptor]:
        return self._service.list_types()

    def build(self, type_name: str, assignments: Iterable[str] = ()) -> Message:
        return self._service.build(type_name, assignments)

    def discover(
        self,
        *,
        labels: Sequence[str] = (),
        groups: Sequence[str] = (),
        macs: Sequence[str] = (),
        ips: Sequence[str] = (),
        timeout_ms: int | None = None,
        count: int | None = None,
    ) -> list[Device]:
        options = resolve_options(
            labels=labels,
            groups=groups,
            macs=macs,
            ips=ips,
            timeout_ms=timeout_ms,
            count=count,
            config={},
        )
        return self._service.list_devices(options)

    def send(
        self,
        type_name: str,
        assignments: Iterable[str] = (),
        *,
        options: InvocationOptions | None = None,
    ) -> ExecutionResult:
        return self._service.execute(type_name, assignments, options or InvocationOptions())

    def set_color(
        self,
        color: Sequence[str],
        *,
        rgb: bool = False,
        kelvin: int = 3500,
        duration_ms: int = 0,
        options: InvocationOptions | None = None,
    ) -> ExecutionResult:
        hue, saturation, brightness, kelvin = hsbk_from_args(color, rgb=rgb, kelvin=kelvin)
        assignments = color_assignments(hue, saturation, brightness, kelvin, duration=duration_ms)
        return self.send("LightSetColor", assignments, options=options)
