"""Service layer used by CLI and API frontends."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from contextlib import closing
from dataclasses import dataclass

from lifxctl.core.builder import build_message
from lifxctl.core.config import InvocationOptions
from lifxctl.core.correlate import correlate, dispatch, expected_response_code
from lifxctl.core.discovery import discover
from lifxctl.core.errors import CorrelationError
from lifxctl.core.model import Device, Message, MessageDescriptor, ResponseSet
from lifxctl.core.registry import Registry, load_registry
from lifxctl.transports.base import Connection
from lifxctl.transports.udp import UDPConnection

LOGGER = logging.getLogger(__name__)

ConnectionFactory = Callable[[tuple[str, int]], Connection]


@dataclass(frozen=True)
class ExecutionResult:
    message: Message
    devices: list[Device] | None
    responses: ResponseSet | None

    @property
    def waited(self) -> bool:
        return self.responses is not None


class LifxService:
    def __init__(
        self,
        *,
        registry: Registry | None = None,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self.registry = registry or load_registry()
        self.load_warnings = self.registry.warnings
        self._connection_factory = connection_factory or UDPConnection

    def list_types(self) -> list[MessageDescriptor]:
        return sorted(self.registry.messages.values(), key=lambda d: d.code)

    def build(self, type_name: str, assignments: Iterable[str] = ()) -> Message:
        return build_message(self.registry, type_name, assignments)

    def list_devices(self, options: InvocationOptions) -> list[Device]:
        with closing(self._connection_factory(options.broadcast_addr)) as connection:
            return discover(connection, self.registry, options.whitelist, options.timeout_s)

    def execute(
        self,
        type_name: str,
        assignments: Iterable[str],
        options: InvocationOptions,
    ) -> ExecutionResult:
        message = self.build(type_name, assignments)

        expected = expected_response_code(self.registry, message, options.require_ack)
        if expected is None and options.require_res:
            raise CorrelationError(f"No response can be expected for message type '{message.name}'")
        wait = options.require_ack or (
            expected is not None and (options.require_res or message.descriptor.wait)
        )

        if options.require_ack or (wait and expected == self.registry.acknowledgement.code):
            message = message.with_flags(ack_required=True)
        elif wait:
            message = message.with_flags(res_required=True)

        with closing(self._connection_factory(options.broadcast_addr)) as connection:
            devices: list[Device] | None = None
            if options.whitelist.is_configured:
                devices = discover(connection, self.registry, options.whitelist, options.timeout_s)
                if not devices:
                    LOGGER.warning("No devices matched the configured filters")

            if not wait:
                dispatch(connection, message, devices)
                return ExecutionResult(message=message, devices=devices, responses=None)

            responses = correlate(
                connection,
                self.registry,
                message,
                devices,
                require_ack=options.require_ack,
                timeout_s=options.timeout_s,
            )
            return ExecutionResult(message=message, devices=devices, responses=responses)
