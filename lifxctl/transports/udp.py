"""UDP broadcast/unicast connection using Python sockets."""

from __future__ import annotations

import logging
import random
import socket
import time
from collections.abc import Iterator, Sequence

from lifxctl.core.codec import BROADCAST_TARGET, decode_frame, encode_frame
from lifxctl.core.errors import (
    FrameError,
    TransportConnectError,
    TransportReceiveError,
    TransportSendError,
)
from lifxctl.core.model import Device, Message, Reply

LOGGER = logging.getLogger(__name__)

LIFX_PORT = 56700
DEFAULT_BROADCAST = ("255.255.255.255", LIFX_PORT)
_RECV_BUFFER = 1024


def generate_source_id() -> int:
    # Sources 0 and 1 make devices broadcast their replies.
    return random.randint(2, 0xFFFFFFFF)


class UDPConnection:
    def __init__(
        self,
        broadcast_addr: tuple[str, int] = DEFAULT_BROADCAST,
        *,
        source: int | None = None,
        bind_addr: tuple[str, int] = ("", 0),
    ) -> None:
        self.broadcast_addr = broadcast_addr
        self.source = source if source is not None else generate_source_id()
        self._sequence = 0

        try:
            self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as exc:
            raise TransportConnectError(f"Could not create UDP socket: {exc}") from exc
        try:
            self._socket.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            self._socket.bind(bind_addr)
        except OSError as exc:
            self._socket.close()
            raise TransportConnectError(f"Could not bind UDP socket to {bind_addr}: {exc}") from exc
        self._closed = False
        LOGGER.debug("UDP connection bound to %s with source %d", self._socket.getsockname(), self.source)

    def __enter__(self) -> UDPConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _next_sequence(self) -> int:
        self._sequence = (self._sequence + 1) & 0xFF
        return self._sequence

    def _sendto(self, data: bytes, addr: tuple[str, int]) -> None:
        try:
            self._socket.sendto(data, addr)
        except OSError as exc:
            raise TransportSendError(f"UDP send to {addr[0]}:{addr[1]} failed: {exc}") from exc

    def send(self, message: Message, devices: Sequence[Device] | None = None) -> None:
        sequence = self._next_sequence()
        if devices is None:
            frame = encode_frame(message, source=self.source, sequence=sequence, target=BROADCAST_TARGET)
            LOGGER.debug("Broadcasting %s to %s:%d", message.name, *self.broadcast_addr)
            self._sendto(frame, self.broadcast_addr)
            return

        for device in devices:
            frame = encode_frame(message, source=self.source, sequence=sequence, target=device.target)
            LOGGER.debug("Sending %s to %s at %s:%d", message.name, device.mac_str, device.host, device.port)
            self._sendto(frame, (device.host, device.port))

    def receive(self, timeout_s: float | None) -> Iterator[Reply]:
        deadline = None if timeout_s is None else time.monotonic() + timeout_s
        while True:
            if deadline is None:
                self._socket.settimeout(None)
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return
                self._socket.settimeout(remaining)

            try:
                data, addr = self._socket.recvfrom(_RECV_BUFFER)
            except TimeoutError:
                return
            except OSError as exc:
                raise TransportReceiveError(f"UDP receive failed: {exc}") from exc

            try:
                frame = decode_frame(data)
            except FrameError as exc:
                LOGGER.debug("Dropping malformed frame from %s: %s", addr[0], exc)
                continue
            if frame.source != self.source:
                LOGGER.debug("Dropping frame from %s for foreign source %d", addr[0], frame.source)
                continue

            yield Reply(device=Device(mac=frame.mac, host=addr[0], port=addr[1]), frame=frame)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._socket.close()
