"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Protocol

from lifxctl.core.model import Device, Message, Reply


class Connection(Protocol):
    def send(self, message: Message, devices: Sequence[Device] | None = None) -> None:
        """Send once to each device, or broadcast when ``devices`` is None."""

    def receive(self, timeout_s: float | None) -> Iterator[Reply]:
        """Yield replies until ``timeout_s`` elapses; None waits without bound."""

    def close(self) -> None:
        """Release the underlying socket."""
