"""User config file loading and the per-invocation options struct."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lifxctl.core.documents import config_home, normalize_bool, read_yaml, validate_document
from lifxctl.core.errors import ConfigLoadError, ConfigValidationError
from lifxctl.core.whitelist import Whitelist
from lifxctl.transports.udp import DEFAULT_BROADCAST, LIFX_PORT

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 1000
_SCHEMA = "config.schema.json"


@dataclass(frozen=True)
class InvocationOptions:
    whitelist: Whitelist = field(default_factory=Whitelist)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    require_ack: bool = False
    require_res: bool = False
    pretty: bool = False
    broadcast_addr: tuple[str, int] = DEFAULT_BROADCAST

    @property
    def timeout_s(self) -> float | None:
        """Timeout in seconds; 0 ms means no timeout."""
        if self.timeout_ms == 0:
            return None
        return self.timeout_ms / 1000


def config_path() -> Path:
    return config_home() / "config.yaml"


def load_user_config(path: Path | None = None) -> dict[str, Any]:
    path = path or config_path()
    if not path.is_file():
        return {}
    doc = read_yaml(path, load_error=ConfigLoadError, validation_error=ConfigValidationError)
    validate_document(doc, _SCHEMA, path, validation_error=ConfigValidationError)
    if "pretty" in doc:
        doc["pretty"] = normalize_bool(doc["pretty"], context="pretty", validation_error=ConfigValidationError)
    LOGGER.debug("Loaded config from %s", path)
    return doc


def parse_broadcast_addr(text: str) -> tuple[str, int]:
    host, sep, port_text = text.strip().rpartition(":")
    if not sep:
        host, port_text = port_text, str(LIFX_PORT)
    if not host:
        raise ConfigValidationError(f"Broadcast address '{text}' has no host")
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ConfigValidationError(f"Broadcast address '{text}' has an invalid port") from exc
    if not 0 < port < 65536:
        raise ConfigValidationError(f"Broadcast port {port} is out of the range 1-65535")
    return host, port


def _pick(cli_value: Sequence[str] | None, config: dict[str, Any], key: str) -> Sequence[str]:
    if cli_value:
        return cli_value
    return config.get(key, ())


def resolve_options(
    *,
    labels: Sequence[str] | None = None,
    groups: Sequence[str] | None = None,
    macs: Sequence[str] | None = None,
    ips: Sequence[str] | None = None,
    timeout_ms: int | None = None,
    count: int | None = None,
    require_ack: bool = False,
    require_res: bool = False,
    pretty: bool | None = None,
    broadcast_addr: str | None = None,
    config: dict[str, Any] | None = None,
) -> InvocationOptions:
    """Layer command-line values over the user config file and defaults."""
    config = config if config is not None else load_user_config()

    if timeout_ms is None:
        timeout_ms = config.get("timeout_ms", DEFAULT_TIMEOUT_MS)
    if timeout_ms < 0:
        raise ConfigValidationError(f"Timeout {timeout_ms} is invalid; use 0 for no timeout")

    if count is None:
        count = config.get("count", 0)
    if count < 0:
        raise ConfigValidationError(f"Count {count} is invalid; use 0 for unlimited")

    addr = broadcast_addr or config.get("broadcast_addr")
    return InvocationOptions(
        whitelist=Whitelist.parse(
            macs=_pick(macs, config, "macs"),
            ips=_pick(ips, config, "ips"),
            labels=_pick(labels, config, "labels"),
            groups=_pick(groups, config, "groups"),
            count=count,
        ),
        timeout_ms=timeout_ms,
        require_ack=require_ack,
        require_res=require_res,
        pretty=pretty if pretty is not None else config.get("pretty", False),
        broadcast_addr=parse_broadcast_addr(addr) if addr else DEFAULT_BROADCAST,
    )
