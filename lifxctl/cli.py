"""Typer CLI entrypoint."""

from __future__ import annotations

import json
import logging
from typing import Any, NoReturn

import typer

from lifxctl.core.color import DEFAULT_KELVIN, color_assignments, hsbk_from_args
from lifxctl.core.config import InvocationOptions, resolve_options
from lifxctl.core.errors import InputError, LifxctlError
from lifxctl.core.model import Device, FieldSpec, ResponseSet
from lifxctl.core.service import LifxService

app = typer.Typer(help="Discover and control LIFX devices on the local network")

LABEL_MAX_BYTES = 32
ECHO_MAX_BYTES = 64
POWER_ON_LEVEL = 0xFFFF


def _build_service() -> LifxService:
    service = LifxService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _fail(exc: LifxctlError) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1) from None


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, bytes):
        return value.hex()
    return value


def _device_json(device: Device) -> dict[str, Any]:
    return {"Mac": device.mac_str, "Ip": device.host, "Port": device.port, "Service": device.service}


def render_responses(responses: ResponseSet, *, pretty: bool) -> str:
    entries: list[dict[str, Any]] = []
    for device, response in sorted(responses.items(), key=lambda item: item[0].mac):
        entry: dict[str, Any] = {"Device": _device_json(device)}
        if not response.is_ack and response.payload is not None:
            entry["Response"] = _jsonable(response.payload)
        entries.append(entry)
    return json.dumps(entries, indent=2 if pretty else None)


def _run(ctx: typer.Context, type_name: str, assignments: list[str]) -> None:
    options: InvocationOptions = ctx.obj
    try:
        service = _build_service()
        result = service.execute(type_name, assignments, options)
    except LifxctlError as exc:
        _fail(exc)
    if result.responses is not None:
        typer.echo(render_responses(result.responses, pretty=options.pretty))


def _power_level(arg: str) -> int:
    if arg in ("1", "on"):
        return POWER_ON_LEVEL
    if arg in ("0", "off"):
        return 0
    raise InputError(f"Power must be 'on' or 'off', got '{arg}'")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    label: list[str] | None = typer.Option(None, "--label", "-l", help="Only target devices with this label (repeatable)"),
    group: list[str] | None = typer.Option(None, "--group", "-g", help="Only target devices in this group (repeatable)"),
    mac: list[str] | None = typer.Option(None, "--mac", "-m", help="Only target the device with this MAC (repeatable)"),
    ip: list[str] | None = typer.Option(None, "--ip", "-i", help="Only target the device at this IP (repeatable)"),
    timeout: int | None = typer.Option(None, "--timeout", "-t", help="Wait bound in milliseconds; 0 = no timeout"),
    count: int | None = typer.Option(None, "--count", "-c", help="Stop discovery after this many devices; 0 = unlimited"),
    require_ack: bool = typer.Option(False, "--require-ack", "-a", help="Wait for acknowledgements only"),
    require_res: bool = typer.Option(False, "--require-res", "-r", help="Wait for the declared response type"),
    pretty: bool = typer.Option(False, "--pretty", "-p", help="Pretty-print JSON output"),
    broadcast_addr: str | None = typer.Option(None, "--broadcast-addr", help="Broadcast target as host[:port]"),
    type_name: str = typer.Option("GetService", "--type", help="Message type to send when no command is given"),
    payload: list[str] | None = typer.Option(None, "--payload", help="Payload assignment 'Field[:SubField...]:value' (repeatable)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    """Send --type with --payload, or run one of the commands below."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        ctx.obj = resolve_options(
            labels=label,
            groups=group,
            macs=mac,
            ips=ip,
            timeout_ms=timeout,
            count=count,
            require_ack=require_ack,
            require_res=require_res,
            pretty=True if pretty else None,
            broadcast_addr=broadcast_addr,
        )
    except LifxctlError as exc:
        _fail(exc)
    if ctx.invoked_subcommand is None:
        _run(ctx, type_name, payload or [])


_QUERIES = {
    "service": ("GetService", "Acquire responses from all devices on the network."),
    "hostinfo": ("GetHostInfo", "Get the host MCU information."),
    "hostfirmware": ("GetHostFirmware", "Get the host MCU firmware information."),
    "wifiinfo": ("GetWifiInfo", "Get the Wi-Fi subsystem information."),
    "wififirmware": ("GetWifiFirmware", "Get the Wi-Fi subsystem firmware."),
    "version": ("GetVersion", "Get the hardware version."),
    "info": ("GetInfo", "Get the run-time information."),
    "location": ("GetLocation", "Get the location information."),
    "group": ("GetGroup", "Get the group membership information."),
    "lightget": ("LightGet", "Get the light state."),
}


def _register_query(command: str, type_name: str, help_text: str) -> None:
    @app.command(command, help=help_text)
    def _query(ctx: typer.Context) -> None:
        _run(ctx, type_name, [])


for _command, (_type_name, _help) in _QUERIES.items():
    _register_query(_command, _type_name, _help)


@app.command("power")
def power(ctx: typer.Context, level: str | None = typer.Argument(None, help="on|off")) -> None:
    """Get or set the power level."""
    if level is None:
        _run(ctx, "GetPower", [])
        return
    try:
        value = _power_level(level)
    except InputError as exc:
        _fail(exc)
    _run(ctx, "SetPower", [f"Level:{value}"])


@app.command("label")
def label(ctx: typer.Context, text: str | None = typer.Argument(None)) -> None:
    """Get or set the label."""
    if text is None:
        _run(ctx, "GetLabel", [])
        return
    if len(text.encode("utf-8")) > LABEL_MAX_BYTES:
        _fail(InputError(f"Label exceeds {LABEL_MAX_BYTES} bytes"))
    _run(ctx, "SetLabel", [f"Label:{text}"])


@app.command("echo")
def echo(ctx: typer.Context, text: str = typer.Argument("")) -> None:
    """Request an arbitrary payload be echoed back."""
    if len(text.encode("utf-8")) > ECHO_MAX_BYTES:
        _fail(InputError(f"Payload exceeds {ECHO_MAX_BYTES} bytes"))
    _run(ctx, "EchoRequest", [f"Payload:{text}"])


@app.command("lightcolor")
def light_color(
    ctx: typer.Context,
    color: list[str] = typer.Argument(..., help="RRGGBB | H S B [K] | R G B (with --rgb)"),
    rgb: bool = typer.Option(False, "--rgb", help="The color values are red, green, and blue"),
    kelvin: int = typer.Option(DEFAULT_KELVIN, "--kelvin", "-k", help="Color temperature (Kelvin)"),
    duration: int = typer.Option(0, "--duration", "-d", min=0, help="Transition time in milliseconds"),
) -> None:
    """Set the light color from hex, HSBK, or RGB values."""
    try:
        hue, saturation, brightness, kelvin = hsbk_from_args(color, rgb=rgb, kelvin=kelvin)
    except InputError as exc:
        _fail(exc)
    _run(ctx, "LightSetColor", color_assignments(hue, saturation, brightness, kelvin, duration=duration))


@app.command("lightpower")
def light_power(
    ctx: typer.Context,
    level: str | None = typer.Argument(None, help="on|off"),
    duration: int = typer.Option(0, "--duration", "-d", min=0, help="Transition time in milliseconds"),
) -> None:
    """Get or set the light power level."""
    if level is None:
        _run(ctx, "LightGetPower", [])
        return
    try:
        value = _power_level(level)
    except InputError as exc:
        _fail(exc)
    _run(ctx, "LightSetPower", [f"Level:{value}", f"Duration:{duration}"])


@app.command("devices")
def list_devices(ctx: typer.Context) -> None:
    """List devices that pass discovery and the configured filters."""
    options: InvocationOptions = ctx.obj
    try:
        service = _build_service()
        devices = service.list_devices(options)
    except LifxctlError as exc:
        _fail(exc)
    if not devices:
        typer.echo("No devices found")
        return
    for device in sorted(devices, key=lambda d: d.mac):
        typer.echo(f"{device.mac_str} {device.host}:{device.port}")


def _field_paths(fields: tuple[FieldSpec, ...], prefix: str = "") -> list[str]:
    paths: list[str] = []
    for spec in fields:
        if spec.is_struct:
            paths.extend(_field_paths(spec.fields, f"{prefix}{spec.name}:"))
        else:
            size = f"[{spec.size}]" if spec.size else ""
            paths.append(f"{prefix}{spec.name}={spec.type}{size}")
    return paths


@app.command("types")
def list_types() -> None:
    """List known message types, their payload fields, and expected responses."""
    try:
        service = _build_service()
    except LifxctlError as exc:
        _fail(exc)
    for descriptor in service.list_types():
        response = descriptor.response or "-"
        typer.echo(f"{descriptor.name} ({descriptor.code}) -> {response}")
        for path in _field_paths(descriptor.payload or ()):
            typer.echo(f"  {path}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
