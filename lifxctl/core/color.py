"""Conversions from user-facing colour values to protocol HSBK encodings.

Every fractional component is scaled to the destination width with the single
rule ``int(fraction * maximum + SCALE_ROUNDING_BIAS)``.
"""

from __future__ import annotations

from collections.abc import Sequence

from lifxctl.core.errors import ColorError

SCALE_ROUNDING_BIAS = 0.5
UINT16_MAX = 0xFFFF
KELVIN_MIN = 2500
KELVIN_MAX = 9000
DEFAULT_KELVIN = 3500


def scale_fraction(fraction: float, maximum: int = UINT16_MAX) -> int:
    return int(fraction * maximum + SCALE_ROUNDING_BIAS)


def degrees_to_uint16(degrees: float) -> int:
    if not 0 <= degrees <= 360:
        raise ColorError(f"Hue {degrees} is out of the range 0-360")
    return scale_fraction(degrees / 360)


def percent_to_uint16(percent: float, *, name: str = "Value") -> int:
    if not 0 <= percent <= 100:
        raise ColorError(f"{name} {percent} is out of the range 0-100")
    return scale_fraction(percent / 100)


def check_kelvin(kelvin: int) -> int:
    if not KELVIN_MIN <= kelvin <= KELVIN_MAX:
        raise ColorError(
            f"Color temperature (Kelvin) {kelvin} is out of the range {KELVIN_MIN}-{KELVIN_MAX}"
        )
    return kelvin


def parse_hex(text: str) -> tuple[int, int, int]:
    digits = text.strip().lstrip("#")
    if len(digits) != 6:
        raise ColorError(f"Hex color '{text}' must have exactly 6 hex digits")
    try:
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    except ValueError as exc:
        raise ColorError(f"Hex color '{text}' must contain only [0-9a-f]") from exc


def rgb_to_hsbk(red: int, green: int, blue: int) -> tuple[int, int, int]:
    """Convert an 8-bit RGB triple to 16-bit hue, saturation, and lightness."""
    for channel in (red, green, blue):
        if not 0 <= channel <= 255:
            raise ColorError(f"RGB component {channel} is out of the range 0-255")

    r, g, b = red / 255, green / 255, blue / 255
    high = max(r, g, b)
    low = min(r, g, b)
    lightness = (high + low) / 2
    delta = high - low

    if delta == 0:
        hue = saturation = 0.0
    else:
        saturation = delta / (1 - abs(2 * lightness - 1))
        if high == r:
            hue = (g - b) / delta + (6 if g < b else 0)
        elif high == g:
            hue = (b - r) / delta + 2
        else:
            hue = (r - g) / delta + 4
        hue /= 6

    return scale_fraction(hue), scale_fraction(saturation), scale_fraction(lightness)


def _parse_number(text: str, what: str) -> int:
    try:
        return int(text)
    except ValueError as exc:
        raise ColorError(f"{what} '{text}' is not an integer") from exc


def hsbk_from_args(
    args: Sequence[str],
    *,
    rgb: bool = False,
    kelvin: int = DEFAULT_KELVIN,
) -> tuple[int, int, int, int]:
    """Resolve ``RRGGBB``, ``R G B`` (with ``rgb``), or ``H S B [K]`` into HSBK."""
    check_kelvin(kelvin)

    if not args:
        raise ColorError("No color supplied")
    if len(args) == 1:
        return (*rgb_to_hsbk(*parse_hex(args[0])), kelvin)
    if rgb:
        if len(args) != 3:
            raise ColorError("Red, green, and/or blue not supplied")
        red, green, blue = (_parse_number(a, "RGB component") for a in args)
        return (*rgb_to_hsbk(red, green, blue), kelvin)
    if len(args) in (3, 4):
        hue = degrees_to_uint16(_parse_number(args[0], "Hue"))
        saturation = percent_to_uint16(_parse_number(args[1], "Saturation"), name="Saturation")
        brightness = percent_to_uint16(_parse_number(args[2], "Brightness"), name="Brightness")
        if len(args) == 4:
            kelvin = check_kelvin(_parse_number(args[3], "Kelvin"))
        return hue, saturation, brightness, kelvin
    raise ColorError("Invalid color supplied")


def color_assignments(
    hue: int,
    saturation: int,
    brightness: int,
    kelvin: int,
    *,
    duration: int = 0,
) -> list[str]:
    return [
        f"Color:Hue:{hue}",
        f"Color:Saturation:{saturation}",
        f"Color:Brightness:{brightness}",
        f"Color:Kelvin:{kelvin}",
        f"Duration:{duration}",
    ]
