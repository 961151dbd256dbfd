"""Unit conversions and display rules for forecast values."""

import re

PRECIP_PLACEHOLDER = "\u00a0"  # non-breaking space, renders as nothing on air
PRECIP_MIN_DISPLAY = 15

_LEADING_NUMBER = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")
_FIRST_INTEGER = re.compile(r"\d+")

# (lower inclusive, upper exclusive, point). ENE stops short at 75.
_COMPASS_BANDS: list[tuple[float, float, str]] = [
    (11.25, 33.75, "NNE"),
    (33.75, 56.25, "NE"),
    (56.25, 75.0, "ENE"),
    (78.75, 101.25, "E"),
    (101.25, 123.75, "ESE"),
    (123.75, 146.25, "SE"),
    (146.25, 168.75, "SSE"),
    (168.75, 191.25, "S"),
    (191.25, 213.75, "SSW"),
    (213.75, 236.25, "SW"),
    (236.25, 258.75, "WSW"),
    (258.75, 281.25, "W"),
    (281.25, 303.75, "WNW"),
    (303.75, 326.25, "NW"),
    (326.25, 348.75, "NNW"),
]
# Inherited from the upstream lookup table; consumers already rely on it.
_COMPASS_GAP = (75.0, 90.0)


def celsius_string_to_fahrenheit(value):
    """Convert strings like ``"21C"`` to Fahrenheit; pass anything else through."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text.endswith("C"):
        return value
    match = _LEADING_NUMBER.match(text[:-1])
    if match is None:
        return value
    return float(match.group(1)) * 9 / 5 + 32


def celsius_to_fahrenheit(value: float | None) -> float | None:
    if value is None:
        return None
    return value * 9 / 5 + 32


def kmh_to_mph(value: float | None) -> float | None:
    if value is None:
        return None
    return value / 1.609344


def ms_to_mph(value: float | None) -> float | None:
    if value is None:
        return None
    return value * 2.2369362920544


def wind_degrees_to_compass(deg: float | None) -> str:
    if deg is None:
        return ""
    deg = float(deg) % 360
    if _COMPASS_GAP[0] <= deg <= _COMPASS_GAP[1]:
        return ""
    if deg >= 348.75 or deg < 11.25:
        return "N"
    for low, high, point in _COMPASS_BANDS:
        if low <= deg < high:
            return point
    return ""


def extract_wind_speed_number(text) -> int:
    """First integer embedded in a wind speed string ("10 to 15 mph" -> 10)."""
    if text is None:
        return 0
    match = _FIRST_INTEGER.search(str(text))
    return int(match.group()) if match else 0


def format_precipitation_display(value) -> str:
    if value is None or value < PRECIP_MIN_DISPLAY:
        return PRECIP_PLACEHOLDER
    return f"{value}%"
