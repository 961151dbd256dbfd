"""Normalize NWS forecast payloads into labeled, denormalized views.

Each location yields an hourly view, a day/night view and a merged daily
view, each keyed both by absolute date labels and by relative labels, plus
a current-conditions record built from the latest station observation.
"""

import logging
import re
from datetime import datetime
from pathlib import Path

from wxfeed.models.common import parse_timestamp, utc_now
from wxfeed.models.forecast import (
    CurrentObservation,
    ForecastPeriod,
    ForecastView,
    ForecastViews,
)
from wxfeed.transform import labels
from wxfeed.transform.units import (
    celsius_string_to_fahrenheit,
    celsius_to_fahrenheit,
    extract_wind_speed_number,
    format_precipitation_display,
    kmh_to_mph,
    ms_to_mph,
    wind_degrees_to_compass,
)

logger = logging.getLogger(__name__)

CURRENT_CONDITIONS_KEY = "CurrentConditions"
CALM = "Calm"

_ICON_JUNK = re.compile(r"[\d,]")


class ForecastTransformError(Exception):
    """Raised when an upstream payload lacks the data a view is built from."""


# ── Parsing ─────────────────────────────────────────────────────


def parse_periods(raw: dict | None, source: str) -> list[ForecastPeriod]:
    """Parse ``properties.periods`` from a gridpoint forecast response."""
    properties = raw.get("properties") if isinstance(raw, dict) else None
    periods = properties.get("periods") if isinstance(properties, dict) else None
    if not isinstance(periods, list) or not periods:
        raise ForecastTransformError(f"{source} forecast has no periods")

    parsed: list[ForecastPeriod] = []
    for p in periods:
        start = parse_timestamp(p.get("startTime"))
        if start is None:
            raise ForecastTransformError(
                f"{source} period {p.get('number', '?')} has no valid startTime"
            )
        temperature, unit = _split_temperature(
            p.get("temperature"), p.get("temperatureUnit", "F")
        )
        pop = p.get("probabilityOfPrecipitation")
        parsed.append(
            ForecastPeriod(
                name=p.get("name") or "",
                start_time=start,
                is_daytime=bool(p.get("isDaytime", False)),
                temperature=temperature,
                temperature_unit=unit,
                wind_speed=p.get("windSpeed") or "",
                wind_direction=p.get("windDirection") or "",
                short_forecast=p.get("shortForecast") or "",
                detailed_forecast=p.get("detailedForecast") or "",
                icon=p.get("icon") or "",
                precipitation=pop.get("value") if isinstance(pop, dict) else None,
            )
        )
    return parsed


def _split_temperature(value, unit: str | None) -> tuple[float | int | None, str]:
    # Newer API responses wrap values as {"unitCode": "wmoUnit:degC", "value": 21}
    if isinstance(value, dict):
        code = value.get("unitCode", "")
        return value.get("value"), "C" if code.endswith("degC") else "F"
    return value, (unit or "F")


def parse_observation(raw: dict | None) -> CurrentObservation | None:
    """Parse a ``/stations/{id}/observations/latest`` response, if usable."""
    properties = raw.get("properties") if isinstance(raw, dict) else None
    if not isinstance(properties, dict):
        return None

    wind = properties.get("windSpeed") or {}
    wind_value = wind.get("value")
    if wind.get("unitCode", "").endswith("m_s-1"):
        wind_mph = ms_to_mph(wind_value)
    else:
        wind_mph = kmh_to_mph(wind_value)

    return CurrentObservation(
        temperature_c=(properties.get("temperature") or {}).get("value"),
        wind_speed_mph=wind_mph,
        wind_direction_deg=(properties.get("windDirection") or {}).get("value"),
        text_description=properties.get("textDescription") or "",
        icon=properties.get("icon") or "",
        timestamp=properties.get("timestamp") or "",
    )


# ── Field helpers ───────────────────────────────────────────────


def icon_path(url: str, icons_dir: str, extension: str = ".png") -> str:
    """Map an NWS icon URL to a file in the local icon set.

    ``.../icons/land/night/tsra_hi,40?size=medium`` -> ``{icons_dir}/night/tsra_hi.png``
    """
    if not url:
        return ""
    name = url.rsplit("/", 1)[-1].split("?", 1)[0]
    name = _ICON_JUNK.sub("", name)
    if not name.endswith(extension):
        name += extension
    if "/night/" in url:
        name = f"night/{name}"
    return str(Path(icons_dir) / name)


def period_temperature(period: ForecastPeriod):
    value = period.temperature
    if period.temperature_unit.upper() == "C" and not isinstance(value, str):
        value = f"{value}C"
    converted = celsius_string_to_fahrenheit(value)
    if isinstance(converted, (int, float)):
        return round(converted)
    return converted


def _max_precipitation(*values):
    present = [v for v in values if v is not None]
    return max(present) if present else None


# ── Views ───────────────────────────────────────────────────────


class ForecastTransformer:
    def __init__(self, icons_dir: str = "icons", icon_extension: str = ".png"):
        self.icons_dir = icons_dir
        self.icon_extension = icon_extension

    def transform(
        self,
        hourly_raw: dict | None,
        daily_raw: dict | None,
        observation_raw: dict | None = None,
        now: datetime | None = None,
    ) -> ForecastViews:
        """Build every view for one location.

        Raises ForecastTransformError before producing anything if either
        forecast payload is unusable, so no partial output reaches disk.
        """
        if now is None:
            now = utc_now()
        hourly = parse_periods(hourly_raw, "hourly")
        daily = parse_periods(daily_raw, "daily")
        observation = parse_observation(observation_raw)

        views = ForecastViews()
        views.hourly_absolute, views.hourly_relative = self.hourly_view(hourly, now)
        views.day_night_absolute, views.day_night_relative = self.day_night_view(daily)
        views.daily_absolute, views.daily_relative = self.daily_view(daily)

        if observation is not None:
            views.current = self.current_record(observation)
            views.daily_absolute[CURRENT_CONDITIONS_KEY] = dict(views.current)
            views.daily_relative[CURRENT_CONDITIONS_KEY] = dict(views.current)
        return views

    def _icon(self, url: str) -> str:
        return icon_path(url, self.icons_dir, self.icon_extension)

    def hourly_view(
        self, periods: list[ForecastPeriod], now: datetime
    ) -> tuple[ForecastView, ForecastView]:
        absolute: ForecastView = {}
        relative: ForecastView = {}
        # Only the latest period that has already started is "Now"; older hours are stale.
        started = [p for p in periods if p.start_time <= now]
        if len(started) > 1:
            current = max(started, key=lambda p: p.start_time)
            logger.debug("Dropping %d stale hourly periods", len(started) - 1)
            periods = [p for p in periods if p is current or p.start_time > now]
        for p in periods:
            record = {
                "DisplayName": labels.hour_label(p.start_time),
                "Weekday": labels.weekday_abbrev(p.start_time),
                "Temperature": period_temperature(p),
                "Unit": "F",
                "WindSpeed": p.wind_speed,
                "WindDirection": p.wind_direction,
                "Condition": p.short_forecast,
                "Icon": self._icon(p.icon),
            }
            absolute[labels.absolute_hourly_label(p.start_time)] = record
            relative[labels.relative_hourly_label(p.start_time, now)] = dict(record)
        return absolute, relative

    def day_night_view(
        self, periods: list[ForecastPeriod]
    ) -> tuple[ForecastView, ForecastView]:
        absolute: ForecastView = {}
        relative: ForecastView = {}
        counter = labels.DayNightCounter()
        for p in periods:
            relative_label = counter.next_label(p.is_daytime)
            if relative_label is None:
                continue
            record = {
                "Name": p.name,
                "Weekday": labels.weekday_abbrev(p.start_time),
                "Temperature": period_temperature(p),
                "Unit": "F",
                "WindSpeed": p.wind_speed,
                "WindDirection": p.wind_direction,
                "Condition": p.short_forecast,
                "DetailedForecast": p.detailed_forecast,
                "Precipitation": format_precipitation_display(p.precipitation),
                "Icon": self._icon(p.icon),
            }
            absolute[labels.absolute_day_night_label(p.start_time)] = record
            relative[relative_label] = dict(record)
        return absolute, relative

    def daily_view(
        self, periods: list[ForecastPeriod]
    ) -> tuple[ForecastView, ForecastView]:
        absolute: ForecastView = {}
        relative: ForecastView = {}
        i = 1 if periods and not periods[0].is_daytime else 0
        day_number = 0
        while i + 1 < len(periods):
            day, night = periods[i], periods[i + 1]
            if not day.is_daytime or night.is_daytime:
                logger.debug("Unpaired period %r at index %d, skipping", day.name, i)
                i += 1
                continue
            day_number += 1
            record = self.merge_day_night(day, night)
            absolute[labels.absolute_daily_label(day.start_time)] = record
            relative[f"Day{day_number}"] = dict(record)
            i += 2
        return absolute, relative

    def merge_day_night(
        self, day: ForecastPeriod, night: ForecastPeriod
    ) -> dict[str, object]:
        day_wind = extract_wind_speed_number(day.wind_speed)
        night_wind = extract_wind_speed_number(night.wind_speed)
        if night_wind > day_wind:
            wind, direction = night_wind, night.wind_direction
        else:
            wind, direction = day_wind, day.wind_direction
        return {
            "Name": day.name,
            "Weekday": labels.weekday_abbrev(day.start_time),
            "High": period_temperature(day),
            "Low": period_temperature(night),
            "Unit": "F",
            "WindSpeed": f"{wind} mph",
            "WindDirection": direction,
            "Precipitation": format_precipitation_display(
                _max_precipitation(day.precipitation, night.precipitation)
            ),
            "Condition": day.short_forecast,
            "NightCondition": night.short_forecast,
            "DayForecast": day.detailed_forecast,
            "NightForecast": night.detailed_forecast,
            "DayIcon": self._icon(day.icon),
            "NightIcon": self._icon(night.icon),
        }

    def current_record(self, observation: CurrentObservation) -> dict[str, object]:
        fahrenheit = celsius_to_fahrenheit(observation.temperature_c)
        wind = observation.wind_speed_mph
        wind_text = CALM if wind is None or round(wind) == 0 else round(wind)
        return {
            "Temperature": round(fahrenheit) if fahrenheit is not None else "",
            "Unit": "F",
            "WindSpeed": wind_text,
            "WindDirection": wind_degrees_to_compass(observation.wind_direction_deg),
            "Condition": observation.text_description,
            "Icon": self._icon(observation.icon),
            "Observed": observation.timestamp,
        }
