"""NWS forecast data models."""

from dataclasses import dataclass, field
from datetime import datetime

# A view maps a sanitized label to a record of display fields.
ForecastView = dict[str, dict[str, object]]


@dataclass(frozen=True)
class ForecastPeriod:
    name: str
    start_time: datetime
    is_daytime: bool
    temperature: float | int | None
    temperature_unit: str
    wind_speed: str
    wind_direction: str
    short_forecast: str
    detailed_forecast: str
    icon: str
    precipitation: int | float | None = None


@dataclass(frozen=True)
class CurrentObservation:
    temperature_c: float | None
    wind_speed_mph: float | None
    wind_direction_deg: float | None
    text_description: str
    icon: str
    timestamp: str = ""


@dataclass
class ForecastViews:
    """All views produced for one location in one cycle."""

    hourly_absolute: ForecastView = field(default_factory=dict)
    hourly_relative: ForecastView = field(default_factory=dict)
    day_night_absolute: ForecastView = field(default_factory=dict)
    day_night_relative: ForecastView = field(default_factory=dict)
    daily_absolute: ForecastView = field(default_factory=dict)
    daily_relative: ForecastView = field(default_factory=dict)
    current: dict[str, object] | None = None
