"""Shared test fixtures."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from wxfeed.config.schema import FeedConfig, LocationConfig, OutputConfig, PollingConfig

NWS_BASE = "https://test-nws.example.com"
CST = timezone(timedelta(hours=-6))


def make_period(
    number: int,
    start: datetime,
    is_daytime: bool,
    temperature: int = 50,
    unit: str = "F",
    wind_speed: str = "10 mph",
    wind_direction: str = "S",
    pop: int | None = 20,
    name: str = "",
    icon: str = "https://api.weather.gov/icons/land/day/few?size=small",
) -> dict:
    return {
        "number": number,
        "name": name or ("Today" if is_daytime else "Tonight"),
        "startTime": start.isoformat(),
        "isDaytime": is_daytime,
        "temperature": temperature,
        "temperatureUnit": unit,
        "probabilityOfPrecipitation": {"unitCode": "wmoUnit:percent", "value": pop},
        "windSpeed": wind_speed,
        "windDirection": wind_direction,
        "icon": icon,
        "shortForecast": "Sunny" if is_daytime else "Clear",
        "detailedForecast": f"Period {number} detail.",
    }


def forecast_payload(periods: list[dict]) -> dict:
    return {"type": "Feature", "properties": {"periods": periods}}


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 1, 5, 13, 30, tzinfo=CST)


@pytest.fixture
def hourly_payload(now: datetime) -> dict:
    """Three hourly periods starting with the current (daytime) hour."""
    base = now.replace(minute=0)
    return forecast_payload(
        [make_period(i + 1, base + timedelta(hours=i), True, temperature=60 + i) for i in range(3)]
    )


@pytest.fixture
def daily_payload(now: datetime) -> dict:
    """A day period followed by its night."""
    return forecast_payload(
        [
            make_period(1, now.replace(hour=6, minute=0), True, temperature=61,
                        wind_speed="5 to 10 mph", wind_direction="S", pop=10, name="Sunday"),
            make_period(2, now.replace(hour=18, minute=0), False, temperature=38,
                        wind_speed="15 mph", wind_direction="NW", pop=30, name="Sunday Night",
                        icon="https://api.weather.gov/icons/land/night/rain,30?size=small"),
        ]
    )


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def observation_payload(fixtures_dir: Path) -> dict:
    with open(fixtures_dir / "nws_observation.json") as f:
        return json.load(f)


@pytest.fixture
def alerts_payload(fixtures_dir: Path) -> dict:
    with open(fixtures_dir / "nws_alerts.json") as f:
        return json.load(f)


@pytest.fixture
def point_payload() -> dict:
    return {
        "properties": {
            "forecast": f"{NWS_BASE}/gridpoints/OUN/97,94/forecast",
            "forecastHourly": f"{NWS_BASE}/gridpoints/OUN/97,94/forecast/hourly",
            "observationStations": f"{NWS_BASE}/gridpoints/OUN/97,94/stations",
        }
    }


@pytest.fixture
def stations_payload() -> dict:
    return {
        "features": [
            {"properties": {"stationIdentifier": "KOKC", "name": "Oklahoma City"}}
        ]
    }


@pytest.fixture
def feed_config(tmp_path: Path) -> FeedConfig:
    """One location, fast retries, output under tmp_path."""
    return FeedConfig(
        polling=PollingConfig(weather_retry_step_seconds=0.0, image_retry_step_seconds=0.0),
        nws={"base_url": NWS_BASE, "user_agent": "wxfeed-test"},
        output=OutputConfig(root_dir=str(tmp_path / "out"), icons_dir="C:/Graphics/icons"),
        locations=[LocationConfig(name="Oklahoma City", latitude=35.4676, longitude=-97.5164)],
    )


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "polling": {"weather_interval_seconds": 120},
        "locations": [{"name": "Norman", "latitude": 35.2226, "longitude": -97.4395}],
        "images": [{"name": "Radar", "url": "https://radar.example.com/loop.gif"}],
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


@pytest.fixture
def tmp_data(tmp_path, monkeypatch):
    """Redirect PID/state files and cycle logs to temp directory."""
    pid_file = tmp_path / "daemon.pid"
    state_file = tmp_path / "daemon_state.json"
    monkeypatch.setattr("wxfeed.daemon.PID_FILE", pid_file)
    monkeypatch.setattr("wxfeed.daemon.PID_DIR", tmp_path)
    monkeypatch.setattr("wxfeed.daemon.STATE_FILE", state_file)
    monkeypatch.setattr("wxfeed.daemon.LOG_DIR", tmp_path / "logs")
    return {"pid": pid_file, "state": state_file, "dir": tmp_path, "logs": tmp_path / "logs"}
