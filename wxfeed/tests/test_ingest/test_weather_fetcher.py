"""Tests for the point -> forecast -> station walk."""

from unittest.mock import patch

import httpx
import pytest
import respx

from wxfeed.config.schema import LocationConfig
from wxfeed.ingest.nws_client import NwsClient, NwsClientError, NwsNotFoundError
from wxfeed.ingest.weather_fetcher import WeatherFetcher
from wxfeed.tests.conftest import NWS_BASE

OKC = LocationConfig(name="Oklahoma City", latitude=35.4676, longitude=-97.5164)
GRID = f"{NWS_BASE}/gridpoints/OUN/97,94"


@pytest.fixture
def fetcher() -> WeatherFetcher:
    return WeatherFetcher(NwsClient(base_url=NWS_BASE, retry_step=0.0))


def mock_forecasts(point_payload, daily_payload, hourly_payload):
    respx.get(f"{NWS_BASE}/points/35.4676,-97.5164").mock(
        return_value=httpx.Response(200, json=point_payload)
    )
    respx.get(f"{GRID}/forecast").mock(return_value=httpx.Response(200, json=daily_payload))
    respx.get(f"{GRID}/forecast/hourly").mock(
        return_value=httpx.Response(200, json=hourly_payload)
    )


class TestFetch:
    @respx.mock
    def test_full_walk(
        self, fetcher, point_payload, daily_payload, hourly_payload,
        stations_payload, observation_payload,
    ):
        mock_forecasts(point_payload, daily_payload, hourly_payload)
        respx.get(f"{GRID}/stations").mock(
            return_value=httpx.Response(200, json=stations_payload)
        )
        respx.get(f"{NWS_BASE}/stations/KOKC/observations/latest").mock(
            return_value=httpx.Response(200, json=observation_payload)
        )

        payload = fetcher.fetch(OKC)
        assert payload.daily == daily_payload
        assert payload.hourly == hourly_payload
        assert payload.station_id == "KOKC"
        assert payload.observation == observation_payload
        assert payload.warnings == []

    @respx.mock
    def test_station_from_id_list(
        self, fetcher, point_payload, daily_payload, hourly_payload, observation_payload
    ):
        mock_forecasts(point_payload, daily_payload, hourly_payload)
        respx.get(f"{GRID}/stations").mock(
            return_value=httpx.Response(
                200, json={"observationStations": [f"{NWS_BASE}/stations/KPWA"]}
            )
        )
        respx.get(f"{NWS_BASE}/stations/KPWA/observations/latest").mock(
            return_value=httpx.Response(200, json=observation_payload)
        )

        assert fetcher.fetch(OKC).station_id == "KPWA"

    @respx.mock
    def test_observation_failure_is_a_warning(
        self, fetcher, point_payload, daily_payload, hourly_payload, stations_payload
    ):
        mock_forecasts(point_payload, daily_payload, hourly_payload)
        respx.get(f"{GRID}/stations").mock(
            return_value=httpx.Response(200, json=stations_payload)
        )
        respx.get(f"{NWS_BASE}/stations/KOKC/observations/latest").mock(
            return_value=httpx.Response(500)
        )

        with patch("wxfeed.ingest.nws_client.time.sleep"):
            payload = fetcher.fetch(OKC)
        assert payload.observation is None
        assert len(payload.warnings) == 1
        assert "Current conditions unavailable" in payload.warnings[0]

    @respx.mock
    def test_no_stations_listed(self, fetcher, daily_payload, hourly_payload):
        point = {
            "properties": {
                "forecast": f"{GRID}/forecast",
                "forecastHourly": f"{GRID}/forecast/hourly",
            }
        }
        mock_forecasts(point, daily_payload, hourly_payload)

        payload = fetcher.fetch(OKC)
        assert payload.observation is None
        assert payload.warnings

    @respx.mock
    def test_no_coverage(self, fetcher):
        respx.get(f"{NWS_BASE}/points/35.4676,-97.5164").mock(return_value=httpx.Response(404))

        with pytest.raises(NwsNotFoundError):
            fetcher.fetch(OKC)

    @respx.mock
    def test_point_without_forecast_urls(self, fetcher):
        respx.get(f"{NWS_BASE}/points/35.4676,-97.5164").mock(
            return_value=httpx.Response(200, json={"properties": {}})
        )

        with pytest.raises(NwsClientError, match="missing forecast URLs"):
            fetcher.fetch(OKC)

    @respx.mock
    def test_forecast_failure_propagates(self, fetcher, point_payload):
        respx.get(f"{NWS_BASE}/points/35.4676,-97.5164").mock(
            return_value=httpx.Response(200, json=point_payload)
        )
        respx.get(f"{GRID}/forecast").mock(return_value=httpx.Response(500))

        with pytest.raises(NwsClientError):
            fetcher.fetch(OKC)
