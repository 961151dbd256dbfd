"""End-to-end tests for the weather cycle with a mocked NWS API."""

import xml.etree.ElementTree as ET
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx

from wxfeed.config.schema import FeedConfig, GraphicTemplate, LocationConfig
from wxfeed.models.reporting import CycleKind
from wxfeed.pipeline.weather_cycle import WeatherCycle
from wxfeed.tests.conftest import NWS_BASE

GRID = f"{NWS_BASE}/gridpoints/OUN/97,94"
POINT = f"{NWS_BASE}/points/35.4676,-97.5164"
ALERTS_PARAMS = {"point": "35.4676,-97.5164"}

FORECAST_FILES = [
    "Oklahoma_City-HourlyForecast.xml",
    "Oklahoma_City-DayAndNightForecast.xml",
    "Oklahoma_City-DayAndNightForecast-Relative.xml",
    "Oklahoma_City-DailyForecast.xml",
    "Oklahoma_City-DailyForecast-Relative.xml",
    "Oklahoma_City-CurrentConditions.xml",
]
ALERT_FILES = [
    "Oklahoma_City-TornadoWarning-Alert.xml",
    "Oklahoma_City-SevereThunderstormWarning-Alert.xml",
    "Oklahoma_City-TornadoWatch-Alert.xml",
    "Oklahoma_City-SevereThunderstormWatch-Alert.xml",
]


def mock_location(point, daily, hourly, stations, observation):
    respx.get(POINT).mock(return_value=httpx.Response(200, json=point))
    respx.get(f"{GRID}/forecast").mock(return_value=httpx.Response(200, json=daily))
    respx.get(f"{GRID}/forecast/hourly").mock(return_value=httpx.Response(200, json=hourly))
    respx.get(f"{GRID}/stations").mock(return_value=httpx.Response(200, json=stations))
    if not isinstance(observation, httpx.Response):
        observation = httpx.Response(200, json=observation)
    respx.get(f"{NWS_BASE}/stations/KOKC/observations/latest").mock(return_value=observation)


def mock_alerts(response: httpx.Response):
    return respx.get(f"{NWS_BASE}/alerts/active", params=ALERTS_PARAMS).mock(
        return_value=response
    )


@pytest.fixture
def out_dir(feed_config: FeedConfig) -> Path:
    return Path(feed_config.output.root_dir)


@pytest.fixture
def payloads(point_payload, daily_payload, hourly_payload, stations_payload, observation_payload):
    return (point_payload, daily_payload, hourly_payload, stations_payload, observation_payload)


def run_cycle(config: FeedConfig, now, reporter=None):
    return WeatherCycle(config, reporter=reporter, now_fn=lambda: now).run()


class TestHappyPath:
    @respx.mock
    def test_writes_every_document(self, feed_config, payloads, alerts_payload, now, out_dir):
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json=alerts_payload))

        outcome = run_cycle(feed_config, now)

        assert outcome.cycle == CycleKind.WEATHER
        assert outcome.success_count == 1
        assert outcome.error_count == 0
        assert outcome.warning_count == 0
        assert outcome.ok
        assert sorted(p.name for p in (out_dir / "ForecastFiles").iterdir()) == sorted(FORECAST_FILES)
        assert sorted(p.name for p in (out_dir / "AlertFiles").iterdir()) == sorted(ALERT_FILES)

    @respx.mock
    def test_document_contents(self, feed_config, payloads, alerts_payload, now, out_dir):
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json=alerts_payload))

        run_cycle(feed_config, now)

        daily = ET.parse(out_dir / "ForecastFiles" / "Oklahoma_City-DailyForecast-Relative.xml")
        assert daily.find("Day1/High").text == "61"
        assert daily.find("CurrentConditions/Temperature").text == "50"
        warning = ET.parse(out_dir / "AlertFiles" / "Oklahoma_City-TornadoWarning-Alert.xml")
        assert warning.find("Event").text == "Tornado Emergency"
        watch = ET.parse(out_dir / "AlertFiles" / "Oklahoma_City-SevereThunderstormWatch-Alert.xml")
        assert watch.find("Event").text == "No alert in effect"

    @respx.mock
    def test_success_diagnostic(self, feed_config, payloads, alerts_payload, now):
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json=alerts_payload))
        reporter = MagicMock()

        run_cycle(feed_config, now, reporter)

        reporter.success.assert_called_once()
        assert reporter.success.call_args.args[0] == "weather.complete"
        reporter.error.assert_not_called()

    @respx.mock
    def test_graphics_rendered(self, feed_config, payloads, alerts_payload, now, out_dir):
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json=alerts_payload))
        config = feed_config.model_copy(
            update={
                "graphic_templates": [
                    GraphicTemplate(
                        name="OKC Temps",
                        template="{Oklahoma_City[Temperature]} now, high {Oklahoma_City[High]}",
                    )
                ]
            }
        )

        outcome = run_cycle(config, now)

        assert outcome.ok
        graphic = ET.parse(out_dir / "Graphics" / "OKC_Temps.xml")
        assert graphic.find("Text").text == "50 now, high 61"

    @respx.mock
    def test_broken_template_is_an_error(self, feed_config, payloads, alerts_payload, now):
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json=alerts_payload))
        config = feed_config.model_copy(
            update={"graphic_templates": [GraphicTemplate(name="Bad", template="{Tulsa[High]}")]}
        )

        outcome = run_cycle(config, now)

        assert outcome.success_count == 1
        assert outcome.error_count == 1


class TestLocationFailures:
    @respx.mock
    def test_no_coverage_is_a_warning(self, feed_config, alerts_payload, now, out_dir):
        point = respx.get(POINT).mock(return_value=httpx.Response(404))
        mock_alerts(httpx.Response(200, json=alerts_payload))
        reporter = MagicMock()

        outcome = run_cycle(feed_config, now, reporter)

        assert point.call_count == 1
        assert outcome.warning_count == 1
        assert outcome.error_count == 0
        assert outcome.success_count == 0
        assert outcome.first_error_message is None
        assert not (out_dir / "ForecastFiles").exists()
        assert len(list((out_dir / "AlertFiles").iterdir())) == 4
        reporter.warning.assert_called_once()
        reporter.error.assert_not_called()

    @respx.mock
    def test_exhausted_fetch_keeps_existing_files(
        self, feed_config, point_payload, alerts_payload, now, out_dir
    ):
        existing = out_dir / "ForecastFiles" / "Oklahoma_City-DailyForecast.xml"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"<DailyForecast>yesterday</DailyForecast>")
        respx.get(POINT).mock(return_value=httpx.Response(200, json=point_payload))
        daily = respx.get(f"{GRID}/forecast").mock(return_value=httpx.Response(500))
        mock_alerts(httpx.Response(200, json=alerts_payload))

        outcome = run_cycle(feed_config, now)

        assert daily.call_count == 3
        assert outcome.error_count == 1
        assert outcome.success_count == 0
        assert "Oklahoma City" in outcome.first_error_message
        assert existing.read_bytes() == b"<DailyForecast>yesterday</DailyForecast>"
        assert [p.name for p in existing.parent.iterdir()] == [existing.name]

    @respx.mock
    def test_malformed_forecast_is_an_error(
        self, feed_config, point_payload, hourly_payload, stations_payload,
        observation_payload, alerts_payload, now, out_dir,
    ):
        mock_location(
            point_payload, {"properties": {"periods": []}}, hourly_payload,
            stations_payload, observation_payload,
        )
        mock_alerts(httpx.Response(200, json=alerts_payload))

        outcome = run_cycle(feed_config, now)

        assert outcome.error_count == 1
        assert "malformed forecast" in outcome.first_error_message
        assert not (out_dir / "ForecastFiles").exists()

    @respx.mock
    def test_missing_observation_omits_current_file(
        self, feed_config, point_payload, daily_payload, hourly_payload,
        stations_payload, alerts_payload, now, out_dir,
    ):
        mock_location(
            point_payload, daily_payload, hourly_payload, stations_payload, httpx.Response(500)
        )
        mock_alerts(httpx.Response(200, json=alerts_payload))

        outcome = run_cycle(feed_config, now)

        assert outcome.success_count == 1
        assert outcome.warning_count == 1
        assert outcome.ok
        names = {p.name for p in (out_dir / "ForecastFiles").iterdir()}
        assert "Oklahoma_City-CurrentConditions.xml" not in names
        assert len(names) == 5

    @respx.mock
    def test_one_bad_location_does_not_stop_others(
        self, feed_config, payloads, alerts_payload, now, out_dir
    ):
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json=alerts_payload))
        respx.get(f"{NWS_BASE}/points/0.0,0.0").mock(return_value=httpx.Response(404))
        respx.get(f"{NWS_BASE}/alerts/active", params={"point": "0.0,0.0"}).mock(
            return_value=httpx.Response(200, json={"features": []})
        )
        config = feed_config.model_copy(
            update={
                "locations": [
                    LocationConfig(name="Null Island", latitude=0.0, longitude=0.0),
                    *feed_config.locations,
                ]
            }
        )

        outcome = run_cycle(config, now)

        assert outcome.success_count == 1
        assert outcome.warning_count == 1
        assert outcome.ok

    @respx.mock
    def test_write_failure_leaves_every_file_untouched(
        self, feed_config, payloads, alerts_payload, now, out_dir
    ):
        folder = out_dir / "ForecastFiles"
        folder.mkdir(parents=True)
        for name in FORECAST_FILES:
            (folder / name).write_bytes(b"<old/>")
        blocked = folder / FORECAST_FILES[2]
        blocked.unlink()
        blocked.mkdir()
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json=alerts_payload))

        outcome = run_cycle(feed_config, now)

        assert outcome.error_count == 1
        assert "could not write forecast files" in outcome.first_error_message
        files = [p for p in folder.iterdir() if p.is_file()]
        assert len(files) == 5
        assert all(p.read_bytes() == b"<old/>" for p in files)
        assert len(list((out_dir / "AlertFiles").iterdir())) == 4


class TestAlertFailures:
    @respx.mock
    def test_client_error_is_a_warning(self, feed_config, payloads, now, out_dir):
        mock_location(*payloads)
        mock_alerts(httpx.Response(400))

        outcome = run_cycle(feed_config, now)

        assert outcome.ok
        assert outcome.warning_count == 1
        assert not (out_dir / "AlertFiles").exists()

    @respx.mock
    def test_server_error_is_an_error(self, feed_config, payloads, now):
        mock_location(*payloads)
        route = mock_alerts(httpx.Response(503))

        outcome = run_cycle(feed_config, now)

        assert route.call_count == 3
        assert outcome.error_count == 1
        assert outcome.success_count == 1
        assert "alerts fetch failed" in outcome.first_error_message

    @respx.mock
    def test_malformed_list_means_no_alerts(self, feed_config, payloads, now, out_dir):
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json={"title": "no features here"}))

        outcome = run_cycle(feed_config, now)

        assert outcome.ok
        assert outcome.warning_count == 1
        files = sorted((out_dir / "AlertFiles").iterdir())
        assert len(files) == 4
        for path in files:
            assert ET.parse(path).find("Event").text == "No alert in effect"

    @respx.mock
    def test_mistyped_parameters_do_not_stop_cycle(self, feed_config, payloads, now, out_dir):
        mock_location(*payloads)
        feature = {
            "properties": {
                "event": "Tornado Warning",
                "status": "Actual",
                "sent": "2025-05-06T19:20:00-05:00",
                "parameters": ["oops"],
            }
        }
        mock_alerts(httpx.Response(200, json={"features": [feature]}))

        outcome = run_cycle(feed_config, now)

        assert outcome.ok
        warning = ET.parse(out_dir / "AlertFiles" / "Oklahoma_City-TornadoWarning-Alert.xml")
        assert warning.find("Event").text == "Tornado Warning"

    @respx.mock
    def test_unexpected_alert_failure_is_contained(
        self, feed_config, payloads, alerts_payload, now, out_dir
    ):
        mock_location(*payloads)
        mock_alerts(httpx.Response(200, json=alerts_payload))
        config = feed_config.model_copy(
            update={
                "graphic_templates": [
                    GraphicTemplate(name="OKC Temps", template="{Oklahoma_City[Temperature]}")
                ]
            }
        )

        with patch(
            "wxfeed.pipeline.weather_cycle.build_alert_records",
            side_effect=ValueError("bad alert"),
        ):
            outcome = run_cycle(config, now)

        assert outcome.error_count == 1
        assert outcome.success_count == 1
        assert "bad alert" in outcome.first_error_message
        assert (out_dir / "Graphics" / "OKC_Temps.xml").exists()
