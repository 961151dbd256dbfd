"""Weather cycle: every location, then alerts, then graphic templates."""

import logging
import time
from collections.abc import Callable
from datetime import datetime

from wxfeed.config.schema import FeedConfig, LocationConfig
from wxfeed.ingest.nws_client import NwsClient, NwsClientError, NwsNotFoundError
from wxfeed.ingest.weather_fetcher import WeatherFetcher
from wxfeed.models.common import utc_now
from wxfeed.models.forecast import ForecastViews
from wxfeed.models.reporting import CycleKind, CycleOutcome
from wxfeed.output import graphics
from wxfeed.output.xml_writer import OutputWriter, build_simple_document
from wxfeed.reporting.cycle_recorder import CycleRecorder
from wxfeed.reporting.diagnostics import DiagnosticsReporter
from wxfeed.reporting.formatters import format_outcome_text
from wxfeed.transform.alerts import AlertParseError, build_alert_records, parse_alerts
from wxfeed.transform.forecast import ForecastTransformer, ForecastTransformError
from wxfeed.transform.tags import sanitize, sanitize_filename

logger = logging.getLogger(__name__)


class WeatherCycle:
    """One pass over a config snapshot. Never raises; returns a CycleOutcome."""

    def __init__(
        self,
        config: FeedConfig,
        reporter: DiagnosticsReporter | None = None,
        nws_client: NwsClient | None = None,
        writer: OutputWriter | None = None,
        now_fn: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        polling = config.polling
        self.nws = nws_client or NwsClient(
            base_url=config.nws.base_url,
            user_agent=config.nws.user_agent,
            timeout=polling.request_timeout_seconds,
            max_attempts=polling.max_attempts,
            retry_step=polling.weather_retry_step_seconds,
        )
        self.fetcher = WeatherFetcher(self.nws)
        self.transformer = ForecastTransformer(
            icons_dir=config.output.icons_dir,
            icon_extension=config.output.icon_extension,
        )
        self.writer = writer or OutputWriter(config.output)
        self.reporter = reporter or DiagnosticsReporter.from_config(config.diagnostics)
        self.now_fn = now_fn

    def run(self) -> CycleOutcome:
        start_time = time.monotonic()
        recorder = CycleRecorder(CycleKind.WEATHER, self.reporter)
        logger.info("Weather cycle starting for %d locations", len(self.config.locations))

        context: dict[str, dict] = {}
        for location in self.config.locations:
            views = self._process_location(location, recorder)
            if views is not None:
                context[sanitize(location.name)] = _graphic_fields(location, views)

        for location in self.config.locations:
            self._process_alerts(location, recorder)

        self._render_graphics(context, recorder)

        recorder.record_duration(time.monotonic() - start_time)
        outcome = recorder.finalize()
        logger.info("\n%s", format_outcome_text(outcome))
        return outcome

    def _process_location(
        self, location: LocationConfig, recorder: CycleRecorder
    ) -> ForecastViews | None:
        scope = f"weather:{location.name}"
        try:
            payload = self.fetcher.fetch(location)
        except NwsNotFoundError as e:
            recorder.record_warning(f"{location.name}: no NWS coverage for this point ({e})", scope)
            return None
        except NwsClientError as e:
            recorder.record_error(f"{location.name}: weather fetch failed: {e}", scope)
            return None

        for warning in payload.warnings:
            recorder.record_warning(warning, scope)

        try:
            views = self.transformer.transform(
                payload.hourly, payload.daily, payload.observation, now=self.now_fn()
            )
            documents = self.writer.forecast_documents(location.name, views)
            self.writer.write_all(documents)
        except ForecastTransformError as e:
            recorder.record_error(f"{location.name}: malformed forecast: {e}", scope)
            return None
        except OSError as e:
            recorder.record_error(f"{location.name}: could not write forecast files: {e}", scope)
            return None
        except Exception as e:
            logger.exception("Unexpected failure processing %s", location.name)
            recorder.record_error(f"{location.name}: {e}", scope)
            return None

        recorder.record_success(location.name)
        return views

    def _process_alerts(self, location: LocationConfig, recorder: CycleRecorder) -> None:
        scope = f"alerts:{location.name}"
        try:
            raw = self.nws.get_active_alerts(location.latitude, location.longitude)
        except NwsClientError as e:
            if e.status_code is not None and 400 <= e.status_code < 500:
                recorder.record_warning(f"{location.name}: alerts unavailable ({e})", scope)
            else:
                recorder.record_error(f"{location.name}: alerts fetch failed: {e}", scope)
            return

        try:
            alerts = parse_alerts(raw)
        except AlertParseError as e:
            recorder.record_warning(f"{location.name}: {e}, treating as no alerts", scope)
            alerts = []

        try:
            records = build_alert_records(alerts)
            self.writer.write_all(self.writer.alert_documents(location.name, records))
        except OSError as e:
            recorder.record_error(f"{location.name}: could not write alert files: {e}", scope)
        except Exception as e:
            logger.exception("Unexpected failure processing alerts for %s", location.name)
            recorder.record_error(f"{location.name}: alerts: {e}", scope)

    def _render_graphics(self, context: dict[str, dict], recorder: CycleRecorder) -> None:
        templates = self.config.graphic_templates
        if not templates:
            return
        rendered, errors = graphics.render_all(templates, context)
        for message in errors:
            recorder.record_error(message, "graphics")
        for graphic in rendered:
            path = f"{self.config.output.graphics_dir}/{sanitize_filename(graphic.name)}.xml"
            try:
                self.writer.write_file(
                    path, build_simple_document("Graphic", {"Name": graphic.name, "Text": graphic.text})
                )
            except OSError as e:
                recorder.record_error(f"Could not write graphic {graphic.name}: {e}", "graphics")


def _graphic_fields(location: LocationConfig, views: ForecastViews) -> dict:
    fields: dict[str, object] = {"Name": location.name}
    fields.update(views.current or {})
    today = views.daily_relative.get("Day1")
    if today:
        fields["High"] = today.get("High", "")
        fields["Low"] = today.get("Low", "")
        fields["Forecast"] = today.get("Condition", "")
    return fields
