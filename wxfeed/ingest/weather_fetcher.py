"""Weather fetcher: walks point -> forecasts -> nearest station for a location."""

import logging
from dataclasses import dataclass, field

from wxfeed.config.schema import LocationConfig
from wxfeed.ingest.nws_client import NwsClient, NwsClientError

logger = logging.getLogger(__name__)


@dataclass
class LocationPayload:
    """Raw upstream documents for one location in one cycle."""

    point: dict
    daily: dict
    hourly: dict
    observation: dict | None = None
    station_id: str = ""
    warnings: list[str] = field(default_factory=list)


class WeatherFetcher:
    def __init__(self, nws_client: NwsClient):
        self.nws = nws_client

    def fetch(self, location: LocationConfig) -> LocationPayload:
        """Fetch everything needed to build a location's views.

        Raises NwsNotFoundError when the point has no coverage and
        NwsClientError for any other exhausted or malformed request. A
        missing observation is not fatal; it is noted in ``warnings``.
        """
        point = self.nws.get_point(location.latitude, location.longitude)
        properties = point.get("properties") if isinstance(point, dict) else None
        if not isinstance(properties, dict):
            raise NwsClientError(f"Point response for {location.name} has no properties")

        forecast_url = properties.get("forecast")
        hourly_url = properties.get("forecastHourly")
        if not forecast_url or not hourly_url:
            raise NwsClientError(
                f"Point response for {location.name} is missing forecast URLs"
            )

        daily = self.nws.get_json(forecast_url)
        hourly = self.nws.get_json(hourly_url)
        payload = LocationPayload(point=point, daily=daily, hourly=hourly)

        stations_url = properties.get("observationStations")
        if not stations_url:
            payload.warnings.append(f"No observation stations listed for {location.name}")
            return payload

        try:
            station_id = _first_station_id(self.nws.get_json(stations_url))
            if station_id is None:
                payload.warnings.append(f"No observation station found for {location.name}")
                return payload
            payload.station_id = station_id
            payload.observation = self.nws.get_latest_observation(station_id)
        except NwsClientError as e:
            payload.warnings.append(
                f"Current conditions unavailable for {location.name}: {e}"
            )
        return payload


def _first_station_id(raw: dict) -> str | None:
    features = raw.get("features") if isinstance(raw, dict) else None
    if features:
        props = features[0].get("properties") or {}
        if props.get("stationIdentifier"):
            return props["stationIdentifier"]
    ids = raw.get("observationStations") if isinstance(raw, dict) else None
    if ids:
        return str(ids[0]).rstrip("/").rsplit("/", 1)[-1]
    return None
