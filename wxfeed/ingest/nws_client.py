"""NWS (api.weather.gov) client with linear-backoff retries."""

import logging
import time

import httpx

logger = logging.getLogger(__name__)

NWS_BASE_URL = "https://api.weather.gov"
DEFAULT_USER_AGENT = "wxfeed/0.1.0"


class NwsClientError(Exception):
    """Raised when an NWS request fails after all attempts."""

    def __init__(self, message: str, status_code: int | None = None, url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class NwsNotFoundError(NwsClientError):
    """The point has no NWS coverage (404 on the point lookup)."""


class NwsClient:
    def __init__(
        self,
        base_url: str = NWS_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_step: float = 3.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_step = retry_step

    def get_point(self, latitude: float, longitude: float) -> dict:
        """Resolve a lat/lon to its gridpoint metadata.

        A 404 means the point is outside NWS coverage; it raises
        NwsNotFoundError straight away since retrying cannot help.
        """
        url = f"{self.base_url}/points/{_coords(latitude, longitude)}"
        return self.get_json(url, fail_fast_statuses=(404,))

    def get_active_alerts(self, latitude: float, longitude: float) -> dict:
        url = f"{self.base_url}/alerts/active"
        return self.get_json(url, params={"point": _coords(latitude, longitude)})

    def get_latest_observation(self, station_id: str) -> dict:
        url = f"{self.base_url}/stations/{station_id}/observations/latest"
        return self.get_json(url)

    def get_json(
        self,
        url: str,
        params: dict | None = None,
        fail_fast_statuses: tuple[int, ...] = (),
    ) -> dict:
        """GET a JSON document, retrying up to max_attempts times.

        The wait before attempt ``n + 1`` is ``n * retry_step`` seconds.
        """
        headers = {"User-Agent": self.user_agent, "Accept": "application/geo+json"}

        last_error: NwsClientError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = httpx.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout,
                    follow_redirects=True,
                )
            except httpx.RequestError as e:
                last_error = NwsClientError(f"Request to {url} failed: {e}", url=url)
            else:
                if resp.status_code in fail_fast_statuses:
                    error_cls = NwsNotFoundError if resp.status_code == 404 else NwsClientError
                    raise error_cls(
                        f"HTTP {resp.status_code} {resp.reason_phrase} from {url}",
                        resp.status_code,
                        url,
                    )
                if resp.is_success:
                    try:
                        return resp.json()
                    except ValueError as e:
                        last_error = NwsClientError(
                            f"Malformed JSON from {url}: {e}", resp.status_code, url
                        )
                else:
                    last_error = NwsClientError(
                        f"HTTP {resp.status_code} {resp.reason_phrase} from {url}",
                        resp.status_code,
                        url,
                    )

            if attempt < self.max_attempts:
                delay = self.retry_step * attempt
                logger.warning(
                    "%s, retrying in %.1fs (attempt %d/%d)",
                    last_error, delay, attempt, self.max_attempts,
                )
                time.sleep(delay)

        assert last_error is not None
        raise last_error


def _coords(latitude: float, longitude: float) -> str:
    # api.weather.gov redirects requests with more than 4 decimal places
    return f"{round(latitude, 4)},{round(longitude, 4)}"
