"""Image downloader with linear-backoff retries."""

import logging
import time
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "wxfeed/0.1.0"


class ImageFetchError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class ImageDownload:
    url: str
    content: bytes
    content_type: str


class ImageClient:
    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_step: float = 2.0,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_step = retry_step

    def fetch(self, url: str) -> ImageDownload:
        """Download an image; empty bodies count as failures."""
        last_error: ImageFetchError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = httpx.get(
                    url,
                    headers={"User-Agent": self.user_agent},
                    timeout=self.timeout,
                    follow_redirects=True,
                )
                if not resp.is_success:
                    last_error = ImageFetchError(
                        f"HTTP {resp.status_code} {resp.reason_phrase} from {url}",
                        resp.status_code,
                    )
                elif not resp.content:
                    last_error = ImageFetchError(f"Empty response body from {url}")
                else:
                    return ImageDownload(
                        url=url,
                        content=resp.content,
                        content_type=resp.headers.get("content-type", ""),
                    )
            except httpx.RequestError as e:
                last_error = ImageFetchError(f"Request to {url} failed: {e}")

            if attempt < self.max_attempts:
                delay = self.retry_step * attempt
                logger.warning(
                    "%s, retrying in %.1fs (attempt %d/%d)",
                    last_error, delay, attempt, self.max_attempts,
                )
                time.sleep(delay)

        assert last_error is not None
        raise last_error
