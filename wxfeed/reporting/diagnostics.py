"""Diagnostics webhooks: per-cycle success, warning and error events.

Destinations come from a mapping keyed by the SHA-256 of an opaque
logging id (or the raw id), with one URL template per event type:

    <sha256 hex>:
      dataSuccess: https://hooks.example.com/{id}/data-ok
      imagesSuccess: https://hooks.example.com/{id}/images-ok
      warning: https://hooks.example.com/{id}/warn
      error: https://hooks.example.com/{id}/error

Reporting never raises. ``report`` returns a ``ReportResult`` that callers
are free to ignore.
"""

import hashlib
import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

import httpx
import yaml

from wxfeed.config.schema import DiagnosticsConfig
from wxfeed.models.common import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "wxfeed-diagnostics/0.1.0"


class EventKind(StrEnum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Channel(StrEnum):
    DATA = "data"
    IMAGES = "images"


class WebhookType(StrEnum):
    DATA_SUCCESS = "dataSuccess"
    IMAGES_SUCCESS = "imagesSuccess"
    WARNING = "warning"
    ERROR = "error"


_LEGACY_ERROR_TYPES = {"dataError", "imagesError"}
_ERROR_CHAIN = ("error", "dataError", "imagesError")


def classify_event(is_success: bool, is_warning: bool, channel: Channel) -> WebhookType:
    if is_warning:
        return WebhookType.WARNING
    if not is_success:
        return WebhookType.ERROR
    if channel == Channel.IMAGES:
        return WebhookType.IMAGES_SUCCESS
    return WebhookType.DATA_SUCCESS


def hash_id(logging_id: str) -> str:
    return hashlib.sha256(str(logging_id).encode()).hexdigest()


class WebhookResolver:
    def __init__(self, mapping: dict[str, dict[str, str]] | None = None):
        self.mapping = mapping or {}

    @classmethod
    def from_file(cls, path: str | Path) -> "WebhookResolver":
        """Load a YAML (or JSON) mapping file. A missing file maps nothing."""
        path = Path(path)
        if not path.exists():
            logger.warning("Webhook map %s not found, diagnostics disabled", path)
            return cls({})
        with open(path) as f:
            return cls(yaml.safe_load(f) or {})

    def resolve(self, logging_id: str, event_type: str) -> str | None:
        if not logging_id or not isinstance(logging_id, str):
            return None

        digest = hash_id(logging_id)
        entry = self.mapping.get(digest) or self.mapping.get(logging_id)
        if not entry:
            logger.warning(
                "No webhook mapping for id=%s hash=%s (map size %d)",
                logging_id, digest, len(self.mapping),
            )
            return None

        if event_type in _LEGACY_ERROR_TYPES:
            event_type = WebhookType.ERROR.value

        if event_type == WebhookType.ERROR:
            candidates: tuple[str, ...] = _ERROR_CHAIN
        elif event_type == WebhookType.WARNING:
            candidates = ("warning", *_ERROR_CHAIN)
        else:
            candidates = (event_type,)
        template = next((entry[c] for c in candidates if entry.get(c)), None)

        if not template:
            logger.warning(
                "No webhook URL for type=%s id=%s (available: %s)",
                event_type, logging_id, ",".join(entry),
            )
            return None
        return template.replace("{id}", logging_id)


@dataclass(frozen=True)
class ReportResult:
    ok: bool
    webhook_type: WebhookType | None = None
    status_code: int | None = None
    error: str | None = None
    skipped: bool = False


class DiagnosticsReporter:
    def __init__(
        self,
        logging_id: str = "",
        resolver: WebhookResolver | None = None,
        timeout: float = 10.0,
        enabled: bool = True,
    ):
        self.logging_id = logging_id
        self.resolver = resolver or WebhookResolver()
        self.timeout = timeout
        self.enabled = enabled

    @classmethod
    def from_config(cls, config: DiagnosticsConfig) -> "DiagnosticsReporter":
        resolver = (
            WebhookResolver.from_file(config.webhook_map_path)
            if config.enabled and config.webhook_map_path
            else WebhookResolver()
        )
        return cls(
            logging_id=config.logging_id,
            resolver=resolver,
            timeout=config.timeout_seconds,
            enabled=config.enabled,
        )

    @property
    def configured(self) -> bool:
        return self.enabled and bool(self.logging_id) and bool(self.resolver.mapping)

    def success(self, event: str, channel: Channel, payload: dict | None = None) -> ReportResult:
        return self.report(event, EventKind.SUCCESS, channel, payload)

    def warning(
        self, event: str, channel: Channel, message: str, payload: dict | None = None, scope: str = ""
    ) -> ReportResult:
        return self.report(event, EventKind.WARNING, channel, payload, error=message, scope=scope)

    def error(
        self,
        event: str,
        channel: Channel,
        error: Exception | str,
        payload: dict | None = None,
        scope: str = "",
    ) -> ReportResult:
        return self.report(event, EventKind.ERROR, channel, payload, error=error, scope=scope)

    def report(
        self,
        event: str,
        kind: EventKind,
        channel: Channel,
        payload: dict | None = None,
        error: Exception | str | None = None,
        scope: str = "",
    ) -> ReportResult:
        if not self.configured:
            return ReportResult(ok=True, skipped=True)

        webhook_type = classify_event(
            kind == EventKind.SUCCESS, kind == EventKind.WARNING, channel
        )
        try:
            url = self.resolver.resolve(self.logging_id, webhook_type.value)
            if url is None:
                return ReportResult(ok=True, webhook_type=webhook_type, skipped=True)

            body = self.build_envelope(event, webhook_type, payload, error, scope or channel.value)
            resp = httpx.post(
                url,
                json=body,
                headers={"User-Agent": DEFAULT_USER_AGENT},
                timeout=self.timeout,
            )
            if resp.status_code >= 400:
                logger.warning(
                    "Diagnostics webhook returned %d for %s", resp.status_code, event
                )
                return ReportResult(
                    ok=False,
                    webhook_type=webhook_type,
                    status_code=resp.status_code,
                    error=f"HTTP {resp.status_code}",
                )
            return ReportResult(ok=True, webhook_type=webhook_type, status_code=resp.status_code)
        except Exception as e:
            logger.warning("Diagnostics report %s failed: %s", event, e)
            return ReportResult(ok=False, webhook_type=webhook_type, error=str(e))

    def build_envelope(
        self,
        event: str,
        webhook_type: WebhookType,
        payload: dict | None,
        error: Exception | str | None,
        scope: str,
    ) -> dict:
        now = utc_now_iso()
        body = {
            "event": event,
            "id": self.logging_id,
            "timestamp": now,
            "type": webhook_type.value,
            "payload": payload or {},
        }
        if webhook_type in (WebhookType.WARNING, WebhookType.ERROR):
            body["error"] = {
                "message": str(error) if error is not None else "",
                "scope": scope,
                "timestamp": now,
            }
        return body
