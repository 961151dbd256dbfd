"""Classify active NWS alerts into the four tracked alert types.

Every location always gets exactly one record per AlertTypeKey: the most
recently sent actual alert of that type, or a "No alert in effect"
placeholder.
"""

import logging
import re

from wxfeed.models.alerts import (
    NO_ALERT_EVENT,
    AlertRecord,
    AlertType,
    AlertTypeKey,
    ClassifiedAlert,
    RawAlert,
)
from wxfeed.models.common import parse_timestamp

logger = logging.getLogger(__name__)

EMPHASIS = "**"

_EXACT_TYPES: dict[str, AlertType] = {t.value.lower(): t for t in AlertType}
# Longest names first so "Severe Thunderstorm Warning" wins over shorter overlaps.
_FUZZY_ORDER = sorted(AlertType, key=lambda t: len(t.value), reverse=True)

_AWIPS_HEADER = re.compile(r"^[A-Z0-9. ]{5,}\n+")
_TIME_CODE = re.compile(r"(?<![:\d])\b(\d{1,2})(\d{2})?\s?(AM|PM)\s([A-Z]{2,4})\b")
_TORNADO_WARNING = re.compile(
    rf"(?<!{re.escape(EMPHASIS)})\bTornado Warning\b(?!{re.escape(EMPHASIS)})", re.IGNORECASE
)
_TORNADO = re.compile(
    rf"(?<!{re.escape(EMPHASIS)})\bTornado\b(?!\s+Warning\b)(?!{re.escape(EMPHASIS)})",
    re.IGNORECASE,
)


class AlertParseError(Exception):
    """Raised when an alerts response is not a GeoJSON feature collection."""


def _str_field(props: dict, name: str) -> str:
    value = props.get(name)
    return value if isinstance(value, str) else ""


def parse_alerts(raw: dict | None) -> list[RawAlert]:
    features = raw.get("features") if isinstance(raw, dict) else None
    if not isinstance(features, list):
        raise AlertParseError("alerts response has no features list")

    alerts: list[RawAlert] = []
    for feature in features:
        props = feature.get("properties") if isinstance(feature, dict) else None
        if not isinstance(props, dict):
            continue
        parameters = props.get("parameters")
        if not isinstance(parameters, dict):
            parameters = {}
        alerts.append(
            RawAlert(
                event=_str_field(props, "event"),
                status=_str_field(props, "status"),
                sent=parse_timestamp(_str_field(props, "sent")),
                headline=_str_field(props, "headline"),
                description=_str_field(props, "description"),
                instruction=_str_field(props, "instruction"),
                area_desc=_str_field(props, "areaDesc"),
                severity=_str_field(props, "severity"),
                effective=_str_field(props, "effective"),
                expires=_str_field(props, "expires"),
                parameters=parameters,
            )
        )
    return alerts


def normalize_alert_type(event: str, parameters: dict | None = None) -> AlertType | None:
    """Map a raw event name onto a tracked alert type, or None to ignore it."""
    name = (event or "").strip().lower()
    if not name:
        return None

    alert_type = _EXACT_TYPES.get(name)
    if alert_type is None:
        for candidate in _FUZZY_ORDER:
            if candidate.value.lower() in name:
                alert_type = candidate
                break
    if alert_type is None:
        return None

    if alert_type == AlertType.TORNADO_WARNING and _is_catastrophic(parameters):
        return AlertType.TORNADO_EMERGENCY
    return alert_type


def _is_catastrophic(parameters: dict | None) -> bool:
    threat = (parameters or {}).get("tornadoDamageThreat")
    if not threat:
        return False
    first = threat[0] if isinstance(threat, list) else threat
    return str(first).strip().lower() == "catastrophic"


def select_latest_per_type(
    raw_alerts: list[RawAlert],
) -> dict[AlertTypeKey, ClassifiedAlert]:
    """Keep the most recently sent actual alert for each key."""
    latest: dict[AlertTypeKey, ClassifiedAlert] = {}
    for alert in raw_alerts:
        if alert.status != "Actual":
            continue
        alert_type = normalize_alert_type(alert.event, alert.parameters)
        if alert_type is None:
            continue
        key = alert_type.key
        current = latest.get(key)
        if current is None or _sent_after(alert, current.alert):
            latest[key] = ClassifiedAlert(alert_type, alert)
    return latest


def _sent_after(candidate: RawAlert, incumbent: RawAlert) -> bool:
    if candidate.sent is None:
        return False
    if incumbent.sent is None:
        return True
    return candidate.sent > incumbent.sent


def reformat_time_codes(text: str) -> str:
    """``700 PM CDT`` -> ``7:00 PM CDT``."""

    def _replace(m: re.Match) -> str:
        hour, minutes, meridiem, zone = m.groups()
        return f"{int(hour)}:{minutes or '00'} {meridiem} {zone}"

    return _TIME_CODE.sub(_replace, text)


def emphasize_tornado(text: str) -> str:
    text = _TORNADO_WARNING.sub(lambda m: f"{EMPHASIS}{m.group()}{EMPHASIS}", text)
    return _TORNADO.sub(lambda m: f"{EMPHASIS}{m.group()}{EMPHASIS}", text)


def process_alert_text(description: str, parameters: dict | None = None) -> tuple[str, str]:
    """Return (cleaned description, processed on-air text)."""
    cleaned = _AWIPS_HEADER.sub("", description or "", count=1)
    cleaned = reformat_time_codes(cleaned)

    headline = ""
    nws_headline = (parameters or {}).get("NWSheadline")
    if nws_headline:
        first = nws_headline[0] if isinstance(nws_headline, list) else nws_headline
        headline = reformat_time_codes(str(first))

    text = f"{headline}\n{cleaned}" if headline else cleaned
    return cleaned, emphasize_tornado(text)


def build_alert_record(
    key: AlertTypeKey, winner: ClassifiedAlert | None
) -> AlertRecord:
    if winner is None:
        return AlertRecord(key=key, event=NO_ALERT_EVENT)

    alert = winner.alert
    description, text = process_alert_text(alert.description, alert.parameters)
    return AlertRecord(
        key=key,
        event=winner.alert_type.value,
        headline=alert.headline,
        text=text,
        description=description,
        instruction=alert.instruction,
        area_desc=alert.area_desc,
        severity=alert.severity,
        sent=alert.sent.isoformat() if alert.sent else "",
        effective=alert.effective,
        expires=alert.expires,
    )


def build_alert_records(raw_alerts: list[RawAlert]) -> list[AlertRecord]:
    """One record for every AlertTypeKey, in declaration order."""
    winners = select_latest_per_type(raw_alerts)
    records = [build_alert_record(key, winners.get(key)) for key in AlertTypeKey]
    active = [r.key.value for r in records if r.active]
    if active:
        logger.info("Active alerts: %s", ", ".join(active))
    return records
