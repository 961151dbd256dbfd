"""Severe weather alert models."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class AlertTypeKey(StrEnum):
    TORNADO_WARNING = "TornadoWarning"
    SEVERE_THUNDERSTORM_WARNING = "SevereThunderstormWarning"
    TORNADO_WATCH = "TornadoWatch"
    SEVERE_THUNDERSTORM_WATCH = "SevereThunderstormWatch"


class AlertType(StrEnum):
    """Normalized event names. Both tornado variants file under TornadoWarning."""

    TORNADO_EMERGENCY = "Tornado Emergency"
    TORNADO_WARNING = "Tornado Warning"
    SEVERE_THUNDERSTORM_WARNING = "Severe Thunderstorm Warning"
    TORNADO_WATCH = "Tornado Watch"
    SEVERE_THUNDERSTORM_WATCH = "Severe Thunderstorm Watch"

    @property
    def key(self) -> AlertTypeKey:
        return ALERT_TYPE_KEYS[self]


ALERT_TYPE_KEYS: dict[AlertType, AlertTypeKey] = {
    AlertType.TORNADO_EMERGENCY: AlertTypeKey.TORNADO_WARNING,
    AlertType.TORNADO_WARNING: AlertTypeKey.TORNADO_WARNING,
    AlertType.SEVERE_THUNDERSTORM_WARNING: AlertTypeKey.SEVERE_THUNDERSTORM_WARNING,
    AlertType.TORNADO_WATCH: AlertTypeKey.TORNADO_WATCH,
    AlertType.SEVERE_THUNDERSTORM_WATCH: AlertTypeKey.SEVERE_THUNDERSTORM_WATCH,
}

NO_ALERT_EVENT = "No alert in effect"


@dataclass(frozen=True)
class RawAlert:
    event: str
    status: str
    sent: datetime | None
    headline: str = ""
    description: str = ""
    instruction: str = ""
    area_desc: str = ""
    severity: str = ""
    effective: str = ""
    expires: str = ""
    parameters: dict | None = None


@dataclass(frozen=True)
class ClassifiedAlert:
    alert_type: AlertType
    alert: RawAlert


@dataclass(frozen=True)
class AlertRecord:
    key: AlertTypeKey
    event: str
    headline: str = ""
    text: str = ""
    description: str = ""
    instruction: str = ""
    area_desc: str = ""
    severity: str = ""
    sent: str = ""
    effective: str = ""
    expires: str = ""

    @property
    def active(self) -> bool:
        return self.event != NO_ALERT_EVENT

    def to_fields(self) -> dict[str, str]:
        """Element name -> text, in document order."""
        return {
            "Event": self.event,
            "Headline": self.headline,
            "Text": self.text,
            "Description": self.description,
            "Instruction": self.instruction,
            "AreaDesc": self.area_desc,
            "Severity": self.severity,
            "Sent": self.sent,
            "Effective": self.effective,
            "Expires": self.expires,
        }
