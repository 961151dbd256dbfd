"""Cycle recorder: success/warning/error bookkeeping for one polling cycle."""

import logging

from wxfeed.models.common import utc_now_iso
from wxfeed.models.reporting import CycleKind, CycleOutcome
from wxfeed.reporting.diagnostics import Channel, DiagnosticsReporter

logger = logging.getLogger(__name__)

_CHANNELS = {CycleKind.WEATHER: Channel.DATA, CycleKind.IMAGES: Channel.IMAGES}


class CycleRecorder:
    """Counts outcomes and emits a diagnostics event at the point of detection."""

    def __init__(self, cycle: CycleKind, reporter: DiagnosticsReporter | None = None):
        self.outcome = CycleOutcome(cycle=cycle, started_at=utc_now_iso())
        self.reporter = reporter or DiagnosticsReporter(enabled=False)
        self.channel = _CHANNELS[cycle]

    def record_success(self, label: str) -> None:
        self.outcome.success_count += 1
        logger.info("%s cycle: %s OK", self.outcome.cycle.value, label)

    def record_warning(self, message: str, scope: str = "") -> None:
        """Expected, non-retryable condition: never touches the error count."""
        self.outcome.warning_count += 1
        self.outcome.warnings.append(message)
        logger.warning("%s", message)
        self.reporter.warning(f"{self.outcome.cycle.value}.warning", self.channel, message, scope=scope)

    def record_error(self, message: str, scope: str = "", payload: dict | None = None) -> None:
        self.outcome.error_count += 1
        self.outcome.errors.append(message)
        if self.outcome.first_error_message is None:
            self.outcome.first_error_message = message
        logger.error("%s", message)
        self.reporter.error(
            f"{self.outcome.cycle.value}.error", self.channel, message, payload=payload, scope=scope
        )

    def record_duration(self, seconds: float) -> None:
        self.outcome.duration_seconds = seconds

    def finalize(self) -> CycleOutcome:
        if self.outcome.ok:
            self.reporter.success(
                f"{self.outcome.cycle.value}.complete",
                self.channel,
                {
                    "successCount": self.outcome.success_count,
                    "warningCount": self.outcome.warning_count,
                    "durationSeconds": round(self.outcome.duration_seconds, 3),
                },
            )
        return self.outcome
