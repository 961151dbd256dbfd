"""Cycle outcome and status models."""

from dataclasses import dataclass, field
from enum import StrEnum


class CycleKind(StrEnum):
    WEATHER = "weather"
    IMAGES = "images"


@dataclass
class CycleOutcome:
    cycle: CycleKind
    success_count: int = 0
    error_count: int = 0
    warning_count: int = 0
    first_error_message: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    started_at: str = ""
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> dict:
        return {
            "cycle": self.cycle.value,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "first_error_message": self.first_error_message,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "started_at": self.started_at,
            "duration_seconds": round(self.duration_seconds, 3),
        }
