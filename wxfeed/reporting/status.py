"""Status banner: the first error of the most recent cycle of each kind."""

import threading

from wxfeed.models.common import utc_now_iso
from wxfeed.models.reporting import CycleKind, CycleOutcome


class StatusBanner:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._messages: dict[CycleKind, str | None] = {kind: None for kind in CycleKind}
        self._last: dict[CycleKind, CycleOutcome] = {}
        self.updated_at: str | None = None

    def apply(self, outcome: CycleOutcome) -> None:
        """Clear on a clean cycle, otherwise show the cycle's first error."""
        with self._lock:
            self._messages[outcome.cycle] = None if outcome.ok else outcome.first_error_message
            self._last[outcome.cycle] = outcome
            self.updated_at = utc_now_iso()

    @property
    def message(self) -> str | None:
        with self._lock:
            for kind in CycleKind:
                if self._messages[kind]:
                    return self._messages[kind]
            return None

    def last_outcome(self, kind: CycleKind) -> CycleOutcome | None:
        with self._lock:
            return self._last.get(kind)

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "message": next((m for m in self._messages.values() if m), None),
                "updated_at": self.updated_at,
                "cycles": {kind.value: o.to_dict() for kind, o in self._last.items()},
            }
