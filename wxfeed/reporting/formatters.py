"""Output formatters for cycle outcomes."""

import json

from wxfeed.models.reporting import CycleOutcome


def format_outcome_text(o: CycleOutcome) -> str:
    """Plain text summary for logging."""
    lines = [
        f"=== {o.cycle.value.title()} cycle complete ===",
        f"Succeeded: {o.success_count} | Warnings: {o.warning_count} | Errors: {o.error_count}",
    ]
    if o.first_error_message:
        lines.append(f"First error: {o.first_error_message}")
    lines.append(f"Duration: {o.duration_seconds:.1f}s")
    return "\n".join(lines)


def format_outcome_json(o: CycleOutcome) -> str:
    """JSON summary for programmatic consumption."""
    return json.dumps(o.to_dict(), indent=2)
