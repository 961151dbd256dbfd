"""Scripted webpage capture (burn ban map) run as an external command."""

import logging
import subprocess

from wxfeed.config.schema import CaptureConfig

logger = logging.getLogger(__name__)


class CaptureError(Exception):
    pass


class ScriptedCapture:
    def __init__(self, command: list[str], timeout: float = 120.0):
        self.command = list(command)
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: CaptureConfig) -> "ScriptedCapture":
        return cls(config.command, config.timeout_seconds)

    def run(self) -> None:
        """Run the capture command; raise CaptureError unless it exits 0."""
        if not self.command:
            raise CaptureError("Capture is enabled but no command is configured")

        logger.info("Running capture: %s", " ".join(self.command))
        try:
            result = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise CaptureError(f"Capture timed out after {self.timeout:.0f}s") from e
        except OSError as e:
            raise CaptureError(f"Capture could not start: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip().splitlines()
            raise CaptureError(
                f"Capture failed with code {result.returncode}"
                + (f": {detail[-1]}" if detail else "")
            )
        logger.info("Capture completed")
