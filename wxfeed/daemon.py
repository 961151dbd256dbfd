"""Polling daemon: runs the weather and image cycles on their own intervals.

Each task is rescheduled ``interval`` seconds after its previous run
finished, so cycles never overlap and drift is expected. Both tasks share
one thread; a task that comes due while the other is running waits.

Usage:
    python -m wxfeed run --config config/wxfeed.yaml
    python -m wxfeed run --serve --port 3005   # also start the config API
    python -m wxfeed stop
"""

import json
import logging
import os
import signal
import sys
import threading
import time
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from wxfeed.config.store import IMAGES, WEATHER, ConfigStore
from wxfeed.models.reporting import CycleKind, CycleOutcome
from wxfeed.pipeline.image_cycle import ImageCycle
from wxfeed.pipeline.weather_cycle import WeatherCycle
from wxfeed.reporting.status import StatusBanner

logger = logging.getLogger(__name__)

PID_DIR = Path("data")
PID_FILE = PID_DIR / "daemon.pid"
STATE_FILE = PID_DIR / "daemon_state.json"
LOG_DIR = Path("logs")
MAX_LOG_FILES = 100  # per cycle kind
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TOPICS = {WEATHER: CycleKind.WEATHER, IMAGES: CycleKind.IMAGES}


@dataclass
class PollTask:
    kind: CycleKind
    next_due: float = 0.0
    runs: int = 0
    successes: int = 0
    failures: int = 0


class PollDaemon:
    """Explicit ticker owning both recurring cycles, with start/stop lifecycle."""

    def __init__(
        self,
        store: ConfigStore,
        clock: Callable[[], float] = time.monotonic,
        cycle_factories: dict[CycleKind, Callable] | None = None,
    ):
        self.store = store
        self.clock = clock
        self.banner = StatusBanner()
        self.tasks = {kind: PollTask(kind) for kind in CycleKind}
        self.cycle_factories = cycle_factories or {
            CycleKind.WEATHER: WeatherCycle,
            CycleKind.IMAGES: ImageCycle,
        }
        self._running = False
        self._lock = threading.Lock()
        self._started_at: str | None = None
        store.subscribe(self.request_run)

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the daemon loop; blocks until stopped."""
        self._check_not_already_running()
        self._write_pid()
        self._setup_signals()
        self._running = True
        self._started_at = datetime.now(UTC).isoformat()

        snapshot = self.store.snapshot()
        logger.info(
            "Daemon started: weather every %ds, images every %ds, pid=%d",
            snapshot.polling.weather_interval_seconds,
            snapshot.polling.image_interval_seconds,
            os.getpid(),
        )
        print(f"🔄 wxfeed daemon started (pid {os.getpid()})")
        print(f"   Logs: {LOG_DIR}/")
        print("   Stop: python -m wxfeed stop")

        try:
            self._loop()
        except KeyboardInterrupt:
            logger.info("Daemon interrupted by keyboard")
        finally:
            self._cleanup()

    def stop(self) -> None:
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def request_run(self, topic: str) -> None:
        """Make a task due immediately (config changed or manual refresh)."""
        kind = _TOPICS.get(topic)
        if kind is None:
            return
        with self._lock:
            self.tasks[kind].next_due = self.clock()
        logger.info("%s cycle requested", kind.value)

    # --- Scheduling ---

    def _loop(self) -> None:
        while self._running:
            self.tick()
            self._save_state()

            # Sleep in 1-second increments so we can respond to signals
            while self._running and self.seconds_until_next() > 0:
                time.sleep(min(1.0, self.seconds_until_next()))

    def seconds_until_next(self) -> float:
        with self._lock:
            next_due = min(task.next_due for task in self.tasks.values())
        return max(0.0, next_due - self.clock())

    def tick(self) -> list[CycleOutcome]:
        """Run every task that is due, rescheduling each after it completes."""
        outcomes = []
        for kind in CycleKind:
            with self._lock:
                due = self.tasks[kind].next_due <= self.clock()
            if not due:
                continue
            snapshot = self.store.snapshot()
            outcomes.append(self.run_cycle(kind))
            interval = (
                snapshot.polling.weather_interval_seconds
                if kind == CycleKind.WEATHER
                else snapshot.polling.image_interval_seconds
            )
            with self._lock:
                self.tasks[kind].next_due = self.clock() + interval
        return outcomes

    def run_cycle(self, kind: CycleKind) -> CycleOutcome:
        """Execute one cycle against a fresh snapshot. Never raises."""
        task = self.tasks[kind]
        task.runs += 1

        with cycle_log(kind):
            logger.info("%s cycle #%d starting", kind.value.title(), task.runs)
            try:
                outcome = self.cycle_factories[kind](self.store.snapshot()).run()
            except Exception as e:
                logger.exception("%s cycle #%d crashed", kind.value.title(), task.runs)
                outcome = CycleOutcome(
                    cycle=kind, error_count=1, first_error_message=str(e), errors=[str(e)]
                )
        rotate_logs(kind)

        if outcome.ok:
            task.successes += 1
        else:
            task.failures += 1
        self.banner.apply(outcome)
        return outcome

    # --- Process housekeeping ---

    def _setup_signals(self) -> None:
        """SIGTERM and SIGINT let the running cycle finish, then exit the loop."""

        def _request_stop(signum: int, frame: object) -> None:
            name = signal.Signals(signum).name
            logger.info("%s received, stopping after the current cycle", name)
            print(f"\n⏹️  {name}: finishing current cycle...")
            self.stop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, _request_stop)

    def _check_not_already_running(self) -> None:
        pid = read_pid()
        if pid is None:
            PID_FILE.unlink(missing_ok=True)
            return
        alive = pid_alive(pid)
        if alive is False:
            logger.info("Removing stale PID file for pid %d", pid)
            PID_FILE.unlink(missing_ok=True)
            return
        if alive is None:
            print(f"❌ A daemon may be running as pid {pid}; cannot signal it.")
        else:
            print(f"❌ Daemon already running (pid {pid}). Stop it with: python -m wxfeed stop")
        sys.exit(1)

    def _write_pid(self) -> None:
        PID_DIR.mkdir(parents=True, exist_ok=True)
        PID_FILE.write_text(str(os.getpid()))

    def state(self) -> dict:
        tasks = {
            kind.value: {"runs": t.runs, "successes": t.successes, "failures": t.failures}
            for kind, t in self.tasks.items()
        }
        return {
            "pid": os.getpid(),
            "started_at": self._started_at,
            "tasks": tasks,
            "banner": self.banner.to_dict(),
            "last_update": datetime.now(UTC).isoformat(),
        }

    def _save_state(self) -> None:
        PID_DIR.mkdir(parents=True, exist_ok=True)
        STATE_FILE.write_text(json.dumps(self.state(), indent=2))

    def _cleanup(self) -> None:
        PID_FILE.unlink(missing_ok=True)
        self._save_state()
        runs = {kind.value: task.runs for kind, task in self.tasks.items()}
        logger.info("Daemon stopped after %s", runs)
        print(
            f"⏹️  Daemon stopped after {runs['weather']} weather and "
            f"{runs['images']} image cycles"
        )


@contextmanager
def cycle_log(kind: CycleKind):
    """Attach a root FileHandler writing ``{kind}_{timestamp}.log`` for one cycle."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    handler = logging.FileHandler(LOG_DIR / f"{kind.value}_{stamp}.log")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    try:
        yield handler
    finally:
        root.removeHandler(handler)
        handler.close()


def rotate_logs(kind: CycleKind) -> None:
    """Keep the newest MAX_LOG_FILES logs of one cycle kind."""
    logs = sorted(LOG_DIR.glob(f"{kind.value}_*.log"))
    for old in logs[: max(0, len(logs) - MAX_LOG_FILES)]:
        old.unlink(missing_ok=True)


def read_pid() -> int | None:
    try:
        return int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        return None


def pid_alive(pid: int) -> bool | None:
    """True if the process exists, False if not, None if we lack permission to tell."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return None
    return True


def stop_daemon(grace_seconds: int = 60) -> int:
    """Send SIGTERM to the daemon and wait for it to exit, then SIGKILL."""
    if not PID_FILE.exists():
        print("No daemon running (no PID file found)")
        return 1
    pid = read_pid()
    if pid is None:
        print("PID file is unreadable, removing it")
        PID_FILE.unlink(missing_ok=True)
        return 1
    if pid_alive(pid) is False:
        print(f"Daemon not running (stale pid {pid}), cleaning up")
        PID_FILE.unlink(missing_ok=True)
        return 0

    print(f"Stopping daemon (pid {pid})...")
    os.kill(pid, signal.SIGTERM)
    deadline = time.monotonic() + grace_seconds
    while time.monotonic() < deadline:
        time.sleep(1)
        if pid_alive(pid) is False:
            print("✅ Daemon stopped")
            PID_FILE.unlink(missing_ok=True)
            return 0

    print(f"⚠️  Daemon still running after {grace_seconds}s, sending SIGKILL")
    os.kill(pid, signal.SIGKILL)
    PID_FILE.unlink(missing_ok=True)
    return 0


def daemon_status() -> int:
    """Print the last saved daemon state."""
    if not STATE_FILE.exists():
        print("No daemon state found")
        return 1

    state = json.loads(STATE_FILE.read_text())
    pid = state.get("pid")
    running = isinstance(pid, int) and pid_alive(pid) is not False
    print(f"{'🟢' if running else '🔴'} Daemon {'running' if running else 'stopped'}")
    print(f"  PID: {pid if pid is not None else '?'}")
    print(f"  Started: {state.get('started_at') or '?'}")
    for kind, task in state.get("tasks", {}).items():
        print(
            f"  {kind}: {task.get('runs', 0)} cycles "
            f"({task.get('successes', 0)} ok, {task.get('failures', 0)} failed)"
        )
    banner = (state.get("banner") or {}).get("message")
    print(f"  Banner: {banner or '(clear)'}")
    print(f"  Last update: {state.get('last_update', '?')}")
    return 0
