"""Run triggers: on demand and once a day."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from introscan.errors import IntroScanError, TaskAlreadyRunningError
from introscan.model import RunSummary
from introscan.task import DetectIntroductionsTask, ProgressCallback

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DailyTrigger:
    time_of_day: time = time(0, 0)

    def next_fire(self, after: datetime) -> datetime:
        """First fire time strictly after *after*."""
        candidate = datetime.combine(after.date(), self.time_of_day, tzinfo=after.tzinfo)
        if candidate <= after:
            candidate += timedelta(days=1)
        return candidate


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` into a :class:`datetime.time`."""
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except ValueError as e:
        raise ValueError(f"Invalid time of day {value!r}, expected HH:MM") from e


def default_triggers() -> list[DailyTrigger]:
    return [DailyTrigger(time(0, 0))]


class TaskHost:
    """Runs a task on demand or from triggers, one run at a time."""

    def __init__(
        self,
        task: DetectIntroductionsTask,
        triggers: list[DailyTrigger] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.task = task
        self.triggers = triggers if triggers is not None else default_triggers()
        self.clock = clock
        self.cancel = threading.Event()
        self._stop = threading.Event()
        self._running = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    def run_now(self, progress: ProgressCallback | None = None) -> RunSummary:
        """Execute the task once. Raises if a run is already in progress."""
        if not self._running.acquire(blocking=False):
            raise TaskAlreadyRunningError(f"{self.task.name} is already running")
        try:
            self.cancel.clear()
            log.info("Starting %s", self.task.name)
            return self.task.execute(progress, self.cancel)
        finally:
            self._running.release()

    def next_fire(self) -> datetime | None:
        if not self.triggers:
            return None
        now = self.clock()
        return min(t.next_fire(now) for t in self.triggers)

    def serve(self, on_complete: Callable[[RunSummary], None] | None = None) -> None:
        """Block, running the task at each trigger time until :meth:`stop`."""
        while not self._stop.is_set():
            fire_at = self.next_fire()
            if fire_at is None:
                log.warning("No triggers configured, nothing to schedule")
                return
            delay = max(0.0, (fire_at - self.clock()).total_seconds())
            log.info("Next run of %s at %s", self.task.name, fire_at.isoformat(timespec="minutes"))
            if self._stop.wait(delay):
                break
            try:
                summary = self.run_now()
            except TaskAlreadyRunningError:
                log.warning("Skipping scheduled run: %s is still running", self.task.name)
                continue
            except IntroScanError as e:
                log.error("Scheduled run failed: %s", e)
                continue
            except Exception:
                log.exception("Scheduled run of %s failed", self.task.name)
                continue
            if on_complete is not None:
                on_complete(summary)

    def stop(self) -> None:
        self.cancel.set()
        self._stop.set()
