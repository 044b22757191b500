"""
Deadline Sweeper — runs the deadline sweep on its schedule and feeds the
raised events to the orchestrator.

Behavioral Contract:
- One pass lists the stored deadlines, runs DeadlineMonitor.check, saves each
  updated deadline and then processes its event, in sweep order.
- A deadline is saved before its event is processed. A reminder is never
  raised twice, even when the rules it triggers fail.
- run_async() repeats passes until the stop event is set, waiting for the
  next scheduled time in between. A pass that raises is logged and the loop
  carries on with the next one.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from automation_kernel.deadlines.monitor import Deadline, DeadlineMonitor
from automation_kernel.log import get_logger
from automation_kernel.models.outcome import EventOutcome
from automation_kernel.settings import AutomationSettings

logger = get_logger(__name__)


class DeadlineSource(Protocol):
    def list_deadlines(self) -> List[Deadline]: ...

    def save_deadline(self, deadline: Deadline) -> None: ...


class EventProcessor(Protocol):
    def process_event(self, event, cancel=None) -> EventOutcome: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeadlineSweeper:
    """Periodic driver for DeadlineMonitor."""

    def __init__(
        self,
        deadlines: DeadlineSource,
        orchestrator: EventProcessor,
        settings: Optional[AutomationSettings] = None,
        monitor: Optional[DeadlineMonitor] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or AutomationSettings()
        self.deadlines = deadlines
        self.orchestrator = orchestrator
        self.monitor = monitor or DeadlineMonitor(self.settings.deadline_check_schedule)
        self.clock = clock or _utc_now
        self.passes = 0
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def sweep_once(self, now: Optional[datetime] = None) -> List[EventOutcome]:
        """Run one sweep and process every event it raises."""
        now = now or self.clock()
        transitions = self.monitor.check(self.deadlines.list_deadlines(), now=now)

        outcomes = []
        for transition in transitions:
            self.deadlines.save_deadline(transition.deadline)
            outcome = self.orchestrator.process_event(transition.event)
            logger.info(
                "Deadline event processed",
                deadline_id=transition.deadline.id,
                reason=transition.reason,
                matched=len(outcome.rule_outcomes),
                succeeded=outcome.succeeded,
            )
            outcomes.append(outcome)

        self.passes += 1
        return outcomes

    def seconds_until_next(self, now: Optional[datetime] = None) -> float:
        now = now or self.clock()
        return max((self.monitor.next_check_at(now) - now).total_seconds(), 0.0)

    async def run_async(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Sweep on schedule until the stop event is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        logger.info("Deadline sweeper started", schedule=self.monitor.schedule)
        try:
            while not stop_event.is_set():
                try:
                    self.sweep_once()
                except Exception:
                    logger.exception("Deadline sweep failed")
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.seconds_until_next(),
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            self._running = False
            logger.info("Deadline sweeper stopped", passes=self.passes)
