"""
Deadline planning and sweeping.

A deadline carries a due date plus a warning and an escalation date derived
from it. A periodic sweep (every 15 minutes by default, on a cron schedule)
moves deadlines forward and emits DEADLINE_APPROACHING events for the
orchestrator:

  ACTIVE, past due                         -> OVERDUE, event with isOverdue
  ACTIVE, past escalation, < 2 reminders   -> reminders=2, event with isEscalation
  ACTIVE, past warning, 0 reminders        -> reminders=1, event with isWarning

The sweep is pure: it returns updated copies and the events to process;
persisting the copies is the caller's job (see DeadlineSweeper).
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from croniter import croniter
from pydantic import BaseModel

from automation_kernel.events import hooks
from automation_kernel.log import get_logger
from automation_kernel.models.event import Event

logger = get_logger(__name__)

_DAY_SECONDS = 24 * 60 * 60


class DeadlineStatus(str, Enum):
    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    COMPLETED = "COMPLETED"


class Deadline(BaseModel):
    id: str
    entity_type: str                        # e.g. "INQUIRY", "QUOTE"
    entity_id: str
    due_date: datetime
    warning_date: Optional[datetime] = None
    escalation_date: Optional[datetime] = None
    status: DeadlineStatus = DeadlineStatus.ACTIVE
    reminders_sent: int = 0
    completed_at: Optional[datetime] = None
    context: Dict[str, Any] = {}            # entity details copied into events


class DeadlineTransition(BaseModel):
    """One sweep decision: the updated deadline and the event it raises."""

    reason: str                             # "overdue" | "escalation" | "warning"
    deadline: Deadline
    event: Event


def plan_deadline(
    entity_type: str,
    entity_id: str,
    due_date: datetime,
    warning_days: int = 3,
    escalation_days: int = 1,
    deadline_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> Deadline:
    """Build an ACTIVE deadline with its warning and escalation dates."""
    return Deadline(
        id=deadline_id or f"dl_{uuid4().hex[:12]}",
        entity_type=entity_type,
        entity_id=entity_id,
        due_date=due_date,
        warning_date=due_date - timedelta(days=warning_days),
        escalation_date=due_date - timedelta(days=escalation_days),
        context=context or {},
    )


def complete_deadline(deadline: Deadline, now: Optional[datetime] = None) -> Deadline:
    """Mark an ACTIVE or OVERDUE deadline COMPLETED. Others are returned as-is."""
    if deadline.status not in (DeadlineStatus.ACTIVE, DeadlineStatus.OVERDUE):
        return deadline
    return deadline.model_copy(update={
        "status": DeadlineStatus.COMPLETED,
        "completed_at": now or datetime.now(timezone.utc),
    })


def _whole_days(delta: timedelta) -> int:
    return int(delta.total_seconds() // _DAY_SECONDS)


class DeadlineMonitor:
    """Sweeps deadlines and schedules the next sweep."""

    def __init__(self, schedule: str = "*/15 * * * *"):
        if not croniter.is_valid(schedule):
            raise ValueError(f"Invalid deadline check schedule: {schedule!r}")
        self.schedule = schedule

    def next_check_at(self, now: Optional[datetime] = None) -> datetime:
        """The next time the sweep should run."""
        return croniter(self.schedule, now or datetime.now(timezone.utc)).get_next(datetime)

    def check(
        self,
        deadlines: Iterable[Deadline],
        now: Optional[datetime] = None,
    ) -> List[DeadlineTransition]:
        if now is None:
            now = datetime.now(timezone.utc)

        transitions = []
        for deadline in deadlines:
            if deadline.status != DeadlineStatus.ACTIVE:
                continue
            transition = self._check_one(deadline, now)
            if transition:
                transitions.append(transition)

        if transitions:
            logger.info("Deadline sweep raised events", count=len(transitions))
        return transitions

    def _check_one(self, deadline: Deadline, now: datetime) -> Optional[DeadlineTransition]:
        if now > deadline.due_date:
            updated = deadline.model_copy(update={"status": DeadlineStatus.OVERDUE})
            return self._transition("overdue", updated, now, {
                "isOverdue": True,
                "daysOverdue": _whole_days(now - deadline.due_date),
            })

        if (
            deadline.escalation_date
            and now > deadline.escalation_date
            and deadline.reminders_sent < 2
        ):
            updated = deadline.model_copy(update={"reminders_sent": 2})
            return self._transition("escalation", updated, now, {
                "isEscalation": True,
                "daysUntilDue": _whole_days(deadline.due_date - now),
            })

        if (
            deadline.warning_date
            and now > deadline.warning_date
            and deadline.reminders_sent == 0
        ):
            updated = deadline.model_copy(update={"reminders_sent": 1})
            return self._transition("warning", updated, now, {
                "isWarning": True,
                "daysUntilDue": _whole_days(deadline.due_date - now),
            })

        return None

    def _transition(
        self,
        reason: str,
        deadline: Deadline,
        now: datetime,
        flags: Dict[str, Any],
    ) -> DeadlineTransition:
        event = hooks.deadline_approaching(
            deadline.id,
            deadline.entity_type,
            deadline.entity_id,
            flags,
            context=deadline.context,
            occurred_at=now,
        )
        return DeadlineTransition(reason=reason, deadline=deadline, event=event)
