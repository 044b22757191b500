"""
Automation Orchestrator — the kernel's single entry point.

States, once per event:
  RECEIVED → MATCHING → DISPATCHING → COMPLETED
  RECEIVED → MATCHING → COMPLETED          (rule store unavailable)

Behavioral Contract:
- Reads a fresh rule snapshot from the store for every event. A store error
  or timeout is fatal for the event: no action runs and the outcome carries
  RULE_STORE_UNAVAILABLE.
- Matched rules are independent. Rule i+1 runs whatever happened to rule i.
  With max_parallel_rules > 1 several rules are dispatched at once; each
  rule's actions stay sequential and outcomes are reported in match order.
- Cancellation is checked as each rule is about to start. Started rules run
  to completion; the rest are reported as SKIPPED_CANCELLED.
- No retries and no state carried from one event to the next.
"""

import sqlite3
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from automation_kernel.balancing.balancer import WorkloadBalancer
from automation_kernel.errors import RuleStoreUnavailableError
from automation_kernel.execution.dispatcher import ActionDispatcher
from automation_kernel.execution.executors import ExecutionContext
from automation_kernel.execution.registry import ExecutorRegistry
from automation_kernel.execution.timeouts import CollaboratorCaller
from automation_kernel.gateways.base import Gateways, RuleStore
from automation_kernel.log import get_logger
from automation_kernel.matching.matcher import RuleMatcher
from automation_kernel.models.event import Event
from automation_kernel.models.outcome import (
    EventOutcome,
    OrchestrationState,
    RuleOutcome,
    RuleStatus,
)
from automation_kernel.models.rule import Rule
from automation_kernel.settings import AutomationSettings
from automation_kernel.store.log import AutomationLogStore

logger = get_logger(__name__)


class OrchestrationRun:
    """State tracker for one event. COMPLETED is terminal and reached once."""

    def __init__(self, event: Event):
        self.event = event
        self.state = OrchestrationState.RECEIVED
        self.history: List[OrchestrationState] = [self.state]

    def advance(self, new_state: OrchestrationState) -> None:
        if self.state == OrchestrationState.COMPLETED:
            raise RuntimeError("Orchestration already completed for this event")
        logger.debug(
            "Orchestration state change",
            event_type=self.event.type.value,
            from_state=self.state.value,
            to_state=new_state.value,
        )
        self.state = new_state
        self.history.append(new_state)


class AutomationOrchestrator:
    def __init__(
        self,
        rule_store: RuleStore,
        gateways: Gateways,
        settings: Optional[AutomationSettings] = None,
        registry: Optional[ExecutorRegistry] = None,
        matcher: Optional[RuleMatcher] = None,
        log_store: Optional[AutomationLogStore] = None,
    ):
        self.settings = settings or AutomationSettings()
        self.rule_store = rule_store
        self.gateways = gateways
        self.registry = registry or ExecutorRegistry.default()
        self.matcher = matcher or RuleMatcher()
        self.log_store = log_store

        self._caller = CollaboratorCaller(self.settings.collaborator_timeout_seconds)
        self.balancer = WorkloadBalancer(gateways.assignments, call=self._caller)
        self.dispatcher = ActionDispatcher(
            self.registry,
            ExecutionContext(
                gateways=gateways,
                balancer=self.balancer,
                registry=self.registry,
                call=self._caller,
                webhook_timeout_seconds=self.settings.webhook_timeout_seconds,
                escalation_role=self.settings.escalation_role,
            ),
        )

    def process_event(
        self,
        event: Event,
        cancel: Optional[threading.Event] = None,
    ) -> EventOutcome:
        """Match and run every rule for one event and report what happened."""
        run = OrchestrationRun(event)
        run.advance(OrchestrationState.MATCHING)

        try:
            rules = self._load_rules(event)
        except RuleStoreUnavailableError as exc:
            logger.error(
                "Rule store unavailable, no automation run",
                event_type=event.type.value,
                error=exc.message,
            )
            run.advance(OrchestrationState.COMPLETED)
            return self._finish(EventOutcome(
                event=event,
                state=run.state,
                fatal_error=exc.kind,
                fatal_message=exc.message,
            ))

        matched = self.matcher.match(event, rules)

        run.advance(OrchestrationState.DISPATCHING)
        rule_outcomes = self._dispatch_rules(matched, event, cancel)

        run.advance(OrchestrationState.COMPLETED)
        outcome = EventOutcome(event=event, state=run.state, rule_outcomes=rule_outcomes)

        logger.info(
            "Event processed",
            event_type=event.type.value,
            matched=outcome.matched_rule_ids,
            skipped=outcome.skipped_rule_ids,
            failed_actions=len(outcome.failed_actions()),
        )
        return self._finish(outcome)

    def _load_rules(self, event: Event) -> List[Rule]:
        try:
            rules = self._caller.call_with_timeout(
                self.settings.rule_store_timeout_seconds,
                self.rule_store.get_active_rules_for_trigger,
                event.type,
            )
        except Exception as exc:
            raise RuleStoreUnavailableError(
                f"Rule store unavailable: {exc}",
                {"exception": type(exc).__name__},
            ) from exc
        return list(rules or [])

    def _dispatch_rules(
        self,
        rules: List[Rule],
        event: Event,
        cancel: Optional[threading.Event],
    ) -> List[RuleOutcome]:
        workers = min(self.settings.max_parallel_rules, len(rules))
        if workers <= 1:
            return [self._run_rule(rule, event, cancel) for rule in rules]

        # A pool per event keeps invocations independent of each other
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rule") as pool:
            futures = [pool.submit(self._run_rule, rule, event, cancel) for rule in rules]
            return [f.result() for f in futures]

    def _run_rule(
        self,
        rule: Rule,
        event: Event,
        cancel: Optional[threading.Event],
    ) -> RuleOutcome:
        if cancel is not None and cancel.is_set():
            logger.info("Rule skipped, event cancelled", rule_id=rule.id)
            return RuleOutcome(rule=rule, status=RuleStatus.SKIPPED_CANCELLED)

        start = time.monotonic()
        action_outcomes = self.dispatcher.dispatch(rule, event)
        elapsed = time.monotonic() - start
        return RuleOutcome(
            rule=rule,
            status=RuleStatus.COMPLETED,
            action_outcomes=action_outcomes,
            duration_seconds=round(elapsed, 3),
        )

    def _finish(self, outcome: EventOutcome) -> EventOutcome:
        if self.log_store is not None:
            try:
                self.log_store.record(outcome)
            except sqlite3.Error:
                logger.exception(
                    "Failed to record automation outcome",
                    event_type=outcome.event.type.value,
                )
        return outcome

    def close(self) -> None:
        self._caller.close()
