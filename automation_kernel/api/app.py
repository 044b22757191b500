"""
Automation Kernel API — FastAPI endpoints.

Exposes the kernel over REST for:
- Event intake (process an event and log the outcome)
- Rule administration, with validation on write
- Execution log queries
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from automation_kernel.gateways.base import Gateways
from automation_kernel.gateways.memory import in_memory_gateways
from automation_kernel.log import configure_logging
from automation_kernel.models.event import Event, TriggerKind
from automation_kernel.models.rule import Rule
from automation_kernel.orchestrator.engine import AutomationOrchestrator
from automation_kernel.settings import AutomationSettings
from automation_kernel.store.log import AutomationLogStore
from automation_kernel.store.rules import InMemoryRuleStore
from automation_kernel.validation.rules import is_valid, validate_rule


# --- Request/Response Models ---

class EventRequest(BaseModel):
    type: TriggerKind
    payload: Dict[str, Any] = {}
    occurred_at: Optional[datetime] = None


def _issues_json(issues) -> list:
    return [i.model_dump(mode="json") for i in issues]


# --- Application Factory ---

def create_app(
    rule_store: Optional[InMemoryRuleStore] = None,
    gateways: Optional[Gateways] = None,
    log_store: Optional[AutomationLogStore] = None,
    settings: Optional[AutomationSettings] = None,
    orchestrator: Optional[AutomationOrchestrator] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or AutomationSettings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Automation Kernel API",
        description="Event-driven automation rules",
        version="0.1.0",
    )

    if orchestrator is not None:
        if rule_store is not None or gateways is not None or log_store is not None:
            raise ValueError("Pass either an orchestrator or its components, not both")
        if orchestrator.log_store is None:
            orchestrator.log_store = AutomationLogStore(settings.log_db_path)
        rs = orchestrator.rule_store
        gw = orchestrator.gateways
        ls = orchestrator.log_store
        orch = orchestrator
    else:
        rs = rule_store if rule_store is not None else InMemoryRuleStore()
        gw = gateways or in_memory_gateways(settings=settings)
        ls = log_store or AutomationLogStore(settings.log_db_path)
        orch = AutomationOrchestrator(
            rule_store=rs,
            gateways=gw,
            settings=settings,
            log_store=ls,
        )

    app.state.settings = settings
    app.state.rule_store = rs
    app.state.gateways = gw
    app.state.log_store = ls
    app.state.orchestrator = orch

    # === EVENTS ===

    @app.post("/events")
    def process_event(req: EventRequest):
        """Run every matching rule for the event."""
        event = Event(
            type=req.type,
            payload=req.payload,
            occurred_at=req.occurred_at or datetime.now(timezone.utc),
        )
        outcome = orch.process_event(event)
        return {
            "succeeded": outcome.succeeded,
            "matched_rule_ids": outcome.matched_rule_ids,
            "skipped_rule_ids": outcome.skipped_rule_ids,
            "outcome": outcome.model_dump(mode="json"),
        }

    # === RULES ===

    @app.get("/rules")
    def list_rules():
        return [r.model_dump(mode="json") for r in rs.list_rules()]

    @app.post("/rules/validate")
    def validate(rule: Rule):
        """Dry-run validation; never stores the rule."""
        issues = validate_rule(rule)
        return {"valid": is_valid(issues), "issues": _issues_json(issues)}

    @app.post("/rules", status_code=201)
    def create_rule(rule: Rule):
        issues = validate_rule(rule)
        if not is_valid(issues):
            raise HTTPException(422, {"message": "Rule is invalid", "issues": _issues_json(issues)})
        try:
            rs.add(rule)
        except KeyError:
            raise HTTPException(409, "Rule already exists")
        return {"rule": rule.model_dump(mode="json"), "issues": _issues_json(issues)}

    @app.get("/rules/{rule_id}")
    def get_rule(rule_id: str):
        rule = rs.get(rule_id)
        if not rule:
            raise HTTPException(404, "Rule not found")
        return rule.model_dump(mode="json")

    @app.put("/rules/{rule_id}")
    def update_rule(rule_id: str, rule: Rule):
        """Replace a rule. The path id wins over the body id."""
        rule = rule.model_copy(update={"id": rule_id})
        issues = validate_rule(rule)
        if not is_valid(issues):
            raise HTTPException(422, {"message": "Rule is invalid", "issues": _issues_json(issues)})
        if rs.update(rule) is None:
            raise HTTPException(404, "Rule not found")
        return {"rule": rule.model_dump(mode="json"), "issues": _issues_json(issues)}

    @app.delete("/rules/{rule_id}")
    def delete_rule(rule_id: str):
        if not rs.remove(rule_id):
            raise HTTPException(404, "Rule not found")
        return {"status": "deleted", "rule_id": rule_id}

    # === EXECUTION LOG ===

    @app.get("/logs")
    def get_logs(rule_id: Optional[str] = None, limit: int = 50):
        """Recent execution log rows, optionally for one rule."""
        if rule_id:
            return ls.query_by_rule(rule_id, limit=limit)
        return ls.query_recent(limit=limit)

    @app.get("/logs/failures")
    def get_failures(retryable_only: bool = False, limit: int = 50):
        return ls.query_failures(retryable_only=retryable_only, limit=limit)

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "rules": len(rs.list_rules()),
            "executors": [k.value for k in orch.registry.kinds()],
            "logged_runs": ls.count(),
        }

    return app


# Default application instance
app = create_app()
