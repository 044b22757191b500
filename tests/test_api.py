"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from automation_kernel.api.app import create_app
from automation_kernel.gateways.memory import in_memory_gateways
from automation_kernel.orchestrator.engine import AutomationOrchestrator
from automation_kernel.settings import AutomationSettings
from automation_kernel.store.log import AutomationLogStore
from automation_kernel.store.rules import InMemoryRuleStore


def _rule_body(rule_id: str = "rule_1", **overrides) -> dict:
    body = {
        "id": rule_id,
        "name": "Notify on high priority inquiry",
        "trigger": "INQUIRY_CREATED",
        "priority": 10,
        "conditions": [{"field": "priority", "operator": "equals", "value": "HIGH"}],
        "actions": [{"type": "ESCALATE", "params": {"message": "{{inquiryTitle}}"}}],
    }
    body.update(overrides)
    return body


@pytest.fixture
def gateways():
    return in_memory_gateways([{"id": "mgr_1", "role": "MANAGER"}])


@pytest.fixture
def client(gateways):
    """Create a test client with fresh components."""
    app = create_app(
        rule_store=InMemoryRuleStore(),
        gateways=gateways,
        log_store=AutomationLogStore(db_path=":memory:"),
        settings=AutomationSettings(
            collaborator_timeout_seconds=None,
            rule_store_timeout_seconds=None,
            log_json=False,
        ),
    )
    return TestClient(app)


class TestRuleEndpoints:
    def test_create_and_get_rule(self, client):
        response = client.post("/rules", json=_rule_body())
        assert response.status_code == 201
        assert response.json()["rule"]["id"] == "rule_1"

        response = client.get("/rules/rule_1")
        assert response.status_code == 200
        assert response.json()["priority"] == 10

    def test_list_rules(self, client):
        client.post("/rules", json=_rule_body("a"))
        client.post("/rules", json=_rule_body("b"))
        response = client.get("/rules")
        assert [r["id"] for r in response.json()] == ["a", "b"]

    def test_duplicate_rule(self, client):
        client.post("/rules", json=_rule_body())
        assert client.post("/rules", json=_rule_body()).status_code == 409

    def test_invalid_rule_rejected(self, client):
        body = _rule_body(actions=[{"type": "SEND_EMAIL", "params": {"to": "assignee"}}])
        response = client.post("/rules", json=body)
        assert response.status_code == 422
        issues = response.json()["detail"]["issues"]
        assert issues[0]["code"] == "missing_param"
        assert client.get("/rules").json() == []

    def test_schema_violation_rejected(self, client):
        assert client.post("/rules", json=_rule_body(priority=5000)).status_code == 422

    def test_update_rule(self, client):
        client.post("/rules", json=_rule_body())
        response = client.put("/rules/rule_1", json=_rule_body("ignored", priority=1))
        assert response.status_code == 200
        assert response.json()["rule"]["id"] == "rule_1"
        assert client.get("/rules/rule_1").json()["priority"] == 1

    def test_update_unknown_rule(self, client):
        assert client.put("/rules/nope", json=_rule_body()).status_code == 404

    def test_delete_rule(self, client):
        client.post("/rules", json=_rule_body())
        assert client.delete("/rules/rule_1").json()["status"] == "deleted"
        assert client.get("/rules/rule_1").status_code == 404
        assert client.delete("/rules/rule_1").status_code == 404

    def test_validate_dry_run(self, client):
        body = _rule_body(conditions=[{"field": "bogus", "operator": "equals", "value": 1}])
        response = client.post("/rules/validate", json=body)
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["issues"][0]["code"] == "unknown_field"
        assert client.get("/rules").json() == []


class TestEventEndpoint:
    def test_process_event(self, client, gateways):
        client.post("/rules", json=_rule_body())
        response = client.post("/events", json={
            "type": "INQUIRY_CREATED",
            "payload": {"inquiryId": "inq_1", "priority": "HIGH", "inquiryTitle": "Gearbox"},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["succeeded"] is True
        assert data["matched_rule_ids"] == ["rule_1"]
        assert gateways.notifications.notifications[0]["message"] == "Gearbox"

    def test_unknown_trigger(self, client):
        response = client.post("/events", json={"type": "NOT_A_TRIGGER", "payload": {}})
        assert response.status_code == 422


class TestLogEndpoints:
    def test_logs_and_failures(self, client):
        client.post("/rules", json=_rule_body("ok"))
        client.post("/rules", json=_rule_body(
            "broken", actions=[{
                "type": "ASSIGN_TO_ROLE", "params": {"role": "NOBODY", "entityType": "INQUIRY"},
            }]
        ))
        client.post("/events", json={"type": "INQUIRY_CREATED", "payload": {"priority": "HIGH"}})

        assert len(client.get("/logs").json()) == 2
        assert [r["rule_id"] for r in client.get("/logs", params={"rule_id": "ok"}).json()] == ["ok"]
        failures = client.get("/logs/failures").json()
        assert [r["rule_id"] for r in failures] == ["broken"]
        assert failures[0]["error_details"][0]["kind"] == "no_eligible_user"


class TestInjectedOrchestrator:
    def _make_orchestrator(self, log_store=None):
        return AutomationOrchestrator(
            rule_store=InMemoryRuleStore(),
            gateways=in_memory_gateways([{"id": "mgr_1", "role": "MANAGER"}]),
            settings=AutomationSettings(collaborator_timeout_seconds=None, rule_store_timeout_seconds=None),
            log_store=log_store,
        )

    def test_logs_come_from_the_orchestrator_store(self):
        log_store = AutomationLogStore()
        orchestrator = self._make_orchestrator(log_store)
        client = TestClient(create_app(orchestrator=orchestrator, settings=AutomationSettings(log_json=False)))

        client.post("/rules", json=_rule_body())
        client.post("/events", json={"type": "INQUIRY_CREATED", "payload": {"priority": "HIGH"}})

        assert orchestrator.rule_store.get("rule_1") is not None
        assert len(client.get("/logs").json()) == 1
        assert log_store.count() == 1

    def test_orchestrator_without_log_store_gets_one(self):
        orchestrator = self._make_orchestrator()
        app = create_app(orchestrator=orchestrator, settings=AutomationSettings(log_json=False))
        assert orchestrator.log_store is app.state.log_store

        client = TestClient(app)
        client.post("/rules", json=_rule_body())
        client.post("/events", json={"type": "INQUIRY_CREATED", "payload": {"priority": "HIGH"}})
        assert len(client.get("/logs").json()) == 1

    def test_orchestrator_and_components_rejected(self):
        with pytest.raises(ValueError):
            create_app(orchestrator=self._make_orchestrator(), log_store=AutomationLogStore())


class TestHealth:
    def test_health(self, client):
        client.post("/rules", json=_rule_body())
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["rules"] == 1
        assert "ESCALATE" in data["executors"]
