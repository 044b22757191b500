"""Tests for the kernel data models."""

import copy
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from automation_kernel.models import (
    MISSING,
    Action,
    ActionKind,
    ActionOutcome,
    Condition,
    ErrorKind,
    Event,
    EventOutcome,
    Logic,
    Operator,
    Rule,
    RuleOutcome,
    RuleStatus,
    TriggerKind,
    resolve_path,
)


def _make_rule(rule_id: str = "rule_1", **overrides) -> Rule:
    fields = dict(
        id=rule_id,
        name=f"Rule {rule_id}",
        trigger=TriggerKind.INQUIRY_CREATED,
        actions=[Action(type=ActionKind.ESCALATE)],
    )
    fields.update(overrides)
    return Rule(**fields)


class TestEvent:
    def test_payload_is_copied_on_construction(self):
        source = {"inquiry": {"priority": "HIGH"}}
        event = Event(type=TriggerKind.INQUIRY_CREATED, payload=source)
        source["inquiry"]["priority"] = "LOW"
        assert event.payload["inquiry"]["priority"] == "HIGH"

    def test_event_is_frozen(self):
        event = Event(type=TriggerKind.INQUIRY_CREATED, payload={})
        with pytest.raises(ValidationError):
            event.type = TriggerKind.QUOTE_CREATED

    def test_occurred_at_defaults_to_now(self):
        before = datetime.now(timezone.utc)
        event = Event(type=TriggerKind.QUOTE_CREATED)
        assert event.occurred_at >= before
        assert event.occurred_at.tzinfo is not None
        assert event.payload == {}

    def test_payload_cannot_be_changed(self):
        event = Event(type=TriggerKind.INQUIRY_CREATED, payload={"a": {"b": 1}, "tags": ["x"]})
        with pytest.raises(TypeError):
            event.payload["new"] = 1
        with pytest.raises(TypeError):
            event.payload["a"]["b"] = 2
        with pytest.raises(TypeError):
            event.payload["a"].update({"b": 3})
        with pytest.raises(AttributeError):
            event.payload["tags"].append("y")
        assert event.payload == {"a": {"b": 1}, "tags": ("x",)}

    def test_default_payload_is_read_only(self):
        event = Event(type=TriggerKind.QUOTE_CREATED)
        with pytest.raises(TypeError):
            event.payload["quoteId"] = "q_1"

    def test_copies_share_the_frozen_payload(self):
        event = Event(type=TriggerKind.INQUIRY_CREATED, payload={"a": {"b": 1}})
        assert copy.deepcopy(event.payload) is event.payload
        rebuilt = Event(type=TriggerKind.INQUIRY_CREATED, payload=event.payload)
        assert rebuilt.payload == event.payload

    def test_dump_gives_plain_containers(self):
        event = Event(type=TriggerKind.INQUIRY_CREATED, payload={"a": {"b": 1}, "tags": ["x"]})
        dumped = event.model_dump(mode="json")["payload"]
        assert dumped == {"a": {"b": 1}, "tags": ["x"]}
        dumped["a"]["b"] = 2
        assert event.payload["a"]["b"] == 1

    def test_unknown_trigger_rejected(self):
        with pytest.raises(ValidationError):
            Event(type="INVOICE_PAID", payload={})

    def test_resolve_delegates_to_payload(self):
        event = Event(type=TriggerKind.ITEM_ASSIGNED, payload={"assignedTo": {"email": "a@x.io"}})
        assert event.resolve("assignedTo.email") == "a@x.io"
        assert event.resolve("assignedTo.name") is MISSING


class TestResolvePath:
    def test_nested_path(self):
        assert resolve_path({"inquiry": {"priority": "HIGH"}}, "inquiry.priority") == "HIGH"

    def test_literal_dotted_key_wins(self):
        payload = {"inquiry.priority": "LITERAL", "inquiry": {"priority": "NESTED"}}
        assert resolve_path(payload, "inquiry.priority") == "LITERAL"

    def test_literal_dotted_key_below_top_level(self):
        payload = {"quote": {"meta.source": "web"}}
        assert resolve_path(payload, "quote.meta.source") == "web"

    def test_list_index(self):
        payload = {"items": [{"name": "a"}, {"name": "b"}]}
        assert resolve_path(payload, "items.1.name") == "b"
        assert resolve_path(payload, "items.5.name") is MISSING

    def test_present_none_is_not_missing(self):
        assert resolve_path({"deadline": None}, "deadline") is None

    def test_missing_returns_sentinel(self):
        assert resolve_path({"a": 1}, "a.b") is MISSING
        assert resolve_path({}, "") is MISSING
        assert not MISSING


class TestRule:
    def test_defaults(self):
        rule = _make_rule()
        assert rule.priority == 0
        assert rule.is_active is True
        assert rule.conditions == []

    @pytest.mark.parametrize("priority", [-1, 1000])
    def test_priority_bounds(self, priority):
        with pytest.raises(ValidationError):
            _make_rule(priority=priority)

    def test_condition_logic_defaults_to_and(self):
        condition = Condition(field="priority", operator=Operator.EQUALS, value="HIGH")
        assert condition.logic == Logic.AND

    def test_operator_parsed_from_lowercase(self):
        condition = Condition(field="x", operator="not_in", value=[1])
        assert condition.operator == Operator.NOT_IN


class TestAction:
    def test_missing_params_sorted(self):
        action = Action(type=ActionKind.ASSIGN_TO_USER, params={})
        assert action.missing_params() == ["entityType", "userId"]

    def test_none_counts_as_missing(self):
        action = Action(type=ActionKind.TRIGGER_WEBHOOK, params={"url": None})
        assert action.missing_params() == ["url"]

    def test_escalate_requires_nothing(self):
        assert Action(type=ActionKind.ESCALATE).missing_params() == []


class TestOutcomes:
    def test_event_outcome_helpers(self):
        event = Event(type=TriggerKind.INQUIRY_CREATED)
        ok = ActionOutcome(action=Action(type=ActionKind.ESCALATE), succeeded=True)
        transient = ActionOutcome(
            action=Action(type=ActionKind.TRIGGER_WEBHOOK, params={"url": "http://x"}),
            succeeded=False,
            error=ErrorKind.TRANSIENT,
        )
        permanent = ActionOutcome(
            action=Action(type=ActionKind.UPDATE_STATUS),
            succeeded=False,
            error=ErrorKind.PERMANENT,
        )
        outcome = EventOutcome(
            event=event,
            rule_outcomes=[
                RuleOutcome(rule=_make_rule("r1"), action_outcomes=[ok, transient]),
                RuleOutcome(rule=_make_rule("r2"), action_outcomes=[permanent]),
                RuleOutcome(rule=_make_rule("r3"), status=RuleStatus.SKIPPED_CANCELLED),
            ],
        )

        assert outcome.matched_rule_ids == ["r1", "r2", "r3"]
        assert outcome.skipped_rule_ids == ["r3"]
        assert outcome.failed_actions() == [transient, permanent]
        assert outcome.retryable_actions() == [transient]
        assert not outcome.succeeded

    def test_fatal_outcome_not_succeeded(self):
        outcome = EventOutcome(
            event=Event(type=TriggerKind.QUOTE_CREATED),
            fatal_error=ErrorKind.RULE_STORE_UNAVAILABLE,
        )
        assert not outcome.succeeded
        assert outcome.rule_outcomes == []

    def test_only_transient_is_retryable(self):
        assert ErrorKind.TRANSIENT.retryable
        assert not ErrorKind.PERMANENT.retryable
        assert not ErrorKind.NO_ELIGIBLE_USER.retryable
        assert not ErrorKind.RULE_STORE_UNAVAILABLE.retryable
