"""
Rule validation — static checks run before a rule is stored.

Errors block the rule from being saved; warnings are reported but allowed.
The engine never validates at dispatch time: a rule that slipped past these
checks simply produces failed ActionOutcomes.
"""

from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel

from automation_kernel.models.event import TRIGGER_FIELDS
from automation_kernel.models.rule import ActionKind, Operator, Rule


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationIssue(BaseModel):
    severity: Severity
    code: str
    message: str
    location: Optional[str] = None          # e.g. "conditions[1]", "actions[0].params.url"


def _root(field: str) -> str:
    for sep in (".", "["):
        field = field.split(sep, 1)[0]
    return field


def validate_rule(rule: Rule) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    if not rule.actions:
        issues.append(ValidationIssue(
            severity=Severity.WARNING,
            code="no_actions",
            message="Rule has no actions and will do nothing when it matches",
            location="actions",
        ))

    known_fields = TRIGGER_FIELDS.get(rule.trigger, frozenset())
    for i, condition in enumerate(rule.conditions):
        location = f"conditions[{i}]"
        if condition.operator in (Operator.IN, Operator.NOT_IN) and not isinstance(
            condition.value, list
        ):
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                code="value_not_list",
                message=f"Operator '{condition.operator.value}' needs a list value",
                location=f"{location}.value",
            ))
        if known_fields and condition.field not in known_fields and _root(condition.field) not in known_fields:
            issues.append(ValidationIssue(
                severity=Severity.WARNING,
                code="unknown_field",
                message=(
                    f"Field '{condition.field}' is not part of the "
                    f"{rule.trigger.value} payload; the condition will never hold"
                ),
                location=f"{location}.field",
            ))

    # The chain folds strictly left to right, so A AND B OR C means (A AND B) OR C.
    joins = {c.logic for c in rule.conditions[:-1]}
    if len(rule.conditions) >= 3 and len(joins) > 1:
        issues.append(ValidationIssue(
            severity=Severity.WARNING,
            code="mixed_logic",
            message="Conditions mix AND and OR; they are evaluated left to right without precedence",
            location="conditions",
        ))

    for i, action in enumerate(rule.actions):
        location = f"actions[{i}]"
        for key in action.missing_params():
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                code="missing_param",
                message=f"{action.type.value} requires parameter '{key}'",
                location=f"{location}.params.{key}",
            ))
        if action.type == ActionKind.TRIGGER_WEBHOOK and action.params.get("url") is not None:
            url = str(action.params["url"])
            if "{{" not in url and urlparse(url).scheme not in ("http", "https"):
                issues.append(ValidationIssue(
                    severity=Severity.ERROR,
                    code="invalid_url",
                    message=f"Webhook url must be http or https: {url}",
                    location=f"{location}.params.url",
                ))

    return issues


def is_valid(issues: List[ValidationIssue]) -> bool:
    """True when no issue is an error."""
    return not any(issue.severity == Severity.ERROR for issue in issues)
