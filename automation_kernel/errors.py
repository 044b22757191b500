"""
Error taxonomy for the automation kernel.

Every failure the engine reports carries an ErrorKind. Executors raise the
subclasses below; the dispatcher turns them into ActionOutcome errors and the
orchestrator turns a RuleStoreUnavailableError into a fatal EventOutcome.
"""

from typing import Any, Dict, Optional

import httpx

from automation_kernel.models.outcome import ErrorKind


class AutomationError(Exception):
    """Base exception for the automation kernel."""

    kind: ErrorKind = ErrorKind.PERMANENT

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


class TransientError(AutomationError):
    """Network, transport or timeout failure. The caller may retry."""

    kind = ErrorKind.TRANSIENT


class PermanentError(AutomationError):
    """Invalid reference or parameters. Must not be retried automatically."""

    kind = ErrorKind.PERMANENT


class NoEligibleUserError(AutomationError):
    """No active user holds the requested role."""

    kind = ErrorKind.NO_ELIGIBLE_USER

    def __init__(self, role: str, details: Optional[Dict[str, Any]] = None):
        self.role = role
        super().__init__(f"No active users with role {role}", details)


class RuleStoreUnavailableError(AutomationError):
    """The rule store could not be read. Fatal for the event."""

    kind = ErrorKind.RULE_STORE_UNAVAILABLE


_TRANSIENT_TYPES = (TimeoutError, ConnectionError, httpx.TransportError)


def classify_exception(exc: BaseException) -> AutomationError:
    """Map any exception raised below the dispatcher onto the taxonomy."""
    if isinstance(exc, AutomationError):
        return exc
    if isinstance(exc, _TRANSIENT_TYPES):
        return TransientError(str(exc) or type(exc).__name__,
                              {"exception": type(exc).__name__})
    return PermanentError(str(exc) or type(exc).__name__,
                          {"exception": type(exc).__name__})
