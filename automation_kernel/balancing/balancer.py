"""
Workload Balancer — picks the least-loaded active user holding a role.

Counts are read fresh from the assignment gateway on every call and never
cached. The read and the following assignment write are not atomic: two
events balancing the same role at the same moment can both pick the same
user. That skew is accepted; balancing is a heuristic, not an invariant, and
no locking is done.
"""

from typing import Callable, Dict, Optional

from automation_kernel.errors import NoEligibleUserError
from automation_kernel.gateways.base import AssignmentGateway
from automation_kernel.log import get_logger

logger = get_logger(__name__)


def least_loaded(counts: Dict[str, int]) -> Optional[str]:
    """Minimum open count; ties go to the smallest user id."""
    if not counts:
        return None
    return min(counts, key=lambda user_id: (counts[user_id], user_id))


class WorkloadBalancer:
    def __init__(
        self,
        assignments: AssignmentGateway,
        call: Optional[Callable] = None,
    ):
        self.assignments = assignments
        # Wraps the gateway read, e.g. with a timeout guard
        self._call = call or (lambda fn, *args: fn(*args))

    def workload_snapshot(self, role: str) -> Dict[str, int]:
        counts = self._call(self.assignments.open_item_counts_by_role, role)
        return dict(counts or {})

    def pick_assignee(self, role: str, entity_type: str) -> str:
        counts = self.workload_snapshot(role)
        user_id = least_loaded(counts)
        if user_id is None:
            raise NoEligibleUserError(role, {"entity_type": entity_type})

        logger.info(
            "Workload balanced assignment",
            role=role,
            entity_type=entity_type,
            user_id=user_id,
            open_items=counts[user_id],
            candidates=len(counts),
        )
        return user_id
