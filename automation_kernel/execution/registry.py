"""Maps each ActionKind to its executor."""

from typing import Dict, List, Optional

from automation_kernel.execution.executors import DEFAULT_EXECUTORS, ActionExecutor
from automation_kernel.models.rule import ActionKind


class ExecutorRegistry:
    def __init__(self):
        self._executors: Dict[ActionKind, ActionExecutor] = {}

    @classmethod
    def default(cls) -> "ExecutorRegistry":
        """A registry holding the built-in executor for every ActionKind."""
        registry = cls()
        for executor_cls in DEFAULT_EXECUTORS:
            registry.register(executor_cls())
        return registry

    def register(self, executor: ActionExecutor) -> None:
        """Register (or replace) the executor for ``executor.kind``."""
        self._executors[executor.kind] = executor

    def get(self, kind: ActionKind) -> Optional[ActionExecutor]:
        return self._executors.get(kind)

    def kinds(self) -> List[ActionKind]:
        return list(self._executors)
