"""In-process agent/task pipeline engine."""

from techblog.pipeline.engine import (
    Agent,
    Task,
    TaskContext,
    TaskStatus,
    Team,
    TeamState,
    TeamStatus,
    WorkflowStopped,
)

__all__ = [
    "Agent",
    "Task",
    "TaskContext",
    "TaskStatus",
    "Team",
    "TeamState",
    "TeamStatus",
    "WorkflowStopped",
]
