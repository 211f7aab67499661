"""Sequential multi-agent task runner.

A ``Team`` is a named set of ``Agent`` roles and an ordered list of ``Task``
steps. ``start()`` runs the steps one after another; each step's handler sees
the team inputs, the environment, and the outputs of every step before it.
``stop()`` is cooperative: the current step finishes, the next one never starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class TeamStatus(str, Enum):
    INITIAL = "initial"
    RUNNING = "running"
    FINISHED = "finished"
    STOPPED = "stopped"
    ERRORED = "errored"


class TaskStatus(str, Enum):
    TODO = "todo"
    DOING = "doing"
    DONE = "done"
    BLOCKED = "blocked"


class WorkflowStopped(RuntimeError):
    """Raised by ``Team.start`` when the team was stopped before finishing."""


@dataclass
class Agent:
    name: str
    role: str
    goal: str
    background: str = ""


@dataclass
class TaskContext:
    inputs: dict[str, Any]
    env: dict[str, str]
    outputs: dict[str, Any]


TaskHandler = Callable[[TaskContext], Awaitable[Any]]


@dataclass
class Task:
    title: str
    description: str
    expected_output: str
    agent: Agent
    handler: TaskHandler
    status: TaskStatus = TaskStatus.TODO


@dataclass
class TeamState:
    status: TeamStatus
    tasks: dict[str, TaskStatus] = field(default_factory=dict)
    error: str | None = None


class Team:
    def __init__(
        self,
        name: str,
        agents: list[Agent],
        tasks: list[Task],
        inputs: dict[str, Any] | None = None,
        env: dict[str, str] | None = None,
    ):
        unknown = [t.title for t in tasks if t.agent not in agents]
        if unknown:
            raise ValueError(f"Tasks assigned to agents outside the team: {unknown}")
        self.name = name
        self.agents = agents
        self.tasks = tasks
        self.inputs = dict(inputs or {})
        self.env = dict(env or {})
        self._status = TeamStatus.INITIAL
        self._stop_requested = False
        self._error: str | None = None

    @property
    def state(self) -> TeamState:
        return TeamState(
            status=self._status,
            tasks={t.title: t.status for t in self.tasks},
            error=self._error,
        )

    def stop(self) -> None:
        if self._status in (TeamStatus.INITIAL, TeamStatus.RUNNING):
            logger.info("Stop requested for team %s", self.name)
            self._stop_requested = True

    async def start(self) -> dict[str, Any]:
        """Run all tasks in order and return their outputs keyed by task title."""
        if self._status != TeamStatus.INITIAL:
            raise RuntimeError(f"Team {self.name} has already been started")
        self._status = TeamStatus.RUNNING
        outputs: dict[str, Any] = {}

        for task in self.tasks:
            if self._stop_requested:
                self._status = TeamStatus.STOPPED
                raise WorkflowStopped(f"Team {self.name} was stopped before task '{task.title}'")

            task.status = TaskStatus.DOING
            logger.info("[%s] %s -> %s", self.name, task.agent.name, task.title)
            try:
                outputs[task.title] = await task.handler(
                    TaskContext(inputs=self.inputs, env=self.env, outputs=outputs)
                )
            except BaseException as e:
                task.status = TaskStatus.BLOCKED
                self._status = TeamStatus.ERRORED
                self._error = str(e)
                raise
            task.status = TaskStatus.DONE

        if self._stop_requested:
            self._status = TeamStatus.STOPPED
            raise WorkflowStopped(f"Team {self.name} was stopped")
        self._status = TeamStatus.FINISHED
        return outputs
