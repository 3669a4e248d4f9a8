"""Agent delegation as an explicit state machine.

States move ``Idle -> Trying(agent) -> ... -> Succeeded | ExhaustedFallback``.
Each ``Trying`` step invokes exactly one agent; a failure of any kind moves to
the next agent in order, and running out of agents ends in
``ExhaustedFallback`` so the caller can fall back to deterministic ranking.
"""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from reposelect.agents import Agent
from reposelect.errors import (
    AgentError,
    AgentRequestError,
    AgentResponseError,
    AgentUnavailableError,
)
from reposelect.models import AgentOutcome


class FailureKind(enum.Enum):
    """Why an agent attempt did not produce a selection."""

    UNAVAILABLE = "unavailable"
    REQUEST_FAILED = "request-failed"
    INVALID_RESPONSE = "invalid-response"


@dataclass(frozen=True)
class AgentFailure:
    """One failed agent attempt."""

    agent: str
    kind: FailureKind
    message: str


@dataclass(frozen=True)
class Idle:
    """No agent has been tried yet."""


@dataclass(frozen=True)
class Trying:
    """The agent at ``index`` in the chain is about to be invoked."""

    agent: str
    index: int


@dataclass(frozen=True)
class Succeeded:
    """An agent returned a validated selection."""

    agent: str
    outcome: AgentOutcome


@dataclass(frozen=True)
class ExhaustedFallback:
    """Every agent failed; deterministic selection takes over."""

    failures: tuple[AgentFailure, ...]


DelegationState = Idle | Trying | Succeeded | ExhaustedFallback

_FAILURE_KINDS: tuple[tuple[type[AgentError], FailureKind], ...] = (
    (AgentUnavailableError, FailureKind.UNAVAILABLE),
    (AgentRequestError, FailureKind.REQUEST_FAILED),
    (AgentResponseError, FailureKind.INVALID_RESPONSE),
)


def validate_outcome(outcome: AgentOutcome, root: Path) -> AgentOutcome:
    """Keep only returned paths that are existing files under root.

    Paths are normalized to repo-relative POSIX form and deduplicated in
    their original order.

    Raises:
        AgentResponseError: If no returned path survives.
    """
    if not outcome.files:
        raise AgentResponseError("agent returned an empty file list")

    base = root.resolve()
    kept: dict[str, None] = {}
    for name in outcome.files:
        try:
            candidate = (base / name).resolve()
            if not candidate.is_relative_to(base) or not candidate.is_file():
                continue
        except (OSError, ValueError):
            # Unusable names such as ones with an embedded NUL byte.
            continue
        kept.setdefault(candidate.relative_to(base).as_posix(), None)

    if not kept:
        raise AgentResponseError("none of the returned files exist in the repository")
    return dataclasses.replace(outcome, files=tuple(kept))


def _failure_kind(exc: AgentError) -> FailureKind:
    for exc_type, kind in _FAILURE_KINDS:
        if isinstance(exc, exc_type):
            return kind
    return FailureKind.REQUEST_FAILED


class DelegationController:
    """Tries agents one at a time in priority order.

    Args:
        agents: Agents in the order they should be tried.
        root: Repository root used to validate returned paths.
    """

    def __init__(self, agents: Sequence[Agent], root: Path) -> None:
        self.agents = list(agents)
        self.root = root
        self.failures: list[AgentFailure] = []
        self.history: list[DelegationState] = [Idle()]

    @property
    def state(self) -> DelegationState:
        return self.history[-1]

    def _enter(self, state: DelegationState) -> DelegationState:
        self.history.append(state)
        return state

    def _advance(self, index: int) -> DelegationState:
        if index < len(self.agents):
            return self._enter(Trying(agent=self.agents[index].name, index=index))
        return self._enter(ExhaustedFallback(failures=tuple(self.failures)))

    def start(self) -> DelegationState:
        """Leave ``Idle`` for the first agent, or exhaust an empty chain."""
        if not isinstance(self.state, Idle):
            return self.state
        return self._advance(0)

    def step(self, state: DelegationState) -> DelegationState:
        """Perform a single transition from ``state``.

        Terminal states are returned unchanged.
        """
        if isinstance(state, Idle):
            return self.start()
        if not isinstance(state, Trying):
            return state

        agent = self.agents[state.index]
        try:
            outcome = validate_outcome(agent.select_files(), self.root)
        except AgentError as exc:
            self.failures.append(
                AgentFailure(
                    agent=agent.name, kind=_failure_kind(exc), message=str(exc)
                )
            )
            return self._advance(state.index + 1)
        return self._enter(Succeeded(agent=agent.name, outcome=outcome))

    def run(self) -> Succeeded | ExhaustedFallback:
        """Drive the chain until an agent succeeds or none are left."""
        state = self.state
        while not isinstance(state, (Succeeded, ExhaustedFallback)):
            state = self.step(state)
        return state
