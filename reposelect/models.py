"""Core data structures for reposelect."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reposelect.delegation import AgentFailure


@dataclass(frozen=True)
class ScoredFile:
    """A candidate path with its composite relevance score and token cost."""

    path: str
    score: float
    size_bytes: int
    estimated_tokens: int


@dataclass
class SelectionResult:
    """The ordered files chosen for packing and what they cost.

    ``source`` is ``"naive"`` for deterministic ranking or the name of the
    agent that made the selection. ``agent_failures`` lists agents that were
    tried and failed before the selection was made.
    """

    files: list[str] = field(default_factory=list)
    total_tokens: int = 0
    source: str = "naive"
    reasoning: str = ""
    confidence: float | None = None
    keywords: tuple[str, ...] = ()
    candidate_count: int = 0
    agent_failures: list[AgentFailure] = field(default_factory=list)


@dataclass(frozen=True)
class AgentOutcome:
    """A file selection proposed by an external agent, before validation."""

    files: tuple[str, ...]
    reasoning: str = "No reasoning provided"
    confidence: float = 0.5
