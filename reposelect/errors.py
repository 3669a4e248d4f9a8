"""Exceptions raised by the selection pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from reposelect.delegation import AgentFailure


class ReposelectError(Exception):
    """Base class for every error reposelect raises on purpose."""


class NoCandidatesError(ReposelectError):
    """No file matched the question and nothing is always included."""


class AgentError(ReposelectError):
    """An agent could not produce a usable selection."""


class AgentUnavailableError(AgentError):
    """The agent's runtime is not installed or not authenticated."""


class AgentRequestError(AgentError):
    """The agent ran but exited with a failure."""


class AgentResponseError(AgentError):
    """The agent's response could not be parsed or held no valid files."""


class AgentsExhaustedError(ReposelectError):
    """Every requested agent failed and fallback is disabled."""

    def __init__(
        self, failures: Sequence[AgentFailure], hints: dict[str, str]
    ) -> None:
        self.failures = tuple(failures)
        self.hints = dict(hints)
        lines = ["No agent could select files."]
        lines.extend(f"  {f.agent}: {f.message}" for f in self.failures)
        if self.hints:
            lines.append("Install agents with:")
            lines.extend(f"  {name} -> {hint}" for name, hint in self.hints.items())
        super().__init__("\n".join(lines))


class PackerError(ReposelectError):
    """The external packer exited non-zero."""

    def __init__(self, returncode: int, detail: str = "") -> None:
        self.returncode = returncode
        message = f"repomix failed with exit code {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
