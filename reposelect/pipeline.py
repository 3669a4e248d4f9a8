"""End-to-end file selection: agents first when requested, ranking otherwise."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from reposelect.agents import AGENTS, create_agent
from reposelect.config import DEFAULT_CONFIG, SelectionConfig
from reposelect.delegation import DelegationController, Succeeded
from reposelect.discovery import (
    CandidateSource,
    GitCandidateSource,
    discover_candidates,
)
from reposelect.errors import AgentsExhaustedError, NoCandidatesError
from reposelect.keywords import extract_keywords
from reposelect.models import SelectionResult
from reposelect.ranking import select_within_budget
from reposelect.runner import CommandRunner
from reposelect.scoring import Scorer, token_estimate


def select_deterministic(
    source: CandidateSource,
    question: str,
    budget: int,
    config: SelectionConfig = DEFAULT_CONFIG,
    *,
    now: float | None = None,
) -> SelectionResult:
    """Rank candidate files by keyword relevance and fit them to the budget.

    Raises:
        NoCandidatesError: If discovery or selection comes up empty.
    """
    keywords = extract_keywords(question, config)
    paths = source.list_in_scope_paths()
    pool = discover_candidates(paths, keywords, source, config)
    if not pool:
        raise NoCandidatesError("No relevant files found.")

    ranked = Scorer(source, keywords, config, now=now).score_many(pool)
    result = select_within_budget(ranked, budget, min_files=config.min_selected_files)
    if not result.files:
        raise NoCandidatesError("No relevant files found.")

    result.keywords = keywords
    result.candidate_count = len(pool)
    return result


def select_files(
    root: Path,
    question: str,
    budget: int,
    runner: CommandRunner,
    *,
    agents: Sequence[str] = (),
    fallback: bool = True,
    config: SelectionConfig = DEFAULT_CONFIG,
    agent_timeout: float | None = None,
    env: Mapping[str, str] | None = None,
    source: CandidateSource | None = None,
) -> SelectionResult:
    """Select files for a question, delegating to agents when asked.

    Args:
        root: Repository root.
        question: The natural-language question.
        budget: Token budget.
        runner: Runs git and agent commands.
        agents: Agent names to try in order; empty skips delegation entirely.
        fallback: Fall back to deterministic ranking when every agent fails.
        config: Selection constants.
        agent_timeout: Per-command timeout for agents; defaults to the config's.
        env: Environment for agents that need credentials.
        source: Candidate source; defaults to a GitCandidateSource over root.

    Returns:
        The final selection.

    Raises:
        AgentsExhaustedError: Every agent failed and fallback is disabled.
        NoCandidatesError: Deterministic ranking found nothing.
    """
    if source is None:
        source = GitCandidateSource(root, runner, config)

    failures = []
    if agents:
        timeout = config.agent_timeout if agent_timeout is None else agent_timeout
        controller = DelegationController(
            [
                create_agent(
                    name, root, question, budget, runner, timeout=timeout, env=env
                )
                for name in agents
            ],
            root,
        )
        final = controller.run()
        if isinstance(final, Succeeded):
            files = list(final.outcome.files)
            return SelectionResult(
                files=files,
                total_tokens=sum(
                    token_estimate(source.file_size(f), config.tokens_per_char)
                    for f in files
                ),
                source=final.agent,
                reasoning=final.outcome.reasoning,
                confidence=final.outcome.confidence,
                agent_failures=list(controller.failures),
            )
        if not fallback:
            raise AgentsExhaustedError(
                final.failures, {name: AGENTS[name].install_hint for name in agents}
            )
        failures = list(final.failures)

    result = select_deterministic(source, question, budget, config)
    result.agent_failures = failures
    return result
