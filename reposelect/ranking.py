"""Token-budget-aware file selection."""

from __future__ import annotations

from collections.abc import Iterable

from reposelect.config import MIN_SELECTED_FILES
from reposelect.models import ScoredFile, SelectionResult


def select_within_budget(
    ranked: Iterable[ScoredFile],
    budget: int,
    *,
    min_files: int = MIN_SELECTED_FILES,
) -> SelectionResult:
    """Greedily admit top-ranked files until the token budget runs out.

    The first ``min_files`` files are admitted regardless of budget. After
    that, selection stops at the first file that would overflow the budget;
    smaller files further down are not considered.

    Args:
        ranked: Scored files, already sorted by score descending.
        budget: Token ceiling; 0 yields exactly the first ``min_files`` files.
        min_files: Files guaranteed regardless of budget.

    Returns:
        The selection in rank order with its cumulative token estimate.

    Raises:
        ValueError: If budget is negative.
    """
    if budget < 0:
        raise ValueError(f"budget must be non-negative, got {budget}")

    result = SelectionResult()
    for scored in ranked:
        # A zero budget also stops zero-token files past the floor.
        exhausted = budget == 0
        over = result.total_tokens + scored.estimated_tokens > budget
        if (over or exhausted) and len(result.files) >= min_files:
            break
        result.files.append(scored.path)
        result.total_tokens += scored.estimated_tokens
    return result
