"""Keyword extraction from natural-language questions."""

from __future__ import annotations

import re

from reposelect.config import DEFAULT_CONFIG, SelectionConfig

_TOKEN_RE = re.compile(r"[a-z0-9_]+")


def extract_keywords(
    question: str, config: SelectionConfig = DEFAULT_CONFIG
) -> tuple[str, ...]:
    """Return the significant terms of a question.

    Lowercases the text, keeps runs of ``[a-z0-9_]`` at least
    ``config.min_keyword_length`` long, drops stopwords, and deduplicates
    while keeping first-seen order.

    Args:
        question: Free-text question about the codebase.
        config: Supplies the stopword list and minimum length.

    Returns:
        Tuple of keywords, possibly empty.
    """
    seen: dict[str, None] = {}
    for token in _TOKEN_RE.findall(question.lower()):
        if len(token) < config.min_keyword_length or token in config.stopwords:
            continue
        seen.setdefault(token, None)
    return tuple(seen)
