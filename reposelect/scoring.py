"""Multi-signal relevance scoring for candidate files."""

from __future__ import annotations

import math
import time
from collections.abc import Iterable, Sequence
from pathlib import PurePosixPath

from reposelect.config import DEFAULT_CONFIG, TOKENS_PER_CHAR, SelectionConfig
from reposelect.discovery import CandidateSource
from reposelect.models import ScoredFile

SECONDS_PER_DAY = 86_400


def filename_score(path: str, keywords: Iterable[str]) -> int:
    """Count keywords that occur in the path, case-insensitively."""
    lowered = path.lower()
    return sum(1 for k in keywords if k in lowered)


def content_score(content: str, keywords: Iterable[str]) -> int:
    """Count keywords that occur anywhere in the content, case-insensitively."""
    lowered = content.lower()
    return sum(1 for k in keywords if k in lowered)


def recency_score(timestamp: int, now: float) -> float:
    """Logarithmic decay from 1.0 (today) towards 0.0 (very old).

    A file 9 days old scores 0.5 and one 99 days old reaches 0. Unknown
    timestamps (0) score 0.
    """
    if not timestamp:
        return 0.0
    age_days = max(0.0, now - timestamp) / SECONDS_PER_DAY
    return max(0.0, min(1.0, 1 - math.log10(1 + age_days) / 2))


def size_penalty(size_bytes: int) -> float:
    return math.log10(1 + size_bytes) / 10


def type_bonus(path: str, extensions: frozenset[str], bonus: float) -> float:
    return bonus if PurePosixPath(path).suffix.lower() in extensions else 0.0


def token_estimate(size_bytes: int, tokens_per_char: float = TOKENS_PER_CHAR) -> int:
    """Approximate token count for a file of the given size."""
    return math.ceil(size_bytes / tokens_per_char)


class Scorer:
    """Scores candidate paths against a fixed keyword set.

    Args:
        source: Provides size, content and timestamps per path.
        keywords: Keywords extracted from the question.
        config: Weights and constants.
        now: Reference time in seconds since epoch; defaults to the current time.
    """

    def __init__(
        self,
        source: CandidateSource,
        keywords: Sequence[str],
        config: SelectionConfig = DEFAULT_CONFIG,
        *,
        now: float | None = None,
    ) -> None:
        self.source = source
        self.keywords = tuple(k.lower() for k in keywords)
        self.config = config
        self.now = time.time() if now is None else now

    def score(self, path: str) -> ScoredFile:
        cfg = self.config
        size = self.source.file_size(path)
        total = (
            cfg.filename_weight * filename_score(path, self.keywords)
            + cfg.content_weight
            * content_score(self.source.file_content(path), self.keywords)
            + cfg.recency_weight
            * recency_score(self.source.last_modified_timestamp(path), self.now)
            - cfg.size_penalty_weight * size_penalty(size)
            + type_bonus(path, cfg.source_extensions, cfg.type_bonus)
        )
        return ScoredFile(
            path=path,
            score=total,
            size_bytes=size,
            estimated_tokens=token_estimate(size, cfg.tokens_per_char),
        )

    def score_many(self, paths: Iterable[str]) -> list[ScoredFile]:
        """Score every path and sort by score descending.

        The sort is stable, so ties keep their input order.
        """
        return sorted(
            (self.score(p) for p in paths), key=lambda sf: sf.score, reverse=True
        )
