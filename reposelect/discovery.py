"""Candidate source over a git checkout and candidate discovery."""

from __future__ import annotations

import functools
import os
import re
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Protocol

import pathspec

from reposelect.config import DEFAULT_CONFIG, SelectionConfig
from reposelect.runner import CommandRunner

SKIP_DIRS: frozenset[str] = frozenset(
    {
        "__pycache__",
        "node_modules",
        ".git",
        ".hg",
        ".svn",
        "venv",
        ".venv",
        "env",
        "build",
        "dist",
        ".tox",
        ".mypy_cache",
        ".ruff_cache",
        ".pytest_cache",
        "egg-info",
    }
)


class CandidateSource(Protocol):
    """Read access to the in-scope files of a repository."""

    def list_in_scope_paths(self) -> list[str]: ...

    def search_content(self, keywords: Sequence[str]) -> set[str]: ...

    def file_size(self, path: str) -> int: ...

    def file_content(self, path: str) -> str: ...

    def last_modified_timestamp(self, path: str) -> int: ...


class GitCandidateSource:
    """CandidateSource backed by git, with a filesystem fallback.

    ``root`` may be anywhere inside a git work tree; paths are relative to it.
    When it is not inside one, or git cannot list files, the tree is walked
    instead and the root ``.gitignore`` is honored. Every path handed
    out has already been filtered through the configured ignore directories
    and excluded suffixes.
    """

    def __init__(
        self,
        root: Path,
        runner: CommandRunner,
        config: SelectionConfig = DEFAULT_CONFIG,
    ) -> None:
        self.root = root
        self.runner = runner
        self.config = config
        self._exclude = pathspec.GitIgnoreSpec.from_lines(config.exclusion_patterns())

    @functools.cached_property
    def _is_git(self) -> bool:
        code, out = self._git("rev-parse", "--is-inside-work-tree")
        return code == 0 and out.strip() == "true"

    def _git(self, *args: str) -> tuple[int, str]:
        result = self.runner.run(
            ["git", *args], cwd=self.root, timeout=self.config.git_timeout
        )
        return result.returncode, result.stdout

    def _in_scope(self, paths: Iterable[str]) -> list[str]:
        return sorted(p for p in paths if p and not self._exclude.match_file(p))

    def _git_ls_files(self) -> set[str] | None:
        """Return git-tracked files, or None when git cannot answer."""
        if not self._is_git:
            return None
        code, out = self._git("ls-files", "-z")
        if code != 0:
            return None
        return set(out.split("\0"))

    def list_in_scope_paths(self) -> list[str]:
        """Return every repo-relative path eligible for selection, sorted."""
        files = self._git_ls_files()
        if files is None:
            files = set(_walk_files(self.root))
        return self._in_scope(files)

    def search_content(self, keywords: Sequence[str]) -> set[str]:
        """Return paths whose content contains any keyword, case-insensitively.

        Uses a single ``git grep`` for the whole keyword set. Git failures
        yield an empty set rather than an error.
        """
        if not keywords:
            return set()
        if not self._is_git:
            lowered = [k.lower() for k in keywords]
            return {
                path
                for path in self.list_in_scope_paths()
                if any(k in self.file_content(path).lower() for k in lowered)
            }
        args = ["grep", "-l", "-z", "-i", "-F"]
        for keyword in keywords:
            args.extend(["-e", keyword])
        code, out = self._git(*args)
        # git grep exits 1 when nothing matched.
        if code != 0:
            return set()
        return set(self._in_scope(out.split("\0")))

    def file_size(self, path: str) -> int:
        try:
            return (self.root / path).stat().st_size
        except OSError:
            return 0

    def file_content(self, path: str) -> str:
        try:
            return (self.root / path).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return ""

    def last_modified_timestamp(self, path: str) -> int:
        """Seconds since epoch of the last commit touching ``path``, 0 if unknown."""
        if not self._is_git:
            try:
                return int((self.root / path).stat().st_mtime)
            except OSError:
                return 0
        code, out = self._git("log", "-1", "--format=%ct", "--", path)
        if code != 0:
            return 0
        try:
            return int(out.strip())
        except ValueError:
            return 0


def _walk_files(root: Path) -> list[str]:
    """Walk root and return repo-relative POSIX paths not ignored by .gitignore."""
    gitignore = _load_gitignore(root)
    results: list[str] = []

    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        # Prune skip dirs and hidden dirs in-place to prevent descent
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
        )

        rel_dir = Path(dirpath).relative_to(root)

        for fname in sorted(filenames):
            full_path = Path(dirpath) / fname
            if full_path.is_symlink():
                continue

            rel = (rel_dir / fname).as_posix()
            if gitignore.match_file(rel):
                continue
            results.append(rel)

    return results


def _load_gitignore(root: Path) -> pathspec.GitIgnoreSpec:
    """Load .gitignore from root, returning a matcher."""
    gitignore_path = root / ".gitignore"
    if gitignore_path.is_file():
        lines = gitignore_path.read_text(encoding="utf-8").splitlines()
        return pathspec.GitIgnoreSpec.from_lines(lines)
    return pathspec.GitIgnoreSpec.from_lines([])


@functools.cache
def _compile_patterns(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def match_by_name(paths: Iterable[str], keywords: Sequence[str]) -> list[str]:
    """Return paths containing any keyword, case-insensitively."""
    lowered = [k.lower() for k in keywords]
    return [p for p in paths if any(k in p.lower() for k in lowered)]


def must_include(
    paths: Iterable[str], config: SelectionConfig = DEFAULT_CONFIG
) -> list[str]:
    """Return docs, manifests, lockfiles and tooling config among paths."""
    compiled = _compile_patterns(config.must_include_patterns)
    return [p for p in paths if any(rx.search(p) for rx in compiled)]


def discover_candidates(
    paths: Sequence[str],
    keywords: Sequence[str],
    source: CandidateSource,
    config: SelectionConfig = DEFAULT_CONFIG,
) -> list[str]:
    """Union filename matches, content matches and always-included paths.

    Args:
        paths: In-scope paths from the candidate source.
        keywords: Keywords extracted from the question.
        source: Answers the content search in a single call.
        config: Supplies the always-include patterns.

    Returns:
        Deduplicated candidate pool in first-seen order.
    """
    by_content = source.search_content(keywords) if keywords else set()
    pool: dict[str, None] = {}
    for group in (
        match_by_name(paths, keywords),
        sorted(by_content),
        must_include(paths, config),
    ):
        for path in group:
            pool.setdefault(path, None)
    return list(pool)
