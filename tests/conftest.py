"""Shared test fixtures for reposelect."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from reposelect.runner import COMMAND_NOT_FOUND

GIT_PROBE = ["git", "rev-parse", "--is-inside-work-tree"]


class FakeRunner:
    """Scripted CommandRunner.

    Responses are keyed by an argv prefix; the longest matching prefix wins.
    Unscripted commands behave like a missing executable.
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, ...], subprocess.CompletedProcess[str]] = {}
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self.timeouts: list[float | None] = []

    def add(
        self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = ""
    ) -> FakeRunner:
        self.responses[prefix] = subprocess.CompletedProcess(
            list(prefix), returncode, stdout, stderr
        )
        return self

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path,
        input: str | None = None,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        argv = list(args)
        self.calls.append(argv)
        self.inputs.append(input)
        self.timeouts.append(timeout)
        matches = [p for p in self.responses if tuple(argv[: len(p)]) == p]
        if not matches:
            return subprocess.CompletedProcess(
                argv, COMMAND_NOT_FOUND, "", f"{argv[0]}: command not found"
            )
        return self.responses[max(matches, key=len)]


@dataclass
class FakeSource:
    """In-memory CandidateSource."""

    files: dict[str, str] = field(default_factory=dict)
    timestamps: dict[str, int] = field(default_factory=dict)
    sizes: dict[str, int] = field(default_factory=dict)
    search_calls: list[tuple[str, ...]] = field(default_factory=list)

    def list_in_scope_paths(self) -> list[str]:
        return sorted(self.files)

    def search_content(self, keywords: Sequence[str]) -> set[str]:
        self.search_calls.append(tuple(keywords))
        return {
            path
            for path, content in self.files.items()
            if any(k in content.lower() for k in keywords)
        }

    def file_size(self, path: str) -> int:
        if path in self.sizes:
            return self.sizes[path]
        return len(self.files.get(path, "").encode("utf-8"))

    def file_content(self, path: str) -> str:
        return self.files.get(path, "")

    def last_modified_timestamp(self, path: str) -> int:
        return self.timestamps.get(path, 0)


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def sample_repo(tmp_path: Path) -> Path:
    """Create a small project tree (not a git checkout)."""
    files = {
        "README.md": "# Test Project\n\nThis is a test project for reposelect.\n",
        "package.json": '{\n  "name": "test-project",\n  "version": "1.0.0"\n}\n',
        "src/auth.js": """\
// Authentication module
export function authenticateUser(username, password) {
  // JWT token validation logic
  if (!username || !password) {
    throw new Error('Missing credentials');
  }
  return { token: 'jwt-token-here', user: username };
}
""",
        "src/database.js": """\
// Database connection
export function connectToDatabase() {
  return { connected: true, host: 'localhost' };
}
""",
        "docs/api.md": "# API Documentation\n\n## Authentication\nPOST /auth/login\n",
    }
    for rel, content in files.items():
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return tmp_path
