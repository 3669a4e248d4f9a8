"""Tests for the agent delegation state machine."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import FakeRunner

from reposelect.agents import Agent, FactoryAgent, OpenCodeAgent, parse_agent_response
from reposelect.delegation import (
    DelegationController,
    ExhaustedFallback,
    FailureKind,
    Idle,
    Succeeded,
    Trying,
    validate_outcome,
)
from reposelect.errors import AgentResponseError
from reposelect.models import AgentOutcome


class StubAgent(Agent):
    """Agent whose behavior is fixed at construction."""

    name = "stub"
    install_hint = "nowhere"

    def __init__(self, root: Path, name: str, result: AgentOutcome | Exception) -> None:
        super().__init__(root, "q", 100, FakeRunner())
        self.name = name
        self.result = result
        self.calls = 0

    def unavailable_reason(self) -> str | None:
        return None

    def request(self, prompt: str) -> str:
        return ""

    def select_files(self) -> AgentOutcome:
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    (tmp_path / "a.ts").write_text("export {}", encoding="utf-8")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "b.ts").write_text("export {}", encoding="utf-8")
    return tmp_path


class TestValidateOutcome:
    """Tests for validate_outcome."""

    def test_drops_missing_paths(self, repo: Path) -> None:
        outcome = AgentOutcome(files=("a.ts", "ghost.ts", "src/b.ts"))
        assert validate_outcome(outcome, repo).files == ("a.ts", "src/b.ts")

    def test_keeps_reasoning_and_confidence(self, repo: Path) -> None:
        outcome = AgentOutcome(files=("a.ts",), reasoning="why", confidence=0.9)
        validated = validate_outcome(outcome, repo)
        assert validated.reasoning == "why"
        assert validated.confidence == 0.9

    def test_normalizes_and_deduplicates(self, repo: Path) -> None:
        outcome = AgentOutcome(files=("./a.ts", "a.ts", str(repo / "src" / "b.ts")))
        assert validate_outcome(outcome, repo).files == ("a.ts", "src/b.ts")

    def test_rejects_paths_outside_root(
        self, repo: Path, tmp_path_factory: pytest.TempPathFactory
    ) -> None:
        outside = tmp_path_factory.mktemp("outside") / "secret.txt"
        outside.write_text("x", encoding="utf-8")
        outcome = AgentOutcome(files=(str(outside), "../secret.txt", "a.ts"))
        assert validate_outcome(outcome, repo).files == ("a.ts",)

    def test_drops_unusable_names(self, repo: Path) -> None:
        outcome = parse_agent_response('{"files": ["bad\\u0000name", "a.ts"]}')
        assert validate_outcome(outcome, repo).files == ("a.ts",)

    def test_only_unusable_names(self, repo: Path) -> None:
        with pytest.raises(AgentResponseError, match="exist"):
            validate_outcome(AgentOutcome(files=("bad\x00name",)), repo)

    def test_directories_are_not_files(self, repo: Path) -> None:
        with pytest.raises(AgentResponseError):
            validate_outcome(AgentOutcome(files=("src",)), repo)

    def test_empty_list(self, repo: Path) -> None:
        with pytest.raises(AgentResponseError, match="empty"):
            validate_outcome(AgentOutcome(files=()), repo)

    def test_all_missing(self, repo: Path) -> None:
        with pytest.raises(AgentResponseError, match="exist"):
            validate_outcome(AgentOutcome(files=("nope.ts",)), repo)


class TestDelegationController:
    """Tests for DelegationController transitions."""

    def test_starts_idle(self, repo: Path) -> None:
        controller = DelegationController([], repo)
        assert controller.state == Idle()

    def test_no_agents_exhausts_immediately(self, repo: Path) -> None:
        final = DelegationController([], repo).run()
        assert final == ExhaustedFallback(failures=())

    def test_idle_steps_to_first_agent(self, repo: Path) -> None:
        agent = StubAgent(repo, "first", AgentOutcome(files=("a.ts",)))
        controller = DelegationController([agent], repo)
        assert controller.step(Idle()) == Trying(agent="first", index=0)
        assert agent.calls == 0

    def test_start_without_agents(self, repo: Path) -> None:
        controller = DelegationController([], repo)
        assert controller.start() == ExhaustedFallback(failures=())
        assert controller.history == [Idle(), ExhaustedFallback(failures=())]

    def test_start_is_idempotent(self, repo: Path) -> None:
        agent = StubAgent(repo, "first", AgentOutcome(files=("a.ts",)))
        controller = DelegationController([agent], repo)
        controller.start()
        assert controller.start() == Trying(agent="first", index=0)
        assert len(controller.history) == 2

    def test_success_on_first_agent(self, repo: Path) -> None:
        first = StubAgent(repo, "first", AgentOutcome(files=("a.ts",)))
        second = StubAgent(repo, "second", AgentOutcome(files=("src/b.ts",)))
        controller = DelegationController([first, second], repo)
        final = controller.run()
        assert isinstance(final, Succeeded)
        assert final.agent == "first"
        assert second.calls == 0
        assert controller.history == [
            Idle(),
            Trying(agent="first", index=0),
            final,
        ]

    def test_factory_unavailable_then_opencode(self, repo: Path) -> None:
        runner = FakeRunner()
        runner.add("opencode", "--version", stdout="0.3")
        runner.add(
            "opencode",
            "run",
            stdout=json.dumps({"files": ["a.ts"], "confidence": 0.8}),
        )
        agents = [
            FactoryAgent(repo, "q", 100, runner, env={}),
            OpenCodeAgent(repo, "q", 100, runner),
        ]
        controller = DelegationController(agents, repo)
        final = controller.run()
        assert isinstance(final, Succeeded)
        assert final.agent == "opencode"
        assert list(final.outcome.files) == ["a.ts"]
        assert final.outcome.confidence == 0.8
        assert [f.agent for f in controller.failures] == ["factory"]
        assert controller.failures[0].kind is FailureKind.UNAVAILABLE

    def test_nonexistent_files_advance_chain(self, repo: Path) -> None:
        first = StubAgent(repo, "first", AgentOutcome(files=("ghost.ts",)))
        second = StubAgent(repo, "second", AgentOutcome(files=("src/b.ts",)))
        controller = DelegationController([first, second], repo)
        final = controller.run()
        assert isinstance(final, Succeeded)
        assert final.agent == "second"
        assert controller.failures[0].kind is FailureKind.INVALID_RESPONSE

    def test_unusable_names_stay_in_the_chain(self, repo: Path) -> None:
        first = StubAgent(repo, "first", AgentOutcome(files=("bad\x00name",)))
        second = StubAgent(repo, "second", AgentOutcome(files=("bad\x00", "a.ts")))
        final = DelegationController([first, second], repo).run()
        assert final == Succeeded(agent="second", outcome=AgentOutcome(files=("a.ts",)))

    def test_all_fail_exhausts(self, repo: Path) -> None:
        first = StubAgent(repo, "first", AgentResponseError("bad json"))
        second = StubAgent(repo, "second", AgentOutcome(files=()))
        controller = DelegationController([first, second], repo)
        final = controller.run()
        assert isinstance(final, ExhaustedFallback)
        assert [(f.agent, f.kind) for f in final.failures] == [
            ("first", FailureKind.INVALID_RESPONSE),
            ("second", FailureKind.INVALID_RESPONSE),
        ]
        assert final.failures[0].message == "bad json"

    def test_request_failure_kind(self, repo: Path) -> None:
        runner = FakeRunner()
        runner.add("opencode", "--version")
        runner.add("opencode", "run", returncode=1, stderr="crash")
        controller = DelegationController([OpenCodeAgent(repo, "q", 1, runner)], repo)
        final = controller.run()
        assert isinstance(final, ExhaustedFallback)
        assert final.failures[0].kind is FailureKind.REQUEST_FAILED

    def test_programming_errors_propagate(self, repo: Path) -> None:
        agent = StubAgent(repo, "buggy", TypeError("bug"))
        with pytest.raises(TypeError):
            DelegationController([agent], repo).run()

    def test_terminal_states_do_not_move(self, repo: Path) -> None:
        controller = DelegationController([], repo)
        final = controller.run()
        assert controller.step(final) is final
