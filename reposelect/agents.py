"""External agents that select files by running an AI coding CLI.

Each agent shells out through a CommandRunner, so tests can drive them with a
scripted runner instead of real binaries.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar

from reposelect.errors import (
    AgentRequestError,
    AgentResponseError,
    AgentUnavailableError,
)
from reposelect.models import AgentOutcome
from reposelect.runner import CommandRunner

PROMPT_TEMPLATE = """\
Analyze this repository and identify the most relevant files for answering \
this question: "{question}"

Requirements:
1. Return a JSON object with a "files" array of paths relative to the repo root
2. Include "reasoning" explaining your selection
3. Include "confidence" as a number between 0 and 1
4. Consider files that:
   - Directly implement the functionality in question
   - Contain related configuration or setup
   - Define interfaces/types used by the core functionality
   - Provide documentation about the feature
5. Stay within approximately {budget} tokens total
6. Prioritize recently modified and actively used files
7. Always include essential files like README, package manifests and main config files

Response format (return only the JSON object, no additional text):
{{
  "files": ["src/auth.js", "README.md", "package.json"],
  "reasoning": "Selected files contain the core authentication logic and project setup",
  "confidence": 0.9
}}"""


MAX_JSON_ATTEMPTS = 100


def build_prompt(question: str, budget: int) -> str:
    return PROMPT_TEMPLATE.format(question=question, budget=budget)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in text, if any.

    Decoding is retried from each ``{`` in turn, so only the first
    ``MAX_JSON_ATTEMPTS`` of them are tried to keep brace-heavy replies from
    costing quadratic time.
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    for _ in range(MAX_JSON_ATTEMPTS):
        if start == -1:
            break
        try:
            obj, _end = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            pass
        else:
            if isinstance(obj, dict):
                return obj
        start = text.find("{", start + 1)
    return None


def parse_agent_response(raw: str, agent: str = "agent") -> AgentOutcome:
    """Turn an agent's raw output into an AgentOutcome.

    Raises:
        AgentResponseError: If no JSON object is found or it has no files array.
    """
    parsed = extract_json_object(raw)
    if parsed is None:
        raise AgentResponseError(f"No JSON found in {agent} response")

    files = parsed.get("files")
    if not isinstance(files, list):
        raise AgentResponseError(f"Invalid {agent} response: files array missing")

    reasoning = parsed.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning:
        reasoning = "No reasoning provided"

    confidence = parsed.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = 0.5

    return AgentOutcome(
        files=tuple(f for f in files if isinstance(f, str) and f),
        reasoning=reasoning,
        confidence=max(0.0, min(1.0, float(confidence))),
    )


class Agent(ABC):
    """An external selection mechanism invoked as a subprocess.

    Subclasses describe how to probe for the runtime and how to issue the
    request; ``select_files`` ties the two together.
    """

    name: ClassVar[str]
    install_hint: ClassVar[str]

    def __init__(
        self,
        root: Path,
        question: str,
        budget: int,
        runner: CommandRunner,
        *,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.root = root
        self.question = question
        self.budget = budget
        self.runner = runner
        self.timeout = timeout
        self.env = os.environ if env is None else env

    @abstractmethod
    def unavailable_reason(self) -> str | None:
        """Explain why the runtime cannot be used, or None if it can."""

    @abstractmethod
    def request(self, prompt: str) -> str:
        """Send the prompt and return the raw response text."""

    def check_available(self) -> bool:
        return self.unavailable_reason() is None

    def parse(self, raw: str) -> AgentOutcome:
        return parse_agent_response(raw, self.name)

    def select_files(self) -> AgentOutcome:
        """Probe the runtime, send the prompt and parse the reply.

        Raises:
            AgentUnavailableError: The runtime is missing or unauthenticated.
            AgentRequestError: The runtime exited non-zero.
            AgentResponseError: The reply could not be parsed.
        """
        reason = self.unavailable_reason()
        if reason is not None:
            raise AgentUnavailableError(reason)
        return self.parse(self.request(build_prompt(self.question, self.budget)))

    def _run(self, *args: str) -> tuple[int, str, str]:
        result = self.runner.run(list(args), cwd=self.root, timeout=self.timeout)
        return result.returncode, result.stdout, result.stderr


class FactoryAgent(Agent):
    """Factory's ``droid`` CLI, run non-interactively with JSON output."""

    name = "factory"
    install_hint = "curl -fsSL https://app.factory.ai/cli | sh"

    def unavailable_reason(self) -> str | None:
        code, _, _ = self._run("droid", "--version")
        if code != 0:
            return f"Factory CLI not found. Install with: {self.install_hint}"
        if not self.env.get("FACTORY_API_KEY"):
            return "FACTORY_API_KEY environment variable not set"
        return None

    def request(self, prompt: str) -> str:
        code, out, err = self._run("droid", "exec", "--output-format", "json", prompt)
        if code != 0:
            raise AgentRequestError(f"Factory Droid failed: {err.strip()}")
        return out

    def parse(self, raw: str) -> AgentOutcome:
        # droid wraps the model's answer in {"type": "result", "result": "..."}
        content = raw
        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError:
            envelope = None
        if isinstance(envelope, dict) and isinstance(envelope.get("result"), str):
            content = envelope["result"]
        elif isinstance(envelope, str):
            content = envelope
        return parse_agent_response(content, self.name)


class OpenCodeAgent(Agent):
    """The ``opencode`` CLI."""

    name = "opencode"
    install_hint = "https://opencode.ai"

    def unavailable_reason(self) -> str | None:
        code, _, _ = self._run("opencode", "--version")
        if code != 0:
            return f"OpenCode CLI not found. Install from: {self.install_hint}"
        return None

    def request(self, prompt: str) -> str:
        code, out, err = self._run("opencode", "run", prompt)
        if code != 0:
            raise AgentRequestError(f"OpenCode failed: {err.strip()}")
        return out


AGENTS: dict[str, type[Agent]] = {
    FactoryAgent.name: FactoryAgent,
    OpenCodeAgent.name: OpenCodeAgent,
}


def create_agent(
    name: str,
    root: Path,
    question: str,
    budget: int,
    runner: CommandRunner,
    *,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> Agent:
    """Instantiate a registered agent by name.

    Raises:
        KeyError: If no agent is registered under ``name``.
    """
    return AGENTS[name](root, question, budget, runner, timeout=timeout, env=env)
