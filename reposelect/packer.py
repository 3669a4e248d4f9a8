"""Hand the selected files to repomix for packing."""

from __future__ import annotations

import enum
import os
from collections.abc import Sequence
from pathlib import Path

from reposelect.config import DEFAULT_CONFIG, SelectionConfig
from reposelect.errors import PackerError
from reposelect.runner import CommandRunner
from reposelect.scoring import token_estimate

INSTRUCTION_FILE = "repomix-instruction.md"
INSTALL_HINT = "npm install -g repomix"

INSTRUCTION_TEMPLATE = """\
# Context & Rules

## Repository Context
This is a packed repository context for AI assistance. The files below \
represent the most relevant code for answering your question.

## Guidelines
- Only modify files listed in the <files> section
- Follow existing code style and conventions
- Make minimal, focused changes
- Add tests where feasible
- Respect existing linting and formatting rules
- Consider the broader codebase impact

## Question Context
The original question was: "{question}"

Focus your answer on addressing this specific question using the provided context.
"""


class OutputStyle(str, enum.Enum):
    """Output styles repomix can render."""

    XML = "xml"
    MARKDOWN = "markdown"
    JSON = "json"


class Packer:
    """Packs a file list into a single context file with repomix.

    Args:
        root: Repository root; repomix runs there.
        output: Destination file.
        runner: Runs the repomix command.
        style: Output style passed to repomix.
        config: Supplies the token ratio and timeout.
    """

    def __init__(
        self,
        root: Path,
        output: Path,
        runner: CommandRunner,
        *,
        style: OutputStyle = OutputStyle.XML,
        config: SelectionConfig = DEFAULT_CONFIG,
    ) -> None:
        self.root = root
        self.output = output
        self.runner = runner
        self.style = style
        self.config = config

    def total_tokens(self, files: Sequence[str]) -> int:
        """Estimated tokens of the given files; unreadable files count as 0."""
        total = 0
        for name in files:
            try:
                size = (self.root / name).stat().st_size
            except OSError:
                continue
            total += token_estimate(size, self.config.tokens_per_char)
        return total

    def ensure_instruction_file(self, question: str) -> Path:
        """Write the instruction file at the repo root unless one exists."""
        path = self.root / INSTRUCTION_FILE
        if not path.exists():
            path.write_text(INSTRUCTION_TEMPLATE.format(question=question), "utf-8")
        return path

    def pack(self, files: Sequence[str], question: str) -> int:
        """Pack files and return their estimated token total.

        Raises:
            PackerError: If repomix exits non-zero.
        """
        self.ensure_instruction_file(question)
        args = [
            "repomix",
            "--stdin",
            "--style",
            self.style.value,
            "--remove-comments",
            "--output",
            os.path.relpath(self.output, self.root),
            "--instruction-file-path",
            INSTRUCTION_FILE,
        ]
        result = self.runner.run(
            args,
            cwd=self.root,
            input="\n".join(files) + "\n",
            timeout=self.config.packer_timeout,
        )
        if result.returncode != 0:
            raise PackerError(result.returncode, result.stderr.strip())
        return self.total_tokens(files)
