"""CLI entry point for reposelect."""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Annotated

import typer

from reposelect.config import DEFAULT_BUDGET, DEFAULT_CONFIG
from reposelect.errors import AgentsExhaustedError, NoCandidatesError, PackerError
from reposelect.models import SelectionResult
from reposelect.packer import INSTALL_HINT, OutputStyle, Packer
from reposelect.pipeline import select_files
from reposelect.runner import SubprocessRunner

EXIT_NO_CANDIDATES = 2
DEFAULT_TOP = 20


class AgentName(str, enum.Enum):
    """Agents selectable with --agent."""

    FACTORY = "factory"
    OPENCODE = "opencode"


def _agents_to_try(agent: AgentName | None, smart: bool) -> tuple[str, ...]:
    if smart:
        return DEFAULT_CONFIG.agent_order
    if agent is not None:
        return (agent.value,)
    return ()


def _report_selection(result: SelectionResult, verbose: bool) -> None:
    """Echo how the selection was made."""
    if verbose:
        for failure in result.agent_failures:
            typer.echo(
                f"{failure.agent} unavailable or failed: {failure.message}", err=True
            )
    if result.source != "naive":
        confidence = "N/A" if result.confidence is None else f"{result.confidence:.2f}"
        typer.echo(
            f"{result.source} succeeded -> {len(result.files)} files "
            f"(confidence: {confidence})"
        )
        return
    if result.agent_failures:
        typer.echo(
            "No agent could select files. Falling back to naive search.", err=True
        )
    if verbose:
        typer.echo(f"Keywords: {', '.join(result.keywords)}")
        typer.echo(f"Found {result.candidate_count} candidate files")
        typer.echo(
            f"Selected {len(result.files)} files (~{result.total_tokens} tokens)"
        )
        typer.echo(f"Files: {', '.join(result.files[:10])}")
        if len(result.files) > 10:
            typer.echo(f"... and {len(result.files) - 10} more")


def _print_dry_run(result: SelectionResult, top: int) -> None:
    typer.echo(f"\nTop {top} files selected by {result.source}:\n")
    for i, name in enumerate(result.files[:top], start=1):
        typer.echo(f"{i:>2}. {name}")
    if len(result.files) > top:
        typer.echo(f"... and {len(result.files) - top} more")
    typer.echo(f"\nEstimated tokens: ~{result.total_tokens}")
    if result.reasoning:
        typer.echo(f"Reasoning: {result.reasoning}")


app = typer.Typer(
    name="reposelect",
    help="Select the repository files most relevant to a question and pack them.",
    no_args_is_help=True,
)


@app.command()
def main(
    question: Annotated[str, typer.Argument(help="Question about the codebase.")],
    repo: Annotated[
        Path,
        typer.Option(
            "--repo",
            "-r",
            help="Repository path.",
            exists=True,
            file_okay=False,
            resolve_path=True,
        ),
    ] = Path("."),
    out: Annotated[
        Path,
        typer.Option("--out", "-o", help="Output file.", resolve_path=True),
    ] = Path("context.xml"),
    budget: Annotated[
        int,
        typer.Option("--budget", "-b", min=0, help="Token budget limit."),
    ] = DEFAULT_BUDGET,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Verbose output.")
    ] = False,
    agent: Annotated[
        AgentName | None,
        typer.Option("--agent", help="Delegate selection to this agent first."),
    ] = None,
    smart: Annotated[
        bool,
        typer.Option("--smart", help="Auto-pick the best available agent."),
    ] = False,
    no_fallback: Annotated[
        bool,
        typer.Option(
            "--no-fallback",
            help="Fail instead of falling back to naive search when agents fail.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show the selection without packing."),
    ] = False,
    top: Annotated[
        int,
        typer.Option("--top", min=1, help="Limit the dry-run preview."),
    ] = DEFAULT_TOP,
    output_format: Annotated[
        OutputStyle,
        typer.Option("--format", "-f", help="Packed output style."),
    ] = OutputStyle.XML,
    timeout: Annotated[
        float | None,
        typer.Option(
            "--timeout", min=1, help="Seconds to wait for each agent command."
        ),
    ] = None,
) -> None:
    """Select relevant files for QUESTION and pack them with repomix."""
    if not question.strip():
        typer.echo("Error: Provide a question about the codebase.", err=True)
        raise typer.Exit(1)

    runner = SubprocessRunner()
    try:
        result = select_files(
            repo,
            question,
            budget,
            runner,
            agents=_agents_to_try(agent, smart),
            fallback=not no_fallback,
            agent_timeout=timeout,
        )
    except AgentsExhaustedError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc
    except NoCandidatesError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_NO_CANDIDATES) from exc

    _report_selection(result, verbose)

    if dry_run:
        _print_dry_run(result, top)
        return

    packer = Packer(repo, out, runner, style=output_format)
    try:
        used = packer.pack(result.files, question)
    except PackerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        typer.echo(f"Make sure repomix is installed: {INSTALL_HINT}", err=True)
        raise typer.Exit(exc.returncode) from exc

    typer.echo(f"Packed {len(result.files)} files (~{used} tokens) -> {out}")
