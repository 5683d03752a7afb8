"""
TestGenius command line interface.

Commands:
- files: list the selectable source files of a repository
- run:   walk through all four stages interactively
- serve: start the FastAPI service
"""

import asyncio
import posixpath

import typer
from rich import print as rprint
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.syntax import Syntax
from rich.table import Table

from testgenius.config.settings import get_settings
from testgenius.dependencies import OrchestratorDependencies
from testgenius.errors import PipelineError, PublishError
from testgenius.orchestrator import PipelineOrchestrator, default_commit_message
from testgenius.providers import GitHubProvider
from testgenius.utils.logger import setup_logging

app = typer.Typer(no_args_is_help=True, help="Generate unit tests for repository code.")
console = Console()

TokenOption = typer.Option(
    ...,
    "--token",
    "-t",
    envvar="GITHUB_TOKEN",
    help="GitHub personal access token (or set GITHUB_TOKEN)",
)

_SYNTAX_BY_EXTENSION = {".java": "java", ".js": "javascript", ".ts": "typescript", ".tsx": "tsx"}


def _fail(exc: PipelineError) -> None:
    rprint(f"[bold red]✗ {exc.kind.value}:[/bold red] {exc.message}")
    if isinstance(exc, PublishError) and exc.branch_name:
        rprint(f"[yellow]Branch {exc.branch_name} was created and left in place.[/yellow]")
    raise typer.Exit(code=1)


def _parse_choice(raw: str, count: int) -> list[int]:
    """Turn "1,3-4" into zero-based indexes; raises ValueError on bad input."""
    indexes: list[int] = []
    for part in raw.replace(" ", "").split(","):
        if not part:
            continue
        if "-" in part:
            start, end = (int(value) for value in part.split("-", 1))
            indexes.extend(range(start - 1, end))
        else:
            indexes.append(int(part) - 1)
    if not indexes or any(index < 0 or index >= count for index in indexes):
        raise ValueError(raw)
    return indexes


def _ask_indexes(question: str, count: int, multiple: bool) -> list[int]:
    while True:
        raw = Prompt.ask(question)
        try:
            indexes = _parse_choice(raw, count)
        except ValueError:
            rprint(f"[red]Enter {'numbers' if multiple else 'a number'} between 1 and {count}[/red]")
            continue
        if not multiple and len(indexes) != 1:
            rprint("[red]Pick exactly one[/red]")
            continue
        return indexes


@app.command()
def files(repository: str, token: str = TokenOption) -> None:
    """List the source files of REPOSITORY (owner/name or GitHub URL)."""
    setup_logging(level=get_settings().LOG_LEVEL)

    async def _list() -> None:
        async with GitHubProvider() as provider:
            orchestrator = PipelineOrchestrator(
                OrchestratorDependencies(session_id="cli", provider=provider)
            )
            entries = await orchestrator.load_files(repository, token)

        table = Table(title=f"Source files in {orchestrator.snapshot().repository}")
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Path")
        for number, entry in enumerate(entries, start=1):
            table.add_row(str(number), entry.path)
        console.print(table)

    try:
        asyncio.run(_list())
    except PipelineError as exc:
        _fail(exc)


@app.command()
def run(repository: str, token: str = TokenOption) -> None:
    """Interactively generate a test for REPOSITORY and open a pull request."""
    setup_logging(level=get_settings().LOG_LEVEL)

    async def _run() -> None:
        async with GitHubProvider() as provider:
            orchestrator = PipelineOrchestrator(
                OrchestratorDependencies(
                    session_id="cli",
                    provider=provider,
                    send_message=lambda message: rprint(f"[dim]{message}[/dim]"),
                )
            )

            entries = await orchestrator.load_files(repository, token)
            if not entries:
                rprint("[yellow]No source files found.[/yellow]")
                return
            for number, entry in enumerate(entries, start=1):
                rprint(f"  [cyan]{number:>3}[/cyan]  {entry.path}")
            picked = _ask_indexes("Files to use as context (e.g. 1,3-4)", len(entries), True)
            paths = [entries[index].path for index in picked]
            orchestrator.select_files(paths)

            summaries = await orchestrator.generate_summaries()
            for number, summary in enumerate(summaries, start=1):
                rprint(f"  [cyan]{number:>3}[/cyan]  {summary}")
            chosen = summaries[_ask_indexes("Test case to implement", len(summaries), False)[0]]
            orchestrator.choose_summary(chosen)

            default_class = posixpath.splitext(posixpath.basename(paths[0]))[0]
            orchestrator.set_class_name(Prompt.ask("Class under test", default=default_class))

            artifact = await orchestrator.generate_code()
            extension = posixpath.splitext(artifact.suggested_filename)[1]
            console.print(
                Syntax(
                    artifact.source_text,
                    _SYNTAX_BY_EXTENSION.get(extension, extension.lstrip(".") or "text"),
                    line_numbers=True,
                )
            )

            if not Confirm.ask("Open a pull request with this test?", default=True):
                return
            filename = Prompt.ask("Filename", default=artifact.suggested_filename)
            message = Prompt.ask(
                "Commit message", default=default_commit_message(artifact.class_name)
            )
            result = await orchestrator.publish(commit_message=message, filename=filename)
            rprint(f"[bold green]✓ Pull request:[/bold green] {result.pull_request_url}")

    try:
        asyncio.run(_run())
    except PipelineError as exc:
        _fail(exc)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind"),
    port: int = typer.Option(8000, help="Port to listen on"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes"),
) -> None:
    """Start the TestGenius API."""
    from testgenius.api.main import run as run_api

    rprint(f"[cyan]Serving TestGenius API on http://{host}:{port}[/cyan]")
    run_api(host=host, port=port, reload=reload)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
