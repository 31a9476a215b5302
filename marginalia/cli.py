"""Command-line interface for the book research engine."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer

from .config.factory import create_orchestrator
from .config.loader import list_profiles, load_config
from .research.events import DebugEvent
from .research.models import BookContext, BookDocument
from .research.orchestrator import ResearchError
from .research.research_settings import ResearchSettings, export_settings, validate_settings

app = typer.Typer(
    name="marginalia",
    help="Multi-agent research over a single book.",
    add_completion=False,
)


def load_book_context(path: Path) -> BookContext:
    """Load a book from JSON.

    The file holds either a full BookContext (``bookId``, ``document``,
    optional ``settings``) or just a BookDocument, in which case the file
    name is used as the book id.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if "document" in data:
        return BookContext.model_validate(data)
    return BookContext(book_id=path.stem, document=BookDocument.model_validate(data))


def load_settings_file(path: Path | None) -> ResearchSettings | None:
    """Validated settings from a JSON file, or None when no file is given."""
    if path is None:
        return None
    return validate_settings(path.read_text(encoding="utf-8"))


def print_debug_event(event: DebugEvent) -> None:
    """Write one event as a JSON line to stderr."""
    typer.echo(event.to_json(), err=True)


@app.command()
def research(
    query: Annotated[str, typer.Argument(help="Question about the book")],
    book: Annotated[
        Path,
        typer.Option("--book", "-b", help="Book JSON file (BookDocument or BookContext)", exists=True, dir_okay=False),
    ],
    settings_path: Annotated[
        Path,
        typer.Option("--settings", "-s", help="Research settings JSON file", exists=True, dir_okay=False),
    ] = None,
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Print debug events to stderr as JSON lines"),
    ] = False,
    forward_url: Annotated[
        str,
        typer.Option("--forward-url", help="POST debug events to this URL"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json"),
    ] = "text",
    timeout: Annotated[
        float,
        typer.Option("--timeout", "-t", help="Deadline for the whole call in seconds"),
    ] = None,
):
    """
    Research a question against a book.

    Examples:

        # Full research with the default profile
        marginalia research "How does the author define virtue?" --book ethics.json

        # Quick mode and tighter budgets from a settings file
        marginalia research "Who is Ishmael?" -b moby.json -s quick.json

        # Watch the agents work
        marginalia research "Is the central claim well supported?" -b book.json --debug

        # Output as JSON
        marginalia research "What is chapter 3 about?" -b book.json --format json
    """
    if output_format not in ("text", "json"):
        typer.echo("Error: Format must be one of: text, json", err=True)
        raise typer.Exit(1)

    context = load_book_context(book)
    settings = load_settings_file(settings_path)

    try:
        response = asyncio.run(
            _research_async(query, context, settings, profile, debug, forward_url, timeout)
        )
    except (ResearchError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if output_format == "json":
        typer.echo(json.dumps(response.to_dict(), indent=2))
        return

    typer.echo(response.synthesis)
    typer.echo()
    typer.echo(
        f"Mode: {response.mode} | Agents: {response.agent_count} | "
        f"Confidence: {response.confidence:.2f} | Time: {response.total_execution_time:.1f}s"
    )
    if response.sources:
        typer.echo("Sources:")
        for source in response.sources:
            typer.echo(f"  - {source.section_title} ({source.section_id})")


async def _research_async(
    query: str,
    context: BookContext,
    settings: ResearchSettings | None,
    profile: str | None,
    debug: bool,
    forward_url: str | None,
    timeout: float | None,
):
    """Async implementation of research."""
    from .research.events import DebugEventBus
    from .streaming import WebhookConfig, WebhookForwarder

    bus = DebugEventBus()
    if debug:
        bus.subscribe(print_debug_event)

    orchestrator = create_orchestrator(load_config(profile), event_bus=bus)

    forwarder = None
    if forward_url:
        forwarder = WebhookForwarder(WebhookConfig(url=forward_url))
        forwarder.start()
        forwarder.attach(bus)

    try:
        async with orchestrator.llm:
            return await orchestrator.answer(
                query,
                context,
                settings=settings,
                debug_enabled=debug or forwarder is not None,
                timeout=timeout,
            )
    finally:
        if forwarder is not None:
            forwarder.stop(timeout=5.0)


@app.command()
def insight(
    query: Annotated[str, typer.Argument(help="Question about the book")],
    book: Annotated[
        Path,
        typer.Option("--book", "-b", help="Book JSON file", exists=True, dir_okay=False),
    ],
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
):
    """
    Quick answer from the search agent alone.

    Examples:

        marginalia insight "Where is the whale first sighted?" --book moby.json
    """
    context = load_book_context(book)

    try:
        text = asyncio.run(_insight_async(query, context, profile))
    except (ResearchError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(text)


async def _insight_async(query: str, context: BookContext, profile: str | None) -> str:
    """Async implementation of insight."""
    orchestrator = create_orchestrator(load_config(profile))
    async with orchestrator.llm:
        return await orchestrator.get_quick_insight(query, context)


@app.command()
def settings(
    path: Annotated[
        Path,
        typer.Argument(help="Settings JSON to validate (defaults if omitted)", exists=True, dir_okay=False),
    ] = None,
):
    """
    Validate research settings and print the normalized result.

    Out-of-range values are clamped and missing values defaulted.

    Examples:

        marginalia settings my-settings.json
    """
    try:
        validated = validate_settings(path.read_text(encoding="utf-8") if path else None)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(export_settings(validated))


@app.command()
def profiles():
    """List available configuration profiles."""
    names = list_profiles()
    if not names:
        typer.echo("No profiles found.", err=True)
        raise typer.Exit(1)

    typer.echo("Available profiles:\n")
    for name in names:
        config = load_config(name)
        typer.echo(f"  {name}")
        typer.echo(f"    Backend: {config.llm.backend}")
        typer.echo(f"    Model: {config.llm.model or 'default'}")
        typer.echo(f"    Request timeout: {config.research.orchestrator.request_timeout}s")
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
