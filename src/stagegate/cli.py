"""StageGate CLI - typer application entry point."""

from __future__ import annotations

import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stagegate.observability import close_file_logging, configure_logging, get_logger
from stagegate.pipeline.config import (
    CONFIG_FILENAME,
    ConfigError,
    EngineConfig,
    build_registry,
    create_default_config,
    load_config,
)

if TYPE_CHECKING:
    from stagegate.models.evaluation import EvaluationResult
    from stagegate.pipeline.registry import StageRegistry

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="sg",
    help="StageGate: requirement-gated, multi-stage essay and thesis writing.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

# Global state set by the callback, used by commands
_config_path: Path | None = None


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log-dir",
            help="Also write every log event to {log-dir}/stagegate.jsonl.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help=f"Path to {CONFIG_FILENAME} (default: ./{CONFIG_FILENAME} if present).",
            envvar="SG_CONFIG",
        ),
    ] = None,
) -> None:
    """StageGate: requirement-gated, multi-stage essay and thesis writing."""
    global _config_path
    _config_path = config

    configure_logging(verbosity=verbose, log_dir=log_dir)
    if log_dir is not None:
        atexit.register(close_file_logging)


def _load_engine_config() -> EngineConfig:
    """Resolve configuration from --config, ./stagegate.yaml, or defaults.

    Exits with an error message when the selected config is unusable.
    """
    config_path = _config_path
    if config_path is None and Path(CONFIG_FILENAME).exists():
        config_path = Path(CONFIG_FILENAME)
    if config_path is None:
        return EngineConfig()

    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _resolve_registry(
    config: EngineConfig,
    mode: str | None,
    catalog: Path | None,
) -> StageRegistry:
    """Build the registry, letting --mode/--catalog override the config."""
    if catalog is not None:
        config.catalog = catalog
    elif mode is not None:
        config.catalog = None
        config.mode = mode

    try:
        return build_registry(config)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e.reason}")
        raise typer.Exit(1) from e


@app.command()
def version() -> None:
    """Show version information."""
    from stagegate import __version__

    console.print(f"StageGate v{__version__}")


@app.command()
def init(
    name: Annotated[str, typer.Argument(help="Project or deployment name")],
    path: Annotated[
        Path,
        typer.Option("--path", "-p", help="Directory to write the config into."),
    ] = Path(),
    mode: Annotated[
        str,
        typer.Option("--mode", "-m", help="Writing mode: essay or thesis."),
    ] = "essay",
    word_limit: Annotated[
        int | None,
        typer.Option("--word-limit", "-w", help="Default global word limit."),
    ] = None,
) -> None:
    """Write a stagegate.yaml configuration file."""
    from ruamel.yaml import YAML

    from stagegate.pipeline.catalog import WRITING_MODES

    if mode not in WRITING_MODES:
        console.print(f"[red]Error:[/red] Unknown mode '{mode}'. Use essay or thesis.")
        raise typer.Exit(1)

    path.mkdir(parents=True, exist_ok=True)
    config_file = path / CONFIG_FILENAME
    if config_file.exists():
        console.print(f"[red]Error:[/red] '{config_file}' already exists")
        raise typer.Exit(1)

    config = create_default_config(name, mode=mode, word_limit=word_limit)
    yaml_writer = YAML()
    yaml_writer.default_flow_style = False
    with config_file.open("w", encoding="utf-8") as f:
        yaml_writer.dump(config.to_dict(), f)

    console.print(f"[green]✓[/green] Created config: [bold]{config_file}[/bold]")
    console.print(f"  Mode: {mode}")
    if word_limit is not None:
        console.print(f"  Word limit: {word_limit}")


@app.command()
def stages(
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="Writing mode: essay or thesis."),
    ] = None,
    catalog: Annotated[
        Path | None,
        typer.Option("--catalog", help="YAML stage catalog to show instead of a built-in one."),
    ] = None,
    markdown: Annotated[
        bool,
        typer.Option("--markdown", help="Print a markdown table instead."),
    ] = False,
) -> None:
    """List the stages of the active catalog."""
    registry = _resolve_registry(_load_engine_config(), mode, catalog)
    if markdown:
        typer.echo(registry.stage_table())
        return

    table = Table(title="Writing Stages")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Stage", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Budget")
    table.add_column("Requirements")

    for stage in registry:
        budget = "[green]counted[/green]" if stage.counts_toward_budget else "[dim]excluded[/dim]"
        reqs = "\n".join(f"{r.id} ({r.kind})" for r in stage.requirements) or "-"
        table.add_row(str(stage.order), stage.id, stage.title, budget, reqs)

    console.print()
    console.print(table)
    console.print()


def _read_text(file: Path) -> str:
    """Read a UTF-8 text file, exiting with an error message when it is unusable."""
    if not file.exists():
        console.print(f"[red]Error:[/red] File not found: {file}")
        raise typer.Exit(1)
    try:
        return file.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        console.print(f"[red]Error:[/red] Not UTF-8 text: {file}")
        raise typer.Exit(1) from e


def _word_limit(config: EngineConfig, override: int | None) -> int | None:
    if override is not None:
        return override
    try:
        return config.get_word_limit()
    except ValueError as e:
        console.print(f"[red]Error:[/red] SG_WORD_LIMIT must be an integer: {e}")
        raise typer.Exit(1) from e


def _print_result(stage_title: str, result: EvaluationResult) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value")
    table.add_row("Words", str(result.word_count))
    table.add_row("Characters", str(result.character_count))
    table.add_row("Paragraphs", str(result.paragraph_count))
    if result.counted_words is not None:
        table.add_row("Counted words", str(result.counted_words))
    console.print(table)
    console.print()

    for line in result.detailed_feedback:
        console.print(f"  • {line}")
    if result.failed_requirement_ids:
        console.print()
        console.print(f"[red]Failed:[/red] {', '.join(result.failed_requirement_ids)}")

    style = "green" if result.is_completed else "yellow"
    console.print()
    console.print(Panel(result.feedback, title=stage_title, border_style=style))


@app.command()
def check(
    file: Annotated[Path, typer.Argument(help="Text file with the stage content.")],
    stage: Annotated[str, typer.Option("--stage", "-s", help="Stage id to check against.")],
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="Writing mode: essay or thesis."),
    ] = None,
    catalog: Annotated[
        Path | None,
        typer.Option("--catalog", help="YAML stage catalog to use instead of a built-in one."),
    ] = None,
    word_limit: Annotated[
        int | None,
        typer.Option("--word-limit", "-w", help="Global word limit (default: from config)."),
    ] = None,
    counted_words: Annotated[
        int,
        typer.Option("--counted-words", help="Counted words already used by other stages."),
    ] = 0,
) -> None:
    """Check a text file against a stage's requirements.

    Exits with status 1 when the stage would not be completed.
    """
    from stagegate.models.evaluation import EvaluationContext
    from stagegate.validation.evaluator import evaluate_stage

    config = _load_engine_config()
    registry = _resolve_registry(config, mode, catalog)

    definition = registry.get(stage)
    if definition is None:
        console.print(
            f"[red]Error:[/red] Unknown stage '{stage}'. "
            f"Available: {', '.join(registry.stage_ids)}"
        )
        raise typer.Exit(1)

    content = _read_text(file)
    limit = _word_limit(config, word_limit)
    context = EvaluationContext(
        word_limit=limit,
        counted_words_excluding_this_stage=counted_words,
        counts_toward_budget=definition.counts_toward_budget,
        is_final_stage=registry.is_final(stage),
    )
    result = evaluate_stage(content, definition.requirements, context)
    log.info("cli_check", stage_id=stage, completed=result.is_completed)

    console.print()
    _print_result(definition.title, result)

    if not result.is_completed:
        raise typer.Exit(1)


@app.command()
def progress(
    directory: Annotated[
        Path,
        typer.Argument(help="Directory holding one <stage_id>.txt file per stage."),
    ],
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="Writing mode: essay or thesis."),
    ] = None,
    catalog: Annotated[
        Path | None,
        typer.Option("--catalog", help="YAML stage catalog to use instead of a built-in one."),
    ] = None,
    word_limit: Annotated[
        int | None,
        typer.Option("--word-limit", "-w", help="Global word limit (default: from config)."),
    ] = None,
) -> None:
    """Walk a directory of stage drafts through the stages in order.

    Stops at the first stage whose file is missing or whose requirements are
    not met. Exits with status 1 unless every stage is completed.
    """
    from stagegate.models.progress import ProjectStatus
    from stagegate.pipeline.engine import EngineError, engine_from_config

    config = _load_engine_config()
    registry = _resolve_registry(config, mode, catalog)
    engine = engine_from_config(config, registry=registry)
    state = engine.create_project(
        directory.resolve().name or "draft", word_limit=_word_limit(config, word_limit)
    )

    total = len(registry)
    console.print()
    for definition in registry:
        label = f"{definition.order + 1}/{total} {definition.title}"
        file = directory / f"{definition.id}.txt"
        if not file.exists():
            console.print(f"[yellow]•[/yellow] {label}: missing {file.name}")
            break
        try:
            engine.write_content(state, definition.id, _read_text(file))
            result = engine.evaluate(state, definition.id)
        except EngineError as e:
            console.print(f"[red]✗[/red] {label}: {e.to_feedback()}")
            break
        if not result.is_completed:
            console.print(f"[red]✗[/red] {label}")
            for line in result.detailed_feedback:
                console.print(f"    {line}")
            break
        console.print(f"[green]✓[/green] {label}")

    log.info(
        "cli_progress",
        project_id=state.project.id,
        current_stage=state.project.current_stage_id,
        status=str(state.project.status),
    )
    console.print()
    console.print(f"Counted words: {engine.counted_words(state)}")
    if state.project.status == ProjectStatus.COMPLETED:
        console.print(
            Panel(
                f"Overall score: {state.project.overall_score}",
                title="Project completed",
                border_style="green",
            )
        )
        return

    current = state.project.current_stage_id
    position = (registry.order_of(current) or 0) + 1
    console.print(f"Stopped at stage {position} of {total}: {current}")
    raise typer.Exit(1)


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port to listen on.")] = 8000,
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="Writing mode: essay or thesis."),
    ] = None,
) -> None:
    """Serve the requirement-check HTTP API."""
    import uvicorn

    from stagegate.api import create_app

    config = _load_engine_config()
    registry = _resolve_registry(config, mode, None)
    console.print(f"Serving StageGate on [bold]http://{host}:{port}[/bold]")
    uvicorn.run(create_app(registry=registry, config=config), host=host, port=port, log_config=None)
