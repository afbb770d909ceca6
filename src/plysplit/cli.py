"""CLI entry point for plysplit.

Usage:
    plysplit run                          # Run the operation set in pipeline.yaml
    plysplit split inputs/scene.ply       # Split one PLY file into chunks
    plysplit merge --group-size 500       # Merge existing chunks into groups
    plysplit run-step s02_merge_groups    # Run a single configured step
    plysplit info --schemas               # Show pipeline info and step JSON schemas
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from plysplit.core.errors import PlySplitError
from plysplit.core.logging import setup_logging
from plysplit.steps.s01_split_chunks.contracts import SplitChunksOutput
from plysplit.steps.s02_merge_groups.contracts import MergeGroupsOutput

app = typer.Typer(name="plysplit", help="Split PLY point clouds into memo-sized chunks and merge them back")
console = Console()

DEFAULT_CONFIG = Path("configs/pipeline.yaml")


@contextmanager
def _progress():
    """Yield a ProgressCallback that drives a rich progress bar per stage."""
    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as bar:
        tasks: dict[str, int] = {}

        def update(completed: int, total: int, label: str) -> None:
            if label not in tasks:
                tasks[label] = bar.add_task(label.capitalize(), total=total)
            bar.update(tasks[label], completed=completed)

        yield update


def _print_split(result) -> None:
    table = Table(title="Split Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Chunks", f"{result.num_chunks:,}")
    table.add_row("Vertices per chunk", f"{result.vertices_per_chunk:,}")
    table.add_row("Processed vertices", f"{result.processed_vertices:,}")
    table.add_row("Verified vertices", f"{result.total_vertices:,}")
    table.add_row("Failed chunks", str(len(result.failed_chunks)))
    console.print(table)
    for failed in result.failed_chunks:
        console.print(f"[red]  Chunk {failed.index}: {failed.error}[/red]")


def _print_merge(result) -> None:
    table = Table(title="Group Creation Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Groups attempted", f"{result.stats.total:,}")
    table.add_row("Successful", f"{result.stats.success:,}")
    table.add_row("Failed", f"{result.stats.failed:,}")
    table.add_row("Manifest", str(result.metadata_path) if result.metadata_path else "-")
    console.print(table)
    for failed in result.stats.failed_groups:
        console.print(f"[red]  Group {failed.group_id}: {failed.error}[/red]")


def _fail(error: PlySplitError) -> None:
    """Print whatever partial results the error carries, then exit 1."""
    partial = getattr(error, "result", None)
    if isinstance(partial, SplitChunksOutput):
        _print_split(partial)
    elif isinstance(partial, MergeGroupsOutput):
        _print_merge(partial)
    console.print(f"[red]{error}[/red]")
    raise typer.Exit(1)


@app.command()
def run(config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path")) -> None:
    """Run the operation (split, merge or all) configured in pipeline.yaml."""
    from plysplit.core.pipeline_runner import load_pipeline_config, run_pipeline

    try:
        setup_logging(load_pipeline_config(config).log_level)
        with _progress() as progress:
            results = run_pipeline(config, progress=progress)
    except PlySplitError as e:
        _fail(e)
        return

    for output in results.values():
        if isinstance(output, SplitChunksOutput):
            _print_split(output)
        elif isinstance(output, MergeGroupsOutput):
            _print_merge(output)


@app.command()
def split(
    ply_path: Path = typer.Argument(..., help="Source PLY file"),
    target_size: int = typer.Option(566, "--target-size", "-t", help="Byte budget per chunk"),
    data_root: Path = typer.Option(Path("outputs"), help="Output root directory"),
) -> None:
    """Split a PLY file into chunks that fit the byte budget."""
    setup_logging()
    from plysplit.core.pipeline_runner import run_split

    try:
        with _progress() as progress:
            result = run_split(ply_path, target_size, data_root, progress=progress)
    except PlySplitError as e:
        _fail(e)
        return
    _print_split(result)


@app.command()
def merge(
    group_size: int = typer.Option(500, "--group-size", "-g", help="Chunks per group (-1 = all)"),
    data_root: Path = typer.Option(Path("outputs"), help="Output root directory"),
) -> None:
    """Merge previously split chunks into groups."""
    setup_logging()
    from plysplit.core.pipeline_runner import run_merge

    try:
        with _progress() as progress:
            result = run_merge(group_size, data_root, progress=progress)
    except PlySplitError as e:
        _fail(e)
        return
    _print_merge(result)


@app.command()
def run_step(
    step_name: str = typer.Argument(..., help="Step name (e.g. s01_split_chunks)"),
    config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path"),
    input_json: str = typer.Option(None, "--input", "-i", help="Input as JSON string"),
) -> None:
    """Run a single pipeline step."""
    setup_logging()
    from plysplit.core.pipeline_runner import load_pipeline_config, import_step_class, load_step_config

    try:
        pipeline_cfg = load_pipeline_config(config)
        entry = next((s for s in pipeline_cfg.steps if s.name == step_name), None)
        if entry is None:
            console.print(f"[red]Step '{step_name}' not found in pipeline config[/red]")
            raise typer.Exit(1)

        step_cls = import_step_class(entry.module)
        step_config = load_step_config(Path(entry.config_file), step_cls.config_type)
        step_instance = step_cls(config=step_config, data_root=pipeline_cfg.data_root)

        input_data = dict(entry.inputs)
        if input_json:
            input_data.update(json.loads(input_json))
        missing = [k for k in step_cls.get_input_schema().get("required", []) if k not in input_data]
        if missing:
            console.print(f"[yellow]Step '{step_name}' requires input fields: {missing}[/yellow]")
            console.print("[yellow]Use --input/-i with JSON string, e.g.:[/yellow]")
            console.print(f'  plysplit run-step {step_name} -i \'{{"field": "value"}}\'')
            raise typer.Exit(1)

        console.print(f"[green]Running step: {step_name}[/green]")
        output = step_instance.execute(step_cls.input_type(**input_data))
    except PlySplitError as e:
        _fail(e)
        return
    console.print(f"[green]Done. Output:[/green] {output.model_dump_json(indent=2, exclude={'chunks'})}")


@app.command()
def info(
    config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path"),
    schemas: bool = typer.Option(False, "--schemas", help="Also print each step's JSON schemas"),
) -> None:
    """Show pipeline steps and which ones the configured operation runs."""
    from plysplit.core.pipeline_runner import import_step_class, load_pipeline_config, selected_steps

    pipeline_cfg = load_pipeline_config(config)
    active = {s.name for s in selected_steps(pipeline_cfg)}
    table = Table(title=f"Pipeline: {pipeline_cfg.project_name} ({pipeline_cfg.operation})")
    table.add_column("#", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Module", style="green")
    table.add_column("Runs", style="yellow")
    table.add_column("Depends On", style="dim")

    for i, step in enumerate(pipeline_cfg.steps, 1):
        table.add_row(
            str(i),
            step.name,
            step.module,
            "Y" if step.name in active else "N",
            ", ".join(step.depends_on) if step.depends_on else "-",
        )
    console.print(table)

    if not schemas:
        return
    for step in pipeline_cfg.steps:
        step_cls = import_step_class(step.module)
        console.rule(f"{step.name} ({step_cls.__name__})")
        for kind, schema in (
            ("config", step_cls.get_config_schema()),
            ("input", step_cls.get_input_schema()),
            ("output", step_cls.get_output_schema()),
        ):
            console.print(f"[cyan]{kind}[/cyan]")
            console.print_json(json.dumps(schema))


if __name__ == "__main__":
    app()
