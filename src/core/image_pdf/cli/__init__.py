from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from ..config import AppConfig, dump_config, load_config
from ..core import ConversionService
from ..detection import collect_images, scan_images
from ..errors import BuildError
from ..geometry import PageSizeMode
from ..models import Outcome, StreamStatus, default_document_name
from ..ordering import SortPolicy, order_paths
from ..preferences import PreferenceStore
from ..progress import ProgressSnapshot

console = Console()

app = typer.Typer(help="Convert JPEG/PNG images into a PDF and a ZIP of the originals")


def _load_config(path: Path | None) -> AppConfig:
    return load_config(path)


def _preferences(cfg: AppConfig) -> PreferenceStore:
    return PreferenceStore(cfg.runtime.preferences_file)


def _resolve_inputs(inputs: list[Path], store: PreferenceStore, sort: SortPolicy | None) -> list[Path]:
    if inputs:
        images = collect_images(inputs)
    else:
        default_folder = store.load().default_folder
        if not default_folder:
            console.print("[red]No images given[/red] and no default folder set.")
            raise typer.Exit(1)
        images = scan_images(Path(default_folder))
        console.print(f"Loaded from: {default_folder}")
    if sort is not None:
        images = order_paths(images, sort)
    return images


def _resolve_output(output: Path | None, images: list[Path], store: PreferenceStore) -> Path:
    if output is not None:
        return output
    folder = store.load().output_folder
    base = Path(folder) if folder else Path.cwd()
    return base / default_document_name(images)


@app.command()
def convert(
    inputs: list[Path] = typer.Argument(None, help="Image files and/or folders, in page order"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Destination PDF"),
    page_size: PageSizeMode | None = typer.Option(None, "--page-size", help="sheet (A4 with margins) or fit"),
    archive: bool = typer.Option(True, "--archive/--no-archive", help="Also write a ZIP of the sources"),
    archive_path: Path | None = typer.Option(None, "--archive-path", help="Destination ZIP"),
    sort: SortPolicy | None = typer.Option(None, "--sort", help="Reorder inputs before converting"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    store = _preferences(cfg)
    try:
        images = _resolve_inputs(inputs or [], store, sort)
    except BuildError as exc:
        console.print(f"[red]Invalid input[/red]: {exc}")
        raise typer.Exit(1) from exc
    if not images:
        console.print("No images to convert.")
        raise typer.Exit(1)
    destination = _resolve_output(output, images, store)
    service = ConversionService(cfg)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Converting...", total=1.0)

        def _on_progress(snapshot: ProgressSnapshot) -> None:
            progress.update(task, completed=snapshot.fraction, description=snapshot.label)

        result = service.convert_images(
            images,
            destination,
            mode=page_size,
            archive=archive,
            archive_path=archive_path,
            on_progress=_on_progress,
        )

    store.update(output_folder=str(destination.resolve().parent))
    for warning in result.warnings:
        console.print(f"[yellow]Warning[/yellow]: {warning}")
    if result.outcome is not Outcome.SUCCEEDED:
        label = "PDF error" if result.document.error else "ZIP error"
        console.print(f"[red]{label}[/red]: {result.error or result.summary}")
        if result.archive.status is StreamStatus.SUCCEEDED:
            console.print(f"Archive still written: {result.archive.path}")
        raise typer.Exit(1)
    console.print(f"[green]Done[/green]: {result.summary}")


@app.command()
def order(
    inputs: list[Path] = typer.Argument(..., help="Image files to order"),
    sort: SortPolicy = typer.Option(SortPolicy.NATURAL, "--sort", help="natural or modified"),
) -> None:
    table = Table(title=f"Order ({sort.value})")
    table.add_column("#", justify="right")
    table.add_column("File")
    for index, path in enumerate(order_paths(inputs, sort), start=1):
        table.add_row(str(index), str(path))
    console.print(table)


@app.command()
def scan(
    folder: Path,
    sort: SortPolicy = typer.Option(SortPolicy.NATURAL, "--sort", help="natural or modified"),
) -> None:
    try:
        images = scan_images(folder, sort)
    except BuildError as exc:
        console.print(f"[red]Error[/red]: {exc}")
        raise typer.Exit(1) from exc
    for path in images:
        console.print(str(path))
    console.print(f"{len(images)} image(s) found")


@app.command()
def set_default(
    folder: Path,
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    if not folder.is_dir():
        console.print(f"[red]Not a folder[/red]: {folder}")
        raise typer.Exit(1)
    cfg = _load_config(config)
    resolved = str(folder.resolve())
    _preferences(cfg).update(default_folder=resolved)
    console.print(f"Default folder set: {resolved}")


@app.command()
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    console.print_json(dump_config(_load_config(config)))


if __name__ == "__main__":
    app()
