"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from cap_mosaic.aggregate import UsageStats
from cap_mosaic.config import MosaicConfig
from cap_mosaic.errors import Cancelled, InvalidInput
from cap_mosaic.export import cap_codes, write_reference
from cap_mosaic.image_io import extract_cap_color, load_image
from cap_mosaic.inventory import load_inventory, total_quantity
from cap_mosaic.mosaic import MosaicResult, generate_from_image, plan_grid

app = typer.Typer(
    name="cap-mosaic",
    help="Plan bottle-cap mosaics with globally optimal colour matching.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

EXIT_INVALID = 2
EXIT_CANCELLED = 130


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {exc}")
    raise typer.Exit(EXIT_INVALID)


def _collect_images(paths: list[Path], extensions: frozenset[str]) -> list[Path]:
    images: list[Path] = []
    for path in paths:
        if path.is_dir():
            images.extend(sorted(
                f for f in path.iterdir()
                if f.is_file() and f.suffix.lower() in extensions
            ))
        else:
            images.append(path)
    return images


def _run_cancellable(fn: Callable[..., MosaicResult], *args: Any, **kwargs: Any) -> MosaicResult:
    """Run *fn* on a worker thread; Ctrl-C requests a cooperative cancel."""
    cancel = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(fn, *args, cancel=cancel, **kwargs)
        try:
            return future.result()
        except KeyboardInterrupt:
            console.print("[yellow]Cancelling after the current row …[/yellow]")
            cancel.set()
            return future.result()


def _usage_table(stats: UsageStats, codes: dict[str, str]) -> Table:
    table = Table(title="Cap usage", show_footer=True)
    table.add_column("Code", footer="Total")
    table.add_column("Cap")
    table.add_column("Colour")
    table.add_column("Owned", justify="right", footer=str(stats.total_used + stats.total_remaining))
    table.add_column("Used", justify="right", footer=str(stats.total_used))
    table.add_column("Left", justify="right", footer=str(stats.total_remaining))
    for usage in stats.per_tile:
        table.add_row(
            codes[usage.id],
            usage.name or usage.id,
            f"[on {usage.color.hex}]    [/] {usage.color.hex}",
            str(usage.original),
            str(usage.used),
            str(usage.remaining),
        )
    return table


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()


# -- plan command ------------------------------------------------------

@app.command()
def plan(
    inventory: Path = typer.Argument(..., help="Inventory JSON file"),
    image: Path = typer.Argument(..., help="Target image"),
    packing: str = typer.Option(
        _DEFAULTS.packing, "--packing", "-k", help="'hex' or 'square'",
    ),
) -> None:
    """Show the grid the inventory would fill over IMAGE."""
    try:
        tiles = load_inventory(inventory)
        pixels = load_image(image)
        h, w = pixels.shape[:2]
        dims = plan_grid(total_quantity(tiles), w, h, packing)
    except InvalidInput as exc:
        _fail(exc)

    console.print(
        f"{dims.packing.value.capitalize()} grid: "
        f"[bold]{dims.width} x {dims.height}[/bold] = {dims.total_cells} caps "
        f"[dim](inventory {total_quantity(tiles)}, image {w}x{h})[/dim]"
    )


# -- generate command --------------------------------------------------

@app.command()
def generate(
    inventory: Path = typer.Argument(..., help="Inventory JSON file"),
    image: Path = typer.Argument(..., help="Target image"),
    output_dir: Path = typer.Option(
        _DEFAULTS.output_dir, "--output", "-o", help="Folder for the CSV exports",
    ),
    packing: str = typer.Option(
        _DEFAULTS.packing, "--packing", "-k", help="'hex' or 'square'",
    ),
    solver: str = typer.Option(
        _DEFAULTS.solver, "--solver", help="'hungarian', 'scipy' or 'greedy' (preview)",
    ),
    color_space: str = typer.Option(
        _DEFAULTS.color_space, "--color-space", help="'redmean', 'lab' or 'rgb'",
    ),
    workers: int = typer.Option(
        _DEFAULTS.workers, "--workers", "-w", help="Threads for the Hungarian column scan",
    ),
    max_side: int | None = typer.Option(
        None, "--max-side", "-m", help="Shrink the image's longest side before sampling",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Assign the inventory to IMAGE and write the reference grid."""
    _setup_logging(verbose)

    cfg = MosaicConfig(
        packing=packing,
        solver=solver,
        color_space=color_space,
        workers=workers,
        output_dir=output_dir,
    )

    try:
        tiles = load_inventory(inventory)
        pixels = load_image(image, max_side)
    except InvalidInput as exc:
        _fail(exc)

    console.print(Panel.fit(
        f"[bold]CAP MOSAIC[/bold]\n"
        f"Caps: {total_quantity(tiles)} ({len(tiles)} kinds)  |  Packing: {cfg.packing}\n"
        f"Solver: {cfg.solver}  |  Colour space: {cfg.color_space}",
        border_style="cyan",
    ))

    t_total = time.perf_counter()
    progress = Progress(
        TextColumn("{task.description:<22}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    try:
        with progress:
            task = progress.add_task("Starting", total=100)

            def on_progress(stage: str, percent: int) -> None:
                progress.update(task, description=stage, completed=percent)

            result = _run_cancellable(
                generate_from_image, pixels, tiles, config=cfg, progress=on_progress,
            )
    except InvalidInput as exc:
        _fail(exc)
    except Cancelled as exc:
        console.print(f"[yellow]{exc}[/yellow]")
        raise typer.Exit(EXIT_CANCELLED) from exc

    dims = result.dimensions
    stats = result.stats

    codes = cap_codes(tiles)
    console.print(_usage_table(stats, codes))
    grid_path, legend_path = write_reference(result.grid, tiles, output_dir, image.stem)

    elapsed = time.perf_counter() - t_total
    console.print(
        f"  [green]✓[/green] {grid_path.name}, {legend_path.name}  "
        f"[dim]{dims.width}x{dims.height} = {dims.total_cells} cells  "
        f"empty={stats.empty_cells}  mean distance={stats.mean_cost:.1f}"
        f"  time={elapsed:.1f}s[/dim]"
    )


# -- scan command ------------------------------------------------------

@app.command()
def scan(
    caps: list[Path] = typer.Argument(..., help="Cap photos or folders of them"),
    quantity: int = typer.Option(1, "--quantity", "-q", help="Quantity for each entry"),
    sample_size: int = typer.Option(
        _DEFAULTS.cap_sample_size, "--sample-size", help="Sampling resolution",
    ),
) -> None:
    """Print inventory entries with the centre-weighted colour of each photo."""
    entries = []
    try:
        for path in _collect_images(caps, _DEFAULTS.SUPPORTED_EXTENSIONS):
            color = extract_cap_color(path, sample_size)
            entries.append({
                "id": path.stem,
                "name": path.stem,
                "color": color.hex,
                "quantity": quantity,
                "image": str(path),
            })
    except InvalidInput as exc:
        _fail(exc)
    console.print_json(json.dumps(entries))


if __name__ == "__main__":
    app()
