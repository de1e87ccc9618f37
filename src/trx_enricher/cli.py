"""Command-line interface for the transaction enricher."""

import asyncio
from pathlib import Path
from typing import NoReturn, Optional

import polars as pl
import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeRemainingColumn
from rich.table import Table

from .config import RunConfig, TripleEnvironment, default_output_path, get_settings
from .exceptions import ConfigurationError
from .logging_config import get_logger, setup_logging
from .pipeline.batch import RunCounters
from .pipeline.enricher import EnrichmentPipeline
from .pipeline.sink import TRANSACTION_COLUMNS
from .pipeline.source import count_rows

# Initialize CLI app
app = typer.Typer(
    name="trx-enricher",
    help="Enrich a transaction CSV through the Triple API, one output row per input row",
    add_completion=False,
)
console = Console()
logger = get_logger(__name__)

REQUIRED_COLUMNS = {"transaction_id"}


@app.callback()
def main(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set logging level",
        case_sensitive=False,
    ),
) -> None:
    """Transaction Enricher CLI - Enrich transactions with Triple merchant data."""
    setup_logging(log_level)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {message}")
    raise typer.Exit(1)


@app.command()
def enrich(
    input_file: Path = typer.Argument(..., help="Input CSV file with transactions"),
    output: Optional[Path] = typer.Option(
        None,
        "--out", "-o",
        help="Output file path (default: <input-file>.output)",
    ),
    batch_size: Optional[int] = typer.Option(
        None,
        "--batch-size", "-b",
        help="Transactions enriched concurrently per batch",
        min=1,
    ),
    delay: Optional[float] = typer.Option(
        None,
        "--delay", "-d",
        help="Seconds to pause between batches",
        min=0.0,
    ),
    environment: Optional[TripleEnvironment] = typer.Option(
        None,
        "--env", "-e",
        help="Triple API environment",
        case_sensitive=False,
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        envvar="TRIPLE_API_TOKEN",
        help="Triple API token",
        show_default=False,
    ),
    yes: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Skip the confirmation prompt",
    ),
) -> None:
    """
    Enrich a transaction CSV file.

    The input CSV needs a header row; transaction_id is required, other
    known columns are optional and unknown columns are ignored.
    """
    settings = get_settings()

    # Validate paths
    input_path = input_file.resolve()
    if not input_path.exists():
        _fail(f"file not found: {input_path}")
    if not input_path.is_file():
        _fail(f"path is not a file: {input_path}")

    output_path = output.resolve() if output else default_output_path(input_path)
    if output_path == input_path:
        _fail("input and output file paths must not be the same.")

    token = token or settings.triple_api_token
    if not token or not token.strip():
        _fail("a Triple API token is required (--token or TRIPLE_API_TOKEN)")

    try:
        config = RunConfig.from_settings(
            input_path,
            output_path,
            settings=settings,
            api_token=token,
            environment=environment,
            batch_size=batch_size,
            batch_delay=delay,
        )
    except ConfigurationError as e:
        _fail(f"invalid configuration: {e}")

    try:
        total = count_rows(input_path)
    except Exception as e:
        logger.warning(f"Could not count input rows: {e}")
        total = None

    # Display run summary
    table = Table(title="Enrichment Run")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Input file", str(config.input_path))
    table.add_row("Output file", str(config.output_path))
    table.add_row("Transactions", str(total) if total is not None else "unknown")
    table.add_row("Environment", config.environment.value)
    table.add_row("Batch size", str(config.batch_size))
    table.add_row("Delay between batches", f"{config.batch_delay}s")

    console.print(table)

    if not yes and not typer.confirm("\nProceed with enrichment?"):
        console.print("Cancelled.")
        raise typer.Exit(0)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Enriching transactions...", total=total)

        def on_progress(counters: RunCounters) -> None:
            progress.update(
                task,
                completed=counters.processed,
                description=f"Enriching transactions... ok {counters.succeeded}, failed {counters.failed}",
            )

        pipeline = EnrichmentPipeline(config, on_progress=on_progress, total_items=total)
        try:
            counters = asyncio.run(pipeline.run())
        except KeyboardInterrupt:
            console.print("\n[yellow]Enrichment interrupted by user")
            console.print(f"[yellow]Partial results saved in: {config.output_path}")
            raise typer.Exit(1)
        except Exception as e:
            console.print(f"\n[red]Enrichment failed: {e}")
            console.print(f"[yellow]Partial results saved in: {config.output_path}")
            logger.exception("Enrichment failed")
            raise typer.Exit(1)

    console.print("\n[green]Enrichment completed")
    console.print(f"[green]Results saved to: {config.output_path}")
    console.print(
        f"[green]Transactions processed: {counters.processed} "
        f"(ok {counters.succeeded}, failed {counters.failed})"
    )


@app.command()
def info(
    input_file: Path = typer.Argument(..., help="Input file to analyze"),
) -> None:
    """Display information about an input file."""
    if not input_file.exists():
        _fail(f"file '{input_file}' not found")

    try:
        df = pl.read_csv(input_file, infer_schema_length=0, truncate_ragged_lines=True)
    except Exception as e:
        _fail(f"could not read file: {e}")

    columns = [column.strip() for column in df.columns]
    known = {name for name, _ in TRANSACTION_COLUMNS}

    table = Table(title=f"File Analysis: {input_file.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("File size", f"{input_file.stat().st_size / 1024:.1f} KB")
    table.add_row("Rows", str(len(df)))
    table.add_row("Columns", str(len(columns)))

    console.print(table)

    columns_table = Table(title="Columns")
    columns_table.add_column("Name", style="cyan")
    columns_table.add_column("Used", style="yellow")
    columns_table.add_column("Non-null", style="green")

    for raw_name, name in zip(df.columns, columns):
        non_null_count = df[raw_name].drop_nulls().len()
        used = "yes" if name in known else "ignored"
        columns_table.add_row(name, used, f"{non_null_count}/{len(df)}")

    console.print(columns_table)

    missing_columns = REQUIRED_COLUMNS - set(columns)
    if missing_columns:
        console.print(f"\n[red]Missing required columns: {', '.join(sorted(missing_columns))}")
        raise typer.Exit(1)

    console.print("\n[green]All required columns present")


@app.command()
def config() -> None:
    """Display current configuration."""
    settings = get_settings()

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Source", style="yellow")

    # Mask the token
    token = settings.triple_api_token
    table.add_row(
        "Triple API Token",
        "***" + token[-4:] if token and len(token) > 8 else ("***" if token else "[red]Not set"),
        "Environment"
    )

    table.add_row("Environment", settings.triple_environment.value, "Config")
    table.add_row("Base URL", settings.base_url_for(settings.triple_environment), "Config")
    table.add_row("Batch Size", str(settings.batch_size), "Config")
    table.add_row("Delay Between Batches", f"{settings.batch_delay}s", "Config")
    table.add_row("Read Chunk Size", str(settings.read_chunk_size), "Config")
    table.add_row("HTTP Timeout", f"{settings.http_timeout}s", "Config")
    table.add_row("Log Level", settings.log_level, "Config")

    console.print(table)


if __name__ == "__main__":
    app()
