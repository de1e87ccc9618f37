"""Lazy record source over a transaction CSV file."""

import asyncio
from pathlib import Path
from typing import AsyncIterator, Iterator, Union

import polars as pl

from ..logging_config import get_logger
from ..models import Transaction
from ..parsers.transaction_row import parse_row

logger = get_logger(__name__)

PathLike = Union[str, Path]


def _scan_batches(path: Path, chunk_size: int) -> Iterator[pl.DataFrame]:
    # Every column as text: typing is parse_row's job
    frame = pl.scan_csv(
        path,
        has_header=True,
        infer_schema_length=0,
        truncate_ragged_lines=True,
    )
    return iter(frame.collect_batches(chunk_size=chunk_size))


async def read_transactions(
    path: PathLike,
    chunk_size: int = 1000,
) -> AsyncIterator[Transaction]:
    """
    Yield transactions from a CSV file one at a time.

    Rows are read in chunks of roughly ``chunk_size`` in a worker thread so
    the file is never loaded whole. Empty lines are skipped; a row of empty
    cells is still a row and fails validation.

    Args:
        path: CSV file with a header row
        chunk_size: Rows per read chunk

    Yields:
        Parsed transactions in file order

    Raises:
        RecordValidationError: If a row has no usable transaction_id
    """
    path = Path(path)
    if path.stat().st_size == 0:
        logger.warning(f"Input file {path} is empty")
        return

    batches = await asyncio.to_thread(_scan_batches, path, chunk_size)
    row_number = 0

    while True:
        chunk = await asyncio.to_thread(next, batches, None)
        if chunk is None:
            break

        for row in chunk.iter_rows(named=True):
            row_number += 1
            yield parse_row(row, row_number=row_number)

    logger.debug(f"Read {row_number} transactions from {path}")


def count_rows(path: PathLike) -> int:
    """Count data rows in a CSV file without loading it."""
    path = Path(path)
    if path.stat().st_size == 0:
        return 0
    return (
        pl.scan_csv(path, infer_schema_length=0, truncate_ragged_lines=True)
        .select(pl.len())
        .collect()
        .item()
    )
