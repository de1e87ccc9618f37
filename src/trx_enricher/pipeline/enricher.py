"""Main enrichment pipeline orchestrator."""

import asyncio
from contextlib import aclosing
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

import httpx

from ..config import RunConfig
from ..fetchers.triple import TripleClient
from ..logging_config import get_logger
from ..models import Outcome, Transaction
from .batch import RunCounters, batched
from .sink import CsvResultSink
from .source import read_transactions

logger = get_logger(__name__)

ProgressCallback = Callable[[RunCounters], None]


async def dispatch_batch(client: TripleClient, batch: Sequence[Transaction]) -> List[Outcome]:
    """
    Enrich every transaction of a batch concurrently.

    All calls are allowed to settle before anything is returned or raised.
    Remote failures arrive as EnrichFailure results; any exception raised by
    the client is systemic and is re-raised once the batch has settled.

    Args:
        client: Open Triple client
        batch: Transactions to enrich

    Returns:
        One outcome per transaction, in batch order
    """
    results = await asyncio.gather(
        *(client.enrich(transaction) for transaction in batch),
        return_exceptions=True,
    )

    for transaction, result in zip(batch, results):
        if isinstance(result, BaseException):
            logger.error(f"Systemic error enriching {transaction.transaction_id}: {result!r}")
            raise result

    return [
        Outcome(transaction=transaction, result=result)
        for transaction, result in zip(batch, results)
    ]


class PipelineState(str, Enum):
    INIT = "init"
    STREAMING = "streaming"
    DRAINING = "draining"
    DONE = "done"
    FATAL = "fatal"


class EnrichmentPipeline:
    """Stream a transaction file through the Triple API into an output CSV."""

    def __init__(
        self,
        config: RunConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_progress: Optional[ProgressCallback] = None,
        total_items: Optional[int] = None,
    ):
        self.config = config
        self.state = PipelineState.INIT
        self.counters = RunCounters(total_items)
        self._transport = transport
        self._sleep = sleep
        self._on_progress = on_progress

    def _client(self) -> TripleClient:
        return TripleClient(
            token=self.config.api_token.get_secret_value(),
            environment=self.config.environment,
            timeout=self.config.http_timeout,
            base_url=self.config.resolved_base_url,
            transport=self._transport,
        )

    async def run(self) -> RunCounters:
        """
        Run the pipeline to completion.

        The output file is closed on every exit path, so after a fatal error
        it still holds every row written so far.

        Returns:
            Counters of the finished run

        Raises:
            RecordValidationError: If an input row has no usable transaction_id
            Exception: Any systemic error raised while reading, enriching or writing
        """
        if self.state is not PipelineState.INIT:
            raise RuntimeError(f"Pipeline already ran (state: {self.state.value})")

        config = self.config
        logger.info(
            f"Enriching {config.input_path} -> {config.output_path} "
            f"({config.environment.value}, batch size {config.batch_size}, "
            f"delay {config.batch_delay}s)"
        )

        client = self._client()
        sink = await CsvResultSink.open(
            config.output_path, secrets=[config.api_token.get_secret_value()]
        )
        try:
            async with client, aclosing(
                batched(read_transactions(config.input_path, config.read_chunk_size), config.batch_size)
            ) as batches:
                self.state = PipelineState.STREAMING
                async for batch in batches:
                    if self.counters.batches and config.batch_delay > 0:
                        logger.debug(f"Pausing {config.batch_delay}s before next batch")
                        await self._sleep(config.batch_delay)
                    await self._process_batch(client, batch, sink)
                self.state = PipelineState.DRAINING
        except BaseException:
            self.state = PipelineState.FATAL
            logger.error(
                f"Enrichment aborted after {self.counters.processed} transactions; "
                f"partial output kept in {config.output_path}"
            )
            raise
        finally:
            await sink.close()

        self.state = PipelineState.DONE
        self.counters.final_report()
        return self.counters

    async def _process_batch(
        self,
        client: TripleClient,
        batch: List[Transaction],
        sink: CsvResultSink,
    ) -> None:
        outcomes = await dispatch_batch(client, batch)
        for outcome in outcomes:
            await sink.write_one(outcome)
            self.counters.update(success=outcome.ok)

        self.counters.batches += 1
        logger.debug(
            f"Batch {self.counters.batches}: {len(batch)} transactions, "
            f"{sum(1 for o in outcomes if not o.ok)} failed"
        )
        if self._on_progress:
            self._on_progress(self.counters)


def run_enrichment(config: RunConfig, **kwargs) -> RunCounters:
    """Synchronous wrapper around EnrichmentPipeline.run()."""
    return asyncio.run(EnrichmentPipeline(config, **kwargs).run())
