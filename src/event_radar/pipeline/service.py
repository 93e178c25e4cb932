"""
Extraction pipeline: fetch -> extract -> dedupe -> store -> health, per source.
"""

import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pytz
import redis

from event_radar.dedupe.service import DeduplicationService, event_id
from event_radar.extractor.service import ExtractionService
from event_radar.fetcher.service import ContentFetcher
from event_radar.health.service import HealthTracker
from event_radar.pipeline.rate_limiter import EXTRACTION_PROVIDER, ProviderLimiter
from event_radar.shared.schemas.dto import (
    BatchResult,
    SourceDescriptor,
    SourceRunResult,
    StoredEvent,
)
from event_radar.shared.services.notification_service import NotificationService
from event_radar.shared.utils.configs import pipeline_configs
from event_radar.shared.utils.errors import NotificationError, RadarError, StoreError
from event_radar.shared.utils.helpers import utc_timestamp
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType
from event_radar.sources.registry import get_active_sources
from event_radar.store.event_store import EventStore
from event_radar.store.redis_client import RedisKeys


class PipelineService:
    """
    Runs sources through the pipeline.

    A failing source never aborts a batch: fetch, extraction and store
    failures are recorded against that source and the batch moves on.
    """

    def __init__(
        self,
        store: Optional[EventStore] = None,
        fetcher: Optional[ContentFetcher] = None,
        extraction: Optional[ExtractionService] = None,
        dedupe: Optional[DeduplicationService] = None,
        health: Optional[HealthTracker] = None,
        limiter: Optional[ProviderLimiter] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.store = store or EventStore()
        self.fetcher = fetcher or ContentFetcher()
        self.extraction = extraction or ExtractionService()
        self.dedupe = dedupe or DeduplicationService(self.store)
        self.health = health or HealthTracker(self.store.redis_client)
        self.limiter = limiter or ProviderLimiter()
        self.notifier = notifier

    async def run_source(
        self, descriptor: SourceDescriptor, test_mode: bool = False
    ) -> SourceRunResult:
        """
        Run one source end to end.

        Args:
            descriptor: Source to run
            test_mode: Extract only; nothing is stored and health is untouched

        Returns:
            SourceRunResult; `candidates` is filled in test mode
        """
        result = SourceRunResult(source=descriptor.name, url=descriptor.fetch_url)
        logger.info(f"Running source {descriptor.name} ({descriptor.strategy.value})")

        async with self.limiter.slot(descriptor.provider):
            outcome = await self.fetcher.fetch(descriptor)
        if not outcome.ok:
            return await self._fail(result, outcome.error, test_mode)
        result.content_length = outcome.result.content_length

        async with self.limiter.slot(EXTRACTION_PROVIDER):
            report = await self.extraction.extract_with_report(outcome.result, descriptor)
        if report.error:
            return await self._fail(result, report.error, test_mode)
        result.events_found = len(report.candidates)

        if test_mode:
            result.candidates = report.candidates
            result.success = True
            result.finished_at = datetime.now(pytz.utc)
            return result

        created_at = utc_timestamp()
        try:
            for candidate in report.candidates:
                if await self.dedupe.dedupe(candidate):
                    result.duplicates += 1
                    continue
                stored = StoredEvent.from_candidate(
                    event_id(candidate.title, candidate.date),
                    candidate,
                    source=descriptor.name,
                    created_at=created_at,
                )
                await self.store.upsert(stored)
                result.events_added += 1

            await self.health.record_success(
                descriptor.name, result.events_found, result.events_added
            )
        except StoreError as e:
            return await self._fail(result, e, test_mode)

        result.success = True
        result.finished_at = datetime.now(pytz.utc)
        logger.info(
            f"Source {descriptor.name}: {result.events_found} found, "
            f"{result.events_added} added, {result.duplicates} duplicates"
        )
        return result

    async def _fail(
        self, result: SourceRunResult, error: RadarError, test_mode: bool
    ) -> SourceRunResult:
        result.success = False
        result.error = error.message
        result.error_type = error.error_type.value
        result.finished_at = datetime.now(pytz.utc)
        if test_mode:
            return result

        try:
            await self.health.record_failure(result.source, error.message)
        except StoreError as e:
            logger.error(f"Could not record failure of {result.source}: {e.message}")

        if self.notifier:
            try:
                self.notifier.notify_source_failure(result.source, error.message)
            except NotificationError as e:
                logger.error(f"Could not send failure alert for {result.source}: {e.message}")
        return result

    async def _run_guarded(
        self, descriptor: SourceDescriptor, test_mode: bool
    ) -> SourceRunResult:
        try:
            return await self.run_source(descriptor, test_mode)
        except Exception as e:
            logger.error(f"Unexpected error running {descriptor.name}: {str(e)}")
            return await self._fail(
                SourceRunResult(source=descriptor.name, url=descriptor.fetch_url),
                RadarError(
                    f"An unexpected error occurred: {e}", error_type=ErrorType.UNKNOWN_ERROR
                ),
                test_mode,
            )

    async def run_all(
        self,
        sources: Optional[Iterable[SourceDescriptor]] = None,
        test_mode: bool = False,
        max_workers: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
        inter_source_delay: Optional[float] = None,
    ) -> BatchResult:
        """
        Run many sources with a bounded worker pool.

        Workers pull sources from a queue. Inside a source, the fetch holds
        its provider's slot and the extraction holds the shared extraction
        slot (semaphore plus token bucket each). Once the batch
        deadline has passed, sources that have not started are reported as
        skipped; a source already running finishes under its own timeouts.

        Args:
            sources: Sources to run (default: every active source)
            test_mode: Extract only, store nothing
            max_workers: Worker count (default from configuration)
            deadline_seconds: Batch deadline (default from configuration)
            inter_source_delay: Pause a worker takes after each source

        Returns:
            BatchResult with one entry per source, in input order
        """
        sources = list(sources) if sources is not None else get_active_sources()
        max_workers = max_workers or pipeline_configs["max_workers"]
        if deadline_seconds is None:
            deadline_seconds = pipeline_configs["batch_deadline_seconds"]
        if inter_source_delay is None:
            inter_source_delay = pipeline_configs["inter_source_delay_seconds"]

        batch = BatchResult(started_at=datetime.now(pytz.utc))
        if not sources:
            batch.finished_at = batch.started_at
            return batch

        loop = asyncio.get_running_loop()
        deadline = loop.time() + deadline_seconds
        queue: asyncio.Queue = asyncio.Queue()
        for descriptor in sources:
            queue.put_nowait(descriptor)
        results: Dict[str, SourceRunResult] = {}
        self.dedupe.reset_run()

        def skipped(descriptor: SourceDescriptor) -> SourceRunResult:
            logger.warning(f"Batch deadline reached, skipping {descriptor.name}")
            return SourceRunResult(
                source=descriptor.name,
                url=descriptor.fetch_url,
                skipped=True,
                error="Batch deadline reached before the source started",
                error_type=ErrorType.TIMEOUT_ERROR.value,
            )

        async def worker():
            while True:
                try:
                    descriptor = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                if loop.time() >= deadline:
                    results[descriptor.name] = skipped(descriptor)
                    continue
                results[descriptor.name] = await self._run_guarded(descriptor, test_mode)
                if inter_source_delay and not queue.empty():
                    await asyncio.sleep(inter_source_delay)

        workers = [asyncio.create_task(worker()) for _ in range(min(max_workers, len(sources)))]
        await asyncio.gather(*workers)

        batch.results = [results[descriptor.name] for descriptor in sources]
        batch.finished_at = datetime.now(pytz.utc)
        logger.info(f"Batch finished: {batch.summary()}")

        if not test_mode:
            self._record_batch(batch)
        return batch

    def _record_batch(self, batch: BatchResult):
        """Update the global metrics hash; a failure here only gets logged."""
        summary = batch.summary()
        try:
            with self.store.redis_client.pipeline(transaction=True) as pipe:
                key = RedisKeys.global_metrics()
                pipe.hset(
                    key,
                    mapping={
                        "lastFullRun": utc_timestamp(batch.finished_at),
                        "lastRunSources": summary["totalSources"],
                        "lastRunSuccessful": summary["successful"],
                        "lastRunFailed": summary["failed"],
                        "lastRunSkipped": summary["skipped"],
                        "lastRunFound": summary["eventsFound"],
                        "lastRunAdded": summary["eventsAdded"],
                    },
                )
                pipe.hincrby(key, "totalFound", summary["eventsFound"])
                pipe.hincrby(key, "totalAdded", summary["eventsAdded"])
                pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Failed to update global metrics: {str(e)}")

    async def close(self):
        await self.fetcher.close()

    @staticmethod
    def failing_sources(results: List[SourceRunResult]) -> List[str]:
        return [r.source for r in results if not r.success and not r.skipped]
