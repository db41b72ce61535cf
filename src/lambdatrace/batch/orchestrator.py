# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Drive a batch through :class:`BatchItemProcessor` with partial failures.

One item's failure never stops the others. When the run finishes, the
:class:`BatchReport` lists exactly the items that failed, and the queue
runtime redelivers only those.

Outcomes are collected in a pre-allocated list with one slot per item.
Each slot is written at most once, by whichever worker processed that
item. Slots left empty (the deadline was reached or the run was
interrupted) become ``unfinished`` failures.

Usage::

    from lambdatrace.batch import BatchOrchestrator

    orchestrator = BatchOrchestrator(record_handler, max_workers=4)

    def handler(event, context):
        return orchestrator.run(event, context).to_response()
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Union

from opentelemetry import trace

from lambdatrace.batch.processor import AsyncItemHandler, BatchItemProcessor, ItemHandler
from lambdatrace.exceptions import BatchInterruptedError
from lambdatrace.extractors.sqs import extract_envelope_attributes
from lambdatrace.models.events import BatchEnvelope, BatchItem
from lambdatrace.models.outcome import BatchReport, ProcessingOutcome
from lambdatrace.semconv import MessagingAttributes

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MARGIN_MS = 500

DEADLINE_REASON = "not attempted: invocation deadline reached"
INTERRUPTED_REASON = "not completed: batch processing interrupted"

Slots = List[Optional[ProcessingOutcome]]


class _BaseOrchestrator:
    def __init__(
        self,
        processor: BatchItemProcessor,
        *,
        timeout_margin_ms: int = DEFAULT_TIMEOUT_MARGIN_MS,
    ) -> None:
        self.processor = processor
        self.timeout_margin_ms = timeout_margin_ms

    @staticmethod
    def _envelope(batch: Union[BatchEnvelope, Any]) -> BatchEnvelope:
        if isinstance(batch, BatchEnvelope):
            return batch
        return BatchEnvelope.from_event(batch)

    def _deadline_reached(self, lambda_context: Any) -> bool:
        if lambda_context is None:
            return False
        get_remaining = getattr(lambda_context, "get_remaining_time_in_millis", None)
        if not callable(get_remaining):
            return False
        try:
            return get_remaining() <= self.timeout_margin_ms
        except Exception:
            logger.debug("Could not read remaining invocation time", exc_info=True)
            return False

    @staticmethod
    def _annotate_invocation(envelope: BatchEnvelope) -> None:
        span = trace.get_current_span()
        if span.is_recording():
            span.set_attributes(extract_envelope_attributes(envelope))

    @staticmethod
    def _finalize(envelope: BatchEnvelope, slots: Slots, reason: str) -> BatchReport:
        outcomes = [
            slot if slot is not None else ProcessingOutcome.unfinished(item.item_id, reason)
            for item, slot in zip(envelope.items, slots)
        ]
        return BatchReport(outcomes=outcomes)

    @staticmethod
    def _record_report(report: BatchReport) -> None:
        failed = report.failed_item_ids
        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute(MessagingAttributes.BATCH_FAILURE_COUNT, len(failed))
        if failed:
            logger.warning("%d of %d batch items failed", len(failed), len(report.outcomes))

    def _interrupted(self, envelope: BatchEnvelope, slots: Slots, exc: BaseException) -> BatchInterruptedError:
        report = self._finalize(envelope, slots, INTERRUPTED_REASON)
        self._record_report(report)
        logger.error(
            "Batch processing interrupted by %s; reporting %s as failed",
            exc.__class__.__name__,
            report.failed_item_ids,
        )
        return BatchInterruptedError(report)


class BatchOrchestrator(_BaseOrchestrator):
    """Process every item of a batch, sequentially or on a thread pool.

    Args:
        handler: Called once per item with the item body. Raising marks the
            item as failed.
        max_workers: ``1`` (default) processes items in order on the
            calling thread. Larger values use a bounded thread pool.
        tracer: Tracer for the per-item spans (defaults to the global one).
        extract_context: Link item spans to propagated producer contexts.
        timeout_margin_ms: Stop starting new items once the invocation has
            this little time left.
    """

    def __init__(
        self,
        handler: ItemHandler,
        *,
        max_workers: int = 1,
        tracer: Optional[trace.Tracer] = None,
        extract_context: bool = True,
        timeout_margin_ms: int = DEFAULT_TIMEOUT_MARGIN_MS,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if inspect.iscoroutinefunction(handler):
            raise TypeError("async handlers need AsyncBatchOrchestrator")
        super().__init__(
            BatchItemProcessor(handler, tracer=tracer, extract_context=extract_context),
            timeout_margin_ms=timeout_margin_ms,
        )
        self.max_workers = max_workers

    def run(self, batch: Union[BatchEnvelope, Any], lambda_context: Any = None) -> BatchReport:
        """Process *batch* and return the report.

        Raises:
            BatchInterruptedError: A fatal condition stopped the run. The
                exception carries the complete partial report.
        """
        envelope = self._envelope(batch)
        self._annotate_invocation(envelope)
        slots: Slots = [None] * envelope.item_count

        try:
            if self.max_workers == 1 or envelope.item_count <= 1:
                self._run_sequential(envelope, slots, lambda_context)
            else:
                self._run_concurrent(envelope, slots, lambda_context)
        except BaseException as exc:
            raise self._interrupted(envelope, slots, exc) from exc

        report = self._finalize(envelope, slots, DEADLINE_REASON)
        self._record_report(report)
        return report

    def _run_sequential(self, envelope: BatchEnvelope, slots: Slots, lambda_context: Any) -> None:
        for index, item in enumerate(envelope.items):
            if self._deadline_reached(lambda_context):
                logger.warning("Invocation deadline reached; %d items not attempted", envelope.item_count - index)
                return
            slots[index] = self.processor.process(item)

    def _run_concurrent(self, envelope: BatchEnvelope, slots: Slots, lambda_context: Any) -> None:
        stop = threading.Event()

        def attempt(index: int, item: BatchItem) -> None:
            if stop.is_set():
                return
            if self._deadline_reached(lambda_context):
                stop.set()
                return
            slots[index] = self.processor.process(item)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="lambdatrace-batch") as pool:
            # Each task runs in a copy of the caller's context so item spans
            # parent under the invocation span.
            futures = [
                pool.submit(contextvars.copy_context().run, attempt, index, item)
                for index, item in enumerate(envelope.items)
            ]
            try:
                for future in as_completed(futures):
                    future.result()
            except BaseException:
                stop.set()
                for future in futures:
                    future.cancel()
                raise

        if stop.is_set():
            logger.warning("Invocation deadline reached; %d items not attempted", slots.count(None))


class AsyncBatchOrchestrator(_BaseOrchestrator):
    """Async variant of :class:`BatchOrchestrator`.

    Concurrency is bounded by an :class:`asyncio.Semaphore`. Cancelling the
    run stops new items from starting. Items still pending are reported as
    failed on the raised :class:`BatchInterruptedError`.
    """

    def __init__(
        self,
        handler: AsyncItemHandler,
        *,
        max_concurrency: int = 1,
        tracer: Optional[trace.Tracer] = None,
        extract_context: bool = True,
        timeout_margin_ms: int = DEFAULT_TIMEOUT_MARGIN_MS,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        super().__init__(
            BatchItemProcessor(handler, tracer=tracer, extract_context=extract_context),
            timeout_margin_ms=timeout_margin_ms,
        )
        self.max_concurrency = max_concurrency

    async def run(self, batch: Union[BatchEnvelope, Any], lambda_context: Any = None) -> BatchReport:
        envelope = self._envelope(batch)
        self._annotate_invocation(envelope)
        slots: Slots = [None] * envelope.item_count
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def attempt(index: int, item: BatchItem) -> None:
            async with semaphore:
                if self._deadline_reached(lambda_context):
                    return
                slots[index] = await self.processor.aprocess(item)

        tasks = [asyncio.ensure_future(attempt(index, item)) for index, item in enumerate(envelope.items)]
        try:
            await asyncio.gather(*tasks)
        except BaseException as exc:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise self._interrupted(envelope, slots, exc) from exc

        report = self._finalize(envelope, slots, DEADLINE_REASON)
        self._record_report(report)
        return report


def process_partial_response(
    event: Any,
    handler: ItemHandler,
    *,
    context: Any = None,
    max_workers: Optional[int] = None,
) -> Dict[str, Any]:
    """Process a queue event and return the partial batch response.

    Settings not given explicitly come from the active configuration (see
    :func:`lambdatrace.enable`).
    """
    from lambdatrace.sdk.bootstrap import get_config
    from lambdatrace.sdk.config import LambdaTraceConfig

    cfg = get_config() or LambdaTraceConfig()
    orchestrator = BatchOrchestrator(
        handler,
        max_workers=max_workers if max_workers is not None else cfg.batch_max_workers,
        extract_context=cfg.extract_message_context,
        timeout_margin_ms=cfg.timeout_margin_ms,
    )
    return orchestrator.run(event, context).to_response()
