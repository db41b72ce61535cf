# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Per-item processing with a consumer span around the user's handler.

:class:`BatchItemProcessor` wraps a handler reference. Nothing is patched:
the processor is composed with the handler at construction time.

Span lifecycle, per item:

1. Attributes and the optional producer link are computed up front (links
   can only be supplied when a span starts).
2. A ``CONSUMER`` span named ``process <queue>`` is started as a child of
   the active invocation span.
3. The handler runs with the item body.
4. Status is ``OK`` on success or ``ERROR`` carrying the exception message.
5. The span ends exactly once, whatever happened.

Handler exceptions become a failed :class:`ProcessingOutcome`. So does a
synchronous run whose handler hands back an awaitable: the work never
happened, so the item must be redelivered. Fatal
conditions (``MemoryError`` and ``BaseException`` subclasses such as
``KeyboardInterrupt`` or ``asyncio.CancelledError``) are recorded on the
span and re-raised for the orchestrator to handle.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from lambdatrace._version import __version__
from lambdatrace.batch.propagation import extract_link
from lambdatrace.extractors.sqs import extract_item_attributes, item_span_name
from lambdatrace.models.events import BatchItem
from lambdatrace.models.outcome import ProcessingOutcome
from lambdatrace.semconv import INSTRUMENTATION_NAME, SCHEMA_URL

logger = logging.getLogger(__name__)

ItemHandler = Callable[[Any], Any]
AsyncItemHandler = Callable[[Any], Union[Awaitable[Any], Any]]

_FATAL_ERRORS = (MemoryError,)


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(
        INSTRUMENTATION_NAME,
        instrumenting_library_version=__version__,
        schema_url=SCHEMA_URL,
    )


def _mark_error(span: trace.Span, exc: BaseException) -> None:
    span.record_exception(exc)
    span.set_status(Status(StatusCode.ERROR, str(exc) or exc.__class__.__name__))


def _discard_awaitable(result: Any) -> None:
    # A coroutine that will never be awaited is closed so it does not warn.
    close = getattr(result, "close", None)
    if callable(close):
        close()


def _failure(item: BatchItem, exc: Exception) -> ProcessingOutcome:
    logger.warning("Batch item %s failed: %s: %s", item.item_id, exc.__class__.__name__, exc)
    return ProcessingOutcome.failure(
        item.item_id,
        str(exc) or exc.__class__.__name__,
        error_class=exc.__class__.__name__,
    )


class BatchItemProcessor:
    """Run a per-item handler inside a traced consumer span.

    Example::

        processor = BatchItemProcessor(lambda body: save(json.loads(body)))
        outcome = processor.process(item)
    """

    def __init__(
        self,
        handler: AsyncItemHandler,
        *,
        tracer: Optional[trace.Tracer] = None,
        extract_context: bool = True,
    ) -> None:
        self.handler = handler
        self.extract_context = extract_context
        self._tracer = tracer

    @property
    def tracer(self) -> trace.Tracer:
        return self._tracer or get_tracer()

    def _span_options(self, item: BatchItem) -> dict:
        link = extract_link(item) if self.extract_context else None
        return {
            "name": item_span_name(item),
            "kind": SpanKind.CONSUMER,
            "attributes": extract_item_attributes(item),
            "links": [link] if link is not None else None,
            "record_exception": False,
            "set_status_on_exception": False,
        }

    def process(self, item: BatchItem) -> ProcessingOutcome:
        """Process *item* with a synchronous handler."""
        with self.tracer.start_as_current_span(**self._span_options(item)) as span:
            try:
                result = self.handler(item.body)
                if inspect.isawaitable(result):
                    _discard_awaitable(result)
                    raise TypeError(
                        f"Handler {self.handler!r} returned an awaitable; "
                        "use AsyncBatchOrchestrator for async handlers"
                    )
            except _FATAL_ERRORS as exc:
                _mark_error(span, exc)
                raise
            except Exception as exc:
                _mark_error(span, exc)
                return _failure(item, exc)
            except BaseException as exc:
                _mark_error(span, exc)
                raise

            span.set_status(Status(StatusCode.OK))
            return ProcessingOutcome.success(item.item_id)

    async def aprocess(self, item: BatchItem) -> ProcessingOutcome:
        """Process *item* with an async (or sync) handler."""
        with self.tracer.start_as_current_span(**self._span_options(item)) as span:
            try:
                result = self.handler(item.body)
                if inspect.isawaitable(result):
                    await result
            except _FATAL_ERRORS as exc:
                _mark_error(span, exc)
                raise
            except Exception as exc:
                _mark_error(span, exc)
                return _failure(item, exc)
            except BaseException as exc:
                _mark_error(span, exc)
                raise

            span.set_status(Status(StatusCode.OK))
            return ProcessingOutcome.success(item.item_id)
