# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Decorators that trace a whole function invocation.

``@instrument_handler`` wraps a handler ``(event, context)``. It:

1. Starts the invocation span (``SERVER`` for HTTP, ``CONSUMER`` for queue
   batches), continuing the caller's trace for HTTP requests
2. Records ``faas.*`` attributes (invocation id, cold start, name)
3. Runs :func:`pre_request_hook` and :func:`post_response_hook`
4. Returns the handler's result, or re-raises its exception, untouched

``batch_handler`` builds a complete queue handler from a per-record
function. It composes ``@instrument_handler`` with the batch orchestrator.
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
from collections.abc import Mapping
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, Optional, Tuple, TypeVar

from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.trace import SpanKind, Status, StatusCode

from lambdatrace.batch.orchestrator import process_partial_response
from lambdatrace.batch.processor import ItemHandler, get_tracer
from lambdatrace.exceptions import BatchInterruptedError
from lambdatrace.extractors.classifier import classify
from lambdatrace.extractors.http import single_value_headers
from lambdatrace.models.events import EventShape
from lambdatrace.sdk.hooks import InvocationContext, post_response_hook, pre_request_hook
from lambdatrace.semconv import CloudAttributes, FaaSAttributes, FaaSTrigger, HTTPAttributes

T = TypeVar("T")

logger = logging.getLogger(__name__)

_cold_start_lock = threading.Lock()
_cold_start = True


def _consume_cold_start() -> bool:
    global _cold_start
    with _cold_start_lock:
        was_cold, _cold_start = _cold_start, False
    return was_cold


def _parent_context(shape: EventShape, event: Any) -> Optional[Context]:
    """Continue the caller's trace from HTTP request headers.

    ``headers`` wins over the first value in ``multiValueHeaders``.
    """
    if not shape.is_http or not isinstance(event, Mapping):
        return None
    carrier = single_value_headers(event)
    if not carrier:
        return None
    return propagate.extract(carrier)


def _faas_attributes(shape: EventShape, context: Any, name: str) -> Dict[str, Any]:
    if shape.is_http:
        trigger = FaaSTrigger.HTTP
    elif shape is EventShape.BATCH_QUEUE:
        trigger = FaaSTrigger.PUBSUB
    else:
        trigger = FaaSTrigger.OTHER

    attrs: Dict[str, Any] = {
        CloudAttributes.PROVIDER: "aws",
        FaaSAttributes.TRIGGER: trigger,
        FaaSAttributes.COLDSTART: _consume_cold_start(),
        FaaSAttributes.NAME: getattr(context, "function_name", None) or name,
    }
    request_id = getattr(context, "aws_request_id", None)
    if isinstance(request_id, str) and request_id:
        attrs[FaaSAttributes.INVOCATION_ID] = request_id
    return attrs


def _finish_ok(span: trace.Span, invocation: InvocationContext, result: Any) -> None:
    # 5xx responses mark the server span as failed; anything else is OK
    # unless the handler already set a status.
    status = getattr(span, "status", None)
    if status is not None and status.status_code is not StatusCode.UNSET:
        return
    if invocation.shape.is_http:
        attributes = getattr(span, "attributes", None) or {}
        status_code = attributes.get(HTTPAttributes.RESPONSE_STATUS_CODE)
        if isinstance(status_code, int) and status_code >= 500:
            span.set_status(Status(StatusCode.ERROR))
            return
    span.set_status(Status(StatusCode.OK))


@contextmanager
def _invocation_span(
    name: str,
    event: Any,
    context: Any,
) -> Generator[Tuple[trace.Span, InvocationContext], None, None]:
    shape = classify(event)
    kind = SpanKind.CONSUMER if shape is EventShape.BATCH_QUEUE else SpanKind.SERVER

    with get_tracer().start_as_current_span(
        name=name,
        context=_parent_context(shape, event),
        kind=kind,
        attributes=_faas_attributes(shape, context, name),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        invocation = pre_request_hook(span, event)
        try:
            yield span, invocation
        except BaseException as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise


def instrument_handler(
    func: Optional[Callable[..., T]] = None,
    *,
    name: Optional[str] = None,
) -> Any:
    """Trace every invocation of a function handler.

    Works with sync and async handlers, with or without arguments::

        @instrument_handler
        def handler(event, context):
            return {"statusCode": 200, "body": "ok"}

        @instrument_handler(name="todo-api")
        async def handler(event, context): ...

    Args:
        func: The handler being decorated.
        name: Initial span name (defaults to the function name). HTTP and
            queue invocations are renamed by the pre-request hook.
    """

    def decorator(handler: Callable[..., T]) -> Callable[..., T]:
        span_name = name or getattr(handler, "__name__", "handler")

        @functools.wraps(handler)
        async def async_wrapper(event: Any, context: Any = None, *args: Any, **kwargs: Any) -> T:
            with _invocation_span(getattr(context, "function_name", None) or span_name, event, context) as (
                span,
                invocation,
            ):
                result = await handler(event, context, *args, **kwargs)
                post_response_hook(span, invocation, result)
                _finish_ok(span, invocation, result)
                return result

        @functools.wraps(handler)
        def sync_wrapper(event: Any, context: Any = None, *args: Any, **kwargs: Any) -> T:
            with _invocation_span(getattr(context, "function_name", None) or span_name, event, context) as (
                span,
                invocation,
            ):
                result = handler(event, context, *args, **kwargs)
                post_response_hook(span, invocation, result)
                _finish_ok(span, invocation, result)
                return result

        if inspect.iscoroutinefunction(handler):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator


def batch_handler(
    record_handler: ItemHandler,
    *,
    max_workers: Optional[int] = None,
    raise_on_interrupt: bool = False,
) -> Callable[..., Dict[str, Any]]:
    """Build a traced queue handler from a per-record body handler.

    The returned function takes ``(event, context)`` and returns the
    partial batch response. If processing is interrupted, the partial
    report is still returned (every unfinished item listed as failed)
    unless *raise_on_interrupt* is set.

    Example::

        def save_todo(body: str) -> None:
            table.put_item(Item=json.loads(body))

        handler = batch_handler(save_todo, max_workers=4)
    """

    @functools.wraps(record_handler)
    def handler(event: Any, context: Any = None) -> Dict[str, Any]:
        try:
            return process_partial_response(event, record_handler, context=context, max_workers=max_workers)
        except BatchInterruptedError as exc:
            if raise_on_interrupt:
                raise
            span = trace.get_current_span()
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            return exc.report.to_response()

    return instrument_handler(handler)
