# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Request/response hooks around a whole invocation.

Tracing integrations that own the invocation span call these two seams:

- :func:`pre_request_hook` classifies the event, adds request attributes
  and renames the span. It returns an :class:`InvocationContext`.
- :func:`post_response_hook` receives that context back and adds the
  response attributes.

The shape travels with the ``InvocationContext`` instead of module state,
so concurrent invocations cannot see each other's classification.
Neither hook raises. A failed extraction just adds no attributes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from opentelemetry import trace

from lambdatrace.extractors import http, sqs
from lambdatrace.extractors.classifier import classify
from lambdatrace.models.events import EventShape

logger = logging.getLogger(__name__)


@dataclass
class InvocationContext:
    """What the pre-hook learned about an invocation."""

    shape: EventShape = EventShape.UNKNOWN
    event: Any = field(default=None, repr=False)


def _request_options() -> dict:
    from lambdatrace.sdk.bootstrap import get_config

    cfg = get_config()
    if cfg is None:
        return {}
    return {
        "capture_headers": cfg.capture_headers,
        "redacted_headers": cfg.redacted_headers,
        "redacted_params": cfg.redacted_query_params,
    }


def _response_options() -> dict:
    options = _request_options()
    options.pop("redacted_params", None)
    return options


def pre_request_hook(span: trace.Span, event: Any) -> InvocationContext:
    """Classify *event* and enrich *span* with its request attributes."""
    invocation = InvocationContext(shape=classify(event), event=event)
    try:
        if invocation.shape is EventShape.SYNC_HTTP_V1:
            span.set_attributes(http.extract_request_attributes(event, **_request_options()))
            span.update_name(http.span_name(event))
        elif invocation.shape is EventShape.BATCH_QUEUE:
            span.set_attributes(sqs.extract_envelope_attributes(event))
            span.update_name(sqs.envelope_span_name(event))
    except Exception:
        logger.debug("pre_request_hook failed for %s event", invocation.shape.value, exc_info=True)
    return invocation


def post_response_hook(
    span: trace.Span,
    invocation: Optional[InvocationContext],
    result: Any,
) -> None:
    """Enrich *span* with the attributes of the handler's *result*."""
    if invocation is None:
        return
    try:
        if invocation.shape is EventShape.SYNC_HTTP_V1:
            span.set_attributes(http.extract_response_attributes(result, **_response_options()))
    except Exception:
        logger.debug("post_response_hook failed for %s event", invocation.shape.value, exc_info=True)
