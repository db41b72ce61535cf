# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Recover the producer's trace context from a queue record.

A producer that injects its context into the message attributes (W3C
``traceparent``/``tracestate`` by default) lets the consumer link each
``process`` span back to the ``send`` span. The queue runtime does not
preserve parent/child relationships across the hop, so this is a link,
not a parent.

See https://opentelemetry.io/docs/specs/semconv/messaging/messaging-spans/#trace-structure
"""

from __future__ import annotations

import logging
from typing import Optional

from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.trace import Link

from lambdatrace.extractors.sqs import message_attributes_to_carrier
from lambdatrace.models.events import BatchItem
from lambdatrace.semconv import MessagingAttributes

logger = logging.getLogger(__name__)


def extract_link(item: BatchItem) -> Optional[Link]:
    """Return a :class:`~opentelemetry.trace.Link` to the producing span.

    Returns ``None`` when the record carries no usable context. That is
    the normal case for messages sent without propagation headers.
    """
    try:
        carrier = message_attributes_to_carrier(item.metadata)
        if not carrier:
            return None

        ctx = propagate.extract(carrier, context=Context())
        span_context = trace.get_current_span(ctx).get_span_context()
        if not span_context.is_valid:
            return None

        attributes = {MessagingAttributes.MESSAGE_ID: item.item_id} if item.item_id else None
        return Link(span_context, attributes=attributes)
    except Exception:
        logger.debug("Failed to extract propagated context from item %s", item.item_id, exc_info=True)
        return None
