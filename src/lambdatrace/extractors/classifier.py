# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Classify a raw invocation event by its structure.

The shapes overlap structurally, so the checks run in a fixed order and
the first match wins.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from lambdatrace.models.events import QUEUE_EVENT_SOURCE, EventShape

logger = logging.getLogger(__name__)


def classify(event: Any) -> EventShape:
    """Return the :class:`EventShape` of *event*.

    Pure and total: unrecognised or malformed events are ``UNKNOWN``.
    """
    try:
        return _classify(event)
    except Exception:
        logger.debug("Event classification failed", exc_info=True)
        return EventShape.UNKNOWN


def _classify(event: Any) -> EventShape:
    if not isinstance(event, Mapping):
        return EventShape.UNKNOWN

    if "requestContext" in event:
        if "httpMethod" in event:
            return EventShape.SYNC_HTTP_V1
        request_context = event["requestContext"]
        if isinstance(request_context, Mapping):
            if "http" in request_context:
                return EventShape.SYNC_HTTP_V2
            if "connectionId" in request_context:
                return EventShape.SYNC_WEBSOCKET

    records = event.get("Records")
    if isinstance(records, Sequence) and not isinstance(records, (str, bytes)) and records:
        if all(_is_queue_record(record) for record in records):
            return EventShape.BATCH_QUEUE

    return EventShape.UNKNOWN


def _is_queue_record(record: Any) -> bool:
    return isinstance(record, Mapping) and record.get("eventSource") == QUEUE_EVENT_SOURCE
