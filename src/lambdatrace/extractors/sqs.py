# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Messaging attributes for queue batch invocations.

Follows the messaging consumer conventions for a passive queue trigger:
https://opentelemetry.io/docs/specs/semconv/faas/aws-lambda/#sqs-event

The envelope (``poll``/``receive``) describes the whole delivery; each
record gets its own ``process`` span.

Example record::

    {
        "messageId": "2e1424d4-f796-459a-8184-9c92662be6da",
        "body": "Test message.",
        "messageAttributes": {
            "traceparent": {"stringValue": "00-...-01", "dataType": "String"}
        },
        "eventSource": "aws:sqs",
        "eventSourceARN": "arn:aws:sqs:us-east-2:123456789012:my-queue",
        "awsRegion": "us-east-2"
    }
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Union

from lambdatrace.extractors.http import SpanAttributes
from lambdatrace.models.events import BatchEnvelope, BatchItem
from lambdatrace.semconv import (
    CloudAttributes,
    MessagingAttributes,
    MessagingOperationType,
    MessagingSystem,
)

logger = logging.getLogger(__name__)

POLL_OPERATION = "poll"
PROCESS_OPERATION = "process"


def _as_envelope(event: Union[BatchEnvelope, Any]) -> BatchEnvelope:
    if isinstance(event, BatchEnvelope):
        return event
    return BatchEnvelope.from_event(event)


def _as_item(item: Union[BatchItem, Any]) -> BatchItem:
    if isinstance(item, BatchItem):
        return item
    return BatchItem.from_record(item)


def extract_envelope_attributes(event: Union[BatchEnvelope, Any]) -> SpanAttributes:
    """Attributes for the span covering the whole batch delivery."""
    attrs: SpanAttributes = {}
    try:
        envelope = _as_envelope(event)
        attrs[MessagingAttributes.OPERATION_NAME] = POLL_OPERATION
        attrs[MessagingAttributes.OPERATION_TYPE] = MessagingOperationType.RECEIVE
        attrs[MessagingAttributes.SYSTEM] = MessagingSystem.AWS_SQS
        attrs[MessagingAttributes.BATCH_MESSAGE_COUNT] = envelope.item_count
        if envelope.destination_name:
            attrs[MessagingAttributes.DESTINATION_NAME] = envelope.destination_name
        if envelope.region:
            attrs[CloudAttributes.REGION] = envelope.region
    except Exception:
        logger.debug("Failed to extract batch envelope attributes", exc_info=True)
    return attrs


def extract_item_attributes(item: Union[BatchItem, Any]) -> SpanAttributes:
    """Attributes for the ``process`` span of a single record."""
    attrs: SpanAttributes = {}
    try:
        batch_item = _as_item(item)
        if batch_item.item_id:
            attrs[MessagingAttributes.MESSAGE_ID] = batch_item.item_id
        attrs[MessagingAttributes.OPERATION_NAME] = PROCESS_OPERATION
        attrs[MessagingAttributes.OPERATION_TYPE] = MessagingOperationType.PROCESS
        attrs[MessagingAttributes.SYSTEM] = MessagingSystem.AWS_SQS
        if batch_item.source_arn:
            attrs[MessagingAttributes.DESTINATION_SUBSCRIPTION_NAME] = batch_item.source_arn
        if batch_item.destination_name:
            attrs[MessagingAttributes.DESTINATION_NAME] = batch_item.destination_name
        if batch_item.region:
            attrs[CloudAttributes.REGION] = batch_item.region
    except Exception:
        logger.debug("Failed to extract batch item attributes", exc_info=True)
    return attrs


def envelope_span_name(event: Union[BatchEnvelope, Any]) -> str:
    try:
        destination = _as_envelope(event).destination_name
    except Exception:
        destination = None
    return f"{POLL_OPERATION} {destination}" if destination else POLL_OPERATION


def item_span_name(item: Union[BatchItem, Any]) -> str:
    try:
        destination = _as_item(item).destination_name
    except Exception:
        destination = None
    return f"{PROCESS_OPERATION} {destination}" if destination else PROCESS_OPERATION


def message_attributes_to_carrier(metadata: Any) -> Dict[str, str]:
    """Flatten message attributes into a string-only propagation carrier.

    Entries without a string value (binary or number attributes, malformed
    records) are dropped.
    """
    carrier: Dict[str, str] = {}
    if not isinstance(metadata, Mapping):
        return carrier

    for key, value in metadata.items():
        if not isinstance(key, str):
            continue
        if isinstance(value, str):
            carrier[key] = value
        elif isinstance(value, Mapping):
            string_value = value.get("stringValue")
            if isinstance(string_value, str) and string_value:
                carrier[key] = string_value
    return carrier
