# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Invocation event models.

A raw event is whatever the serverless runtime hands to a handler. It is
never mutated. For queue batches, :class:`BatchEnvelope` gives a typed,
read-only view over the records so the orchestrator does not have to dig
through dictionaries.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple, Union

logger = logging.getLogger(__name__)

QUEUE_EVENT_SOURCE = "aws:sqs"


class EventShape(str, Enum):
    """Closed set of invocation shapes recognised by :func:`classify`."""

    SYNC_HTTP_V1 = "sync_http_v1"
    SYNC_HTTP_V2 = "sync_http_v2"
    SYNC_WEBSOCKET = "sync_websocket"
    BATCH_QUEUE = "batch_queue"
    UNKNOWN = "unknown"

    @property
    def is_http(self) -> bool:
        return self in (EventShape.SYNC_HTTP_V1, EventShape.SYNC_HTTP_V2, EventShape.SYNC_WEBSOCKET)


def destination_from_arn(arn: Optional[str]) -> Optional[str]:
    """Return the last ``:``-delimited segment of a resource ARN."""
    if not arn or not isinstance(arn, str):
        return None
    name = arn.rsplit(":", 1)[-1]
    return name or None


@dataclass(frozen=True)
class BatchItem:
    """One queue record.

    ``metadata`` holds the record's message attributes exactly as
    delivered: values are either plain strings or attribute records such
    as ``{"stringValue": "...", "dataType": "String"}``.
    """

    item_id: str
    body: Union[str, bytes, None] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    source_arn: Optional[str] = None
    region: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def destination_name(self) -> Optional[str]:
        return destination_from_arn(self.source_arn)

    @classmethod
    def from_record(cls, record: Any) -> BatchItem:
        if not isinstance(record, Mapping):
            logger.debug("Ignoring malformed queue record of type %s", type(record).__name__)
            return cls(item_id="")

        message_id = record.get("messageId")
        metadata = record.get("messageAttributes")
        source_arn = record.get("eventSourceARN")
        region = record.get("awsRegion")
        return cls(
            item_id=message_id if isinstance(message_id, str) else "",
            body=record.get("body"),
            metadata=metadata if isinstance(metadata, Mapping) else {},
            source_arn=source_arn if isinstance(source_arn, str) else None,
            region=region if isinstance(region, str) else None,
            raw=record,
        )


@dataclass(frozen=True)
class BatchEnvelope:
    """Ordered, read-only batch of :class:`BatchItem` plus batch metadata."""

    items: Tuple[BatchItem, ...] = ()
    source_arn: Optional[str] = None
    region: Optional[str] = None

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def destination_name(self) -> Optional[str]:
        return destination_from_arn(self.source_arn)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @classmethod
    def from_event(cls, event: Any) -> BatchEnvelope:
        """Build an envelope from a raw queue event.

        Malformed input yields an empty envelope rather than an error.
        """
        records = event.get("Records") if isinstance(event, Mapping) else None
        if not isinstance(records, Sequence) or isinstance(records, (str, bytes)):
            return cls()

        items = tuple(BatchItem.from_record(record) for record in records)
        first = items[0] if items else None
        return cls(
            items=items,
            source_arn=first.source_arn if first else None,
            region=first.region if first else None,
        )
