# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Tests for producer context extraction from queue records."""

from __future__ import annotations

from typing import Dict

from opentelemetry import propagate, trace

from lambdatrace.batch.propagation import extract_link
from lambdatrace.models.events import BatchItem
from tests.factories import make_record


def _send(tracer) -> tuple[trace.SpanContext, Dict[str, dict]]:
    """Simulate a producer: inject the active context into message attributes."""
    with tracer.start_as_current_span("send todo-queue", kind=trace.SpanKind.PRODUCER) as span:
        carrier: Dict[str, str] = {}
        propagate.inject(carrier)
    attributes = {key: {"stringValue": value, "dataType": "String"} for key, value in carrier.items()}
    return span.get_span_context(), attributes


class TestExtractLink:
    def test_links_to_producer_span(self, tracer):
        producer, attributes = _send(tracer)
        item = BatchItem.from_record(make_record("m-1", message_attributes=attributes))

        link = extract_link(item)

        assert link is not None
        assert link.context.trace_id == producer.trace_id
        assert link.context.span_id == producer.span_id
        assert link.context.is_remote
        assert dict(link.attributes) == {"messaging.message.id": "m-1"}

    def test_plain_string_carrier(self, tracer):
        producer, attributes = _send(tracer)
        flat = {key: value["stringValue"] for key, value in attributes.items()}
        link = extract_link(BatchItem.from_record(make_record("m-1", message_attributes=flat)))
        assert link is not None
        assert link.context.trace_id == producer.trace_id

    def test_no_metadata(self):
        assert extract_link(BatchItem.from_record(make_record("m-1"))) is None

    def test_malformed_traceparent(self):
        attributes = {"traceparent": {"stringValue": "not-a-traceparent", "dataType": "String"}}
        assert extract_link(BatchItem.from_record(make_record("m-1", message_attributes=attributes))) is None

    def test_unrelated_attributes(self):
        attributes = {"tenant": {"stringValue": "acme", "dataType": "String"}}
        assert extract_link(BatchItem.from_record(make_record("m-1", message_attributes=attributes))) is None

    def test_ignores_active_span(self, tracer):
        """The invocation span is never mistaken for a producer context."""
        with tracer.start_as_current_span("invocation"):
            assert extract_link(BatchItem.from_record(make_record("m-1"))) is None

    def test_missing_message_id_has_no_link_attributes(self, tracer):
        _, attributes = _send(tracer)
        item = BatchItem(item_id="", metadata=attributes)
        link = extract_link(item)
        assert link is not None
        assert not link.attributes
