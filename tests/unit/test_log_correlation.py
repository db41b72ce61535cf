# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Tests for trace/log correlation through the logging instrumentor."""

from __future__ import annotations

import logging

import pytest
from opentelemetry.instrumentation.logging import LoggingInstrumentor

from lambdatrace.batch.orchestrator import BatchOrchestrator
from lambdatrace.sdk import bootstrap
from tests.factories import make_queue_event


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def log_instrumentor():
    instrumentor = LoggingInstrumentor()
    yield instrumentor
    if instrumentor.is_instrumented_by_opentelemetry:
        instrumentor.uninstrument()


@pytest.fixture
def root_handler():
    """A root handler carrying the function runtime's own format."""
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s %(aws_request_id)s %(levelname)s %(message)s")
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.addHandler(handler)
    yield handler
    root.removeHandler(handler)


class TestLogCorrelation:
    def test_item_logs_carry_item_span(self, log_instrumentor, memory_exporter):
        bootstrap._enable_auto_instrumentation(["logging"])
        assert log_instrumentor.is_instrumented_by_opentelemetry

        item_logger = logging.getLogger("tests.items")
        capture = _Capture()
        item_logger.addHandler(capture)
        item_logger.setLevel(logging.INFO)
        try:
            BatchOrchestrator(lambda body: item_logger.info("saving %s", body)).run(make_queue_event("m-1", "m-2"))
        finally:
            item_logger.removeHandler(capture)

        spans = memory_exporter.get_finished_spans()
        assert [r.otelSpanID for r in capture.records] == [format(s.context.span_id, "016x") for s in spans]
        assert {r.otelTraceID for r in capture.records} == {format(s.context.trace_id, "032x") for s in spans}

    def test_records_outside_a_span(self, log_instrumentor):
        bootstrap._enable_auto_instrumentation(["logging"])

        record = logging.getLogRecordFactory()("t", logging.INFO, __file__, 1, "idle", None, None)

        assert record.otelSpanID == "0"
        assert record.otelTraceID == "0"

    def test_runtime_formatter_is_kept(self, log_instrumentor, root_handler):
        runtime_formatter = root_handler.formatter

        bootstrap._enable_auto_instrumentation(["logging"], set_logging_format=True)

        assert root_handler.formatter is runtime_formatter
