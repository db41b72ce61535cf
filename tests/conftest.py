# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Shared test fixtures for lambdatrace tests."""

from __future__ import annotations

from typing import Any, Dict

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON

from tests.factories import FakeLambdaContext, make_queue_event, make_rest_event

# Module-level provider and exporter to avoid "cannot override" warnings
_provider: TracerProvider = None
_exporter: InMemorySpanExporter = None


def _get_or_create_provider() -> tuple[TracerProvider, InMemorySpanExporter]:
    """Get or create the global test provider."""
    global _provider, _exporter

    if _provider is None:
        _provider = TracerProvider(sampler=ALWAYS_ON)
        _exporter = InMemorySpanExporter()
        _provider.add_span_processor(SimpleSpanProcessor(_exporter))
        trace.set_tracer_provider(_provider)

    return _provider, _exporter


@pytest.fixture(autouse=True)
def reset_tracing():
    """Reset tracing state before each test."""
    _, exporter = _get_or_create_provider()
    exporter.clear()
    yield
    exporter.clear()


@pytest.fixture
def tracer_provider():
    """Get the test TracerProvider."""
    provider, _ = _get_or_create_provider()
    return provider


@pytest.fixture
def memory_exporter():
    """Get the in-memory span exporter for testing."""
    _, exporter = _get_or_create_provider()
    return exporter


@pytest.fixture
def tracer(tracer_provider):
    """Get a tracer instance."""
    return trace.get_tracer("test-tracer")


@pytest.fixture
def rest_event() -> Dict[str, Any]:
    """A REST API v1 proxy event for ``GET /todos/{id}``."""
    return make_rest_event()


@pytest.fixture
def queue_event() -> Dict[str, Any]:
    """A three-record queue batch."""
    return make_queue_event("msg-1", "msg-2", "msg-3")


@pytest.fixture
def lambda_context() -> FakeLambdaContext:
    return FakeLambdaContext()
