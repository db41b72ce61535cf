# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""lambdatrace - OpenTelemetry instrumentation for function handlers.

Quick Start::

    from lambdatrace import batch_handler, enable, instrument_handler

    enable(span_processors=[...])  # reads OTEL_SERVICE_NAME, OTEL_PROPAGATORS from env

    @instrument_handler
    def api_handler(event, context):
        return {"statusCode": 200, "body": "ok"}

    def save_todo(body):
        ...

    queue_handler = batch_handler(save_todo)  # returns {"batchItemFailures": [...]}
"""

from __future__ import annotations

from lambdatrace._version import __version__

# Batch processing
from lambdatrace.batch import (
    AsyncBatchOrchestrator,
    BatchItemProcessor,
    BatchOrchestrator,
    extract_link,
    process_partial_response,
)

# Errors
from lambdatrace.exceptions import BatchInterruptedError, LambdaTraceError

# Classification
from lambdatrace.extractors import classify

# Models
from lambdatrace.models import (
    BatchEnvelope,
    BatchItem,
    BatchReport,
    EventShape,
    OutcomeStatus,
    ProcessingOutcome,
)

# Bootstrap
from lambdatrace.sdk.bootstrap import disable, enable, is_enabled

# Configuration
from lambdatrace.sdk.config import LambdaTraceConfig

# Decorators  (primary integration point)
from lambdatrace.sdk.decorators import batch_handler, instrument_handler

# Hooks for external tracing integrations
from lambdatrace.sdk.hooks import InvocationContext, post_response_hook, pre_request_hook

__all__ = [
    "__version__",
    # Bootstrap
    "enable",
    "disable",
    "is_enabled",
    # Configuration
    "LambdaTraceConfig",
    # Decorators
    "instrument_handler",
    "batch_handler",
    # Hooks
    "InvocationContext",
    "pre_request_hook",
    "post_response_hook",
    # Batch processing
    "BatchOrchestrator",
    "AsyncBatchOrchestrator",
    "BatchItemProcessor",
    "extract_link",
    "process_partial_response",
    # Classification
    "classify",
    # Models
    "EventShape",
    "BatchEnvelope",
    "BatchItem",
    "BatchReport",
    "OutcomeStatus",
    "ProcessingOutcome",
    # Errors
    "LambdaTraceError",
    "BatchInterruptedError",
]
