# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Traced batch processing with partial-failure reporting."""

from __future__ import annotations

from lambdatrace.batch.orchestrator import (
    AsyncBatchOrchestrator,
    BatchOrchestrator,
    process_partial_response,
)
from lambdatrace.batch.processor import BatchItemProcessor
from lambdatrace.batch.propagation import extract_link

__all__ = [
    "AsyncBatchOrchestrator",
    "BatchItemProcessor",
    "BatchOrchestrator",
    "extract_link",
    "process_partial_response",
]
