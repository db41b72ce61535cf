# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

from lambdatrace.models.events import BatchEnvelope, BatchItem, EventShape
from lambdatrace.models.outcome import BatchReport, OutcomeStatus, ProcessingOutcome

__all__ = [
    "BatchEnvelope",
    "BatchItem",
    "BatchReport",
    "EventShape",
    "OutcomeStatus",
    "ProcessingOutcome",
]
