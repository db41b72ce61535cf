# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Exceptions raised by lambdatrace."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lambdatrace.models.outcome import BatchReport


class LambdaTraceError(Exception):
    """Base class for lambdatrace errors."""


class BatchInterruptedError(LambdaTraceError):
    """A batch run stopped before every item was attempted.

    ``report`` is complete: every item that did not finish is listed as a
    failure, so it can still be returned to the queue runtime.
    """

    def __init__(self, report: BatchReport, message: str = "Batch processing interrupted") -> None:
        super().__init__(f"{message} ({len(report.failed_item_ids)} of {len(report.outcomes)} items failed)")
        self.report = report
