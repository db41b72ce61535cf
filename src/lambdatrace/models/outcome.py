# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Per-item outcomes and the aggregated batch report.

Invariant: a finished :class:`BatchReport` holds exactly one outcome per
item of the envelope. Items that were never attempted are failures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ProcessingOutcome:
    """Result of processing one batch item."""

    item_id: str
    status: OutcomeStatus
    reason: Optional[str] = None
    error_class: Optional[str] = None
    completed: bool = True

    @classmethod
    def success(cls, item_id: str) -> ProcessingOutcome:
        return cls(item_id=item_id, status=OutcomeStatus.SUCCESS)

    @classmethod
    def failure(
        cls,
        item_id: str,
        reason: str,
        *,
        error_class: Optional[str] = None,
    ) -> ProcessingOutcome:
        return cls(
            item_id=item_id,
            status=OutcomeStatus.FAILURE,
            reason=reason,
            error_class=error_class,
        )

    @classmethod
    def unfinished(cls, item_id: str, reason: str) -> ProcessingOutcome:
        return cls(
            item_id=item_id,
            status=OutcomeStatus.FAILURE,
            reason=reason,
            completed=False,
        )

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


@dataclass
class BatchReport:
    """Outcomes of one batch run, in envelope order.

    ``to_response()`` produces the partial batch response understood by the
    queue runtime, which redelivers only the listed items.
    """

    outcomes: List[ProcessingOutcome] = field(default_factory=list)

    @property
    def failed_item_ids(self) -> List[str]:
        return [o.item_id for o in self.outcomes if not o.succeeded]

    @property
    def succeeded_item_ids(self) -> List[str]:
        return [o.item_id for o in self.outcomes if o.succeeded]

    @property
    def has_failures(self) -> bool:
        return any(not o.succeeded for o in self.outcomes)

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and all(not o.succeeded for o in self.outcomes)

    def to_response(self) -> Dict[str, Any]:
        return {
            "batchItemFailures": [{"itemIdentifier": item_id} for item_id in self.failed_item_ids],
        }
