# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Event classification and semantic attribute extraction.

Every function in this package is pure and never raises.
"""

from __future__ import annotations

from lambdatrace.extractors.classifier import classify
from lambdatrace.extractors.http import (
    extract_request_attributes,
    extract_response_attributes,
    normalize_method,
    normalize_route,
    redact_query,
    span_name,
)
from lambdatrace.extractors.sqs import (
    envelope_span_name,
    extract_envelope_attributes,
    extract_item_attributes,
    item_span_name,
    message_attributes_to_carrier,
)

__all__ = [
    "classify",
    "envelope_span_name",
    "extract_envelope_attributes",
    "extract_item_attributes",
    "extract_request_attributes",
    "extract_response_attributes",
    "item_span_name",
    "message_attributes_to_carrier",
    "normalize_method",
    "normalize_route",
    "redact_query",
    "span_name",
]
