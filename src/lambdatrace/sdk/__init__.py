# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""lambdatrace SDK components."""

from __future__ import annotations

from lambdatrace.sdk.bootstrap import disable, enable, get_config, is_enabled
from lambdatrace.sdk.config import LambdaTraceConfig
from lambdatrace.sdk.decorators import batch_handler, instrument_handler
from lambdatrace.sdk.hooks import InvocationContext, post_response_hook, pre_request_hook

__all__ = [
    "InvocationContext",
    "LambdaTraceConfig",
    "batch_handler",
    "disable",
    "enable",
    "get_config",
    "instrument_handler",
    "is_enabled",
    "post_response_hook",
    "pre_request_hook",
]
