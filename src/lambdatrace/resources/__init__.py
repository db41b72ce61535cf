# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Resource detection for function runtimes.

The process detector ships with ``opentelemetry-sdk``. The function
detector (``faas.*``, ``cloud.*``) comes from
``opentelemetry-sdk-extension-aws``::

    pip install lambdatrace[aws]

A detector runs only when its package is installed and, for runtime
specific detectors, when the runtime's marker variable is set. Outside a
function (tests, local runs) only the process detector is used.
"""

from __future__ import annotations

import importlib
import logging
import os
from typing import Any, Dict, List, NamedTuple, Optional

logger = logging.getLogger(__name__)

# Set by the function runtime in every execution environment.
LAMBDA_RUNTIME_MARKER = "AWS_LAMBDA_FUNCTION_NAME"


class DetectorSpec(NamedTuple):
    module_path: str
    class_name: str
    # Environment variable that must be present, or None for "always".
    requires_env: Optional[str] = None


_DETECTOR_REGISTRY: List[DetectorSpec] = [
    DetectorSpec("opentelemetry.sdk.resources", "ProcessResourceDetector"),
    DetectorSpec(
        "opentelemetry.sdk.extension.aws.resource",
        "AwsLambdaResourceDetector",
        requires_env=LAMBDA_RUNTIME_MARKER,
    ),
]


def collect_detectors() -> list:
    """Instantiate every applicable, importable detector."""
    detectors: list = []
    for spec in _DETECTOR_REGISTRY:
        if spec.requires_env and not os.getenv(spec.requires_env):
            continue
        try:
            detector_cls = getattr(importlib.import_module(spec.module_path), spec.class_name)
        except (ImportError, AttributeError):
            logger.debug("Resource detector %s not available", spec.class_name)
            continue
        detectors.append(detector_cls())
    return detectors


def detect_resource_attrs() -> Dict[str, Any]:
    """Merge the attributes of all detectors; later detectors win."""
    attrs: Dict[str, Any] = {}
    for detector in collect_detectors():
        try:
            attrs.update(dict(detector.detect().attributes))
        except Exception:
            logger.debug("Resource detector %s failed", type(detector).__name__, exc_info=True)
    return attrs


__all__ = ["DetectorSpec", "LAMBDA_RUNTIME_MARKER", "collect_detectors", "detect_resource_attrs"]
