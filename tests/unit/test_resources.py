# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Tests for resource detection."""

from __future__ import annotations

import os
from unittest import mock

from opentelemetry.sdk.resources import ProcessResourceDetector, Resource

from lambdatrace import resources
from lambdatrace.resources import LAMBDA_RUNTIME_MARKER, DetectorSpec, collect_detectors, detect_resource_attrs


class TestCollectDetectors:
    def test_includes_process_detector(self):
        detectors = collect_detectors()
        assert any(isinstance(d, ProcessResourceDetector) for d in detectors)

    def test_skips_missing_packages(self):
        registry = [
            DetectorSpec("opentelemetry.sdk.resources", "ProcessResourceDetector"),
            DetectorSpec("not.installed.anywhere", "Detector"),
            DetectorSpec("opentelemetry.sdk.resources", "NoSuchDetector"),
        ]
        with mock.patch.object(resources, "_DETECTOR_REGISTRY", registry):
            detectors = collect_detectors()
        assert [type(d) for d in detectors] == [ProcessResourceDetector]

    def test_runtime_detector_needs_marker(self):
        registry = [
            DetectorSpec("opentelemetry.sdk.resources", "ProcessResourceDetector", requires_env=LAMBDA_RUNTIME_MARKER),
        ]
        with mock.patch.object(resources, "_DETECTOR_REGISTRY", registry):
            with mock.patch.dict(os.environ, {}, clear=True):
                assert collect_detectors() == []
            with mock.patch.dict(os.environ, {LAMBDA_RUNTIME_MARKER: "todo-fn"}):
                assert [type(d) for d in collect_detectors()] == [ProcessResourceDetector]

    def test_lambda_detector_registered_behind_marker(self):
        gated = [spec for spec in resources._DETECTOR_REGISTRY if spec.requires_env]
        assert [spec.class_name for spec in gated] == ["AwsLambdaResourceDetector"]


class TestDetectResourceAttrs:
    def test_detects_process(self):
        attrs = detect_resource_attrs()
        assert attrs["process.pid"] == os.getpid()

    def test_failing_detector_is_ignored(self):
        broken = mock.MagicMock()
        broken.detect.side_effect = RuntimeError("not on a function runtime")
        working = mock.MagicMock()
        working.detect.return_value = Resource({"faas.name": "todo-fn"})

        with mock.patch.object(resources, "collect_detectors", return_value=[broken, working]):
            assert detect_resource_attrs() == {"faas.name": "todo-fn"}

    def test_later_detectors_override(self):
        first = mock.MagicMock()
        first.detect.return_value = Resource({"cloud.provider": "unknown", "a": 1})
        second = mock.MagicMock()
        second.detect.return_value = Resource({"cloud.provider": "aws"})

        with mock.patch.object(resources, "collect_detectors", return_value=[first, second]):
            assert detect_resource_attrs() == {"cloud.provider": "aws", "a": 1}
