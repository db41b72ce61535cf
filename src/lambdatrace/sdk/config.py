# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Configuration for lambdatrace.

Configuration precedence (highest to lowest):
1. Code arguments (explicit values passed to LambdaTraceConfig)
2. Environment variables (LAMBDATRACE_*, OTEL_*)
3. YAML config file (lambdatrace.yaml or specified path)
4. Built-in defaults
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from lambdatrace.batch.orchestrator import DEFAULT_TIMEOUT_MARGIN_MS
from lambdatrace.extractors.http import DEFAULT_REDACTED_HEADERS, DEFAULT_REDACTED_QUERY_PARAMS

logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes")


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.lower() in _TRUTHY


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer value for %s: %r", name, value)
        return None


def _env_list(name: str) -> Optional[List[str]]:
    value = os.getenv(name)
    if not value:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class LambdaTraceConfig:
    """Configuration for lambdatrace and the OpenTelemetry SDK it sets up.

    Exporting is left to the caller: pass span processors to
    :func:`lambdatrace.enable`.

    Example::

        >>> config = LambdaTraceConfig(service_name="todo-api", batch_max_workers=4)

        >>> # Or load from YAML
        >>> config = LambdaTraceConfig.from_yaml("config/lambdatrace.yaml")
    """

    # Service identification
    service_name: Optional[str] = None
    service_version: Optional[str] = None
    deployment_environment: Optional[str] = None

    # Resource detection
    auto_detect_resources: bool = True

    # Sampling (1.0 = 100%)
    trace_sample_rate: float = 1.0

    # Text-map propagators: "tracecontext", "baggage", "xray"
    propagators: List[str] = field(default_factory=lambda: ["tracecontext", "baggage"])

    # Auto-instrumentation packages to enable
    auto_instrument_packages: List[str] = field(
        default_factory=lambda: [
            "botocore",
            "boto3sqs",
            "requests",
            "urllib3",
            "httpx",
            "logging",
        ]
    )

    # Batch processing
    batch_max_workers: int = 1
    timeout_margin_ms: int = DEFAULT_TIMEOUT_MARGIN_MS
    extract_message_context: bool = True

    # HTTP attribute extraction
    capture_headers: bool = True
    redacted_query_params: List[str] = field(default_factory=lambda: list(DEFAULT_REDACTED_QUERY_PARAMS))
    redacted_headers: List[str] = field(default_factory=lambda: list(DEFAULT_REDACTED_HEADERS))

    # Trace/log correlation: let the logging instrumentor install its format
    # when no root handler exists yet
    set_logging_format: bool = False

    # Config file path (for tracking where config was loaded from)
    _config_file: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Apply environment variable defaults."""
        if self.service_name is None:
            self.service_name = os.getenv(
                "OTEL_SERVICE_NAME",
                os.getenv("AWS_LAMBDA_FUNCTION_NAME", "unknown_service"),
            )

        if self.service_version is None:
            self.service_version = os.getenv("OTEL_SERVICE_VERSION", os.getenv("AWS_LAMBDA_FUNCTION_VERSION"))

        if self.deployment_environment is None:
            self.deployment_environment = os.getenv(
                "OTEL_DEPLOYMENT_ENVIRONMENT",
                os.getenv("LAMBDATRACE_ENVIRONMENT", "production"),
            )

        env_auto_detect = _env_bool("LAMBDATRACE_AUTO_DETECT_RESOURCES")
        if env_auto_detect is not None:
            self.auto_detect_resources = env_auto_detect

        env_sample_rate = os.getenv("LAMBDATRACE_TRACE_SAMPLE_RATE")
        if env_sample_rate:
            self.trace_sample_rate = float(env_sample_rate)

        env_propagators = _env_list("OTEL_PROPAGATORS")
        if env_propagators:
            self.propagators = env_propagators

        env_workers = _env_int("LAMBDATRACE_BATCH_MAX_WORKERS")
        if env_workers is not None and env_workers >= 1:
            self.batch_max_workers = env_workers

        env_margin = _env_int("LAMBDATRACE_TIMEOUT_MARGIN_MS")
        if env_margin is not None and env_margin >= 0:
            self.timeout_margin_ms = env_margin

        env_extract = _env_bool("LAMBDATRACE_EXTRACT_MESSAGE_CONTEXT")
        if env_extract is not None:
            self.extract_message_context = env_extract

        env_headers = _env_bool("LAMBDATRACE_CAPTURE_HEADERS")
        if env_headers is not None:
            self.capture_headers = env_headers

        env_redacted = _env_list("LAMBDATRACE_REDACTED_QUERY_PARAMS")
        if env_redacted:
            self.redacted_query_params = env_redacted

        env_redacted_headers = _env_list("LAMBDATRACE_REDACTED_HEADERS")
        if env_redacted_headers:
            self.redacted_headers = env_redacted_headers

        env_log_format = _env_bool("LAMBDATRACE_SET_LOGGING_FORMAT")
        if env_log_format is not None:
            self.set_logging_format = env_log_format

    # ------------------------------------------------------------------
    # YAML loading
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> LambdaTraceConfig:
        """Load configuration from a YAML file.

        Supports environment variable interpolation using ``${VAR_NAME}`` syntax.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If YAML is malformed.
        """
        if path is None:
            raise FileNotFoundError("No config file path provided")

        resolved = Path(path)
        if not resolved.exists():
            raise FileNotFoundError(f"Config file not found: {resolved}")

        try:
            import yaml  # type: ignore[import-untyped]
        except ImportError as err:
            raise ImportError("PyYAML required for YAML config. Install with: pip install lambdatrace[yaml]") from err

        with open(resolved) as fh:
            raw_content = fh.read()

        content = _interpolate_env_vars(raw_content)

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {resolved}: {exc}") from exc

        if data is None:
            data = {}

        return cls._from_dict(data, config_file=str(resolved))

    @classmethod
    def from_file_or_env(cls, path: Optional[str] = None) -> LambdaTraceConfig:
        """Load config from file if exists, otherwise use environment variables.

        Search order:
        1. Explicit *path* argument
        2. ``LAMBDATRACE_CONFIG_FILE`` env var
        3. ``./lambdatrace.yaml``
        4. ``./config/lambdatrace.yaml``
        5. Falls back to env-only config
        """
        search_paths: List[Path] = []

        if path:
            search_paths.append(Path(path))

        env_path = os.getenv("LAMBDATRACE_CONFIG_FILE")
        if env_path:
            search_paths.append(Path(env_path))

        search_paths.extend(
            [
                Path("lambdatrace.yaml"),
                Path("lambdatrace.yml"),
                Path("config/lambdatrace.yaml"),
                Path("config/lambdatrace.yml"),
            ]
        )

        for candidate in search_paths:
            if candidate.exists():
                logger.info("Loading config from: %s", candidate)
                return cls.from_yaml(str(candidate))

        logger.debug("No config file found, using environment variables only")
        return cls()

    @classmethod
    def _from_dict(
        cls,
        data: Dict[str, Any],
        config_file: Optional[str] = None,
    ) -> LambdaTraceConfig:
        """Create config from dictionary (parsed YAML)."""
        service = data.get("service", {})
        sampling = data.get("sampling", {})
        propagation = data.get("propagation", {})
        resource = data.get("resource", {})
        batch = data.get("batch", {})
        http = data.get("http", {})
        log_settings = data.get("logging", {})
        auto_packages = data.get("auto_instrument_packages")
        defaults = cls()

        return cls(
            service_name=service.get("name"),
            service_version=service.get("version"),
            deployment_environment=service.get("environment"),
            auto_detect_resources=resource.get("auto_detect", True),
            trace_sample_rate=sampling.get("rate", 1.0),
            propagators=propagation.get("propagators") or defaults.propagators,
            auto_instrument_packages=auto_packages if auto_packages else defaults.auto_instrument_packages,
            batch_max_workers=batch.get("max_workers", 1),
            timeout_margin_ms=batch.get("timeout_margin_ms", DEFAULT_TIMEOUT_MARGIN_MS),
            extract_message_context=propagation.get("extract_message_context", True),
            capture_headers=http.get("capture_headers", True),
            redacted_query_params=http.get("redacted_query_params") or list(DEFAULT_REDACTED_QUERY_PARAMS),
            redacted_headers=http.get("redacted_headers") or list(DEFAULT_REDACTED_HEADERS),
            set_logging_format=log_settings.get("set_format", False),
            _config_file=config_file,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            "service": {
                "name": self.service_name,
                "version": self.service_version,
                "environment": self.deployment_environment,
            },
            "resource": {
                "auto_detect": self.auto_detect_resources,
            },
            "sampling": {
                "rate": self.trace_sample_rate,
            },
            "propagation": {
                "propagators": self.propagators,
                "extract_message_context": self.extract_message_context,
            },
            "batch": {
                "max_workers": self.batch_max_workers,
                "timeout_margin_ms": self.timeout_margin_ms,
            },
            "http": {
                "capture_headers": self.capture_headers,
                "redacted_query_params": self.redacted_query_params,
                "redacted_headers": self.redacted_headers,
            },
            "logging": {
                "set_format": self.set_logging_format,
            },
            "auto_instrument_packages": self.auto_instrument_packages,
        }


def _interpolate_env_vars(content: str) -> str:
    """Interpolate ``${VAR_NAME}`` and ``${VAR_NAME:-default}`` in *content*."""
    pattern = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")

    def _replace(match: re.Match) -> str:  # type: ignore[type-arg]
        var_name = match.group(1)
        default = match.group(2)
        value = os.getenv(var_name)
        if value is not None:
            return value
        if default is not None:
            return default
        return match.group(0)

    return pattern.sub(_replace, content)
