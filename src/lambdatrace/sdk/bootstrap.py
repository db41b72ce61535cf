# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""One-call OpenTelemetry setup for function handlers.

``enable()``:

1. Configures an SDK ``TracerProvider`` with a function-aware resource
2. Adds the span processors you supply (exporters are yours to choose)
3. Sets the text-map propagators used to link queue messages
4. Optionally enables contrib auto-instrumentation for common clients

Usage::

    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from lambdatrace import enable

    enable(span_processors=[BatchSpanProcessor(my_exporter)])
"""

from __future__ import annotations

import importlib
import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from opentelemetry.propagators.textmap import TextMapPropagator
    from opentelemetry.sdk.trace import SpanProcessor

    from lambdatrace.sdk.config import LambdaTraceConfig

logger = logging.getLogger(__name__)

_lock = threading.RLock()
_initialized = False
_current_config: Optional[LambdaTraceConfig] = None

# name -> (module_path, class_name)
_PROPAGATORS: Dict[str, tuple[str, str]] = {
    "tracecontext": ("opentelemetry.trace.propagation.tracecontext", "TraceContextTextMapPropagator"),
    "baggage": ("opentelemetry.baggage.propagation", "W3CBaggagePropagator"),
    # opentelemetry-propagator-aws-xray
    "xray": ("opentelemetry.propagators.aws", "AwsXRayPropagator"),
}

# package name -> (module_path, class_name)
_INSTRUMENTORS: Dict[str, tuple[str, str]] = {
    "botocore": ("opentelemetry.instrumentation.botocore", "BotocoreInstrumentor"),
    "boto3sqs": ("opentelemetry.instrumentation.boto3sqs", "Boto3SQSInstrumentor"),
    "requests": ("opentelemetry.instrumentation.requests", "RequestsInstrumentor"),
    "urllib3": ("opentelemetry.instrumentation.urllib3", "URLLib3Instrumentor"),
    "urllib": ("opentelemetry.instrumentation.urllib", "URLLibInstrumentor"),
    "httpx": ("opentelemetry.instrumentation.httpx", "HTTPXClientInstrumentor"),
    "aiohttp_client": ("opentelemetry.instrumentation.aiohttp_client", "AioHttpClientInstrumentor"),
    # opentelemetry-instrumentation-logging: trace/log correlation
    "logging": ("opentelemetry.instrumentation.logging", "LoggingInstrumentor"),
}


def enable(
    service_name: Optional[str] = None,
    *,
    environment: Optional[str] = None,
    span_processors: Optional[Sequence[SpanProcessor]] = None,
    auto_instrumentation: bool = True,
    log_level: str = "INFO",
    config: Optional[LambdaTraceConfig] = None,
    config_file: Optional[str] = None,
) -> bool:
    """Set up tracing for the function.

    Call once at module load, outside the handler, so that warm
    invocations reuse the provider.

    Args:
        service_name: Service name.
        environment: Deployment environment.
        span_processors: Processors (and their exporters) to add to the
            tracer provider.
        auto_instrumentation: Enable contrib auto-instrumentation (default: ``True``).
        log_level: Logging level (default: ``"INFO"``).
        config: Full :class:`LambdaTraceConfig` (overrides individual params).
        config_file: Path to YAML config file.

    Returns:
        ``True`` if successfully initialized, ``False`` if already initialized.
    """
    global _initialized, _current_config

    with _lock:
        if _initialized:
            logger.warning("lambdatrace already initialized")
            return False

        # No-op when the function runtime has already installed its handler.
        logging.basicConfig(level=getattr(logging, log_level.upper(), logging.INFO))

        from lambdatrace.sdk.config import LambdaTraceConfig as ConfigClass

        if config is not None:
            cfg = config
        elif config_file is not None:
            cfg = ConfigClass.from_yaml(config_file)
        else:
            cfg = ConfigClass.from_file_or_env()

        if service_name is not None:
            cfg.service_name = service_name
        if environment is not None:
            cfg.deployment_environment = environment

        _current_config = cfg

        logger.info(
            "Initializing lambdatrace: service=%s, env=%s, propagators=%s",
            cfg.service_name,
            cfg.deployment_environment,
            ",".join(cfg.propagators),
        )

        try:
            from opentelemetry import trace
            from opentelemetry.propagate import set_global_textmap
            from opentelemetry.propagators.composite import CompositePropagator
            from opentelemetry.sdk.resources import Resource
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

            from lambdatrace._version import __version__
            from lambdatrace.resources import detect_resource_attrs

            resource_attrs = {
                "service.name": cfg.service_name,
                "deployment.environment": cfg.deployment_environment,
                "telemetry.distro.name": "lambdatrace",
                "telemetry.distro.version": __version__,
            }
            if cfg.service_version:
                resource_attrs["service.version"] = cfg.service_version

            if cfg.auto_detect_resources:
                detected = detect_resource_attrs()
                for key, value in detected.items():
                    if key not in resource_attrs:
                        resource_attrs[key] = value
                if detected:
                    logger.debug("Auto-detected resources: %s", list(detected.keys()))

            existing = trace.get_tracer_provider()
            if isinstance(existing, TracerProvider):
                provider = existing
                logger.info("Reusing existing TracerProvider")
            else:
                provider = TracerProvider(
                    resource=Resource.create(resource_attrs),
                    sampler=ParentBased(TraceIdRatioBased(cfg.trace_sample_rate)),
                )
                trace.set_tracer_provider(provider)

            for processor in span_processors or ():
                provider.add_span_processor(processor)

            set_global_textmap(CompositePropagator(_build_propagators(cfg.propagators)))

            logger.info("lambdatrace tracing initialized")

            if auto_instrumentation:
                _enable_auto_instrumentation(
                    cfg.auto_instrument_packages,
                    set_logging_format=cfg.set_logging_format,
                )

            _initialized = True
            return True

        except Exception as exc:
            logger.error("Failed to initialize lambdatrace: %s", exc, exc_info=True)
            return False


def _build_propagators(names: Sequence[str]) -> List[TextMapPropagator]:
    """Instantiate the named propagators, skipping unknown or missing ones."""
    propagators: List[TextMapPropagator] = []
    for name in names:
        entry = _PROPAGATORS.get(name.strip().lower())
        if entry is None:
            logger.warning("Unknown propagator %r ignored", name)
            continue
        module_path, class_name = entry
        try:
            mod = importlib.import_module(module_path)
            propagators.append(getattr(mod, class_name)())
        except ImportError:
            logger.warning("Propagator %r requested but its package is not installed", name)
    return propagators


def _enable_auto_instrumentation(packages: Sequence[str], *, set_logging_format: bool = False) -> None:
    """Enable contrib auto-instrumentation for the configured packages.

    Each instrumentation is optional: if the underlying library or
    instrumentation package isn't installed, it is silently skipped.

    ``logging`` injects ``otelTraceID``/``otelSpanID`` into log records.
    With *set_logging_format* it also calls ``logging.basicConfig`` with a
    format using them, which leaves an existing root handler untouched.
    """
    enabled: List[str] = []
    failed: List[tuple[str, str]] = []

    for name in packages:
        entry = _INSTRUMENTORS.get(name)
        if entry is None:
            failed.append((name, "no known instrumentor"))
            continue
        options = {"set_logging_format": set_logging_format} if name == "logging" else {}
        _try_instrument(enabled, failed, name, *entry, **options)

    if enabled:
        logger.info("Auto-instrumentation enabled: %s", ", ".join(enabled))
    if failed:
        for name, error in failed:
            logger.warning("Auto-instrumentation failed for %s: %s", name, error)


def _try_instrument(
    enabled: List[str],
    failed: List[tuple[str, str]],
    name: str,
    module_path: str,
    class_name: str,
    **options: Any,
) -> None:
    """Try to import and instrument a single library."""
    try:
        mod = importlib.import_module(module_path)
        instrumentor_cls = getattr(mod, class_name)
        instrumentor_cls().instrument(**options)
        enabled.append(name)
    except ImportError:
        pass
    except Exception as exc:
        failed.append((name, str(exc)))


def is_enabled() -> bool:
    """Check if lambdatrace is initialized."""
    return _initialized


def get_config() -> Optional[LambdaTraceConfig]:
    """Get the active configuration, or ``None`` before :func:`enable`."""
    return _current_config


def disable() -> None:
    """Flush and shut down the tracer provider.

    Call on shutdown for clean exit.
    """
    global _initialized, _current_config

    with _lock:
        if not _initialized:
            return

        try:
            from opentelemetry import trace

            provider = trace.get_tracer_provider()
            if hasattr(provider, "force_flush"):
                provider.force_flush(timeout_millis=5000)
            if hasattr(provider, "shutdown"):
                provider.shutdown()

            _initialized = False
            _current_config = None
            logger.info("lambdatrace shutdown complete")

        except Exception as exc:
            logger.error("Error during lambdatrace shutdown: %s", exc)
