# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""HTTP server attributes for REST API (v1 proxy) invocations.

Aligned with the HTTP server semantic conventions:
https://opentelemetry.io/docs/specs/semconv/http/http-spans/#http-server

Extraction never raises. Any field that is missing or has an unexpected
type is left out of the returned mapping.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

from lambdatrace.semconv import (
    KNOWN_HTTP_METHODS,
    ClientAttributes,
    HTTPAttributes,
    HttpRequestMethod,
    NetworkAttributes,
    ServerAttributes,
    URLAttributes,
    UserAgentAttributes,
)

logger = logging.getLogger(__name__)

AttributeValue = Union[str, bool, int, float]
SpanAttributes = Dict[str, AttributeValue]

REDACTED = "REDACTED"

# Query parameters that carry request signatures or credentials.
DEFAULT_REDACTED_QUERY_PARAMS: Tuple[str, ...] = (
    "AWSAccessKeyId",
    "Signature",
    "sig",
    "X-Goog-Signature",
)

# Headers whose values are credentials or session state.
DEFAULT_REDACTED_HEADERS: Tuple[str, ...] = (
    "Authorization",
    "Proxy-Authorization",
    "Cookie",
    "Set-Cookie",
    "X-Api-Key",
    "X-Amz-Security-Token",
)

QueryInput = Union[str, Mapping[str, Any], None]


# =========================================================================
# Normalisation helpers
# =========================================================================


def normalize_route(route: Optional[str]) -> Optional[str]:
    """Rewrite ``{param}`` path segments as ``:param``.

    >>> normalize_route("/todos/{id}")
    '/todos/:id'
    """
    if not isinstance(route, str):
        return None
    segments = route.split("/")
    return "/".join(
        ":" + segment[1:-1] if len(segment) >= 2 and segment.startswith("{") and segment.endswith("}") else segment
        for segment in segments
    )


def normalize_method(method: Any) -> str:
    """Map *method* onto the closed ``http.request.method`` vocabulary."""
    if not isinstance(method, str):
        return HttpRequestMethod.OTHER
    upper = method.upper()
    return upper if upper in KNOWN_HTTP_METHODS else HttpRequestMethod.OTHER


def redact_query(
    query: QueryInput,
    redacted_params: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """Serialise *query* as a canonical query string with secrets redacted.

    *query* may be a raw query string, a single-value mapping or a
    multi-value mapping (``{"key": ["a", "b"]}``). Parameter names in
    *redacted_params* are matched case-insensitively and their values are
    replaced by ``REDACTED``. Parameter order is preserved.
    """
    pairs = _query_pairs(query)
    if pairs is None:
        return None

    if redacted_params is None:
        redacted_params = DEFAULT_REDACTED_QUERY_PARAMS
    deny = {name.lower() for name in redacted_params}
    return urlencode([(key, REDACTED if key.lower() in deny else value) for key, value in pairs])


def _query_pairs(query: QueryInput) -> Optional[List[Tuple[str, str]]]:
    if query is None:
        return None
    if isinstance(query, str):
        return parse_qsl(query, keep_blank_values=True)
    if not isinstance(query, Mapping):
        return None

    pairs: List[Tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), str(v)) for v in value if v is not None)
        else:
            pairs.append((str(key), str(value)))
    return pairs


def byte_size(payload: Union[str, bytes, None]) -> int:
    """Return the encoded byte length of *payload* (0 when absent)."""
    if not payload:
        return 0
    if isinstance(payload, (bytes, bytearray)):
        return len(payload)
    if isinstance(payload, str):
        return len(payload.encode("utf-8"))
    return 0


def json_size(value: Any) -> Optional[int]:
    """Byte length of the compact JSON serialisation of *value*."""
    try:
        return byte_size(json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str))
    except (TypeError, ValueError):
        logger.debug("Could not serialise payload for size calculation", exc_info=True)
        return None


def header_attributes(
    headers: Any,
    prefix: str,
    redacted_headers: Optional[Iterable[str]] = None,
) -> SpanAttributes:
    """Map each header onto ``<prefix>.<lower-cased name>``.

    Repeated headers (multi-value form) are joined with ``,``. Values of
    *redacted_headers* (case-insensitive, default
    :data:`DEFAULT_REDACTED_HEADERS`) are replaced with ``REDACTED``.
    """
    if not isinstance(headers, Mapping):
        return {}
    if redacted_headers is None:
        redacted_headers = DEFAULT_REDACTED_HEADERS
    deny = {name.lower() for name in redacted_headers}

    attrs: SpanAttributes = {}
    for name, value in headers.items():
        if not isinstance(name, str) or value is None:
            continue
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            rendered = ",".join(str(v) for v in value if v is not None)
        else:
            rendered = str(value)
        if name.lower() in deny:
            rendered = REDACTED
        attrs[f"{prefix}.{name.lower()}"] = rendered
    return attrs


def _get(mapping: Any, *path: str) -> Any:
    current = mapping
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def single_value_headers(event: Mapping[str, Any]) -> Dict[str, str]:
    """Lower-cased single-value view over ``headers`` / ``multiValueHeaders``."""
    result: Dict[str, str] = {}
    multi = event.get("multiValueHeaders")
    if isinstance(multi, Mapping):
        for name, values in multi.items():
            if isinstance(name, str) and isinstance(values, Sequence) and not isinstance(values, str) and values:
                result[name.lower()] = str(values[0])
    single = event.get("headers")
    if isinstance(single, Mapping):
        for name, value in single.items():
            if isinstance(name, str) and value is not None:
                result[name.lower()] = str(value)
    return result


def _protocol_version(protocol: Any) -> Optional[str]:
    if not isinstance(protocol, str) or "/" not in protocol:
        return None
    return protocol.split("/", 1)[1] or None


def _port(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


# =========================================================================
# Extractors
# =========================================================================


def span_name(event: Any) -> str:
    """``"<METHOD> <route>"`` for a REST v1 event, per HTTP span naming."""
    if not isinstance(event, Mapping):
        return HttpRequestMethod.OTHER
    method = normalize_method(event.get("httpMethod"))
    route = normalize_route(_get(event, "requestContext", "resourcePath") or event.get("resource"))
    return f"{method} {route}" if route else method


def extract_request_attributes(
    event: Any,
    *,
    redacted_params: Optional[Iterable[str]] = None,
    capture_headers: bool = True,
    redacted_headers: Optional[Iterable[str]] = None,
) -> SpanAttributes:
    """Request-side span attributes for a REST API v1 proxy event."""
    attrs: SpanAttributes = {}
    if not isinstance(event, Mapping):
        return attrs

    try:
        headers = single_value_headers(event)
        request_context = event.get("requestContext")

        candidates: Dict[str, Any] = {
            # Required
            HTTPAttributes.REQUEST_METHOD: normalize_method(event.get("httpMethod")),
            URLAttributes.PATH: event.get("path"),
            URLAttributes.SCHEME: headers.get("x-forwarded-proto"),
            # Conditionally required
            HTTPAttributes.ROUTE: normalize_route(
                _get(request_context, "resourcePath") or event.get("resource")
            ),
            NetworkAttributes.PROTOCOL_NAME: "http",
            ServerAttributes.PORT: _port(headers.get("x-forwarded-port")),
            URLAttributes.QUERY: redact_query(
                event.get("multiValueQueryStringParameters") or event.get("queryStringParameters"),
                redacted_params,
            ),
            # Recommended
            ClientAttributes.ADDRESS: _get(request_context, "identity", "sourceIp"),
            NetworkAttributes.PROTOCOL_VERSION: _protocol_version(_get(request_context, "protocol")),
            ServerAttributes.ADDRESS: _get(request_context, "domainName"),
            UserAgentAttributes.ORIGINAL: headers.get("user-agent"),
            # Opt-in
            HTTPAttributes.REQUEST_BODY_SIZE: byte_size(event.get("body")),
            HTTPAttributes.REQUEST_SIZE: json_size(event),
            NetworkAttributes.TRANSPORT: "tcp",
        }
        attrs.update(_scalars(candidates))

        if capture_headers:
            attrs.update(
                header_attributes(
                    event.get("multiValueHeaders") or event.get("headers"),
                    HTTPAttributes.REQUEST_HEADER,
                    redacted_headers,
                )
            )
    except Exception:
        logger.debug("Failed to extract HTTP request attributes", exc_info=True)

    return attrs


def extract_response_attributes(
    result: Any,
    *,
    capture_headers: bool = True,
    redacted_headers: Optional[Iterable[str]] = None,
) -> SpanAttributes:
    """Response-side span attributes for a REST API v1 proxy result."""
    attrs: SpanAttributes = {}
    if not isinstance(result, Mapping):
        return attrs

    try:
        status_code = result.get("statusCode")
        if isinstance(status_code, str) and status_code.isdigit():
            status_code = int(status_code)

        candidates: Dict[str, Any] = {
            HTTPAttributes.RESPONSE_STATUS_CODE: status_code if isinstance(status_code, int) else None,
            HTTPAttributes.RESPONSE_BODY_SIZE: byte_size(result.get("body")),
            HTTPAttributes.RESPONSE_SIZE: json_size(result),
        }
        attrs.update(_scalars(candidates))

        if capture_headers:
            attrs.update(
                header_attributes(
                    result.get("multiValueHeaders") or result.get("headers"),
                    HTTPAttributes.RESPONSE_HEADER,
                    redacted_headers,
                )
            )
    except Exception:
        logger.debug("Failed to extract HTTP response attributes", exc_info=True)

    return attrs


def _scalars(candidates: Mapping[str, Any]) -> SpanAttributes:
    return {
        key: value
        for key, value in candidates.items()
        if value is not None and isinstance(value, (str, bool, int, float))
    }
