# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Semantic convention attribute names used by lambdatrace.

All keys are pinned to one version of the OpenTelemetry semantic
conventions (see :data:`SCHEMA_URL`) so that every span emitted by the
library speaks the same vocabulary:
https://opentelemetry.io/docs/specs/semconv/
"""

from __future__ import annotations

SEMCONV_VERSION = "1.27.0"
SCHEMA_URL = f"https://opentelemetry.io/schemas/{SEMCONV_VERSION}"

INSTRUMENTATION_NAME = "lambdatrace"


class HTTPAttributes:
    """HTTP server span attributes."""

    REQUEST_METHOD = "http.request.method"
    REQUEST_BODY_SIZE = "http.request.body.size"
    REQUEST_SIZE = "http.request.size"
    REQUEST_HEADER = "http.request.header"
    RESPONSE_STATUS_CODE = "http.response.status_code"
    RESPONSE_BODY_SIZE = "http.response.body.size"
    RESPONSE_SIZE = "http.response.size"
    RESPONSE_HEADER = "http.response.header"
    ROUTE = "http.route"


class URLAttributes:
    PATH = "url.path"
    QUERY = "url.query"
    SCHEME = "url.scheme"


class NetworkAttributes:
    PROTOCOL_NAME = "network.protocol.name"
    PROTOCOL_VERSION = "network.protocol.version"
    TRANSPORT = "network.transport"


class ServerAttributes:
    ADDRESS = "server.address"
    PORT = "server.port"


class ClientAttributes:
    ADDRESS = "client.address"


class UserAgentAttributes:
    ORIGINAL = "user_agent.original"


class MessagingAttributes:
    """Messaging span attributes (consumer side)."""

    SYSTEM = "messaging.system"
    OPERATION_NAME = "messaging.operation.name"
    OPERATION_TYPE = "messaging.operation.type"
    BATCH_MESSAGE_COUNT = "messaging.batch.message_count"
    MESSAGE_ID = "messaging.message.id"
    DESTINATION_NAME = "messaging.destination.name"
    DESTINATION_SUBSCRIPTION_NAME = "messaging.destination.subscription.name"
    # Not part of semconv; reported on the poll span after a batch run.
    BATCH_FAILURE_COUNT = "messaging.batch.failure_count"


class CloudAttributes:
    PROVIDER = "cloud.provider"
    REGION = "cloud.region"


class FaaSAttributes:
    INVOCATION_ID = "faas.invocation_id"
    COLDSTART = "faas.coldstart"
    NAME = "faas.name"
    TRIGGER = "faas.trigger"


class HttpRequestMethod:
    """Closed vocabulary for ``http.request.method``."""

    CONNECT = "CONNECT"
    DELETE = "DELETE"
    GET = "GET"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    PATCH = "PATCH"
    POST = "POST"
    PUT = "PUT"
    TRACE = "TRACE"
    OTHER = "_OTHER"


KNOWN_HTTP_METHODS = frozenset(
    {
        HttpRequestMethod.CONNECT,
        HttpRequestMethod.DELETE,
        HttpRequestMethod.GET,
        HttpRequestMethod.HEAD,
        HttpRequestMethod.OPTIONS,
        HttpRequestMethod.PATCH,
        HttpRequestMethod.POST,
        HttpRequestMethod.PUT,
        HttpRequestMethod.TRACE,
    }
)


class MessagingOperationType:
    RECEIVE = "receive"
    PROCESS = "process"


class MessagingSystem:
    AWS_SQS = "aws_sqs"


class FaaSTrigger:
    HTTP = "http"
    PUBSUB = "pubsub"
    OTHER = "other"
