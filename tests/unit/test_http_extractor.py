# SPDX-FileCopyrightText: 2026 The Lambdatrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Tests for REST API v1 HTTP attribute extraction."""

from __future__ import annotations

import copy
import json

import pytest

from lambdatrace.extractors import http
from lambdatrace.extractors.http import (
    REDACTED,
    byte_size,
    extract_request_attributes,
    extract_response_attributes,
    header_attributes,
    normalize_method,
    normalize_route,
    redact_query,
    span_name,
)
from tests.factories import make_rest_event

# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


class TestNormalizeRoute:
    @pytest.mark.parametrize(
        "route,expected",
        [
            ("/todos/{id}", "/todos/:id"),
            ("/", "/"),
            ("/users/{userId}/todos/{todoId}", "/users/:userId/todos/:todoId"),
            ("/static/path", "/static/path"),
            ("/{proxy+}", "/:proxy+"),
            ("", ""),
        ],
    )
    def test_rewrites_templated_segments(self, route, expected):
        assert normalize_route(route) == expected

    def test_non_string_is_none(self):
        assert normalize_route(None) is None
        assert normalize_route(42) is None


class TestNormalizeMethod:
    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"])
    def test_known_methods_pass_through(self, method):
        assert normalize_method(method) == method

    def test_lower_case_is_upper_cased(self):
        assert normalize_method("get") == "GET"

    def test_unknown_method_is_other(self):
        assert normalize_method("PURGE") == "_OTHER"

    def test_missing_method_is_other(self):
        assert normalize_method(None) == "_OTHER"


class TestRedactQuery:
    def test_raw_query_string(self):
        assert redact_query("sig=abc&q=1") == "sig=REDACTED&q=1"

    def test_single_value_mapping(self):
        assert redact_query({"sig": "abc", "q": "1"}) == "sig=REDACTED&q=1"

    def test_multi_value_mapping(self):
        assert redact_query({"q": ["a", "b"], "Signature": ["s"]}) == "q=a&q=b&Signature=REDACTED"

    def test_case_insensitive(self):
        assert redact_query("SIG=abc&awsaccesskeyid=AKIA") == f"SIG={REDACTED}&awsaccesskeyid={REDACTED}"

    def test_custom_deny_list(self):
        assert redact_query("token=t&sig=abc", ["token"]) == "token=REDACTED&sig=abc"

    def test_blank_values_are_kept(self):
        assert redact_query("flag=&q=1") == "flag=&q=1"

    def test_absent_query_is_none(self):
        assert redact_query(None) is None

    def test_unsupported_type_is_none(self):
        assert redact_query(42) is None  # type: ignore[arg-type]


class TestSizes:
    def test_byte_size_counts_utf8_bytes(self):
        assert byte_size("héllo") == 6

    def test_byte_size_of_bytes(self):
        assert byte_size(b"\x00\x01\x02") == 3

    def test_byte_size_of_missing_body(self):
        assert byte_size(None) == 0
        assert byte_size("") == 0

    def test_json_size_is_compact(self):
        assert http.json_size({"a": 1}) == len('{"a":1}')

    def test_json_size_handles_unserialisable_values(self):
        assert http.json_size({"when": object()}) is not None


class TestHeaderAttributes:
    def test_lower_cases_names(self):
        attrs = header_attributes({"Content-Type": "text/plain"}, "http.request.header")
        assert attrs == {"http.request.header.content-type": "text/plain"}

    def test_joins_multi_values(self):
        attrs = header_attributes({"Accept": ["a", "b"]}, "http.response.header")
        assert attrs == {"http.response.header.accept": "a,b"}

    def test_skips_none_values(self):
        assert header_attributes({"X-Empty": None}, "p") == {}

    def test_non_mapping_is_empty(self):
        assert header_attributes(["Accept"], "p") == {}

    def test_credentials_are_redacted_by_default(self):
        attrs = header_attributes(
            {"Authorization": "Bearer abc", "cookie": "session=1", "X-API-Key": "k", "Accept": "*/*"},
            "http.request.header",
        )
        assert attrs == {
            "http.request.header.authorization": REDACTED,
            "http.request.header.cookie": REDACTED,
            "http.request.header.x-api-key": REDACTED,
            "http.request.header.accept": "*/*",
        }

    def test_custom_deny_list_replaces_default(self):
        attrs = header_attributes({"Authorization": "Bearer abc", "X-Tenant": "acme"}, "p", ["x-tenant"])
        assert attrs == {"p.authorization": "Bearer abc", "p.x-tenant": REDACTED}


# ---------------------------------------------------------------------------
# Span name
# ---------------------------------------------------------------------------


class TestSpanName:
    def test_method_and_route(self, rest_event):
        assert span_name(rest_event) == "GET /todos/:id"

    def test_falls_back_to_resource(self):
        event = make_rest_event()
        del event["requestContext"]["resourcePath"]
        event["resource"] = "/items/{sku}"
        assert span_name(event) == "GET /items/:sku"

    def test_method_only_without_route(self):
        event = make_rest_event(resource=None)
        del event["requestContext"]["resourcePath"]
        assert span_name(event) == "GET"

    def test_non_mapping(self):
        assert span_name(None) == "_OTHER"


# ---------------------------------------------------------------------------
# Request attributes
# ---------------------------------------------------------------------------


class TestExtractRequestAttributes:
    def test_full_event(self, rest_event):
        attrs = extract_request_attributes(rest_event)

        assert attrs["http.request.method"] == "GET"
        assert attrs["url.path"] == "/todos/42"
        assert attrs["url.scheme"] == "https"
        assert attrs["http.route"] == "/todos/:id"
        assert attrs["network.protocol.name"] == "http"
        assert attrs["network.protocol.version"] == "1.1"
        assert attrs["network.transport"] == "tcp"
        assert attrs["server.port"] == 443
        assert attrs["server.address"] == "abc123.execute-api.us-east-2.amazonaws.com"
        assert attrs["client.address"] == "203.0.113.7"
        assert attrs["user_agent.original"] == "curl/8.4.0"
        assert attrs["url.query"] == "sig=REDACTED&q=1"
        assert attrs["http.request.body.size"] == 0
        assert attrs["http.request.size"] == len(
            json.dumps(rest_event, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        )

    def test_headers_are_captured(self, rest_event):
        attrs = extract_request_attributes(rest_event)
        assert attrs["http.request.header.accept"] == "application/json,text/plain"
        assert attrs["http.request.header.x-forwarded-proto"] == "https"

    def test_headers_can_be_disabled(self, rest_event):
        attrs = extract_request_attributes(rest_event, capture_headers=False)
        assert not any(key.startswith("http.request.header.") for key in attrs)

    def test_authorization_header_is_redacted(self):
        event = make_rest_event(headers={"Authorization": "Bearer abc", "Accept": "text/plain"}, multiValueHeaders=None)
        attrs = extract_request_attributes(event, redacted_headers=["authorization"])
        assert attrs["http.request.header.authorization"] == REDACTED
        assert attrs["http.request.header.accept"] == "text/plain"

    def test_body_size(self):
        attrs = extract_request_attributes(make_rest_event(body='{"title":"ünïcode"}'))
        assert attrs["http.request.body.size"] == len('{"title":"ünïcode"}'.encode("utf-8"))

    def test_single_value_query_fallback(self):
        event = make_rest_event(multiValueQueryStringParameters=None, queryStringParameters={"page": "2"})
        assert extract_request_attributes(event)["url.query"] == "page=2"

    def test_no_query(self):
        event = make_rest_event(multiValueQueryStringParameters=None, queryStringParameters=None)
        assert "url.query" not in extract_request_attributes(event)

    def test_custom_redaction(self, rest_event):
        attrs = extract_request_attributes(rest_event, redacted_params=["q"])
        assert attrs["url.query"] == "sig=abc&q=REDACTED"

    def test_bad_port_is_omitted(self):
        event = make_rest_event(headers={"X-Forwarded-Port": "not-a-port"}, multiValueHeaders=None)
        assert "server.port" not in extract_request_attributes(event)

    def test_unknown_method(self):
        event = make_rest_event(httpMethod="PURGE")
        assert extract_request_attributes(event)["http.request.method"] == "_OTHER"

    def test_minimal_event(self):
        attrs = extract_request_attributes({"httpMethod": "POST", "requestContext": {}})
        assert attrs["http.request.method"] == "POST"
        assert "url.path" not in attrs
        assert "client.address" not in attrs

    def test_values_are_scalars(self, rest_event):
        for value in extract_request_attributes(rest_event).values():
            assert isinstance(value, (str, bool, int, float))

    def test_idempotent(self, rest_event):
        assert extract_request_attributes(rest_event) == extract_request_attributes(rest_event)

    def test_does_not_mutate_event(self, rest_event):
        snapshot = copy.deepcopy(rest_event)
        extract_request_attributes(rest_event)
        assert rest_event == snapshot

    def test_non_mapping_is_empty(self):
        assert extract_request_attributes("GET /") == {}


# ---------------------------------------------------------------------------
# Response attributes
# ---------------------------------------------------------------------------


class TestExtractResponseAttributes:
    def test_full_result(self):
        result = {
            "statusCode": 201,
            "headers": {"Content-Type": "application/json"},
            "body": '{"id":"42"}',
        }
        attrs = extract_response_attributes(result)

        assert attrs["http.response.status_code"] == 201
        assert attrs["http.response.body.size"] == len('{"id":"42"}')
        assert attrs["http.response.size"] == len(json.dumps(result, separators=(",", ":")))
        assert attrs["http.response.header.content-type"] == "application/json"

    def test_string_status_code(self):
        assert extract_response_attributes({"statusCode": "404"})["http.response.status_code"] == 404

    def test_invalid_status_code_is_omitted(self):
        assert "http.response.status_code" not in extract_response_attributes({"statusCode": "teapot"})

    def test_multi_value_headers(self):
        attrs = extract_response_attributes({"statusCode": 200, "multiValueHeaders": {"Vary": ["Accept", "Origin"]}})
        assert attrs["http.response.header.vary"] == "Accept,Origin"

    def test_set_cookie_is_redacted(self):
        attrs = extract_response_attributes({"statusCode": 200, "multiValueHeaders": {"Set-Cookie": ["a=1", "b=2"]}})
        assert attrs["http.response.header.set-cookie"] == REDACTED

    def test_headers_can_be_disabled(self):
        attrs = extract_response_attributes({"statusCode": 200, "headers": {"X": "y"}}, capture_headers=False)
        assert "http.response.header.x" not in attrs

    def test_empty_body(self):
        assert extract_response_attributes({"statusCode": 204})["http.response.body.size"] == 0

    @pytest.mark.parametrize("result", [None, "ok", 200, ["statusCode"]])
    def test_non_mapping_is_empty(self, result):
        assert extract_response_attributes(result) == {}
