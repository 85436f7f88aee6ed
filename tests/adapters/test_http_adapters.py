"""Tests for the Starlette-backed request/response adapters."""
# pylint: disable=missing-function-docstring

import json

from assistant_fulfillment.adapters.http import BufferedResponse, RequestAdapter


def test_request_adapter_headers_are_case_insensitive():
    request = RequestAdapter({"a": 1}, {"Google-Actions-API-Version": "2"})

    assert request.body == {"a": 1}
    assert request.get("google-actions-api-version") == "2"
    assert request.get("Missing") is None


def test_buffered_response_records_status_headers_and_body():
    response = BufferedResponse()

    assert response.status(400) is response
    response.append("X-Trace", "abc")
    assert response.send("Action Error: nope") == "Action Error: nope"

    assert response.sent
    assert response.status_code == 400
    assert response.headers["x-trace"] == "abc"


def test_to_response_renders_json_without_duplicate_content_type():
    response = BufferedResponse()
    response.append("Content-Type", "application/json")
    response.append("Google-Assistant-API-Version", "v2")
    response.send({"expectUserResponse": False})

    rendered = response.to_response()

    assert rendered.status_code == 200
    assert json.loads(rendered.body) == {"expectUserResponse": False}
    assert rendered.headers["google-assistant-api-version"] == "v2"
    assert rendered.headers.getlist("content-type") == ["application/json"]


def test_to_response_renders_text_errors():
    response = BufferedResponse()
    response.status(400).send("Action Error: bad")

    rendered = response.to_response()

    assert rendered.status_code == 400
    assert rendered.body == b"Action Error: bad"
    assert rendered.media_type == "text/plain"
