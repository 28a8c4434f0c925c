from __future__ import annotations

import httpx
import pytest

from pickups.errors import (
    DecodingFailure,
    EncodingFailure,
    ExchangeError,
    InvalidEndpoint,
    MalformedResponse,
    ServerRejected,
    TransportFailure,
    classify_response,
    classify_transport_error,
    extract_error_message,
)


def test_extract_error_message_reads_top_level_message() -> None:
    assert extract_error_message(b'{"message": "db down"}') == "db down"


@pytest.mark.parametrize(
    "body",
    [
        b"",
        b"<html>Bad gateway</html>",
        b'["db down"]',
        b'{"error": "db down"}',
        b'{"message": 500}',
        b'{"detail": {"message": "nested"}}',
    ],
)
def test_extract_error_message_is_best_effort(body: bytes) -> None:
    assert extract_error_message(body) is None


def test_classify_response_accepts_success_range() -> None:
    assert classify_response(httpx.Response(200, json=[])) is None
    assert classify_response(httpx.Response(201)) is None
    assert classify_response(httpx.Response(299)) is None


def test_classify_response_rejects_everything_else() -> None:
    rejection = classify_response(httpx.Response(500, json={"message": "db down"}))

    assert isinstance(rejection, ServerRejected)
    assert rejection.status_code == 500
    assert rejection.message == "db down"
    assert str(rejection) == "Request failed with status code 500 - db down"

    redirect = classify_response(httpx.Response(302, headers={"Location": "/elsewhere"}))
    assert isinstance(redirect, ServerRejected)
    assert redirect.status_code == 302
    assert redirect.message is None
    assert str(redirect) == "Request failed with status code 302"


def test_classify_response_keeps_postgrest_error_details() -> None:
    body = {
        "message": 'relation "public.proposals" does not exist',
        "code": "42P01",
        "hint": None,
        "details": "check the table name",
    }
    rejection = classify_response(httpx.Response(404, json=body))

    assert rejection is not None
    assert rejection.message == body["message"]
    assert rejection.code == "42P01"
    assert rejection.hint is None
    assert rejection.details == "check the table name"


def test_classify_response_without_parsable_body() -> None:
    rejection = classify_response(httpx.Response(503, text="Service Unavailable"))

    assert rejection is not None
    assert rejection.status_code == 503
    assert rejection.message is None
    assert rejection.code is None


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (httpx.ConnectError("Name or service not known"), TransportFailure),
        (httpx.ReadTimeout("timed out"), TransportFailure),
        (httpx.ReadError("connection reset by peer"), TransportFailure),
        (httpx.RemoteProtocolError("illegal status line"), MalformedResponse),
        (httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'"), InvalidEndpoint),
        (httpx.InvalidURL("Invalid port: 'abc'"), InvalidEndpoint),
    ],
)
def test_classify_transport_error(exc: Exception, expected: type) -> None:
    error = classify_transport_error(exc)
    assert isinstance(error, expected)
    assert isinstance(error, ExchangeError)


def test_transport_failure_keeps_cause_description() -> None:
    error = classify_transport_error(httpx.ConnectError("Name or service not known"))

    assert isinstance(error, TransportFailure)
    assert error.cause == "Name or service not known"
    assert "Name or service not known" in str(error)


def test_every_error_has_a_description() -> None:
    errors = [
        InvalidEndpoint(),
        EncodingFailure("fee must be a finite number"),
        TransportFailure("timed out"),
        ServerRejected(401),
        MalformedResponse(),
        DecodingFailure("Expecting value: line 1 column 1 (char 0)"),
    ]
    for error in errors:
        assert isinstance(error, RuntimeError)
        assert str(error).strip()
