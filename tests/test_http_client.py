import importlib

import pytest


http_client = importlib.import_module("src.ingestion.http_client")
errors = importlib.import_module("src.ingestion.errors")
HttpResponse = http_client.HttpResponse
SimpleHttpClient = http_client.SimpleHttpClient
FetchError = errors.FetchError
FailureKind = errors.FailureKind


class SequenceTransport:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def __call__(self, method, url, headers):
        self.calls.append((method, url, headers))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_http_client_retries_on_429_then_succeeds():
    transport = SequenceTransport(
        [
            HttpResponse(status_code=429, body=b"{}", headers={}),
            HttpResponse(status_code=200, body=b'{"ok": true}', headers={}),
        ]
    )
    sleeps = []

    client = SimpleHttpClient(
        transport=transport,
        max_retries=2,
        sleep=lambda seconds: sleeps.append(seconds),
    )
    result = client.request_json("https://example.com/data")

    assert result["ok"] is True
    assert len(transport.calls) == 2
    assert len(sleeps) >= 1


def test_http_client_applies_rate_limit_wait_between_calls():
    transport = SequenceTransport(
        [
            HttpResponse(status_code=200, body=b'{"seq": 1}', headers={}),
            HttpResponse(status_code=200, body=b'{"seq": 2}', headers={}),
        ]
    )
    now_values = [0.0, 0.0, 0.3, 1.0]
    sleeps = []

    client = SimpleHttpClient(
        transport=transport,
        rate_limit_per_second=1.0,
        now=lambda: now_values.pop(0),
        sleep=lambda seconds: sleeps.append(seconds),
    )
    client.request_json("https://example.com/a")
    client.request_json("https://example.com/b")

    assert len(transport.calls) == 2
    assert sleeps == [0.7]


def test_http_client_does_not_retry_client_errors():
    transport = SequenceTransport([HttpResponse(status_code=404, body=b"{}", headers={})])
    client = SimpleHttpClient(transport=transport, max_retries=3, sleep=lambda _: None)

    with pytest.raises(FetchError) as excinfo:
        client.request_json("https://example.com/missing")

    assert excinfo.value.kind == FailureKind.CLIENT
    assert excinfo.value.status_code == 404
    assert len(transport.calls) == 1


def test_http_client_gives_up_on_server_errors_after_max_retries():
    transport = SequenceTransport(
        [HttpResponse(status_code=503, body=b"", headers={}) for _ in range(3)]
    )
    client = SimpleHttpClient(transport=transport, max_retries=2, sleep=lambda _: None)

    with pytest.raises(FetchError) as excinfo:
        client.request_json("https://example.com/flaky")

    assert excinfo.value.kind == FailureKind.SERVER
    assert len(transport.calls) == 3


def test_http_client_wraps_transport_failures_as_network_errors():
    transport = SequenceTransport([OSError("connection refused"), OSError("connection refused")])
    client = SimpleHttpClient(transport=transport, max_retries=1, sleep=lambda _: None)

    with pytest.raises(FetchError) as excinfo:
        client.request_json("https://example.com/down")

    assert excinfo.value.kind == FailureKind.NETWORK


def test_http_client_rejects_non_object_bodies():
    transport = SequenceTransport(
        [
            HttpResponse(status_code=200, body=b"[1, 2]", headers={}),
            HttpResponse(status_code=200, body=b"<html>", headers={}),
        ]
    )
    client = SimpleHttpClient(transport=transport, sleep=lambda _: None)

    for _ in range(2):
        with pytest.raises(FetchError) as excinfo:
            client.request_json("https://example.com/list")
        assert excinfo.value.kind == FailureKind.VALIDATION
