import importlib
import logging


errors = importlib.import_module("src.ingestion.errors")
FailureKind = errors.FailureKind
FetchError = errors.FetchError


def test_retryable_kinds_are_network_server_and_rate_limit():
    retryable = {kind for kind in FailureKind if errors.is_retryable(kind)}

    assert retryable == {FailureKind.NETWORK, FailureKind.SERVER, FailureKind.RATE_LIMIT}


def test_classify_status_codes():
    assert errors.classify_status(429) == FailureKind.RATE_LIMIT
    assert errors.classify_status(503) == FailureKind.SERVER
    assert errors.classify_status(404) == FailureKind.CLIENT
    assert errors.classify_status(302) == FailureKind.UNKNOWN


def test_categorize_uses_fetch_error_kind_then_message_patterns():
    assert errors.categorize_error(FetchError("boom", kind=FailureKind.SERVER)) == FailureKind.SERVER
    assert errors.categorize_error(RuntimeError("Connection reset by peer")) == FailureKind.NETWORK
    assert errors.categorize_error(ValueError("source config not found for 'x'")) == FailureKind.CONFIGURATION
    assert errors.categorize_error(ValueError("missing field dt")) == FailureKind.VALIDATION
    assert errors.categorize_error(RuntimeError("canvas not ready")) == FailureKind.VISUALIZATION
    assert errors.categorize_error(RuntimeError("???")) == FailureKind.UNKNOWN


def test_every_kind_has_a_user_message():
    for kind in FailureKind:
        assert errors.user_message(kind)


def test_handle_error_builds_info_and_logs(caplog):
    with caplog.at_level(logging.ERROR, logger="src.ingestion.errors"):
        info = errors.handle_error(
            FetchError("request failed with status 429", kind=FailureKind.RATE_LIMIT, status_code=429),
            context="data-fetch:cryptocurrency",
        )

    assert info.kind == FailureKind.RATE_LIMIT
    assert info.retryable is True
    assert info.message == "Rate limit exceeded. Please wait a moment before refreshing."
    assert info.technical == "request failed with status 429"
    assert info.to_dict()["kind"] == "rate_limit"
    assert "[RATE_LIMIT] [data-fetch:cryptocurrency]" in caplog.text
