import json

import httpx
import pytest

from onemail.workflows.engine.error_handler import ErrorCategory, ErrorClassifier
from onemail.workflows.engine.errors import CredentialNotFoundError, NodeValidationError


def status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.test/api/bizfly/mail/fields")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"status {status}", request=request, response=response)


@pytest.mark.parametrize(
    "status,category",
    [
        (401, ErrorCategory.CREDENTIAL_INVALID),
        (403, ErrorCategory.CREDENTIAL_INVALID),
        (404, ErrorCategory.RESOURCE_NOT_FOUND),
        (422, ErrorCategory.VALIDATION_ERROR),
        (429, ErrorCategory.RATE_LIMITED),
        (503, ErrorCategory.EXTERNAL_SERVICE_ERROR),
    ],
)
def test_http_status_errors(status, category):
    context = ErrorClassifier.classify(status_error(status))

    assert context.category == category
    assert context.status_code == status


def test_engine_errors():
    missing = ErrorClassifier.classify(CredentialNotFoundError("oneMailApi"))
    invalid = ErrorClassifier.classify(NodeValidationError("onemail.automation", ["Email is required"]))

    assert missing.category == ErrorCategory.CREDENTIAL_MISSING
    assert "ONEMAIL_API_KEY" in missing.suggestion
    assert invalid.category == ErrorCategory.VALIDATION_ERROR
    assert invalid.message == (
        "Input validation failed: Configuration validation failed for onemail.automation: Email is required"
    )


def test_transport_errors():
    request = httpx.Request("GET", "https://api.test")

    assert ErrorClassifier.classify(httpx.ReadTimeout("slow", request=request)).category == ErrorCategory.TIMEOUT
    assert ErrorClassifier.classify(httpx.ConnectError("refused", request=request)).category == ErrorCategory.NETWORK_ERROR


def test_undecodable_body_is_malformed():
    decode_error = json.JSONDecodeError("Expecting value", "<html>", 0)

    assert ErrorClassifier.classify(decode_error).category == ErrorCategory.MALFORMED_RESPONSE


def test_local_errors_are_not_blamed_on_the_api():
    try:
        {}["data"]
    except KeyError as e:
        key_error = e

    assert ErrorClassifier.classify(key_error).category == ErrorCategory.UNKNOWN
    assert ErrorClassifier.classify(TypeError("Invalid type for url")).category == ErrorCategory.UNKNOWN
    assert ErrorClassifier.classify(ValueError("bad value")).category == ErrorCategory.UNKNOWN


def test_message_patterns_and_unknown():
    assert ErrorClassifier.classify(RuntimeError("Too many requests")).category == ErrorCategory.RATE_LIMITED

    unknown = ErrorClassifier.classify(RuntimeError("boom"))
    assert unknown.category == ErrorCategory.UNKNOWN
    assert unknown.suggestion is None
    assert unknown.to_dict()["original_error"] == "boom"
