"""
Error Classification for Node Execution

Turns an exception raised by a node into a category, a readable message and
a suggestion for the log. Classification never replaces the exception: the
caller logs the context and re-raises the original error.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional
from dataclasses import dataclass

import httpx

from onemail.workflows.engine.errors import CredentialNotFoundError, NodeValidationError

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Classification of errors for reporting."""
    CREDENTIAL_MISSING = "credential_missing"
    CREDENTIAL_INVALID = "credential_invalid"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    VALIDATION_ERROR = "validation_error"
    RESOURCE_NOT_FOUND = "resource_not_found"
    EXTERNAL_SERVICE_ERROR = "external_service_error"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Structured error information for logging."""
    category: ErrorCategory
    message: str
    original_error: str
    status_code: Optional[int] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            "original_error": self.original_error,
            "status_code": self.status_code,
            "suggestion": self.suggestion
        }


class ErrorClassifier:
    """Classifies errors raised while loading options or executing a node."""

    # Fallback patterns for errors that are not one of the known types
    PATTERNS = {
        ErrorCategory.CREDENTIAL_INVALID: [
            "unauthorized", "invalid api key", "forbidden", "access denied"
        ],
        ErrorCategory.RATE_LIMITED: [
            "rate limit", "too many requests", "quota exceeded"
        ],
        ErrorCategory.TIMEOUT: [
            "timeout", "timed out"
        ],
        ErrorCategory.NETWORK_ERROR: [
            "connection refused", "connection reset", "name resolution", "ssl"
        ],
        ErrorCategory.VALIDATION_ERROR: [
            "validation", "required"
        ],
    }

    SUGGESTIONS = {
        ErrorCategory.CREDENTIAL_MISSING: "Add a oneMailApi credential or set ONEMAIL_API_KEY.",
        ErrorCategory.CREDENTIAL_INVALID: "Check that the One Mail API key is correct and still active.",
        ErrorCategory.RATE_LIMITED: "Wait a moment before running the node again.",
        ErrorCategory.NETWORK_ERROR: "Check network access to ONEMAIL_BASE_URL.",
        ErrorCategory.TIMEOUT: "The API did not answer in time; raise HTTP_TIMEOUT or retry later.",
        ErrorCategory.VALIDATION_ERROR: "Fill in every required field of the node.",
        ErrorCategory.RESOURCE_NOT_FOUND: "Check that the selected automation still exists.",
        ErrorCategory.EXTERNAL_SERVICE_ERROR: "The One Mail API failed; retry later.",
        ErrorCategory.MALFORMED_RESPONSE: "The API answered with something other than the expected JSON.",
    }

    MESSAGES = {
        ErrorCategory.CREDENTIAL_MISSING: "Credential not configured",
        ErrorCategory.CREDENTIAL_INVALID: "Credential is invalid or expired",
        ErrorCategory.RATE_LIMITED: "Rate limit exceeded",
        ErrorCategory.NETWORK_ERROR: "Network connection failed",
        ErrorCategory.TIMEOUT: "Operation timed out",
        ErrorCategory.VALIDATION_ERROR: "Input validation failed",
        ErrorCategory.RESOURCE_NOT_FOUND: "Resource not found",
        ErrorCategory.EXTERNAL_SERVICE_ERROR: "External service error",
        ErrorCategory.MALFORMED_RESPONSE: "Malformed API response",
        ErrorCategory.UNKNOWN: "Unexpected error",
    }

    @classmethod
    def classify(cls, error: Exception) -> ErrorContext:
        """Classify an error and return structured context."""
        category, status_code = cls._categorize(error)
        return ErrorContext(
            category=category,
            message=f"{cls.MESSAGES[category]}: {error}",
            original_error=str(error),
            status_code=status_code,
            suggestion=cls.SUGGESTIONS.get(category)
        )

    @classmethod
    def _categorize(cls, error: Exception):
        if isinstance(error, CredentialNotFoundError):
            return ErrorCategory.CREDENTIAL_MISSING, None
        if isinstance(error, NodeValidationError):
            return ErrorCategory.VALIDATION_ERROR, None
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            if status in (401, 403):
                return ErrorCategory.CREDENTIAL_INVALID, status
            if status == 404:
                return ErrorCategory.RESOURCE_NOT_FOUND, status
            if status == 429:
                return ErrorCategory.RATE_LIMITED, status
            if status == 422:
                return ErrorCategory.VALIDATION_ERROR, status
            return ErrorCategory.EXTERNAL_SERVICE_ERROR, status
        if isinstance(error, httpx.TimeoutException):
            return ErrorCategory.TIMEOUT, None
        if isinstance(error, httpx.TransportError):
            return ErrorCategory.NETWORK_ERROR, None
        if isinstance(error, json.JSONDecodeError):
            return ErrorCategory.MALFORMED_RESPONSE, None
        if isinstance(error, KeyError) and cls._raised_in_node_package(error):
            # A payload without the field the node reads, e.g. "data"
            return ErrorCategory.MALFORMED_RESPONSE, None

        error_str = str(error).lower()
        for category, patterns in cls.PATTERNS.items():
            if any(pattern in error_str for pattern in patterns):
                return category, None
        return ErrorCategory.UNKNOWN, None

    @staticmethod
    def _raised_in_node_package(error: Exception) -> bool:
        tb = error.__traceback__
        if tb is None:
            return False
        while tb.tb_next is not None:
            tb = tb.tb_next
        return tb.tb_frame.f_globals.get("__name__", "").startswith("onemail.node_packages.")
