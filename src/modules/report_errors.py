"""
Report Errors
Exception hierarchy for the report workflow and the mapping from failures
to messages that are safe to show the reporting user.
"""

import smtplib
from enum import Enum
from typing import Any, Dict, Optional

import requests


class FailureKind(Enum):
    """Classified delivery failure"""
    QUOTA_EXCEEDED = "quota"
    PERMISSION_DENIED = "permission"
    INVALID_CONFIGURATION = "invalid"
    UNKNOWN = "unknown"


USER_MESSAGES = {
    FailureKind.QUOTA_EXCEEDED: "Daily email limit reached. Try again tomorrow.",
    FailureKind.PERMISSION_DENIED: "Permission denied. Contact your administrator.",
    FailureKind.INVALID_CONFIGURATION: "Invalid configuration. Contact support.",
    FailureKind.UNKNOWN: "Unable to send report. Please try again.",
}

NO_MESSAGE_SELECTED_MESSAGE = "Please select an email first."
TOTAL_RETRIEVAL_FAILURE_MESSAGE = "Unable to process this email. Please try again."

# Substring scan order matters: the first hit wins
_TEXT_MARKERS = (
    ("quota", FailureKind.QUOTA_EXCEEDED),
    ("permission", FailureKind.PERMISSION_DENIED),
    ("invalid", FailureKind.INVALID_CONFIGURATION),
)

_HTTP_STATUS_KINDS = {
    401: FailureKind.PERMISSION_DENIED,
    403: FailureKind.PERMISSION_DENIED,
    429: FailureKind.QUOTA_EXCEEDED,
}

# SMTP reply codes 452 (insufficient storage) and 552 (exceeded storage allocation)
_SMTP_QUOTA_CODES = {452, 552}


class ReportError(Exception):
    """Base exception for all report workflow errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_exception = original_exception

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} (Details: {details_str})"
        return self.message


class NoMessageSelected(ReportError):
    """Raised when no message identifier was supplied."""

    def __init__(self, message: str = "No message selected"):
        super().__init__(message)


class RetrievalFailure(ReportError):
    """Raised when a message source cannot supply the message."""
    pass


class TotalRetrievalFailure(ReportError):
    """Raised when both the primary and the fallback source failed."""
    pass


class InvalidReporterIdentity(ReportError):
    """Raised when the acting user's identity is not email-shaped."""
    pass


class ConfigurationError(ReportError):
    """Raised when configuration is invalid."""
    pass


class DeliveryError(ReportError):
    """Raised when the delivery channel rejects a report."""

    def __init__(self, message: str, kind: Optional[FailureKind] = None,
                 details: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None):
        super().__init__(message, details, original_exception)
        self.kind = kind


def classify_failure(error: BaseException) -> FailureKind:
    """
    Classify a delivery (or configuration) failure.

    Structured information wins: an explicit ``kind`` attribute, a known
    SMTP exception, or an HTTP status on a requests error. Only when none
    of those is available is the error text scanned for "quota",
    "permission" and "invalid".

    Args:
        error: The exception raised while building or delivering a report

    Returns:
        FailureKind
    """
    kind = getattr(error, "kind", None)
    if isinstance(kind, FailureKind):
        return kind

    if isinstance(error, (InvalidReporterIdentity, ConfigurationError)):
        return FailureKind.INVALID_CONFIGURATION

    structured = _classify_structured(error)
    if structured is not None:
        return structured

    cause = getattr(error, "original_exception", None)
    if cause is not None and cause is not error:
        structured = _classify_structured(cause)
        if structured is not None:
            return structured

    text = str(error).lower()
    for marker, marker_kind in _TEXT_MARKERS:
        if marker in text:
            return marker_kind

    return FailureKind.UNKNOWN


def _classify_structured(error: BaseException) -> Optional[FailureKind]:
    """Classify from exception type and status codes only"""
    if isinstance(error, (smtplib.SMTPAuthenticationError, smtplib.SMTPSenderRefused,
                          smtplib.SMTPRecipientsRefused)):
        code = getattr(error, "smtp_code", None)
        if code in _SMTP_QUOTA_CODES:
            return FailureKind.QUOTA_EXCEEDED
        return FailureKind.PERMISSION_DENIED

    if isinstance(error, smtplib.SMTPResponseException) and error.smtp_code in _SMTP_QUOTA_CODES:
        return FailureKind.QUOTA_EXCEEDED

    if isinstance(error, requests.HTTPError) and error.response is not None:
        return _HTTP_STATUS_KINDS.get(error.response.status_code)

    return None


def user_message(error: BaseException) -> str:
    """
    Pick the message shown to the reporting user for a failure.

    Parser and transport internals never appear in the returned text.
    """
    if isinstance(error, NoMessageSelected):
        return NO_MESSAGE_SELECTED_MESSAGE
    if isinstance(error, TotalRetrievalFailure):
        return TOTAL_RETRIEVAL_FAILURE_MESSAGE
    return USER_MESSAGES[classify_failure(error)]
