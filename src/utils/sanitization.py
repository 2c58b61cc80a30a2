"""
Sanitization Utility Module
Normalizes untrusted header values and escapes them for logs and HTML reports.

SECURITY STORY: Every string pulled out of a reported email is attacker
controlled. Subject lines and address headers go through the cleaners below
before they reach the report, and every value interpolated into the HTML
report goes through escape_html().
"""

import re
import unicodedata
from typing import Optional

NO_SUBJECT = "No Subject"
UNKNOWN_SENDER = "Unknown Sender"
UNKNOWN_RECIPIENT = "Unknown Recipient"

# =?charset?B|Q?encoded-text?=
ENCODED_WORD_PATTERN = re.compile(r"=\?[^?]+\?[BbQq]\?[^?]*\?=")
WHITESPACE_PATTERN = re.compile(r"\s+")
ANGLE_ADDRESS_PATTERN = re.compile(r"<([^>]+@[^>]+)>")
ANSI_ESCAPE_PATTERN = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
    "/": "&#x2F;",
}
HTML_ESCAPE_PATTERN = re.compile(r"[&<>\"'/]")


def sanitize_for_logging(text: str, max_length: int = 255) -> str:
    """
    Sanitize text for safe logging to prevent Log Injection (CRLF) and terminal manipulation.

    Args:
        text: The input string to sanitize.
        max_length: Maximum allowed length for the log entry (truncates if longer).

    Returns:
        Sanitized string safe for logging.
    """
    if not text:
        return ""

    # Bound the work done on hostile input before normalizing
    if len(text) > max_length * 4:
        text = text[:max_length * 4]

    text = unicodedata.normalize('NFKC', text)
    text = text.replace('\n', '\\n').replace('\r', '\\r')
    text = ANSI_ESCAPE_PATTERN.sub('', text)

    # Remaining control characters (ASCII 0-31 except tab)
    text = "".join(ch for ch in text if ch == '\t' or ord(ch) >= 32)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def redact_email(address: str) -> str:
    """
    Mask the local part of a mailbox address for logs.

    Example:
        >>> redact_email("analyst@example.com")
        'a***@example.com'
    """
    if not address or "@" not in address:
        return "***"
    local, _, domain = address.partition("@")
    return f"{local[:1]}***@{sanitize_for_logging(domain)}"


def clean_subject(subject: Optional[str]) -> str:
    """
    Normalize a subject line for the report.

    MIME encoded words are replaced with a single space (they are not
    decoded), whitespace runs collapse to one space and the result is
    trimmed. Never returns an empty string.

    Args:
        subject: Raw Subject header value (may be None)

    Returns:
        Cleaned subject, or "No Subject"
    """
    if not subject:
        return NO_SUBJECT

    cleaned = ENCODED_WORD_PATTERN.sub(" ", subject)
    cleaned = WHITESPACE_PATTERN.sub(" ", cleaned).strip()
    return cleaned or NO_SUBJECT


def clean_address(value: Optional[str], fallback: str = UNKNOWN_SENDER) -> str:
    """
    Reduce an address header to the bare address.

    Example:
        >>> clean_address('Attacker <bad@evil.com>')
        'bad@evil.com'
        >>> clean_address('  bad@evil.com ')
        'bad@evil.com'

    Args:
        value: Raw address header value (may be None)
        fallback: Label returned when the header is absent or blank

    Returns:
        The angle-bracketed address when present, otherwise the trimmed input
    """
    if not value:
        return fallback

    match = ANGLE_ADDRESS_PATTERN.search(value)
    if match:
        return match.group(1)
    return value.strip() or fallback


def escape_html(text: Optional[str]) -> Optional[str]:
    """
    Escape a value for interpolation into the HTML report.

    Replaces &, <, >, ", ' and / with entities. Empty or None input is
    returned unchanged. Calling it twice double-escapes.
    """
    if not text:
        return text
    return HTML_ESCAPE_PATTERN.sub(lambda match: HTML_ENTITIES[match.group(0)], str(text))
