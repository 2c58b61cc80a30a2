"""
Security Validators Module
Centralizes security validation constants and utilities for report processing

SECURITY STORY: These validators protect against various attacks:
- MAX_SUBJECT_LENGTH: Prevents DoS from extremely long subjects in reports
- REPORTER_IDENTITY_PATTERN: Rejects a corrupted or missing reporter identity
- generate_eml_filename: Keeps attacker text out of the artifact filename
- is_safe_webhook_url: Prevents the delivery webhook from being aimed inward (SSRF)
"""

import re
import ssl
import logging
import socket
import ipaddress
from datetime import datetime, timezone
from typing import Tuple
from urllib.parse import urlparse

MAX_SUBJECT_LENGTH = 1024  # Prevents subject line DoS attacks

# Basic local@domain.tld shape, no whitespace
REPORTER_IDENTITY_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Whitelist for the subject slug in artifact filenames (CWE-22)
FILENAME_SLUG_STRIP_PATTERN = re.compile(r"[^A-Za-z0-9\s]")
FILENAME_SLUG_SPACE_PATTERN = re.compile(r"\s+")
FILENAME_SLUG_LENGTH = 30
EML_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

logger = logging.getLogger(__name__)


def is_valid_reporter_identity(identity: str) -> bool:
    """
    Check that the acting user's identity looks like local@domain.

    Args:
        identity: Address supplied by the identity provider

    Returns:
        True if the identity has a basic email shape
    """
    if not identity or not isinstance(identity, str):
        return False
    return bool(REPORTER_IDENTITY_PATTERN.match(identity))


def to_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC, treating naive values as already UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_eml_filename(subject: str, date: datetime) -> str:
    """
    Build the filename for the preserved .eml artifact.

    SECURITY STORY: The subject comes from the reported email. Only ASCII
    letters, digits and spaces survive, so no path separators, dots or
    control characters can reach the filesystem of whoever saves the
    attachment. The timestamp is always UTC so two analysts in different
    timezones see the same name.

    Args:
        subject: Cleaned subject line
        date: Message date

    Returns:
        phishing_report_<yyyy-MM-dd_HH-mm-ss>_<slug>.eml

    Example:
        >>> generate_eml_filename("Re: $$$ Urgent!!", datetime(2024, 3, 5, 10, 15, 30, tzinfo=timezone.utc))
        'phishing_report_2024-03-05_10-15-30_Re_Urgent.eml'
    """
    timestamp = to_utc(date).strftime(EML_TIMESTAMP_FORMAT)

    slug = FILENAME_SLUG_STRIP_PATTERN.sub("", subject or "")
    slug = slug[:FILENAME_SLUG_LENGTH].strip()
    slug = FILENAME_SLUG_SPACE_PATTERN.sub("_", slug)

    return f"phishing_report_{timestamp}_{slug}.eml"


def validate_subject_length(subject: str) -> str:
    """
    Validate and truncate subject line to prevent DoS attacks

    Args:
        subject: Email subject line

    Returns:
        Truncated subject line if it exceeds MAX_SUBJECT_LENGTH
    """
    if len(subject) > MAX_SUBJECT_LENGTH:
        logger.warning(f"Subject exceeds {MAX_SUBJECT_LENGTH} chars, truncating")
        return subject[:MAX_SUBJECT_LENGTH]
    return subject


def create_secure_ssl_context(verify_ssl: bool = True) -> ssl.SSLContext:
    """
    Create a secure SSL context with modern TLS settings

    SECURITY STORY: This enforces TLS 1.2+ for both the mailbox (IMAP) and
    the delivery (SMTP) connections. Reported emails and reporter identities
    must not travel over downgraded protocols.

    Args:
        verify_ssl: When False, hostname checking and cert validation are
            disabled (testing against self-signed servers only)

    Returns:
        Configured SSL context
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED
    context.load_default_certs()

    if not verify_ssl:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        logger.warning("SSL verification disabled - use only for testing!")

    logger.debug("Created secure SSL context with TLS 1.2+ enforcement")
    return context


def is_safe_webhook_url(url: str) -> Tuple[bool, str]:
    """
    Validate a webhook URL to prevent SSRF (Server-Side Request Forgery).

    SECURITY STORY: The webhook delivery channel posts the reported email
    (including the raw .eml) to WEBHOOK_URL. A URL resolving to loopback,
    private or link-local space would turn the reporter into a proxy against
    internal services, so those are rejected at configuration time.

    Args:
        url: The webhook URL to validate

    Returns:
        Tuple of (is_safe: bool, error_message: str)
    """
    if not url:
        return False, "URL is empty"

    try:
        parsed = urlparse(url)
    except Exception as e:
        return False, f"Failed to parse URL: {e}"

    if parsed.scheme not in ('http', 'https'):
        return False, f"URL scheme must be http or https, got: {parsed.scheme}"

    hostname = parsed.hostname
    if not hostname:
        return False, "URL must contain a valid hostname"

    try:
        if parsed.port is not None:
            port = parsed.port
        elif parsed.scheme == 'https':
            port = 443
        else:
            port = 80

        addr_info = socket.getaddrinfo(
            hostname, port,
            socket.AF_UNSPEC, socket.SOCK_STREAM
        )
    except socket.gaierror as e:
        return False, f"Could not resolve hostname '{hostname}': {e}"
    except Exception as e:
        return False, f"Error resolving hostname '{hostname}': {e}"

    for res in addr_info:
        # sockaddr is (address, port) for IPv4, (addr, port, flow, scope) for IPv6
        ip_str = res[4][0]

        try:
            ip = ipaddress.ip_address(ip_str)
        except ValueError:
            return False, f"Resolved to an invalid IP address: {ip_str}"

        if ip.is_loopback:
            return False, f"'{hostname}' resolves to loopback ({ip_str})"
        if ip.is_private:
            return False, f"'{hostname}' resolves to private IP ({ip_str})"
        if ip.is_link_local:
            return False, f"'{hostname}' resolves to link-local ({ip_str})"
        if ip.is_multicast:
            return False, f"'{hostname}' resolves to multicast ({ip_str})"
        if ip.is_reserved:
            return False, f"'{hostname}' resolves to reserved ({ip_str})"
        if ip.is_unspecified:
            return False, f"'{hostname}' resolves to unspecified ({ip_str})"

        if ip.version == 4 and int(ip) >> 24 == 0:
            return False, f"'{hostname}' resolves to zero-net ({ip_str})"

    return True, ""
