"""
Message Sources Module
Collaborators that supply the reported message to the extraction pipeline

PATTERN RECOGNITION: This follows the Adapter pattern. The extraction
orchestrator only knows two contracts:

- RawMessageSource.get(message_id) -> raw RFC 822 bytes (primary path)
- SummaryMessageSource.get(message_id) -> MessageSummary (fallback path)

Concrete adapters read a local .eml file or fetch by UID over IMAP. The
summary adapter is a higher-level view built with the standard library
email parser; it never supplies Reply-To, Message-ID or User-Agent.

SECURITY STORY: Mailbox connections enforce TLS 1.2+, a connect timeout and
a maximum message size before the message body is downloaded.
"""

import email
import imaplib
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.message import Message
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import List, Optional

from .email_record import AttachmentInfo, GENERIC_ATTACHMENT_TYPE
from .report_errors import RetrievalFailure
from ..utils.config import MailboxConfig
from ..utils.sanitization import sanitize_for_logging, redact_email
from ..utils.security_validators import create_secure_ssl_context

logger = logging.getLogger(__name__)

MAX_MIME_PARTS = 100  # Limits MIME bomb attacks (CWE-674: Uncontrolled Recursion)
DEFAULT_MAX_MESSAGE_BYTES = 50 * 1024 * 1024
IMAP_TIMEOUT_SECONDS = 30
IMAP_SIZE_PATTERN = re.compile(rb"RFC822\.SIZE (\d+)")


@dataclass
class MessageSummary:
    """Higher-level message view used by the degraded extraction tier"""
    raw_content: str
    subject: Optional[str]
    sender: Optional[str]
    recipient: Optional[str]
    date: Optional[datetime]
    attachments: List[AttachmentInfo] = field(default_factory=list)
    raw_bytes: Optional[bytes] = None


class RawMessageSource(ABC):
    """Supplies the raw RFC 822 bytes of a message"""

    @abstractmethod
    def get(self, message_id: str) -> bytes:
        """Return raw message bytes or raise RetrievalFailure"""


class SummaryMessageSource(ABC):
    """Supplies a parsed summary of a message"""

    @abstractmethod
    def get(self, message_id: str) -> MessageSummary:
        """Return a MessageSummary or raise RetrievalFailure"""


class EmlFileSource(RawMessageSource):
    """Reads a saved .eml file; the message id is the file path"""

    def __init__(self, max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES):
        self.max_message_bytes = max_message_bytes
        self.logger = logging.getLogger("EmlFileSource")

    def get(self, message_id: str) -> bytes:
        path = Path(message_id)
        try:
            size = path.stat().st_size
        except OSError as e:
            raise RetrievalFailure(
                "Message file not readable",
                {"path": sanitize_for_logging(message_id)},
                e
            ) from e

        if size > self.max_message_bytes:
            raise RetrievalFailure(
                "Message file exceeds size limit",
                {"size": size, "max_size": self.max_message_bytes}
            )

        self.logger.debug(f"Reading {size} bytes from {sanitize_for_logging(message_id)}")
        return path.read_bytes()


class IMAPMessageSource(RawMessageSource):
    """
    Fetches a message by UID from the configured IMAP folder

    MAINTENANCE WISDOM: One connection per fetch. Reports are one message per
    user action, so there is nothing to gain from keeping a session open.
    """

    def __init__(
        self,
        config: MailboxConfig,
        max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES
    ):
        self.config = config
        self.max_message_bytes = max_message_bytes
        self.logger = logging.getLogger("IMAPMessageSource")

    def get(self, message_id: str) -> bytes:
        uid = str(message_id).strip()
        if not uid.isdigit():
            raise RetrievalFailure("IMAP message id must be a numeric UID")

        connection = self._connect()
        try:
            self._select_folder(connection)
            self._check_size(connection, uid)
            return self._fetch(connection, uid)
        except RetrievalFailure:
            raise
        except (imaplib.IMAP4.error, OSError) as e:
            raise RetrievalFailure("IMAP fetch failed", {"uid": uid}, e) from e
        finally:
            self._disconnect(connection)

    def _connect(self) -> imaplib.IMAP4:
        """
        Open and authenticate an IMAP connection with secure TLS

        SECURITY STORY: TLS 1.2+ is enforced and a timeout prevents a
        hostile or dead server from hanging the report request.
        """
        self.logger.info(
            f"Connecting to {self.config.imap_server}:{self.config.imap_port} "
            f"(SSL={self.config.use_ssl})"
        )
        context = create_secure_ssl_context(self.config.verify_ssl)
        try:
            if self.config.use_ssl:
                connection = imaplib.IMAP4_SSL(
                    self.config.imap_server,
                    self.config.imap_port,
                    ssl_context=context,
                    timeout=IMAP_TIMEOUT_SECONDS
                )
            else:
                connection = imaplib.IMAP4(
                    self.config.imap_server,
                    self.config.imap_port,
                    timeout=IMAP_TIMEOUT_SECONDS
                )
                connection.starttls(ssl_context=context)

            connection.login(self.config.email, self.config.app_password)
        except (imaplib.IMAP4.error, OSError) as e:
            raise RetrievalFailure("IMAP connection failed", original_exception=e) from e

        self.logger.info(f"Connected as {redact_email(self.config.email)}")
        return connection

    def _select_folder(self, connection: imaplib.IMAP4) -> None:
        status, _ = connection.select(self.config.folder, readonly=True)
        if status != "OK":
            raise RetrievalFailure(
                "Could not select folder",
                {"folder": sanitize_for_logging(self.config.folder), "status": status}
            )

    def _check_size(self, connection: imaplib.IMAP4, uid: str) -> None:
        """
        Refuse oversized messages before downloading them

        SECURITY STORY: RFC822.SIZE is cheap to fetch; the message body is not.
        """
        status, data = connection.uid("FETCH", uid, "(RFC822.SIZE)")
        if status != "OK" or not data or data[0] is None:
            raise RetrievalFailure("Message not found", {"uid": uid})

        info = data[0][0] if isinstance(data[0], tuple) else data[0]
        match = IMAP_SIZE_PATTERN.search(info) if isinstance(info, bytes) else None
        if match and int(match.group(1)) > self.max_message_bytes:
            raise RetrievalFailure(
                "Message exceeds size limit",
                {"uid": uid, "size": int(match.group(1)), "max_size": self.max_message_bytes}
            )

    def _fetch(self, connection: imaplib.IMAP4, uid: str) -> bytes:
        status, data = connection.uid("FETCH", uid, "(RFC822)")
        if status != "OK" or not isinstance(data, list):
            raise RetrievalFailure("IMAP fetch returned no data", {"uid": uid, "status": status})

        for item in data:
            # item is (b'1 (UID 42 RFC822 {1234}', raw_bytes)
            if isinstance(item, tuple) and isinstance(item[1], bytes):
                return item[1]

        raise RetrievalFailure("IMAP fetch returned no message body", {"uid": uid})

    def _disconnect(self, connection: imaplib.IMAP4) -> None:
        try:
            connection.logout()
        except (imaplib.IMAP4.error, OSError):
            self.logger.debug("Connection was already closed or logout failed")


class ParsedSummarySource(SummaryMessageSource):
    """
    Builds a MessageSummary by parsing raw bytes with the email package

    The summary is intentionally limited to subject, addresses, date and
    attachment name/type/size. Decoding is lenient (errors="replace") so
    this path still works when the primary path failed on bad bytes.
    """

    def __init__(self, source: RawMessageSource):
        self.source = source
        self.logger = logging.getLogger("ParsedSummarySource")

    def get(self, message_id: str) -> MessageSummary:
        raw_bytes = self.source.get(message_id)
        try:
            msg = email.message_from_bytes(raw_bytes)
        except (TypeError, ValueError) as e:
            raise RetrievalFailure("Message could not be parsed", original_exception=e) from e

        return MessageSummary(
            raw_content=raw_bytes.decode("utf-8", errors="replace"),
            subject=self._header(msg, "Subject"),
            sender=self._header(msg, "From"),
            recipient=self._header(msg, "To"),
            date=self._date(msg),
            attachments=self._attachments(msg),
            raw_bytes=bytes(raw_bytes)
        )

    @classmethod
    def _header(cls, msg: Message, name: str) -> Optional[str]:
        value = msg.get(name)
        if value is None:
            return None
        return cls._decode_header_value(str(value))

    @staticmethod
    def _decode_header_value(value: str) -> str:
        """
        Decode RFC 2047 encoded header value, falling back to the raw value
        """
        if not value:
            return ""
        try:
            return str(make_header(decode_header(value)))
        except (HeaderParseError, LookupError, UnicodeDecodeError, ValueError):
            return value

    @staticmethod
    def _date(msg: Message) -> Optional[datetime]:
        value = msg.get("Date")
        if not value:
            return None
        try:
            return parsedate_to_datetime(str(value))
        except (TypeError, ValueError, IndexError, OverflowError):
            return None

    def _attachments(self, msg: Message) -> List[AttachmentInfo]:
        attachments = []
        for part_count, part in enumerate(msg.walk(), start=1):
            if part_count > MAX_MIME_PARTS:
                self.logger.warning(
                    f"Message exceeds max MIME parts ({MAX_MIME_PARTS}). "
                    f"Ignoring remaining parts."
                )
                break

            if part.is_multipart():
                continue

            filename = part.get_filename()
            if not filename:
                continue
            name = self._decode_header_value(filename).strip()
            if not name:
                continue

            payload = part.get_payload(decode=True) or b""
            attachments.append(AttachmentInfo(
                name=name,
                type=part.get_content_type() or GENERIC_ATTACHMENT_TYPE,
                size=len(payload)
            ))
        return attachments
