"""
Extraction Orchestrator Module
Turns a message id into an EmailRecord using a two-tier strategy

PATTERN RECOGNITION: Primary/fallback with exactly one fallback attempt.

- Rich tier: raw bytes from the RawMessageSource are decoded and run through
  a MessageMetadataExtractor (header block + attachment scan + sanitizers).
- Degraded tier: on any rich-tier failure, the SummaryMessageSource supplies
  subject, addresses, date and attachments. Reply-To, Message-ID and
  User-Agent are always absent in this tier.

Both tiers produce a complete, sanitized EmailRecord; fields are never mixed
across tiers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Callable, Optional

from .attachment_scanner import AttachmentScanner
from .email_record import EmailRecord, TIER_DEGRADED, TIER_RICH, utc_now
from .header_parser import HeaderBlockParser
from .message_sources import MessageSummary, RawMessageSource, SummaryMessageSource
from .report_errors import NoMessageSelected, RetrievalFailure, TotalRetrievalFailure
from ..utils.sanitization import (
    UNKNOWN_RECIPIENT,
    UNKNOWN_SENDER,
    clean_address,
    clean_subject,
    sanitize_for_logging,
)
from ..utils.security_validators import to_utc, validate_subject_length


def decode_raw_message(raw_bytes: bytes) -> str:
    """
    Decode raw message bytes for the rich tier.

    Decoding is strict so the text re-encodes to the exact original bytes
    for the .eml artifact; undecodable input is a rich-tier failure.

    Raises:
        RetrievalFailure: If the bytes are not valid UTF-8
    """
    if not isinstance(raw_bytes, (bytes, bytearray)):
        raise RetrievalFailure(f"Expected raw bytes, got {type(raw_bytes).__name__}")
    try:
        return bytes(raw_bytes).decode("utf-8")
    except UnicodeDecodeError as e:
        raise RetrievalFailure("Raw message is not valid UTF-8", original_exception=e) from e


def normalize_date(value: Optional[datetime], fallback: datetime) -> datetime:
    """
    Convert a message date to UTC, returning ``fallback`` when absent or
    when the conversion leaves the representable range.
    """
    if value is None:
        return fallback
    try:
        return to_utc(value)
    except (OverflowError, ValueError):
        return fallback


def parse_header_date(value: Optional[str], fallback: datetime) -> datetime:
    """
    Parse a Date header, returning ``fallback`` when absent or unparseable.
    Dates without a zone are taken as UTC.
    """
    if not value:
        return fallback
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError, OverflowError):
        return fallback
    return normalize_date(parsed, fallback)


def sanitize_subject(value: Optional[str]) -> str:
    """Clean the subject, then cap its length so no encoded-word is cut in half"""
    return validate_subject_length(clean_subject(value)).rstrip()


class MessageMetadataExtractor(ABC):
    """Builds a rich EmailRecord from decoded raw message text"""

    @abstractmethod
    def extract(self, raw_content: str) -> EmailRecord:
        """Extract and sanitize report metadata"""


class RegexMetadataExtractor(MessageMetadataExtractor):
    """
    Pattern-matching extractor over the raw message text

    MAINTENANCE WISDOM: The header and attachment patterns target common
    real-world shapes, not the full RFC grammar. Swap in another
    MessageMetadataExtractor to harden this without touching callers.
    """

    def __init__(
        self,
        header_parser: Optional[HeaderBlockParser] = None,
        attachment_scanner: Optional[AttachmentScanner] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.header_parser = header_parser or HeaderBlockParser()
        self.attachment_scanner = attachment_scanner or AttachmentScanner()
        self.clock = clock

    def extract(self, raw_content: str) -> EmailRecord:
        headers = self.header_parser.parse(raw_content)

        return EmailRecord(
            raw_content=raw_content,
            subject=sanitize_subject(headers.subject),
            sender=clean_address(headers.sender, UNKNOWN_SENDER),
            recipient=clean_address(headers.recipient, UNKNOWN_RECIPIENT),
            reply_to=clean_address(headers.reply_to) if headers.reply_to else None,
            date=parse_header_date(headers.date, self.clock()),
            message_id=headers.message_id or None,
            user_agent=headers.user_agent or None,
            attachments=tuple(self.attachment_scanner.scan(raw_content)),
            extraction_tier=TIER_RICH
        )


class ExtractionOrchestrator:
    """Runs the rich tier, falling back once to the degraded tier"""

    def __init__(
        self,
        raw_source: RawMessageSource,
        summary_source: SummaryMessageSource,
        extractor: Optional[MessageMetadataExtractor] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize orchestrator

        Args:
            raw_source: Primary source of raw RFC 822 bytes
            summary_source: Fallback source of parsed summaries
            extractor: Rich-tier extractor (defaults to RegexMetadataExtractor)
            clock: Returns "now" for missing dates
        """
        self.raw_source = raw_source
        self.summary_source = summary_source
        self.clock = clock
        self.extractor = extractor or RegexMetadataExtractor(clock=clock)
        self.logger = logging.getLogger("ExtractionOrchestrator")

    def extract(self, message_id: Optional[str]) -> EmailRecord:
        """
        Build the EmailRecord for a message

        Args:
            message_id: Identifier understood by both sources

        Returns:
            EmailRecord from the rich tier, or from the degraded tier if the
            rich tier failed

        Raises:
            NoMessageSelected: If no message id was supplied
            TotalRetrievalFailure: If both tiers failed
        """
        if not message_id:
            raise NoMessageSelected()

        safe_id = sanitize_for_logging(str(message_id))

        try:
            record = self._extract_rich(message_id)
            self.logger.debug(f"Rich extraction succeeded for {safe_id}")
            return record
        except Exception as primary_error:
            self.logger.warning(
                f"Primary retrieval failed for {safe_id}, using summary source: "
                f"{sanitize_for_logging(str(primary_error))}"
            )

        try:
            summary = self.summary_source.get(message_id)
            record = self._record_from_summary(summary)
        except Exception as fallback_error:
            self.logger.error(
                f"Fallback retrieval failed for {safe_id}: "
                f"{sanitize_for_logging(str(fallback_error))}"
            )
            raise TotalRetrievalFailure(
                "Unable to retrieve message from any source",
                {"message_id": safe_id},
                fallback_error
            ) from fallback_error

        self.logger.info(f"Degraded extraction used for {safe_id}")
        return record

    def _extract_rich(self, message_id: str) -> EmailRecord:
        raw_bytes = self.raw_source.get(message_id)
        raw_content = decode_raw_message(raw_bytes)
        record = self.extractor.extract(raw_content)
        return replace(record, raw_bytes=bytes(raw_bytes))

    def _record_from_summary(self, summary: MessageSummary) -> EmailRecord:
        return EmailRecord(
            raw_content=summary.raw_content or "",
            subject=sanitize_subject(summary.subject),
            sender=clean_address(summary.sender, UNKNOWN_SENDER),
            recipient=clean_address(summary.recipient, UNKNOWN_RECIPIENT),
            date=normalize_date(summary.date, self.clock()),
            reply_to=None,
            message_id=None,
            user_agent=None,
            attachments=tuple(a for a in summary.attachments if a.name),
            extraction_tier=TIER_DEGRADED,
            raw_bytes=summary.raw_bytes
        )
