"""
Email Record Model
Contains the immutable EmailRecord built once per report request
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

GENERIC_ATTACHMENT_TYPE = "application/octet-stream"

TIER_RICH = "rich"
TIER_DEGRADED = "degraded"


class ReportKind(Enum):
    """Why the user is reporting the email"""
    PHISHING = "phishing"
    INVESTIGATION = "investigation"

    @property
    def title(self) -> str:
        if self is ReportKind.INVESTIGATION:
            return "INVESTIGATION REQUEST"
        return "PHISHING REPORT"

    @property
    def color(self) -> str:
        if self is ReportKind.INVESTIGATION:
            return "#fbbc04"
        return "#d93025"

    @property
    def expects_response(self) -> bool:
        return self is ReportKind.INVESTIGATION


@dataclass(frozen=True)
class AttachmentInfo:
    """An attachment declared by the reported email"""
    name: str
    type: str = GENERIC_ATTACHMENT_TYPE
    size: Optional[int] = None


@dataclass(frozen=True)
class EmailRecord:
    """
    Metadata extracted from one reported email

    Subject and addresses are always post-sanitizer values. Optional fields
    are None when the header was not found or when the record was built by
    the degraded (summary) extraction tier. raw_bytes holds the message as
    retrieved; raw_content is its text form and may be lossy in the
    degraded tier.
    """
    raw_content: str
    subject: str
    sender: str
    recipient: str
    date: datetime
    reply_to: Optional[str] = None
    message_id: Optional[str] = None
    user_agent: Optional[str] = None
    attachments: Tuple[AttachmentInfo, ...] = field(default_factory=tuple)
    extraction_tier: str = TIER_RICH
    raw_bytes: Optional[bytes] = field(default=None, repr=False)

    @property
    def attachment_names(self) -> Tuple[str, ...]:
        return tuple(attachment.name for attachment in self.attachments)

    @property
    def artifact_bytes(self) -> bytes:
        """The message exactly as retrieved, for the .eml artifact"""
        if self.raw_bytes is not None:
            return self.raw_bytes
        return self.raw_content.encode("utf-8")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)
