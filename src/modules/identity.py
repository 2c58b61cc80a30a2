"""
Acting user identity providers
"""

from abc import ABC, abstractmethod

from ..utils.config import MailboxConfig


class IdentityProvider(ABC):
    """Supplies the email address of the user filing the report"""

    @abstractmethod
    def current(self) -> str:
        """Return the acting user's address (validated by the renderer)"""


class StaticIdentityProvider(IdentityProvider):
    """Identity fixed at startup, e.g. REPORTER_EMAIL"""

    def __init__(self, email: str):
        self.email = email

    def current(self) -> str:
        return (self.email or "").strip()


class MailboxIdentityProvider(IdentityProvider):
    """The user is whoever owns the mailbox the message was read from"""

    def __init__(self, config: MailboxConfig):
        self.config = config

    def current(self) -> str:
        return (self.config.email or "").strip()
