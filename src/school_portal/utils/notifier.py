"""Welcome notification collaborator.

Email delivery lives outside this service. The registration pipeline hands the
new credentials to a notifier after the account is committed; a failed
notification never undoes the registration.
"""

import logging
from abc import ABC, abstractmethod

from school_portal.config import SCHOOL_NAME
from school_portal.schemas.user import IdentityRecord

logger = logging.getLogger(__name__)


class WelcomeNotifier(ABC):
    """Sends the one-time credential email to a newly registered account."""

    @abstractmethod
    def send_welcome(self, record: IdentityRecord, password: str, qr_payload: str) -> bool:
        """Deliver the welcome message.

        Returns:
            True if the message was handed to the delivery channel.
        """


class LoggingWelcomeNotifier(WelcomeNotifier):
    """Notifier that records the hand-off in the log without sending mail.

    The client application performs the actual delivery, so nothing is sent
    from here and ``email_sent`` stays false.
    """

    def send_welcome(self, record: IdentityRecord, password: str, qr_payload: str) -> bool:
        logger.info(
            "Welcome email for %s <%s> prepared (username=%s, school=%s); "
            "delivery is handled by the client",
            record.name,
            record.email,
            record.username,
            SCHOOL_NAME,
        )
        return False
