"""
Notification gateway interface.
The reservation lifecycle only ever calls send_email; delivery is someone else's problem.
"""

from abc import ABC, abstractmethod


class NotificationGateway(ABC):
    """
    Interface for transactional email delivery.

    Implementations:
    - LoggingNotificationGateway: logs and records messages (development, tests)
    - SmtpNotificationGateway: SMTP relay
    - SendGridNotificationGateway: SendGrid v3 HTTP API
    """

    @abstractmethod
    async def send_email(self, to: str, subject: str, html: str) -> bool:
        """
        Send one HTML email.

        Returns:
            True if the message was handed to the transport
            False if the transport refused it

        Raises:
            NotificationError on transport failure
        """
        pass
