"""
SMTP notifier adapter - Sends alert emails over an authenticated channel.
"""

import logging
import smtplib
from email.mime.text import MIMEText
from typing import Callable

from servermon.adapters.notifiers.render import render_alert, render_subject
from servermon.core.entities import AlertBatch, Recipient, SmtpSettings
from servermon.core.ports import Notifier

logger = logging.getLogger(__name__)


class AdapterSmtpNotifier(Notifier):  # pylint: disable=too-few-public-methods
    """
    Adapter that implements Notifier by sending one email per recipient.

    STARTTLS is mandatory unless disabled in settings; login happens only when
    a username is configured. Failures propagate to the caller.
    """

    def __init__(
        self,
        settings: SmtpSettings,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        timeout: float = 30.0,
    ):
        """
        Initialize the notifier.

        Args:
            settings: SMTP server settings
            smtp_factory: Callable returning an SMTP connection (injectable for tests)
            timeout: Connection timeout in seconds
        """
        self.settings = settings
        self._smtp_factory = smtp_factory
        self.timeout = timeout

    def send(self, recipient: Recipient, batch: AlertBatch) -> None:
        """
        Send the alert email.

        Args:
            recipient: Who to notify
            batch: Alert content

        Raises:
            smtplib.SMTPException: On SMTP protocol errors
            OSError: On connection errors
        """
        msg = MIMEText(render_alert(batch), "plain", "utf-8")
        msg["From"] = self.settings.sender
        msg["To"] = recipient.email
        msg["Subject"] = render_subject(self.settings.subject, batch)

        logger.info("Sending alert email to %s", recipient.email)

        with self._smtp_factory(
            self.settings.hostname, self.settings.port, timeout=self.timeout
        ) as server:
            if self.settings.starttls:
                server.starttls()
            if self.settings.username:
                server.login(self.settings.username, self.settings.password)
            server.sendmail(self.settings.sender, [recipient.email], msg.as_string())

        logger.info("Sent alert email to %s", recipient.email)
