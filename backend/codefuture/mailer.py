"""Outbound notification email over an SMTP relay.

When SMTP credentials are not configured, messages are written to the
log instead of being sent.
"""

import logging
import smtplib
from email.mime.text import MIMEText
from typing import List

logger = logging.getLogger("codefuture.mailer")


class Mailer:
    def __init__(self, host: str, port: int, user: str, password: str):
        self.host = host
        self.port = port
        self.user = user
        self.password = password

    @classmethod
    def from_settings(cls, settings) -> "Mailer":
        return cls(settings.SMTP_HOST, settings.SMTP_PORT, settings.SMTP_USER, settings.SMTP_PASS)

    @property
    def configured(self) -> bool:
        return bool(self.user and self.password)

    def send_html(self, to: List[str], subject: str, body: str) -> bool:
        """Send an HTML email. Returns False when it was only logged or the relay failed."""
        if not self.configured:
            logger.info(">>> MOCK EMAIL to %s: %s\n%s", ", ".join(to), subject, body)
            return False
        msg = MIMEText(body, "html", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.user
        msg["To"] = ", ".join(to)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
                smtp.starttls()
                smtp.login(self.user, self.password)
                smtp.sendmail(self.user, to, msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("failed to send email to %s: %s", ", ".join(to), exc)
            return False
        logger.info("email sent to %s", ", ".join(to))
        return True
