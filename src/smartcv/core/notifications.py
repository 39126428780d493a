from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText
from typing import Protocol

from smartcv.channels.base import ChannelClient
from smartcv.config import Settings
from smartcv.errors import ChannelError

logger = logging.getLogger(__name__)

WHATSAPP_PREFIX = "+"


def channel_name_for(identifier: str) -> str:
    return "whatsapp" if identifier.startswith(WHATSAPP_PREFIX) else "telegram"


class NotificationSink:
    """Single place where an identifier is mapped to the channel that can reach it."""

    def __init__(self, channels: dict[str, ChannelClient]):
        self.channels = channels

    def send(self, identifier: str, text: str) -> str:
        name = channel_name_for(identifier)
        client = self.channels.get(name)
        if client is None:
            raise ChannelError(name, "channel is not configured")

        client.send_text(identifier, text)
        logger.debug("Message delivered channel=%s identifier=%s chars=%s", name, identifier, len(text))
        return text


class Mailer(Protocol):
    def notify_recruiter(
        self,
        *,
        recruiter_email: str,
        job_title: str,
        cv_text: str,
        cover_letter: str,
        applicant_email: str,
    ) -> bool: ...


class RecruiterMailer:
    def __init__(self, *, host: str, port: int, user: str, password: str, sender: str = "", timeout_sec: int = 30):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings: Settings) -> RecruiterMailer:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.smtp_sender,
            timeout_sec=settings.smtp_timeout_sec,
        )

    def notify_recruiter(
        self,
        *,
        recruiter_email: str,
        job_title: str,
        cv_text: str,
        cover_letter: str,
        applicant_email: str,
    ) -> bool:
        if not self.user or not self.password:
            logger.warning("SMTP credentials not configured; skipping recruiter email for %s", job_title)
            return False

        message = build_application_email(
            sender=self.sender,
            recruiter_email=recruiter_email,
            job_title=job_title,
            cv_text=cv_text,
            cover_letter=cover_letter,
            applicant_email=applicant_email,
        )
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_sec) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.sendmail(self.sender, [recruiter_email], message.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to recruiter %s: %s", recruiter_email, exc)
            return False

        logger.info("Email sent to recruiter %s for %s", recruiter_email, job_title)
        return True


def build_application_email(
    *,
    sender: str,
    recruiter_email: str,
    job_title: str,
    cv_text: str,
    cover_letter: str,
    applicant_email: str,
) -> MIMEText:
    body = (
        f"A new application has been submitted for {job_title}.\n\n"
        f"Applicant Email: {applicant_email}\n\n"
        f"Cover Letter:\n{cover_letter}\n\n"
        f"CV:\n{cv_text}"
    )
    message = MIMEText(body, "plain", "utf-8")
    message["Subject"] = f"New Application for {job_title}"
    message["From"] = sender
    message["To"] = recruiter_email
    if applicant_email:
        message["Reply-To"] = applicant_email
    return message
