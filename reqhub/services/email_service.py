"""Outgoing email.

Two backends: ``console`` logs the message (development, tests) and ``smtp``
delivers through aiosmtplib. Delivery problems are reported through the return
value so callers can decide whether they matter.
"""
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from reqhub.core.config import Settings
from reqhub.utils.template_loader import load_template

logger = logging.getLogger(__name__)

SUBJECTS = {
    "password_reset": "Password Reset Request - RequirementsHub",
}
SMTP_TIMEOUT = 30


def render_email(template: str, **context):
    subject = SUBJECTS[template]
    html = load_template(f"{template}.html", **context)
    text = load_template(f"{template}.txt", **context)
    return subject, html, text


def _build_message(settings: Settings, to_email: str, subject: str, html: str, text: str) -> MIMEMultipart:
    message = MIMEMultipart("alternative")
    message["From"] = settings.email_from
    message["To"] = to_email
    message["Subject"] = subject
    message.attach(MIMEText(text, "plain", "utf-8"))
    message.attach(MIMEText(html, "html", "utf-8"))
    return message


async def send_email(settings: Settings, to_email: str, template: str, **context) -> bool:
    subject, html, text = render_email(template, **context)

    if settings.email_backend != "smtp" or not settings.smtp_host:
        logger.info("[Email] (console) To: %s | Subject: %s\n%s", to_email, subject, text)
        return True

    message = _build_message(settings, to_email, subject, html, text)
    try:
        await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            start_tls=settings.smtp_use_tls,
            timeout=SMTP_TIMEOUT,
        )
    except (aiosmtplib.SMTPException, OSError):
        logger.exception("[Email] SMTP delivery to %s failed", to_email)
        return False
    logger.info("[Email] Sent '%s' to %s", subject, to_email)
    return True
