# File: backend/carmarket/core/notifications.py

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from carmarket.core.config import (
    EMAIL_FROM,
    EMAIL_HOST,
    EMAIL_PASS,
    EMAIL_PORT,
    EMAIL_TIMEOUT,
    EMAIL_USER,
)

logger = logging.getLogger(__name__)

WELCOME_TEMPLATE = """
<h2>Welcome to Car Marketplace, {name}!</h2>
<p>Your account <strong>{username}</strong> is ready.</p>
<p>You can now list your cars for sale or rent and browse listings from other sellers.</p>
"""


def build_welcome_message(email: str, username: str, first_name: Optional[str] = None) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = "Welcome - Car Website"
    msg["From"] = EMAIL_FROM
    msg["To"] = email
    name = first_name or username
    msg.set_content(f"Welcome, {name}! Your account {username} is ready.")
    msg.add_alternative(WELCOME_TEMPLATE.format(name=name, username=username), subtype="html")
    return msg


def send_email(msg: EmailMessage) -> None:
    """
    Deliver one message over SMTP. Raises on any failure; callers that
    must not fail wrap this.
    """
    with smtplib.SMTP(EMAIL_HOST, EMAIL_PORT, timeout=EMAIL_TIMEOUT) as smtp:
        smtp.ehlo()
        if smtp.has_extn("starttls"):
            smtp.starttls()
            smtp.ehlo()
        if EMAIL_USER and EMAIL_PASS:
            smtp.login(EMAIL_USER, EMAIL_PASS)
        smtp.send_message(msg)


def send_welcome_email(email: str, username: str, first_name: Optional[str] = None) -> None:
    """
    Best-effort welcome mail, scheduled as a background task after
    registration. Failures are logged and go no further.
    """
    if not EMAIL_HOST:
        logger.warning("EMAIL_HOST not set; skipping welcome email to %s", email)
        return
    try:
        send_email(build_welcome_message(email, username, first_name))
        logger.info("Welcome email sent to %s", email)
    except Exception:
        logger.exception("Failed to send welcome email to %s", email)
