"""
tests/test_notifications.py -- Best-effort welcome email.
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

from carmarket.core import notifications


def test_welcome_message_contents() -> None:
    msg = notifications.build_welcome_message("zoe@example.com", "zoe", "Zoe")
    assert msg["To"] == "zoe@example.com"
    assert msg["Subject"] == "Welcome - Car Website"
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "Welcome to Car Marketplace, Zoe!" in html
    assert "<strong>zoe</strong>" in html


def test_falls_back_to_username_without_first_name() -> None:
    msg = notifications.build_welcome_message("zoe@example.com", "zoe")
    assert "Welcome, zoe!" in msg.get_body(preferencelist=("plain",)).get_content()


def test_skipped_without_smtp_host(monkeypatch, caplog) -> None:
    monkeypatch.setattr(notifications, "EMAIL_HOST", "")
    with patch.object(notifications, "send_email") as send, caplog.at_level(logging.WARNING):
        notifications.send_welcome_email("zoe@example.com", "zoe")
    send.assert_not_called()
    assert "skipping welcome email" in caplog.text


def test_failure_is_logged_not_raised(monkeypatch, caplog) -> None:
    monkeypatch.setattr(notifications, "EMAIL_HOST", "smtp.example.com")
    with patch.object(notifications, "send_email", side_effect=ConnectionRefusedError("no smtp")):
        with caplog.at_level(logging.ERROR):
            notifications.send_welcome_email("zoe@example.com", "zoe")
    assert "Failed to send welcome email to zoe@example.com" in caplog.text


def test_send_email_uses_starttls_and_login(monkeypatch) -> None:
    monkeypatch.setattr(notifications, "EMAIL_HOST", "smtp.example.com")
    monkeypatch.setattr(notifications, "EMAIL_USER", "mailer")
    monkeypatch.setattr(notifications, "EMAIL_PASS", "hunter2")
    smtp = MagicMock()
    smtp.has_extn.return_value = True
    with patch("carmarket.core.notifications.smtplib.SMTP") as smtp_cls:
        smtp_cls.return_value.__enter__.return_value = smtp
        notifications.send_email(notifications.build_welcome_message("zoe@example.com", "zoe"))

    smtp_cls.assert_called_once_with("smtp.example.com", notifications.EMAIL_PORT, timeout=notifications.EMAIL_TIMEOUT)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("mailer", "hunter2")
    smtp.send_message.assert_called_once()
