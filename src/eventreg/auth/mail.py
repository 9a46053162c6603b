# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import re
import smtplib
from email.message import EmailMessage
from typing import Protocol

from jinja2 import Environment, FileSystemLoader, select_autoescape

from eventreg.config import BASE_DIR, Settings
from eventreg.errors import UpstreamFailure

logger = logging.getLogger(__name__)

_env = Environment(
    loader=FileSystemLoader(str(BASE_DIR / "templates")),
    autoescape=select_autoescape(["html"]),
)


class Mailer(Protocol):
    def send_mail(self, to: str, subject: str, html_body: str) -> None: ...


def html_to_plain_text(s: str) -> str:
    s = s.replace("<p>", "\n\n")
    s = re.sub(r"<br\s*/?>", "\n", s)
    s = re.sub(r"</?[^>]*>", "", s)
    return s.strip()


def render_login_mail(code: str, website_host: str) -> tuple[str, str]:
    """Return (subject, html_body) for a login code mail."""
    subject = f"Dein Anmeldecode lautet {code}"
    body = _env.get_template("login_code.html").render(code=code, website_host=website_host)
    return subject, body


def _build_message(sender: str, to: str, subject: str, html_body: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(html_to_plain_text(html_body), charset="utf-8")
    msg.add_alternative(html_body, subtype="html", charset="utf-8")
    return msg


class SmtpMailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    def send_mail(self, to: str, subject: str, html_body: str) -> None:
        s = self.settings
        msg = _build_message(s.smtp_from, to, subject, html_body)
        try:
            with smtplib.SMTP(s.smtp_server, s.smtp_port, local_hostname=s.smtp_domain or None, timeout=30) as smtp:
                smtp.starttls()
                if s.smtp_user:
                    smtp.login(s.smtp_user, s.smtp_password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise UpstreamFailure(f"mail delivery to {to} failed: {e}") from e


class LogMailer:
    """Development mailer: writes the message to the log instead of sending it."""

    def __init__(self, sender: str = "Anmeldung <noreply@localhost>"):
        self.sender = sender

    def send_mail(self, to: str, subject: str, html_body: str) -> None:
        logger.info(
            "Not sending mail in development mode!\n%s\nFrom:    %s\nTo:      %s\nSubject: %s\n%s\n%s",
            "-" * 40,
            self.sender,
            to,
            subject,
            html_to_plain_text(html_body),
            "-" * 40,
        )


def mailer_for(settings: Settings) -> Mailer:
    if settings.development or not settings.smtp_server:
        return LogMailer(settings.smtp_from)
    return SmtpMailer(settings)
