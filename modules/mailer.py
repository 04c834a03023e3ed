"""Deliver the results archive by email.

Two transports:
  - smtp   : a mail relay (host required; port, TLS mode and login optional)
  - resend : the Resend HTTP API (RESEND_API_KEY)

Unlike the informational daily emails, delivery here is the point of the run,
so every failure is raised as NotificationError instead of being printed.
"""
import base64
import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Dict

import requests

from config.settings import ExportSettings
from modules.errors import NotificationError

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


def build_message(settings: ExportSettings, subject: str, text_body: str, attachment_path: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = settings.from_email
    msg["To"] = ", ".join(settings.recipients)
    msg["Subject"] = subject
    msg.set_content(text_body)

    with open(attachment_path, "rb") as f:
        data = f.read()
    msg.add_attachment(
        data,
        maintype="application",
        subtype="zip",
        filename=os.path.basename(attachment_path),
    )
    return msg


def send_via_smtp(settings: ExportSettings, subject: str, text_body: str, attachment_path: str) -> None:
    msg = build_message(settings, subject, text_body, attachment_path)

    # Port 0 lets smtplib pick the default for the connection class
    port = settings.smtp_port or 0
    if settings.smtp_security == "ssl":
        server = smtplib.SMTP_SSL(settings.smtp_host, port, timeout=30)
    else:
        server = smtplib.SMTP(settings.smtp_host, port, timeout=30)

    with server:
        if settings.smtp_security == "starttls":
            server.starttls()
        if settings.smtp_user:
            server.login(settings.smtp_user, settings.smtp_password)
        server.send_message(msg)


def send_via_resend(settings: ExportSettings, subject: str, text_body: str, attachment_path: str) -> None:
    with open(attachment_path, "rb") as f:
        content = base64.b64encode(f.read()).decode("ascii")

    headers = {
        "Authorization": f"Bearer {settings.resend_api_key}",
        "Content-Type": "application/json",
    }
    data: Dict[str, object] = {
        "from": settings.from_email,
        "to": list(settings.recipients),
        "subject": subject,
        "text": text_body,
        "attachments": [
            {"filename": os.path.basename(attachment_path), "content": content},
        ],
    }
    resp = requests.post(RESEND_URL, json=data, headers=headers, timeout=30)
    resp.raise_for_status()


def send_archive_email(settings: ExportSettings, subject: str, text_body: str, attachment_path: str) -> None:
    """Send `attachment_path` to every configured recipient."""
    logger.info(
        f"Sending results email to {', '.join(settings.recipients)} via {settings.mail_transport}..."
    )
    try:
        if settings.mail_transport == "resend":
            send_via_resend(settings, subject, text_body, attachment_path)
        else:
            send_via_smtp(settings, subject, text_body, attachment_path)
    except requests.RequestException as e:
        detail = ""
        if getattr(e, "response", None) is not None:
            detail = f" ({e.response.text})"
        raise NotificationError(f"Failed to send email: {e}{detail}") from e
    except (smtplib.SMTPException, OSError) as e:
        raise NotificationError(f"Failed to send email: {e}") from e
    logger.info("Email sent successfully.")
