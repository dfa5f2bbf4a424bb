from __future__ import annotations

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .settings import Settings, settings as default_settings


def send_email(subject: str, body: str, cfg: Settings | None = None) -> bool:
    """Send an email if SMTP settings are configured.

    Environment variables:
      - STACKOPS_ENABLE_EMAIL=true
      - STACKOPS_SMTP_HOST / STACKOPS_SMTP_PORT
      - STACKOPS_SMTP_USER / STACKOPS_SMTP_PASSWORD
      - STACKOPS_EMAIL_FROM / STACKOPS_EMAIL_TO
    """
    cfg = cfg or default_settings
    if not cfg.enable_email:
        return False
    if not all(
        [
            cfg.smtp_host,
            cfg.smtp_port,
            cfg.smtp_user,
            cfg.smtp_password,
            cfg.email_from,
            cfg.email_to,
        ]
    ):
        return False

    try:
        msg = MIMEMultipart()
        msg["From"] = cfg.email_from
        msg["To"] = cfg.email_to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        server = smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=30)
        try:
            server.starttls()
            server.login(cfg.smtp_user, cfg.smtp_password)
            server.sendmail(cfg.email_from, [cfg.email_to], msg.as_string())
        finally:
            server.quit()
        return True
    except (smtplib.SMTPException, OSError):
        return False
