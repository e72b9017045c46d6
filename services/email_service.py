"""
E-mail channel of the notification gateway (plain SMTP).
"""
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Tuple

from core.config import settings


def _credentials_block(payload: dict) -> str:
    credentials = payload.get("credentials")
    if not credentials:
        return ""
    return (
        "<div style=\"background:#065F46;border-radius:8px;padding:16px;\">"
        "<h3>Match information</h3>"
        f"<p><strong>Room ID:</strong> <code>{credentials['room_id']}</code></p>"
        f"<p><strong>Password:</strong> <code>{credentials['room_password']}</code></p>"
        f"<p><strong>Party code:</strong> <code>{credentials['party_code']}</code></p>"
        "</div>"
    )


def render_email(kind: str, payload: dict) -> Tuple[str, str]:
    """Subject and HTML body for a notification"""
    name = payload.get("tournament_name", "your tournament")

    if kind == "tournament_reminder":
        minutes = payload.get("minutes", "")
        subject = f"Tournament Reminder: {name} - {minutes} minutes to start!"
        body = f"<h2>{name}</h2><p>Starting in {minutes} minutes. Get ready!</p>" + _credentials_block(payload)
    elif kind == "payment_status":
        approved = payload.get("status") == "approved"
        subject = f"Payment {'Approved' if approved else 'Rejected'}: {name}"
        body = (
            f"<p><strong>Tournament:</strong> {name}</p>"
            f"<p><strong>Amount:</strong> {payload.get('amount', '')}</p>"
        )
        if approved:
            body += "<p>Your payment has been verified. You are in!</p>"
        else:
            reason = payload.get("reason")
            body += "<p>Your payment could not be verified. You can join again and submit a corrected payment.</p>"
            if reason:
                body += f"<p><strong>Reason:</strong> {reason}</p>"
    elif kind == "tournament_cancelled":
        subject = f"Tournament Cancelled: {name}"
        body = f"<p>{name} has been cancelled. Contact support about refunds.</p>"
    elif kind == "website_order_approved":
        subject = "Website Source Code Download Link"
        body = (
            f"<p>Your purchase has been approved. Download: "
            f"<a href=\"{payload.get('download_url')}\">{payload.get('download_url')}</a></p>"
            f"<p>The link expires {payload.get('expires_at')} and works once.</p>"
        )
    elif kind == "password_reset":
        subject = "Reset your password"
        body = (
            f"<p>Reset your password here: "
            f"<a href=\"{payload.get('reset_url')}\">{payload.get('reset_url')}</a></p>"
            f"<p>The link expires {payload.get('expires_at')} and works once. "
            f"If you did not ask for this, ignore this e-mail.</p>"
        )
    else:
        subject = "Notification"
        body = f"<p>{payload}</p>"

    return subject, f"<div style=\"font-family:Inter,sans-serif;\">{body}</div>"


class EmailService:
    def __init__(self, host: str = None, port: int = None, user: str = None,
                 password: str = None, from_email: str = None, timeout: float = 10):
        self.host = settings.smtp_host if host is None else host
        self.port = port or settings.smtp_port
        self.user = settings.smtp_user if user is None else user
        self.password = settings.smtp_password if password is None else password
        self.from_email = from_email or settings.from_email
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def send(self, to_email: str, kind: str, payload: dict):
        """Blocking send; run it in a worker thread from async code"""
        subject, html = render_email(kind, payload)
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.sendmail(self.from_email, [to_email], msg.as_string())
