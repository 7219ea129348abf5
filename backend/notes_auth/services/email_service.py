import logging
import smtplib
from email.mime.text import MIMEText
from typing import Optional

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class EmailConfigError(RuntimeError):
    pass


class EmailTransport:
    """SMTP sender. Each message opens its own STARTTLS connection."""

    def __init__(self, host: Optional[str], port: int, sender: Optional[str], password: Optional[str]):
        self.host = host
        self.port = port
        self.sender = sender
        self.password = password

    @classmethod
    def from_settings(cls, settings) -> "EmailTransport":
        return cls(settings.smtp_host, settings.smtp_port, settings.smtp_mail, settings.smtp_password)

    def _send_sync(self, to_email: str, subject: str, body: str, subtype: str) -> None:
        if not self.host or not self.sender or not self.password:
            raise EmailConfigError("Email configuration missing - SMTP_HOST, SMTP_MAIL or SMTP_PASSWORD not set")

        msg = MIMEText(body, subtype)
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email

        with smtplib.SMTP(self.host, self.port) as server:
            server.starttls()
            server.login(self.sender, self.password)
            server.sendmail(self.sender, [to_email], msg.as_string())

    async def send(self, to_email: str, subject: str, body: str, html: bool = True) -> None:
        await run_in_threadpool(self._send_sync, to_email, subject, body, "html" if html else "plain")
        logger.info(f"[EmailService] Sent '{subject}' to {to_email}")


def verification_email_template(code) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif;">
      <h2>Verification Code</h2>
      <p>Your verification code is: <strong>{code}</strong></p>
      <p>Please use this code to verify your account. It expires in 10 minutes.</p>
    </div>
    """


def reset_password_message(reset_url: str) -> str:
    return (
        f"Your Reset Password Token is:- \n\n {reset_url} \n\n "
        "If you have not requested this email then please ignore it."
    )
