"""
Notification Service

Delivers OTP codes by email. SMTP is used when SMTP_HOST is configured;
otherwise codes are written to the application log (development).
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage

from election_backend.config.settings import settings
from election_backend.errors import UnavailableError
from election_backend.orm.otp import OTPPurpose

logger = logging.getLogger(__name__)

SUBJECTS = {
    OTPPurpose.verification: "Verify your email for the election portal",
    OTPPurpose.reset: "Password reset code for the election portal",
}


def build_otp_message(email: str, code: str, purpose: OTPPurpose) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.SMTP_FROM
    message["To"] = email
    message["Subject"] = SUBJECTS[purpose]
    message.set_content(
        f"Your one-time code is {code}. It expires in {settings.OTP_EXPIRE_MINUTES} minutes."
    )
    return message


class Notifier:
    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> None:
        logger.info(f"[dev mail] {purpose.value} OTP for {email}: {code}")


class SMTPNotifier(Notifier):
    def __init__(self, host: str, port: int, username: str = "", password: str = "", use_tls: bool = True):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=settings.UPSTREAM_TIMEOUT_SECONDS) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> None:
        message = build_otp_message(email, code, purpose)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"OTP delivery to {email} failed: {e}")
            raise UnavailableError("Could not send the verification email. Please retry.")

        logger.info(f"{purpose.value} OTP sent to {email}")


def get_notifier() -> Notifier:
    """FastAPI dependency returning the configured notifier."""
    if settings.SMTP_HOST:
        return SMTPNotifier(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            settings.SMTP_USERNAME,
            settings.SMTP_PASSWORD,
            settings.SMTP_USE_TLS,
        )
    return LoggingNotifier()
