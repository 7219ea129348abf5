import logging

from notes_auth.errors import AuthError, ErrorKind
from notes_auth.services.email_service import (
    EmailTransport,
    reset_password_message,
    verification_email_template,
)
from notes_auth.services.sms_service import SmsTransport

logger = logging.getLogger(__name__)

VERIFICATION_CHANNELS = ("email", "phone")
RESET_PASSWORD_SUBJECT = "Reset your Notes App password"


class DispatchError(AuthError):
    def __init__(self, message: str):
        super().__init__(ErrorKind.INTERNAL, message)


class VerificationDispatcher:
    """Delivers one-time codes and reset links out of band."""

    def __init__(self, email: EmailTransport, sms: SmsTransport):
        self.email = email
        self.sms = sms

    @classmethod
    def from_settings(cls, settings) -> "VerificationDispatcher":
        return cls(EmailTransport.from_settings(settings), SmsTransport.from_settings(settings))

    async def send_code(self, channel: str, code: int, user) -> str:
        """Send ``code`` over ``channel`` and return a message naming the channel used."""
        if channel == "email":
            try:
                await self.email.send(user.email, "Your Verification Code", verification_email_template(code))
            except Exception as e:
                logger.error(f"[Dispatcher] Verification email to user {user.id} failed: {e}")
                raise DispatchError("Failed to send verification code. Please try again later.") from e
            return "OTP sent via email."
        elif channel == "phone":
            spaced = " ".join(str(code))
            try:
                await self.sms.send(user.phone, f"Your verification code is {spaced}")
            except Exception as e:
                logger.error(f"[Dispatcher] Verification SMS to user {user.id} failed: {e}")
                raise DispatchError("Failed to send verification code. Please try again later.") from e
            return "OTP sent via SMS."
        raise AuthError(ErrorKind.VALIDATION, "Invalid verification method")

    async def send_reset_link(self, email: str, reset_url: str) -> None:
        try:
            await self.email.send(email, RESET_PASSWORD_SUBJECT, reset_password_message(reset_url), html=False)
        except Exception as e:
            logger.error(f"[Dispatcher] Reset password email failed: {e}")
            raise DispatchError("Cannot send reset password token.") from e
