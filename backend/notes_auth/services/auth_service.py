"""
Authentication flows: registration, one-time-code verification, login,
password reset.

Each public coroutine is one request-level flow. Gates run in order and the
first failure raises an ``AuthError``; nothing here builds HTTP responses.
The check-then-act sequences (count attempts then create, verify a code then
clear it) are not atomic; the partial unique indexes on verified email/phone
are the only hard guarantee against concurrent requests.
"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from notes_auth.errors import AuthError, ErrorKind
from notes_auth.models.user import User, utcnow
from notes_auth.services import otp_service, password_service
from notes_auth.services.audit_log_service import log_auth_event, log_login_attempt
from notes_auth.services.dispatcher import VERIFICATION_CHANNELS, DispatchError, VerificationDispatcher
from notes_auth.services.user_store import UserStore

logger = logging.getLogger(__name__)

MINIMUM_AGE = 13
MAX_UNVERIFIED_ATTEMPTS = 3


def parse_date_of_birth(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    # Timestamps keep the calendar date the client sent, whatever its offset
    text = str(value).strip().split("T", 1)[0]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def age_on(birth: date, today: date) -> int:
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


class AuthService:
    def __init__(self, db: AsyncSession, dispatcher: VerificationDispatcher):
        self.db = db
        self.store = UserStore(db)
        self.dispatcher = dispatcher

    async def register(
        self,
        name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        password: Optional[str],
        date_of_birth: Optional[str],
        verification_method: Optional[str],
    ) -> str:
        if not (name and email and phone and password and verification_method and date_of_birth):
            raise AuthError(ErrorKind.VALIDATION, "All fields are required.")

        birth_date = parse_date_of_birth(date_of_birth)
        if birth_date is None:
            raise AuthError(ErrorKind.VALIDATION, "Invalid date of birth format.")
        if age_on(birth_date, utcnow().date()) < MINIMUM_AGE:
            raise AuthError(ErrorKind.VALIDATION, "You must be at least 13 years old to register.")

        if await self.store.find_one(email=email, phone=phone, verified=True):
            raise AuthError(ErrorKind.CONFLICT, "Phone or Email is already used.")

        attempts = await self.store.count(email=email, phone=phone, verified=False)
        if attempts >= MAX_UNVERIFIED_ATTEMPTS:
            raise AuthError(
                ErrorKind.RATE_LIMITED,
                "Exceeded maximum registration attempts (3). Try again after an hour.",
            )

        if verification_method not in VERIFICATION_CHANNELS:
            raise AuthError(ErrorKind.VALIDATION, "Invalid verification method. Supported: 'email' or 'phone'.")

        user = await self.store.create(
            name=name, email=email, phone=phone, password=password, date_of_birth=birth_date,
        )
        code = otp_service.generate_verification_code(user)
        await self.store.save(user, validate_modified_only=True)
        await log_auth_event(self.db, user.id, "register", f"verification_method={verification_method}")

        sent = await self.dispatcher.send_code(verification_method, code, user)
        logger.info(f"Registered user {user.id}, code sent via {verification_method}")
        return f"User registered successfully. {sent}"

    async def request_otp(self, email: Optional[str], phone: Optional[str], login_method: Optional[str]) -> str:
        if not login_method:
            raise AuthError(ErrorKind.VALIDATION, "Login method is required.")
        if login_method != "otp":
            raise AuthError(ErrorKind.VALIDATION, "Invalid login method for OTP request.")
        if not email and not phone:
            raise AuthError(ErrorKind.VALIDATION, "Email or phone number is required for OTP login.")

        user = await self.store.find_one(email=email, phone=phone, verified=True)
        if not user:
            raise AuthError(ErrorKind.NOT_FOUND, "User not found or account not verified.")

        if user.email:
            channel = "email"
        elif user.phone:
            channel = "phone"
        else:
            raise AuthError(ErrorKind.VALIDATION, "User has no email or phone registered.")

        code = otp_service.generate_verification_code(user)
        await self.store.save(user, validate_modified_only=True)
        await log_auth_event(self.db, user.id, "otp_requested", f"channel={channel}")

        await self.dispatcher.send_code(channel, code, user)
        return f"OTP sent successfully via {channel}."

    async def verify_otp(self, email: Optional[str], phone: Optional[str], otp: Any) -> User:
        if (not email and not phone) or not otp:
            raise AuthError(ErrorKind.VALIDATION, "Email or Phone and OTP are required.")

        entries = await self.store.find_all(email=email, phone=phone, verified=False)
        if not entries:
            raise AuthError(ErrorKind.NOT_FOUND, "User not found or already verified.")

        user = entries[0]
        if len(entries) > 1:
            removed = await self.store.delete_many(email=email, phone=phone, verified=False, exclude_id=user.id)
            logger.info(f"Removed {removed} stale unverified registrations for user {user.id}")

        otp_service.verify_code(user, otp)

        user.account_verified = True
        otp_service.clear_verification_code(user)
        await self.store.save(user, validate_modified_only=True)
        await self.store.delete_many(email=user.email, phone=user.phone, verified=False, exclude_id=user.id)
        await log_auth_event(self.db, user.id, "account_verified")
        return user

    async def login(
        self,
        email: Optional[str],
        login_method: Optional[str],
        password: Optional[str] = None,
        otp: Any = None,
    ) -> User:
        if not email or not login_method:
            raise AuthError(ErrorKind.VALIDATION, "Email and login method are required.")

        if login_method == "password":
            if not password:
                raise AuthError(ErrorKind.VALIDATION, "Password is required for password-based login.")
            user = await self.store.find_one(email=email, verified=True, with_password=True)
            if not user or not await password_service.verify_password(password, user.password):
                await log_login_attempt(self.db, user.id if user else None, login_method, "failure")
                raise AuthError(ErrorKind.VALIDATION, "Invalid email or password.")
        elif login_method == "otp":
            if not otp:
                raise AuthError(ErrorKind.VALIDATION, "OTP is required for OTP-based login.")
            user = await self.store.find_one(email=email, verified=True)
            if not user:
                await log_login_attempt(self.db, None, login_method, "failure")
                raise AuthError(ErrorKind.VALIDATION, "Invalid email or OTP.")
            try:
                otp_service.verify_code(user, otp)
            except AuthError:
                await log_login_attempt(self.db, user.id, login_method, "failure")
                raise
            otp_service.clear_verification_code(user)
        else:
            raise AuthError(ErrorKind.VALIDATION, "Invalid login method. Use 'password' or 'otp'.")

        if user.login_method != login_method:
            user.login_method = login_method
        await self.store.save(user, validate_modified_only=True)
        await log_login_attempt(self.db, user.id, login_method, "success")
        return user

    async def forgot_password(self, email: Optional[str], web_base: str) -> str:
        user = await self.store.find_one(email=email, verified=True)
        if not user:
            raise AuthError(ErrorKind.NOT_FOUND, "User not found.")

        token = password_service.issue_reset_token(user)
        await self.store.save(user, validate=False)
        reset_url = f"{web_base.rstrip('/')}/password/reset/{token}"

        try:
            await self.dispatcher.send_reset_link(user.email, reset_url)
        except DispatchError:
            password_service.clear_reset_token(user)
            await self.store.save(user, validate=False)
            raise

        await log_auth_event(self.db, user.id, "password_reset_requested")
        return f"Email sent to {user.email} successfully."

    async def reset_password(self, token: str, password: Optional[str], confirm_password: Optional[str]) -> User:
        token_hash = password_service.hash_reset_token(token)
        user = await self.store.find_by_reset_token(token_hash)
        if not user:
            raise AuthError(ErrorKind.TOKEN_INVALID_OR_EXPIRED, "Reset password token is invalid or has expired.")

        if password != confirm_password:
            raise AuthError(ErrorKind.VALIDATION, "Password & confirm password do not match.")

        user.password = password
        password_service.clear_reset_token(user)
        await self.store.save(user)
        await log_auth_event(self.db, user.id, "password_reset")
        return user
