import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from notes_auth.errors import AuthError, ErrorKind
from notes_auth.models.user import User, utcnow

OTP_TTL = timedelta(minutes=10)


def _random_code() -> int:
    # Five digits, never a leading zero
    first = secrets.randbelow(9) + 1
    rest = secrets.randbelow(10000)
    return first * 10000 + rest


def generate_verification_code(user: User, now: Optional[datetime] = None) -> int:
    """Set a new code and its expiry on ``user`` and return the code. Caller persists."""
    code = _random_code()
    user.verification_code = code
    user.verification_code_expire = (now or utcnow()) + OTP_TTL
    return code


def coerce_code(value: Any) -> Optional[int]:
    """Numeric reading of a submitted code, or None when it is not a whole number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def verify_code(user: User, supplied: Any, now: Optional[datetime] = None) -> None:
    """Raise unless ``supplied`` is the unexpired code on file. Leaves the record untouched."""
    if not user.verification_code:
        raise AuthError(ErrorKind.INVALID_CODE, "OTP not found for this user.")
    if coerce_code(supplied) != user.verification_code:
        raise AuthError(ErrorKind.INVALID_CODE, "Invalid OTP.")
    if user.verification_code_expire is None:
        raise AuthError(ErrorKind.CODE_EXPIRED, "OTP expiration information is missing.")
    if (now or utcnow()) > user.verification_code_expire:
        raise AuthError(ErrorKind.CODE_EXPIRED, "OTP has expired.")


def clear_verification_code(user: User) -> None:
    user.verification_code = None
    user.verification_code_expire = None
