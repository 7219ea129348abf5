from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, cast

from fastapi.responses import JSONResponse
from jose import JWTError, jwt

from notes_auth.config import Settings
from notes_auth.errors import AuthError, ErrorKind
from notes_auth.schemas.user import serialize_user

COOKIE_NAME = "token"
SESSION_SCOPE = "session"

SamesiteType = Literal['lax', 'strict', 'none']


class SessionIssuer:
    """Signs and checks session tokens and delivers them as a cookie."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _secret(self) -> str:
        if not self.settings.jwt_secret:
            raise AuthError(ErrorKind.INTERNAL, "JWT secret key is not defined.")
        return self.settings.jwt_secret

    def _cookie_samesite(self) -> SamesiteType:
        v_lower = (self.settings.cookie_samesite or "").lower()
        return cast(SamesiteType, v_lower if v_lower in ("lax", "strict", "none") else "lax")

    def issue(self, user, expires_in_seconds: Optional[int] = None) -> str:
        to_encode = {"user_id": user.id, "email": user.email, "scope": SESSION_SCOPE}
        seconds = expires_in_seconds if expires_in_seconds is not None else self.settings.jwt_expires_in
        to_encode["exp"] = datetime.now(timezone.utc) + timedelta(seconds=seconds)
        return jwt.encode(to_encode, self._secret(), algorithm=self.settings.jwt_algorithm)

    def verify(self, token: str) -> dict:
        """Decode ``token``; jose's JWTError / ExpiredSignatureError propagate."""
        payload = jwt.decode(token, self._secret(), algorithms=[self.settings.jwt_algorithm])
        if payload.get("scope") != SESSION_SCOPE:
            raise JWTError("Token is not a session token")
        return payload

    def set_cookie(self, response, token: str) -> None:
        response.set_cookie(
            key=COOKIE_NAME,
            value=token,
            httponly=True,
            secure=self.settings.cookie_secure,
            samesite=self._cookie_samesite(),
            max_age=self.settings.cookie_expire_days * 24 * 60 * 60,
            path="/",
        )

    def clear_cookie(self, response) -> None:
        response.set_cookie(
            key=COOKIE_NAME,
            value="",
            httponly=True,
            secure=self.settings.cookie_secure,
            samesite=self._cookie_samesite(),
            expires=datetime.now(timezone.utc),
            path="/",
        )

    def send_token(self, user, status_code: int, message: str) -> JSONResponse:
        token = self.issue(user)
        response = JSONResponse(
            status_code=status_code,
            content={
                "success": True,
                "user": serialize_user(user),
                "message": message,
                "token": token,
            },
        )
        self.set_cookie(response, token)
        return response
