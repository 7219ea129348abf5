from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notes_auth.database import get_db
from notes_auth.errors import AuthError, ErrorKind
from notes_auth.models.user import User
from notes_auth.services.token_service import COOKIE_NAME, SessionIssuer
from notes_auth.services.user_store import UserStore


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.session_issuer


def _extract_session_token(request: Request) -> str | None:
    cookie_token = request.cookies.get(COOKIE_NAME)
    if cookie_token:
        return cookie_token
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth.split(" ", 1)[1]
    return None


# Dependency resolving the session cookie to a user; jose errors reach the error handlers.
async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> User:
    token = _extract_session_token(request)
    if not token:
        raise AuthError(ErrorKind.UNAUTHORIZED, "User is not authenticated.")
    payload = issuer.verify(token)
    user_id = payload.get("user_id")
    user = await UserStore(db).get(user_id) if user_id is not None else None
    if not user:
        raise AuthError(ErrorKind.UNAUTHORIZED, "User not found.")
    return user
