from urllib.parse import urlparse

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from sqlalchemy.ext.asyncio import AsyncSession

from notes_auth.database import get_db
from notes_auth.middlewares.auth import get_current_user, get_session_issuer
from notes_auth.models.user import User
from notes_auth.schemas.auth import (
    ForgotPasswordRequest, LoginRequest, RegisterRequest, RequestOTPRequest, ResetPasswordRequest, VerifyOTPRequest,
)
from notes_auth.schemas.user import serialize_user
from notes_auth.services.auth_service import AuthService
from notes_auth.services.dispatcher import VerificationDispatcher
from notes_auth.services.rate_limit import AUTH_LIMIT, VERIFY_LIMIT
from notes_auth.services.token_service import SessionIssuer


def get_dispatcher(request: Request) -> VerificationDispatcher:
    return request.app.state.dispatcher


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    dispatcher: VerificationDispatcher = Depends(get_dispatcher),
) -> AuthService:
    return AuthService(db, dispatcher)


# Public web base for user-facing links (emails). Prefer explicit config; fall back to the request
def _public_web_base(request: Request) -> str:
    configured = request.app.state.settings.frontend_url
    if configured:
        return configured.rstrip("/")
    ref = request.headers.get("referer")
    if ref and ref.startswith("http"):
        p = urlparse(ref)
        if p.scheme and p.netloc:
            return f"{p.scheme}://{p.netloc}"
    return str(request.base_url).rstrip("/")


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "message": message})


def build_router(limiter: Limiter) -> APIRouter:
    """User routes, rate limited by the app's own ``limiter``."""
    router = APIRouter(prefix="/user", tags=["user"])

    @router.post("/register")
    @limiter.limit(AUTH_LIMIT)
    async def register(request: Request, data: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
        message = await auth.register(
            name=data.name,
            email=data.email,
            phone=data.phone,
            password=data.password,
            date_of_birth=data.date_of_birth,
            verification_method=data.verification_method,
        )
        return _message(201, message)

    @router.post("/verify-otp")
    @limiter.limit(VERIFY_LIMIT)
    async def verify_otp(
        request: Request,
        data: VerifyOTPRequest,
        auth: AuthService = Depends(get_auth_service),
        issuer: SessionIssuer = Depends(get_session_issuer),
    ):
        user = await auth.verify_otp(email=data.email, phone=data.phone, otp=data.otp)
        return issuer.send_token(user, 200, "Account Verified.")

    @router.post("/login")
    @limiter.limit(AUTH_LIMIT)
    async def login(
        request: Request,
        data: LoginRequest,
        auth: AuthService = Depends(get_auth_service),
        issuer: SessionIssuer = Depends(get_session_issuer),
    ):
        user = await auth.login(email=data.email, login_method=data.login_method, password=data.password, otp=data.otp)
        return issuer.send_token(user, 200, "User logged in successfully.")

    # Request OTP for OTP-based login
    @router.post("/login/otp")
    @limiter.limit(AUTH_LIMIT)
    async def request_otp(request: Request, data: RequestOTPRequest, auth: AuthService = Depends(get_auth_service)):
        message = await auth.request_otp(email=data.email, phone=data.phone, login_method=data.login_method)
        return _message(200, message)

    @router.get("/logout")
    async def logout(issuer: SessionIssuer = Depends(get_session_issuer)):
        response = _message(200, "Logged out successfully.")
        issuer.clear_cookie(response)
        return response

    @router.get("/me")
    async def me(user: User = Depends(get_current_user)):
        return {"success": True, "user": serialize_user(user)}

    @router.post("/password/forgot")
    @limiter.limit(AUTH_LIMIT)
    async def forgot_password(request: Request, data: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
        message = await auth.forgot_password(email=data.email, web_base=_public_web_base(request))
        return _message(200, message)

    @router.put("/password/reset/{token}")
    @limiter.limit(VERIFY_LIMIT)
    async def reset_password(
        request: Request,
        token: str,
        data: ResetPasswordRequest,
        auth: AuthService = Depends(get_auth_service),
        issuer: SessionIssuer = Depends(get_session_issuer),
    ):
        user = await auth.reset_password(token=token, password=data.password, confirm_password=data.confirm_password)
        return issuer.send_token(user, 200, "Reset Password Successfully.")

    return router
