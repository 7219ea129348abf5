"""
HTTP hardening for the notes auth backend: CORS, trusted hosts, compression,
security headers and request logging.
"""

import os
import time
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.datastructures import MutableHeaders

from notes_auth.config import Settings

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)
access_logger = logging.getLogger("notes_auth.access")

# JSON-only API: no framing, no sniffing, no caching of session responses
API_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}
HSTS_HEADER = "max-age=15552000; includeSubDomains"


class SecurityConfig:
    def __init__(self, settings: Settings):
        self.environment = settings.environment
        self.allowed_hosts = settings.allowed_hosts
        self.cors_origins = settings.cors_origins

    def apply_security_middleware(self, app: FastAPI) -> None:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=self.allowed_hosts)
        app.add_middleware(GZipMiddleware, minimum_size=1000)
        app.add_middleware(SecurityHeadersMiddleware, production=self.environment == "production")
        app.add_middleware(RequestLoggingMiddleware)

        # CORS outermost so error responses carry CORS headers too; the session cookie needs credentials
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

        logger.info(f"Security middleware applied for environment: {self.environment}")


class SecurityHeadersMiddleware:
    def __init__(self, app, production: bool = False):
        self.app = app
        self.headers = dict(API_SECURITY_HEADERS)
        if production:
            self.headers["Strict-Transport-Security"] = HSTS_HEADER

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        async def send_with_headers(message):
            if message.get("type") == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    headers.setdefault(name, value)
            await send(message)

        return await self.app(scope, receive, send_with_headers)


class RequestLoggingMiddleware:
    """One access log line per HTTP request: method, path, status, duration."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        started = time.perf_counter()
        status_holder = {"status": 500}

        async def send_with_status(message):
            if message.get("type") == "http.response.start":
                status_holder["status"] = message.get("status", 500)
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            client = scope.get("client") or ("-", 0)
            access_logger.info(
                f'{client[0]} "{scope.get("method")} {scope.get("path")}" {status_holder["status"]} {elapsed_ms:.1f}ms'
            )
