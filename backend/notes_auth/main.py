from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response

from notes_auth.api.auth import build_router
from notes_auth.config import Settings, validate_environment
from notes_auth.database import Database
from notes_auth.errors import register_exception_handlers
from notes_auth.security import SecurityConfig, logger
from notes_auth.services.dispatcher import VerificationDispatcher
from notes_auth.services.rate_limit import build_limiter
from notes_auth.services.token_service import SessionIssuer


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await app.state.database.create_all()
    except Exception as e:
        logger.error(f"[Startup] Table creation failed: {e}")
        raise
    yield
    await app.state.database.dispose()


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[VerificationDispatcher] = None) -> FastAPI:
    """Build the API with its collaborators attached to ``app.state``."""
    settings = settings or Settings()
    validate_environment(settings)

    app = FastAPI(title="Notes Auth Backend", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = Database(settings.database_uri)
    app.state.dispatcher = dispatcher or VerificationDispatcher.from_settings(settings)
    app.state.session_issuer = SessionIssuer(settings)
    app.state.limiter = build_limiter(settings)

    # JSON error responses
    register_exception_handlers(app, include_stack=settings.is_development)

    # Security headers, CORS, access log
    SecurityConfig(settings).apply_security_middleware(app)

    # Basic routes
    @app.get("/")
    def root():
        return {"message": "Notes auth API is running.", "status": "healthy"}

    @app.head("/")
    def root_head():
        return Response(status_code=200)

    @app.get("/health")
    def health_check(request: Request):
        database: Database = request.app.state.database
        return {
            "status": "ok",
            "database": "connected" if database.configured else "not configured",
        }

    # Routers
    app.include_router(build_router(app.state.limiter), prefix="/api/v1")

    return app


app = create_app()
