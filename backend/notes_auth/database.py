import logging
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from notes_auth.errors import AuthError, ErrorKind
from notes_auth.models import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine and session factory for one process, created by the app factory."""

    def __init__(self, uri: Optional[str], echo: bool = False):
        self.uri = uri
        if uri:
            kwargs = {}
            if uri.startswith("sqlite") and ":memory:" in uri:
                # One shared connection, otherwise every session sees an empty database
                kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
            self.engine: Optional[AsyncEngine] = create_async_engine(uri, echo=echo, **kwargs)
            self.sessionmaker = async_sessionmaker(bind=self.engine, class_=AsyncSession, expire_on_commit=False)
        else:
            self.engine = None
            self.sessionmaker = None

    @property
    def configured(self) -> bool:
        return self.engine is not None

    async def create_all(self) -> None:
        if self.engine is None:
            logger.warning("DATABASE_URI not set; skipping table creation")
            return
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


# Database dependency
async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    if database.sessionmaker is None:
        raise AuthError(ErrorKind.INTERNAL, "Database connection not available")
    async with database.sessionmaker() as session:
        yield session
