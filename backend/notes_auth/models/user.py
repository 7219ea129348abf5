from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, Index, text
from sqlalchemy.orm import declarative_base, deferred
from sqlalchemy.types import TypeDecorator
from datetime import datetime, timezone

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back in UTC, SQLite included."""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(30), nullable=False)
    email = Column(String, index=True, nullable=False)
    phone = Column(String, index=True, nullable=True)
    # Never loaded unless a query asks for it with undefer()
    password = deferred(Column(String, nullable=False))
    date_of_birth = Column(Date, nullable=True)
    account_verified = Column(Boolean, default=False, nullable=False)
    verification_code = Column(Integer, nullable=True)
    verification_code_expire = Column(UTCDateTime, nullable=True)
    reset_password_token = Column(String, index=True, nullable=True)
    reset_password_expire = Column(UTCDateTime, nullable=True)
    login_method = Column(String, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Only one verified account per email / phone; unverified attempts may repeat.
    __table_args__ = (
        Index(
            "uq_users_verified_email", "email", unique=True,
            postgresql_where=text("account_verified"),
            sqlite_where=text("account_verified = 1"),
        ),
        Index(
            "uq_users_verified_phone", "phone", unique=True,
            postgresql_where=text("account_verified"),
            sqlite_where=text("account_verified = 1"),
        ),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} verified={self.account_verified}>"
