"""
Credential store: every read and write of ``users`` goes through here.

Writes are validated first (``validate_user_fields``), the password is hashed
only when it changed, and unique-index violations come back as Conflict.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, inspect, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from notes_auth.errors import AuthError, ErrorKind
from notes_auth.models.user import User, utcnow
from notes_auth.schemas.user import validate_user_fields
from notes_auth.services.password_service import hash_password

logger = logging.getLogger(__name__)

VALIDATED_COLUMNS = ("name", "email", "phone", "date_of_birth")


class UserStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _criteria(self, email: Optional[str], phone: Optional[str], verified: Optional[bool]):
        contacts = []
        if email:
            contacts.append(User.email == email)
        if phone:
            contacts.append(User.phone == phone)
        clauses = []
        if contacts:
            clauses.append(or_(*contacts))
        if verified is not None:
            clauses.append(User.account_verified.is_(verified))
        return clauses

    async def find_one(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        verified: Optional[bool] = None,
        with_password: bool = False,
    ) -> Optional[User]:
        if not email and not phone:
            return None
        stmt = select(User).where(*self._criteria(email, phone, verified)).order_by(User.created_at.desc(), User.id.desc())
        if with_password:
            stmt = stmt.options(undefer(User.password))
        result = await self.db.execute(stmt.limit(1))
        return result.scalars().first()

    async def find_all(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        verified: Optional[bool] = None,
    ) -> List[User]:
        """All matching records, newest first."""
        if not email and not phone:
            return []
        stmt = select(User).where(*self._criteria(email, phone, verified)).order_by(User.created_at.desc(), User.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, email: Optional[str] = None, phone: Optional[str] = None, verified: Optional[bool] = None) -> int:
        if not email and not phone:
            return 0
        stmt = select(func.count(User.id)).where(*self._criteria(email, phone, verified))
        result = await self.db.execute(stmt)
        return int(result.scalar() or 0)

    async def get(self, user_id) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def find_by_reset_token(self, token_hash: str, now: Optional[datetime] = None) -> Optional[User]:
        stmt = select(User).where(
            User.reset_password_token == token_hash,
            User.reset_password_expire > (now or utcnow()),
        )
        result = await self.db.execute(stmt.limit(1))
        return result.scalars().first()

    async def create(self, **fields) -> User:
        check = validate_user_fields(fields, partial=False)
        if not check.ok:
            raise AuthError(ErrorKind.VALIDATION, check.message)

        now = utcnow()
        user = User(**fields)
        user.password = await hash_password(fields["password"])
        user.account_verified = bool(fields.get("account_verified", False))
        user.created_at = now
        user.updated_at = now
        self.db.add(user)
        await self._commit()
        return user

    async def save(self, user: User, validate: bool = True, validate_modified_only: bool = False) -> User:
        state = inspect(user)
        password_changed = state.attrs.password.history.has_changes()

        if validate:
            if validate_modified_only:
                names = [a.key for a in state.attrs if a.key in VALIDATED_COLUMNS and a.history.has_changes()]
            else:
                names = list(VALIDATED_COLUMNS)
            fields = {name: getattr(user, name) for name in names}
            if password_changed:
                fields["password"] = user.password
            check = validate_user_fields(fields, partial=True)
            if not check.ok:
                raise AuthError(ErrorKind.VALIDATION, check.message)

        if password_changed:
            user.password = await hash_password(user.password)

        user.updated_at = utcnow()
        await self._commit()
        return user

    async def delete_many(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        verified: Optional[bool] = None,
        exclude_id: Optional[int] = None,
    ) -> int:
        if not email and not phone:
            return 0
        clauses = self._criteria(email, phone, verified)
        if exclude_id is not None:
            clauses.append(User.id != exclude_id)
        result = await self.db.execute(delete(User).where(*clauses).execution_options(synchronize_session=False))
        await self.db.commit()
        return result.rowcount or 0

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as ie:
            await self.db.rollback()
            logger.warning(f"Unique constraint violated on users: {ie.orig}")
            raise AuthError(ErrorKind.CONFLICT, "Phone or Email is already used.")
