from notes_auth.models.audit_log import AuditLog
from notes_auth.models.user import utcnow
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional


async def log_auth_event(db: AsyncSession, user_id: Optional[int], action: str, details: Optional[str] = None):
    log = AuditLog(
        user_id=user_id,
        action=action,
        details=details,
        timestamp=utcnow()
    )
    db.add(log)
    await db.commit()
    return log


async def log_login_attempt(db: AsyncSession, user_id: Optional[int], method: str, status: str, details: Optional[str] = None):
    action = f"login_{status}"
    combined_details = f"method={method}"
    if details:
        combined_details = f"{combined_details}. {details}"
    return await log_auth_event(db, user_id, action, combined_details)

