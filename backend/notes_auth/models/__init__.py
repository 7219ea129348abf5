from notes_auth.models.user import Base, User
from notes_auth.models.audit_log import AuditLog

__all__ = ["Base", "User", "AuditLog"]
