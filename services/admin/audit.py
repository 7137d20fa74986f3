"""
services/admin/audit.py
Append-only admin action log.

Writes are best-effort: they run after the primary state change has been
committed, in their own commit, and a failure is logged and dropped.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import AdminAction, AdminActionType

logger = logging.getLogger(__name__)


async def record_admin_action(
    db: AsyncSession,
    action: AdminActionType,
    admin_id: uuid.UUID,
    profile_id: Optional[uuid.UUID] = None,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> Optional[AdminAction]:
    """Insert one AdminAction. Returns None instead of raising if the store rejects it."""
    entry = AdminAction(
        action=action,
        admin_id=admin_id,
        profile_id=profile_id,
        reason=reason,
        notes=notes,
    )
    try:
        db.add(entry)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(
            f"Admin action logging failed: action={action.value} admin={admin_id} profile={profile_id}"
        )
        return None
    return entry
