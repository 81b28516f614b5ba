from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Notification, NotificationType

logger = logging.getLogger(__name__)


async def write_notification(
    session: AsyncSession,
    *,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    related_id: str | None = None,
) -> bool:
    """Queue a notification inside the caller's transaction.

    The row is written in a SAVEPOINT: if it fails only the savepoint is
    rolled back and the surrounding state change still commits. Returns
    whether the row was written.
    """
    try:
        async with session.begin_nested():
            session.add(
                Notification(
                    user_id=user_id,
                    type=type,
                    title=title,
                    message=message,
                    related_id=related_id,
                )
            )
    except SQLAlchemyError:
        logger.warning(
            f"notification dropped | user={user_id} | type={type.value} | related={related_id}",
            exc_info=True,
        )
        return False
    return True
