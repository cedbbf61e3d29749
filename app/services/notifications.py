from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.notification import Notification
from app.models.user import User

logger = logging.getLogger(__name__)


def create_notification(db: Session, user_id: int, message: str) -> Optional[Notification]:
    # fire-and-forget: usuário inexistente não é erro para quem chama
    if db.query(User.id).filter(User.id == user_id).first() is None:
        logger.warning("Notification skipped, user not found user_id=%s", user_id)
        return None

    notification = Notification(user_id=user_id, message=message, is_read=False)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_user_notifications(db: Session, user_id: int) -> List[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )


def mark_read(db: Session, notification_id: int, user_id: Optional[int] = None) -> Optional[Notification]:
    query = db.query(Notification).filter(Notification.id == notification_id)
    if user_id is not None:
        query = query.filter(Notification.user_id == user_id)
    notification = query.first()
    if notification is None:
        return None
    if not notification.is_read:
        notification.is_read = True
        db.commit()
        db.refresh(notification)
    return notification
