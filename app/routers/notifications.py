# app/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import get_current_user
from app.models.notification import Notification
from app.models.user import User
from app.services import notifications as notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _notification_to_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "message": n.message,
        "is_read": bool(n.is_read),
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }


@router.get("")
def list_notifications(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [_notification_to_dict(n) for n in notification_service.get_user_notifications(db, user.id)]


@router.put("/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # id desconhecido (ou de outro usuário) é no-op
    notification = notification_service.mark_read(db, notification_id, user_id=user.id)
    if notification is None:
        return {"updated": False}
    return {"updated": True, "notification": _notification_to_dict(notification)}
