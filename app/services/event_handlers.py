from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.database import SessionLocal
from app.services.event_bus import event_bus
from app.services.notifications import create_notification
from app.services.shop_events import SHOP_APPROVED, SHOP_REJECTED


def _with_session(handler):
    def wrapper(payload: dict) -> None:
        db: Session = SessionLocal()
        try:
            handler(db, payload)
        finally:
            db.close()

    wrapper.__name__ = handler.__name__
    return wrapper


@event_bus.on(SHOP_APPROVED)
@_with_session
def notify_owner_shop_approved(db: Session, payload: dict) -> None:
    create_notification(
        db,
        payload["owner_id"],
        f"Your shop '{payload['shop_name']}' has been APPROVED!",
    )


@event_bus.on(SHOP_REJECTED)
@_with_session
def notify_owner_shop_rejected(db: Session, payload: dict) -> None:
    create_notification(
        db,
        payload["owner_id"],
        f"Your shop '{payload['shop_name']}' was REJECTED by the admin.",
    )
