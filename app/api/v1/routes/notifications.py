import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.v1.responses import serialize_user, to_http_exception
from app.core.database import get_db
from app.core.middleware import get_current_user
from app.services.notification_service import NotificationService

router = APIRouter()
logger = logging.getLogger(__name__)


def get_notification_service() -> NotificationService:
    """Dependency to get notification service instance"""
    return NotificationService()


class UpdateNotificationRequest(BaseModel):
    read: bool = True


@router.patch("/{notification_id}")
async def update_notification(
    notification_id: str,
    request: UpdateNotificationRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Set the read flag of one notification; unknown ids are ignored"""
    email = current_user['email']
    logger.info(f"update_notification: Entry - user: {email}, notification: {notification_id}")

    try:
        user = notification_service.update_notification(db, email, notification_id, request.read)
        logger.info(f"update_notification: Success - user: {email}")
        return serialize_user(user)
    except Exception as e:
        logger.error(f"update_notification: Failure - {e}")
        raise to_http_exception(e)


@router.post("/read-all")
async def mark_all_notifications_as_read(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    email = current_user['email']
    logger.info(f"mark_all_notifications_as_read: Entry - user: {email}")

    try:
        user = notification_service.mark_all_as_read(db, email)
        logger.info(f"mark_all_notifications_as_read: Success - user: {email}")
        return serialize_user(user)
    except Exception as e:
        logger.error(f"mark_all_notifications_as_read: Failure - {e}")
        raise to_http_exception(e)
