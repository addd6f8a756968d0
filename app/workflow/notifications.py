from app.models.notification import Severity
from app.schemas.state import NotificationState, UserState
from app.workflow.state import TransitionContext, new_id


def append_notification(user: UserState, notification: NotificationState, cap: int = 0) -> UserState:
    """Append at the tail (most recent last); with a cap the oldest entries are evicted"""
    notifications = user.notifications + (notification,)
    if cap > 0 and len(notifications) > cap:
        notifications = notifications[-cap:]
    return user.model_copy(update={"notifications": notifications})


def notify(user: UserState, message: str, severity: Severity, ctx: TransitionContext) -> UserState:
    notification = NotificationState(
        id=new_id(),
        message=message,
        severity=severity,
        created_at=ctx.now,
        read=False,
    )
    return append_notification(user, notification, ctx.notification_cap)


def mark_notification_read(user: UserState, notification_id: str, read: bool = True) -> UserState:
    """Idempotent: an unknown id or an unchanged flag returns the user as is"""
    if not any(n.id == notification_id and n.read != read for n in user.notifications):
        return user
    notifications = tuple(
        n.model_copy(update={"read": read}) if n.id == notification_id else n
        for n in user.notifications
    )
    return user.model_copy(update={"notifications": notifications})


def mark_all_notifications_read(user: UserState) -> UserState:
    if all(n.read for n in user.notifications):
        return user
    notifications = tuple(
        n if n.read else n.model_copy(update={"read": True})
        for n in user.notifications
    )
    return user.model_copy(update={"notifications": notifications})
