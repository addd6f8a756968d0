from sqlalchemy.orm import Session

from app.schemas.state import UserState
from app.services.workflow_base import AccountWorkflowService
from app.workflow.notifications import (mark_all_notifications_read,
                                        mark_notification_read)


class NotificationService(AccountWorkflowService):
    """Read-state updates on a user's notification ledger"""

    def update_notification(self, db: Session, email: str, notification_id: str, read: bool = True) -> UserState:
        """Unknown ids and repeated calls are no-ops that return the current user"""
        self.logger.info(f"update_notification: Entry - user: {email}, notification: {notification_id}")

        try:
            def transition(state, ctx):
                user = mark_notification_read(state.require_user(email), notification_id, read)
                return state.with_user(user), user

            user = self._transact(db, transition)
            self.logger.info(f"update_notification: Success - user: {email}, unread: {user.unread_count}")
            return user
        except Exception as e:
            db.rollback()
            self.logger.error(f"update_notification: Failure - {e}")
            raise

    def mark_all_as_read(self, db: Session, email: str) -> UserState:
        self.logger.info(f"mark_all_as_read: Entry - user: {email}")

        try:
            def transition(state, ctx):
                user = mark_all_notifications_read(state.require_user(email))
                return state.with_user(user), user

            user = self._transact(db, transition)
            self.logger.info(f"mark_all_as_read: Success - user: {email}")
            return user
        except Exception as e:
            db.rollback()
            self.logger.error(f"mark_all_as_read: Failure - {e}")
            raise
