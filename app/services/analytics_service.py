import logging
from datetime import datetime
from app.core.firebase import get_firestore_client

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    Product analytics and error tracking for account operations, stored in
    Firestore. Failures here are logged and never break the calling operation.
    """

    def __init__(self):
        self.db = get_firestore_client()
        self.events_collection = 'account_events'
        self.errors_collection = 'account_errors'

    def log_event(
        self,
        event_name: str,
        user_id: str = None,
        parameters: dict = None,
    ):
        """Record an analytics event (e.g. approve_plan_inquiry_success)"""
        logger.debug(f"log_event: Entry - {event_name}, user: {user_id}")

        try:
            self.db.collection(self.events_collection).add({
                'event_name': event_name,
                'user_id': user_id,
                'parameters': parameters or {},
                'timestamp': datetime.utcnow()
            })
        except Exception as e:
            logger.error(f"log_event: Failure - {e}")

    def log_error(
        self,
        error: str,
        action: str,
        user_id: str = None,
        parameters: dict = None,
    ):
        """Record a handled error for monitoring"""
        try:
            self.db.collection(self.errors_collection).add({
                'action': action,
                'user_id': user_id,
                'error_message': error,
                'parameters': parameters or {},
                'timestamp': datetime.utcnow()
            })
        except Exception as e:
            logger.error(f"log_error: Failure - {e}")

    def log_success(
        self,
        action: str,
        user_id: str = None,
        parameters: dict = None
    ):
        self.log_event(
            event_name=f'{action}_success',
            user_id=user_id,
            parameters={
                'status': 'success',
                **(parameters or {})
            }
        )

    def log_failure(
        self,
        action: str,
        error: str,
        user_id: str = None,
        parameters: dict = None,
    ):
        """Log failed action both as an analytics event and as a tracked error"""
        self.log_event(
            event_name=f'{action}_failure',
            user_id=user_id,
            parameters={
                'status': 'failure',
                'error': error,
                **(parameters or {})
            }
        )
        self.log_error(
            error=error,
            action=action,
            user_id=user_id,
            parameters=parameters,
        )
