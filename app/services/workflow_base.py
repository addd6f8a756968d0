import logging
from datetime import datetime
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from app.core.cache import workflow_lock
from app.core.config import settings
from app.services.analytics_service import AnalyticsService
from app.services.state_store import StateStore
from app.services.subscription_service import PlanConfiguration
from app.workflow.state import AppState, TransitionContext

T = TypeVar("T")

Transition = Callable[[AppState, TransitionContext], tuple[AppState, T]]


class AccountWorkflowService:
    """
    Shared transaction runner for the account services.

    Every operation loads a state snapshot, applies one pure transition and
    writes the resulting diff with a single commit, under the workflow lock.
    Callers roll back on any exception, so a failed step leaves the stored
    state untouched.
    """

    def __init__(self, store: Optional[StateStore] = None):
        self.analytics = AnalyticsService()
        self.store = store or StateStore()
        self.logger = logging.getLogger(self.__class__.__module__)

    def _context(self, db: Session) -> TransitionContext:
        return TransitionContext(
            now=datetime.utcnow(),
            plan_catalog=PlanConfiguration.get_catalog(db),
            grace_period_days=settings.grace_period_days,
            notification_cap=settings.notification_cap,
        )

    def _transact(
        self,
        db: Session,
        transition: Transition,
        before_commit: Optional[Callable[[Session, AppState], None]] = None,
    ) -> T:
        with workflow_lock():
            ctx = self._context(db)
            before = self.store.load(db)
            after, result = transition(before, ctx)
            if after is not before:
                self.store.save(db, before, after)
            if before_commit is not None:
                before_commit(db, after)
            db.commit()
            return result

    def _load(self, db: Session) -> AppState:
        return self.store.load(db)
