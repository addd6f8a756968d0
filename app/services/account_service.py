from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.plan import PlanTier
from app.models.project import Project
from app.schemas.state import PlanChangeDetails, UserState
from app.services.workflow_base import AccountWorkflowService
from app.workflow.accounts import delete_user, register_user, update_profile
from app.workflow.plan_inquiries import request_plan_change
from app.workflow.state import normalize_email
from app.workflow.subscription import (refresh_subscription_status,
                                       with_recomputed_status)


class AccountService(AccountWorkflowService):
    def get_session_user(self, db: Session, email: str) -> Optional[UserState]:
        """Return the stored account for an authenticated email, or None"""
        return self._load(db).find_user(email)

    def check_subscription_status(self, db: Session, email: str) -> UserState:
        """Recompute the subscription status and persist it only if it changed"""
        self.logger.info(f"check_subscription_status: Entry - user: {email}")

        try:
            def transition(state, ctx):
                state, user, changed = refresh_subscription_status(state, email, ctx)
                return state, (user, changed)

            user, changed = self._transact(db, transition)
            self.logger.info(
                f"check_subscription_status: Success - user: {email}, "
                f"status: {user.subscription_status.value}, changed: {changed}")
            return user
        except Exception as e:
            db.rollback()
            self.logger.error(f"check_subscription_status: Failure - {e}")
            raise

    def refresh_all_statuses(self, db: Session) -> int:
        """Recompute every user's subscription status; returns how many changed"""
        self.logger.info("refresh_all_statuses: Entry")

        try:
            def transition(state, ctx):
                changed = 0
                for user in state.users:
                    refreshed = with_recomputed_status(state, user, ctx)
                    if refreshed is not user:
                        state = state.with_user(refreshed)
                        changed += 1
                return state, changed

            count = self._transact(db, transition)
            self.analytics.log_success(
                action='refresh_all_statuses',
                parameters={'changed_count': count}
            )
            self.logger.info(f"refresh_all_statuses: Success - changed: {count}")
            return count
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(action='refresh_all_statuses', error=str(e))
            self.logger.error(f"refresh_all_statuses: Failure - {e}")
            raise

    def register_user(self, db: Session, email: str, name: str, is_admin: bool = False) -> UserState:
        self.logger.info(f"register_user: Entry - user: {email}")

        try:
            user = self._transact(
                db, lambda state, ctx: register_user(state, email, name, ctx, is_admin=is_admin)
            )
            self.analytics.log_success(
                action='register_user',
                user_id=user.email,
                parameters={'role': user.role.kind}
            )
            self.logger.info(f"register_user: Success - user: {user.email}, role: {user.role.kind}")
            return user
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(action='register_user', error=str(e), user_id=email)
            self.logger.error(f"register_user: Failure - {e}")
            raise

    def request_plan_change(
        self,
        db: Session,
        email: str,
        plan: PlanTier,
        details: Optional[PlanChangeDetails] = None,
    ) -> UserState:
        """
        Submit a plan inquiry for gated tiers (user comes back with pending_plan
        set) or switch directly to a tier that needs no approval.
        """
        self.logger.info(f"request_plan_change: Entry - user: {email}, plan: {plan.value}")

        try:
            user = self._transact(
                db, lambda state, ctx: request_plan_change(state, email, plan, details, ctx)
            )
            self.analytics.log_success(
                action='request_plan_change',
                user_id=email,
                parameters={
                    'plan': plan.value,
                    'pending': user.pending_plan is not None
                }
            )
            self.logger.info(
                f"request_plan_change: Success - user: {email}, plan: {user.plan.value}, "
                f"pending_plan: {user.pending_plan.value if user.pending_plan else None}")
            return user
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(
                action='request_plan_change',
                error=str(e),
                user_id=email,
                parameters={'plan': plan.value}
            )
            self.logger.error(f"request_plan_change: Failure - {e}")
            raise

    def get_all_users(self, db: Session) -> list[dict]:
        """Non-admin users with their project counts (admin CRM view)"""
        self.logger.info("get_all_users: Entry")

        try:
            state = self._load(db)
            counts = dict(
                db.query(Project.user_email, func.count(Project.id))
                .group_by(Project.user_email)
                .all()
            )
            result = [
                {**user.model_dump(mode="json"), 'project_count': counts.get(user.email, 0)}
                for user in state.users
                if not user.is_admin
            ]
            self.logger.info(f"get_all_users: Success - {len(result)} users")
            return result
        except Exception as e:
            self.logger.error(f"get_all_users: Failure - {e}")
            raise

    def get_projects_for_user(self, db: Session, email: str) -> list[Project]:
        """Team members see the projects of the team owner"""
        self.logger.info(f"get_projects_for_user: Entry - user: {email}")

        try:
            user = self._load(db).require_user(email)
            owner_email = user.member_of or user.email
            projects = db.query(Project).filter(
                Project.user_email == owner_email
            ).order_by(Project.created_at.desc()).all()
            self.logger.info(f"get_projects_for_user: Success - user: {email}, count: {len(projects)}")
            return projects
        except Exception as e:
            self.logger.error(f"get_projects_for_user: Failure - {e}")
            raise

    def update_user_profiles(self, db: Session, updates: list[dict]) -> list[UserState]:
        """Apply CRM edits (name, crm_notes) to several users in one transaction"""
        self.logger.info(f"update_user_profiles: Entry - {len(updates)} users")

        try:
            def transition(state, ctx):
                updated = []
                for update in updates:
                    state, user = update_profile(
                        state,
                        update['email'],
                        name=update.get('name'),
                        crm_notes=update.get('crm_notes'),
                    )
                    updated.append(user)
                return state, updated

            users = self._transact(db, transition)
            self.logger.info(f"update_user_profiles: Success - {len(users)} users")
            return users
        except Exception as e:
            db.rollback()
            self.logger.error(f"update_user_profiles: Failure - {e}")
            raise

    def delete_user_and_projects(self, db: Session, email: str) -> None:
        email = normalize_email(email)
        self.logger.info(f"delete_user_and_projects: Entry - user: {email}")

        try:
            def delete_projects(session, state):
                session.query(Project).filter(Project.user_email == email).delete()

            self._transact(
                db,
                lambda state, ctx: (delete_user(state, email, ctx), None),
                before_commit=delete_projects,
            )
            self.analytics.log_success(action='delete_user_and_projects', user_id=email)
            self.logger.info(f"delete_user_and_projects: Success - user: {email}")
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(action='delete_user_and_projects', error=str(e), user_id=email)
            self.logger.error(f"delete_user_and_projects: Failure - {e}")
            raise
