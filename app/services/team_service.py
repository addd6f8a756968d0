from sqlalchemy.orm import Session

from app.schemas.state import UserState
from app.services.workflow_base import AccountWorkflowService
from app.workflow.team import remove_team_member, request_add_team_member


class TeamService(AccountWorkflowService):
    def request_add_team_member(
        self,
        db: Session,
        owner_email: str,
        member_email: str,
        payment_proof_image: str,
    ) -> UserState:
        """Submit a team-member inquiry; returns the owner with the candidate pending"""
        self.logger.info(f"request_add_team_member: Entry - owner: {owner_email}, member: {member_email}")

        try:
            owner = self._transact(
                db,
                lambda state, ctx: request_add_team_member(
                    state, owner_email, member_email, payment_proof_image, ctx
                ),
            )
            self.analytics.log_success(
                action='request_add_team_member',
                user_id=owner_email,
                parameters={'member_email': member_email}
            )
            self.logger.info(
                f"request_add_team_member: Success - owner: {owner_email}, "
                f"pending: {len(owner.team.pending_members) if owner.team else 0}")
            return owner
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(
                action='request_add_team_member',
                error=str(e),
                user_id=owner_email,
                parameters={'member_email': member_email}
            )
            self.logger.error(f"request_add_team_member: Failure - {e}")
            raise

    def remove_team_member(self, db: Session, owner_email: str, member_email: str) -> list[UserState]:
        """Drop an approved member; returns the owner and, if it exists, the former member"""
        self.logger.info(f"remove_team_member: Entry - owner: {owner_email}, member: {member_email}")

        try:
            users = self._transact(
                db, lambda state, ctx: remove_team_member(state, owner_email, member_email, ctx)
            )
            self.analytics.log_success(
                action='remove_team_member',
                user_id=owner_email,
                parameters={'member_email': member_email}
            )
            self.logger.info(f"remove_team_member: Success - owner: {owner_email}, member: {member_email}")
            return list(users)
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(
                action='remove_team_member',
                error=str(e),
                user_id=owner_email,
                parameters={'member_email': member_email}
            )
            self.logger.error(f"remove_team_member: Failure - {e}")
            raise
