from sqlalchemy.orm import Session

from app.models.inquiry import InquiryStatus
from app.schemas.state import (PlanApprovalResult, PlanInquiryState,
                               TeamApprovalResult, TeamInquiryState,
                               TeamRejectionResult)
from app.services.workflow_base import AccountWorkflowService
from app.workflow.plan_inquiries import (approve_plan_inquiry,
                                         reject_plan_inquiry)
from app.workflow.team import (approve_team_member_inquiry,
                               reject_team_member_inquiry)


class ApprovalService(AccountWorkflowService):
    """
    Admin decisions on plan-change and team-member inquiries.

    Each approve/reject updates the inquiry, the affected account(s) and
    their notification ledgers in one commit, and returns the refreshed
    inquiry collection with the updated account(s).
    """

    def list_plan_inquiries(self, db: Session, status: InquiryStatus = None) -> list[PlanInquiryState]:
        inquiries = self._load(db).plan_inquiries
        return [i for i in inquiries if status is None or i.status == status]

    def list_team_inquiries(self, db: Session, status: InquiryStatus = None) -> list[TeamInquiryState]:
        inquiries = self._load(db).team_inquiries
        return [i for i in inquiries if status is None or i.status == status]

    def approve_plan_inquiry(self, db: Session, inquiry_id: str) -> PlanApprovalResult:
        self.logger.info(f"approve_plan_inquiry: Entry - inquiry: {inquiry_id}")

        try:
            result = self._transact(db, lambda state, ctx: approve_plan_inquiry(state, inquiry_id, ctx))
            user = result.updated_user
            self.analytics.log_success(
                action='approve_plan_inquiry',
                user_id=user.email,
                parameters={'inquiry_id': inquiry_id, 'plan': user.plan.value}
            )
            self.logger.info(
                f"approve_plan_inquiry: Success - inquiry: {inquiry_id}, user: {user.email}, plan: {user.plan.value}")
            return result
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(
                action='approve_plan_inquiry',
                error=str(e),
                parameters={'inquiry_id': inquiry_id}
            )
            self.logger.error(f"approve_plan_inquiry: Failure - {e}")
            raise

    def reject_plan_inquiry(self, db: Session, inquiry_id: str) -> PlanApprovalResult:
        self.logger.info(f"reject_plan_inquiry: Entry - inquiry: {inquiry_id}")

        try:
            result = self._transact(db, lambda state, ctx: reject_plan_inquiry(state, inquiry_id, ctx))
            self.analytics.log_success(
                action='reject_plan_inquiry',
                user_id=result.updated_user.email,
                parameters={'inquiry_id': inquiry_id}
            )
            self.logger.info(
                f"reject_plan_inquiry: Success - inquiry: {inquiry_id}, user: {result.updated_user.email}")
            return result
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(
                action='reject_plan_inquiry',
                error=str(e),
                parameters={'inquiry_id': inquiry_id}
            )
            self.logger.error(f"reject_plan_inquiry: Failure - {e}")
            raise

    def approve_team_member_inquiry(self, db: Session, inquiry_id: str) -> TeamApprovalResult:
        self.logger.info(f"approve_team_member_inquiry: Entry - inquiry: {inquiry_id}")

        try:
            result = self._transact(
                db, lambda state, ctx: approve_team_member_inquiry(state, inquiry_id, ctx)
            )
            owner = result.updated_users[0]
            self.analytics.log_success(
                action='approve_team_member_inquiry',
                user_id=owner.email,
                parameters={'inquiry_id': inquiry_id, 'updated_users': len(result.updated_users)}
            )
            self.logger.info(
                f"approve_team_member_inquiry: Success - inquiry: {inquiry_id}, owner: {owner.email}")
            return result
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(
                action='approve_team_member_inquiry',
                error=str(e),
                parameters={'inquiry_id': inquiry_id}
            )
            self.logger.error(f"approve_team_member_inquiry: Failure - {e}")
            raise

    def reject_team_member_inquiry(self, db: Session, inquiry_id: str) -> TeamRejectionResult:
        self.logger.info(f"reject_team_member_inquiry: Entry - inquiry: {inquiry_id}")

        try:
            result = self._transact(
                db, lambda state, ctx: reject_team_member_inquiry(state, inquiry_id, ctx)
            )
            self.analytics.log_success(
                action='reject_team_member_inquiry',
                user_id=result.updated_owner.email,
                parameters={'inquiry_id': inquiry_id}
            )
            self.logger.info(
                f"reject_team_member_inquiry: Success - inquiry: {inquiry_id}, owner: {result.updated_owner.email}")
            return result
        except Exception as e:
            db.rollback()
            self.analytics.log_failure(
                action='reject_team_member_inquiry',
                error=str(e),
                parameters={'inquiry_id': inquiry_id}
            )
            self.logger.error(f"reject_team_member_inquiry: Failure - {e}")
            raise
