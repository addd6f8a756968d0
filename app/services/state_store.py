import json
import logging
import uuid
from typing import Iterable

from sqlalchemy.orm import Session, selectinload

from app.models.inquiry import PlanChangeInquiry, TeamMemberInquiry
from app.models.notification import Notification
from app.models.plan import PLAN_RANK, PlanTier
from app.models.subscription_history import SubscriptionHistory
from app.models.user import AccountRole, User
from app.schemas.state import (MemberRole, NotificationState, OwnerRole,
                               PlanInquiryState, StandaloneRole,
                               TeamInquiryState, UserState)
from app.workflow.state import AppState

logger = logging.getLogger(__name__)


def user_state_from_row(row: User) -> UserState:
    if row.account_role == AccountRole.OWNER:
        role = OwnerRole(
            members=tuple(row.team_members or ()),
            pending_members=tuple(row.team_pending_members or ()),
        )
    elif row.account_role == AccountRole.MEMBER and row.member_of:
        role = MemberRole(member_of=row.member_of)
    else:
        role = StandaloneRole()

    return UserState(
        email=row.email,
        name=row.name,
        is_admin=bool(row.is_admin),
        plan=PlanTier(row.plan),
        pending_plan=PlanTier(row.pending_plan) if row.pending_plan else None,
        subscription_start_date=row.subscription_start_date,
        subscription_end_date=row.subscription_end_date,
        subscription_status=row.subscription_status,
        notifications=tuple(
            NotificationState(
                id=n.id,
                message=n.message,
                severity=n.severity,
                created_at=n.created_at,
                read=bool(n.read),
            )
            for n in row.notifications
        ),
        role=role,
        crm_notes=row.crm_notes,
        last_login=row.last_login,
    )


def plan_inquiry_from_row(row: PlanChangeInquiry) -> PlanInquiryState:
    return PlanInquiryState(
        id=row.id,
        user_email=row.user_email,
        user_name=row.user_name,
        requested_plan=PlanTier(row.requested_plan),
        submitted_at=row.submitted_at,
        status=row.status,
        company_name=row.company_name,
        team_size=row.team_size,
        use_case=row.use_case,
        phone=row.phone,
        payment_proof_image=row.payment_proof_image,
        resolved_at=row.resolved_at,
    )


def team_inquiry_from_row(row: TeamMemberInquiry) -> TeamInquiryState:
    return TeamInquiryState(
        id=row.id,
        owner_email=row.owner_email,
        owner_name=row.owner_name,
        member_email=row.member_email,
        submitted_at=row.submitted_at,
        payment_proof_image=row.payment_proof_image,
        status=row.status,
        resolved_at=row.resolved_at,
    )


class StateStore:
    """
    Loads the account workflow state from the database and writes back the
    difference between two snapshots. Nothing is committed here: the caller
    owns the transaction, so one commit covers every changed row.
    """

    def load(self, db: Session) -> AppState:
        users = db.query(User).options(selectinload(User.notifications)).order_by(User.created_at).all()
        plan_inquiries = db.query(PlanChangeInquiry).order_by(PlanChangeInquiry.submitted_at).all()
        team_inquiries = db.query(TeamMemberInquiry).order_by(TeamMemberInquiry.submitted_at).all()
        return AppState(
            users=tuple(user_state_from_row(u) for u in users),
            plan_inquiries=tuple(plan_inquiry_from_row(i) for i in plan_inquiries),
            team_inquiries=tuple(team_inquiry_from_row(i) for i in team_inquiries),
        )

    def save(self, db: Session, before: AppState, after: AppState) -> None:
        previous_users = {u.email: u for u in before.users}
        remaining = {u.email for u in after.users}

        for email in previous_users.keys() - remaining:
            row = db.get(User, email)
            if row is not None:
                db.delete(row)
                logger.info(f"StateStore.save: Deleted user - {email}")

        for user in after.users:
            previous = previous_users.get(user.email)
            if previous == user:
                continue
            self._write_user(db, user)
            if previous is not None:
                self._record_plan_change(db, previous, user)

        self._write_changed(db, before.plan_inquiries, after.plan_inquiries, self._write_plan_inquiry)
        self._write_changed(db, before.team_inquiries, after.team_inquiries, self._write_team_inquiry)
        db.flush()

    def _write_changed(self, db: Session, before: Iterable, after: Iterable, writer) -> None:
        previous = {i.id: i for i in before}
        for inquiry in after:
            if previous.get(inquiry.id) != inquiry:
                writer(db, inquiry)

    def _write_user(self, db: Session, user: UserState) -> None:
        row = db.get(User, user.email)
        if row is None:
            row = User(email=user.email)
            db.add(row)

        row.name = user.name
        row.is_admin = user.is_admin
        row.plan = user.plan.value
        row.pending_plan = user.pending_plan.value if user.pending_plan else None
        row.subscription_start_date = user.subscription_start_date
        row.subscription_end_date = user.subscription_end_date
        row.subscription_status = user.subscription_status
        row.crm_notes = user.crm_notes
        row.last_login = user.last_login

        if isinstance(user.role, OwnerRole):
            row.account_role = AccountRole.OWNER
            row.member_of = None
            row.team_members = list(user.role.members)
            row.team_pending_members = list(user.role.pending_members)
        elif isinstance(user.role, MemberRole):
            row.account_role = AccountRole.MEMBER
            row.member_of = user.role.member_of
            row.team_members = []
            row.team_pending_members = []
        else:
            row.account_role = AccountRole.STANDALONE
            row.member_of = None
            row.team_members = []
            row.team_pending_members = []

        # Evicted notifications drop out of the collection and are deleted as orphans
        existing = {n.id: n for n in row.notifications}
        ledger = []
        for position, notification in enumerate(user.notifications):
            n_row = existing.get(notification.id)
            if n_row is None:
                n_row = Notification(id=notification.id, user_email=user.email)
            n_row.position = position
            n_row.message = notification.message
            n_row.severity = notification.severity
            n_row.read = notification.read
            n_row.created_at = notification.created_at
            ledger.append(n_row)
        row.notifications = ledger

    def _record_plan_change(self, db: Session, previous: UserState, user: UserState) -> None:
        if previous.plan == user.plan and previous.subscription_start_date == user.subscription_start_date:
            return
        if previous.plan == user.plan:
            action = 'renewed'
        elif PLAN_RANK[user.plan] > PLAN_RANK[previous.plan]:
            action = 'upgraded'
        else:
            action = 'downgraded'

        db.add(SubscriptionHistory(
            id=str(uuid.uuid4()),
            user_email=user.email,
            action=action,
            from_plan=previous.plan.value,
            to_plan=user.plan.value,
            details=json.dumps({
                'start_date': user.subscription_start_date.isoformat() if user.subscription_start_date else None,
                'end_date': user.subscription_end_date.isoformat() if user.subscription_end_date else None,
            })
        ))

    def _write_plan_inquiry(self, db: Session, inquiry: PlanInquiryState) -> None:
        row = db.get(PlanChangeInquiry, inquiry.id)
        if row is None:
            row = PlanChangeInquiry(id=inquiry.id)
            db.add(row)
        row.user_email = inquiry.user_email
        row.user_name = inquiry.user_name
        row.requested_plan = inquiry.requested_plan.value
        row.status = inquiry.status
        row.company_name = inquiry.company_name
        row.team_size = inquiry.team_size
        row.use_case = inquiry.use_case
        row.phone = inquiry.phone
        row.payment_proof_image = inquiry.payment_proof_image
        row.submitted_at = inquiry.submitted_at
        row.resolved_at = inquiry.resolved_at

    def _write_team_inquiry(self, db: Session, inquiry: TeamInquiryState) -> None:
        row = db.get(TeamMemberInquiry, inquiry.id)
        if row is None:
            row = TeamMemberInquiry(id=inquiry.id)
            db.add(row)
        row.owner_email = inquiry.owner_email
        row.owner_name = inquiry.owner_name
        row.member_email = inquiry.member_email
        row.status = inquiry.status
        row.payment_proof_image = inquiry.payment_proof_image
        row.submitted_at = inquiry.submitted_at
        row.resolved_at = inquiry.resolved_at
