import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from app.core.exceptions import NotFoundError, ValidationError
from app.models.inquiry import InquiryStatus
from app.models.plan import PlanTier
from app.schemas.state import (PlanInquiryState, StateModel, TeamInquiryState,
                               UserState)


class PlanSpec(StateModel):
    tier: PlanTier
    name: str
    billing_days: Optional[int] = None  # None = no expiry
    requires_approval: bool = True


DEFAULT_PLAN_CATALOG = {
    PlanTier.FREE: PlanSpec(tier=PlanTier.FREE, name="Free", billing_days=None, requires_approval=False),
    PlanTier.PRO: PlanSpec(tier=PlanTier.PRO, name="Pro", billing_days=30, requires_approval=True),
    PlanTier.CUSTOM: PlanSpec(tier=PlanTier.CUSTOM, name="Custom", billing_days=365, requires_approval=True),
}


class TransitionContext(StateModel):
    """Inputs every transition needs besides the state itself"""
    now: datetime
    plan_catalog: dict[PlanTier, PlanSpec] = Field(default_factory=lambda: dict(DEFAULT_PLAN_CATALOG))
    grace_period_days: int = 7
    notification_cap: int = 0

    def plan(self, tier: PlanTier) -> PlanSpec:
        return self.plan_catalog.get(tier) or DEFAULT_PLAN_CATALOG[tier]


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_email(email: str) -> str:
    normalized = (email or "").strip().lower()
    if "@" not in normalized or normalized.startswith("@") or normalized.endswith("@"):
        raise ValidationError(f"Invalid email address: {email!r}")
    return normalized


class AppState(StateModel):
    """Snapshot of every account and inquiry the workflow can touch"""
    users: tuple[UserState, ...] = ()
    plan_inquiries: tuple[PlanInquiryState, ...] = ()
    team_inquiries: tuple[TeamInquiryState, ...] = ()

    # Users

    def find_user(self, email: str) -> Optional[UserState]:
        email = email.strip().lower()
        return next((u for u in self.users if u.email == email), None)

    def require_user(self, email: str) -> UserState:
        user = self.find_user(email)
        if user is None:
            raise NotFoundError(f"User not found: {email}")
        return user

    def with_user(self, user: UserState) -> "AppState":
        if self.find_user(user.email) is None:
            return self.model_copy(update={"users": self.users + (user,)})
        users = tuple(user if u.email == user.email else u for u in self.users)
        return self.model_copy(update={"users": users})

    def with_users(self, *users: UserState) -> "AppState":
        state = self
        for user in users:
            state = state.with_user(user)
        return state

    def without_user(self, email: str) -> "AppState":
        return self.model_copy(update={"users": tuple(u for u in self.users if u.email != email)})

    # Plan-change inquiries

    def require_plan_inquiry(self, inquiry_id: str) -> PlanInquiryState:
        inquiry = next((i for i in self.plan_inquiries if i.id == inquiry_id), None)
        if inquiry is None:
            raise NotFoundError(f"Plan inquiry not found: {inquiry_id}")
        return inquiry

    def pending_plan_inquiries(self, email: str) -> list[PlanInquiryState]:
        return [
            i for i in self.plan_inquiries
            if i.user_email == email and i.status == InquiryStatus.PENDING
        ]

    def has_pending_plan_inquiry(self, email: str) -> bool:
        return bool(self.pending_plan_inquiries(email))

    def with_plan_inquiry(self, inquiry: PlanInquiryState) -> "AppState":
        if any(i.id == inquiry.id for i in self.plan_inquiries):
            inquiries = tuple(inquiry if i.id == inquiry.id else i for i in self.plan_inquiries)
        else:
            inquiries = self.plan_inquiries + (inquiry,)
        return self.model_copy(update={"plan_inquiries": inquiries})

    # Team-member inquiries

    def require_team_inquiry(self, inquiry_id: str) -> TeamInquiryState:
        inquiry = next((i for i in self.team_inquiries if i.id == inquiry_id), None)
        if inquiry is None:
            raise NotFoundError(f"Team member inquiry not found: {inquiry_id}")
        return inquiry

    def pending_team_inquiry(self, owner_email: str, member_email: str) -> Optional[TeamInquiryState]:
        return next(
            (
                i for i in self.team_inquiries
                if i.owner_email == owner_email
                and i.member_email == member_email
                and i.status == InquiryStatus.PENDING
            ),
            None,
        )

    def with_team_inquiry(self, inquiry: TeamInquiryState) -> "AppState":
        if any(i.id == inquiry.id for i in self.team_inquiries):
            inquiries = tuple(inquiry if i.id == inquiry.id else i for i in self.team_inquiries)
        else:
            inquiries = self.team_inquiries + (inquiry,)
        return self.model_copy(update={"team_inquiries": inquiries})
