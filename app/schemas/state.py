"""
Immutable account workflow records.

These are the values the pure transitions in ``app.workflow`` operate on.
They are frozen: every transition returns new instances instead of
mutating shared collections, and ``StateStore`` maps them to and from the
SQLAlchemy rows.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.models.inquiry import InquiryStatus
from app.models.notification import Severity
from app.models.plan import PlanTier
from app.models.subscription import SubscriptionStatus


class StateModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class NotificationState(StateModel):
    id: str
    message: str
    severity: Severity = Severity.INFO
    created_at: datetime
    read: bool = False


class OwnerRole(StateModel):
    """Account owning a team. Never empty: an empty team is a standalone account."""
    kind: Literal["owner"] = "owner"
    members: tuple[str, ...] = ()
    pending_members: tuple[str, ...] = ()


class MemberRole(StateModel):
    kind: Literal["member"] = "member"
    member_of: str


class StandaloneRole(StateModel):
    kind: Literal["standalone"] = "standalone"


AccountRoleState = Annotated[
    Union[OwnerRole, MemberRole, StandaloneRole],
    Field(discriminator="kind"),
]


class UserState(StateModel):
    email: str
    name: str
    is_admin: bool = False
    plan: PlanTier = PlanTier.FREE
    pending_plan: Optional[PlanTier] = None
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    notifications: tuple[NotificationState, ...] = ()
    role: AccountRoleState = StandaloneRole()
    crm_notes: Optional[str] = None
    last_login: Optional[datetime] = None

    @property
    def team(self) -> Optional[OwnerRole]:
        return self.role if isinstance(self.role, OwnerRole) else None

    @property
    def member_of(self) -> Optional[str]:
        return self.role.member_of if isinstance(self.role, MemberRole) else None

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)


class PlanChangeDetails(StateModel):
    """Optional commercial details sent with a plan request"""
    company_name: Optional[str] = None
    team_size: Optional[str] = None
    use_case: Optional[str] = None
    phone: Optional[str] = None
    payment_proof_image: Optional[str] = None


class PlanInquiryState(StateModel):
    id: str
    user_email: str
    user_name: str
    requested_plan: PlanTier
    submitted_at: datetime
    status: InquiryStatus = InquiryStatus.PENDING
    company_name: Optional[str] = None
    team_size: Optional[str] = None
    use_case: Optional[str] = None
    phone: Optional[str] = None
    payment_proof_image: Optional[str] = None
    resolved_at: Optional[datetime] = None


class TeamInquiryState(StateModel):
    id: str
    owner_email: str
    owner_name: str
    member_email: str
    submitted_at: datetime
    payment_proof_image: str
    status: InquiryStatus = InquiryStatus.PENDING
    resolved_at: Optional[datetime] = None


class PlanApprovalResult(StateModel):
    updated_user: UserState
    updated_inquiries: tuple[PlanInquiryState, ...]


class TeamApprovalResult(StateModel):
    updated_users: tuple[UserState, ...]
    updated_inquiries: tuple[TeamInquiryState, ...]


class TeamRejectionResult(StateModel):
    updated_owner: UserState
    updated_inquiries: tuple[TeamInquiryState, ...]
