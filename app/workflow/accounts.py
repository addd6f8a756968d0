from typing import Optional

from app.core.exceptions import ConflictError
from app.models.inquiry import InquiryStatus
from app.models.notification import Severity
from app.models.plan import PlanTier
from app.schemas.state import MemberRole, StandaloneRole, UserState
from app.workflow.notifications import notify
from app.workflow.state import AppState, TransitionContext, normalize_email
from app.workflow.team import owner_role


def register_user(
    state: AppState,
    email: str,
    name: str,
    ctx: TransitionContext,
    is_admin: bool = False,
) -> tuple[AppState, UserState]:
    """Create a Free account; an invited email joins its owner's team directly"""
    email = normalize_email(email)
    if state.find_user(email) is not None:
        raise ConflictError(f"An account already exists for {email}")

    owner = next(
        (u for u in state.users if u.team is not None and email in u.team.members),
        None,
    )
    role = MemberRole(member_of=owner.email) if owner is not None else StandaloneRole()
    user = UserState(
        email=email,
        name=(name or email.split("@")[0]).strip(),
        is_admin=is_admin,
        plan=PlanTier.FREE,
        role=role,
        last_login=ctx.now,
    )
    if owner is not None:
        user = notify(user, f"Welcome! You are a member of {owner.name}'s team.", Severity.INFO, ctx)
    return state.with_user(user), user


def update_profile(
    state: AppState,
    email: str,
    name: Optional[str] = None,
    crm_notes: Optional[str] = None,
) -> tuple[AppState, UserState]:
    """Only CRM fields are writable; plan, role and pending state are not"""
    user = state.require_user(email)
    update = {}
    if name is not None and name.strip():
        update["name"] = name.strip()
    if crm_notes is not None:
        update["crm_notes"] = crm_notes
    if not update:
        return state, user
    updated = user.model_copy(update=update)
    return state.with_user(updated), updated


def delete_user(state: AppState, email: str, ctx: TransitionContext) -> AppState:
    """
    Remove an account and detach it from every team relationship.

    Pending inquiries submitted by the account are closed as rejected so no
    pending marker outlives its subject.
    """
    user = state.require_user(email)
    state = state.without_user(user.email)

    if user.member_of is not None:
        owner = state.find_user(user.member_of)
        if owner is not None and owner.team is not None:
            members = tuple(e for e in owner.team.members if e != user.email)
            state = state.with_user(
                owner.model_copy(update={"role": owner_role(members, owner.team.pending_members)})
            )

    if user.team is not None:
        for member_email in user.team.members:
            member = state.find_user(member_email)
            if member is not None and member.member_of == user.email:
                left = member.model_copy(update={"role": StandaloneRole()})
                left = notify(left, f"The team owned by {user.name} has been removed.", Severity.INFO, ctx)
                state = state.with_user(left)

    for inquiry in state.pending_plan_inquiries(user.email):
        state = state.with_plan_inquiry(
            inquiry.model_copy(update={"status": InquiryStatus.REJECTED, "resolved_at": ctx.now})
        )
    for inquiry in state.team_inquiries:
        if inquiry.owner_email == user.email and inquiry.status == InquiryStatus.PENDING:
            state = state.with_team_inquiry(
                inquiry.model_copy(update={"status": InquiryStatus.REJECTED, "resolved_at": ctx.now})
            )
    return state
