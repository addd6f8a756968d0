"""
Team membership transitions.

An owner's candidate sits in ``pending_members`` exactly while its
team-member inquiry is pending. Approval moves it to ``members`` and turns
an existing candidate account into a member account; rejection only drops
it from ``pending_members``.
"""

from typing import Union

from app.core.exceptions import (ConflictError, InvalidStateError,
                                 NotFoundError, ValidationError)
from app.models.inquiry import InquiryStatus
from app.models.notification import Severity
from app.schemas.state import (MemberRole, OwnerRole, StandaloneRole,
                               TeamApprovalResult, TeamInquiryState,
                               TeamRejectionResult, UserState)
from app.workflow.notifications import notify
from app.workflow.state import (AppState, TransitionContext, new_id,
                                normalize_email)


def owner_role(members, pending_members) -> Union[OwnerRole, StandaloneRole]:
    """Canonical role for a team: an empty team is a standalone account"""
    members, pending_members = tuple(members), tuple(pending_members)
    if not members and not pending_members:
        return StandaloneRole()
    return OwnerRole(members=members, pending_members=pending_members)


def _team_lists(user: UserState) -> tuple[tuple[str, ...], tuple[str, ...]]:
    team = user.team
    if team is None:
        return (), ()
    return team.members, team.pending_members


def _check_other_teams(state: AppState, owner_email: str, member_email: str, include_pending: bool):
    # Covers emails without an account, which carry no member_of of their own
    for user in state.users:
        team = user.team
        if team is None or user.email == owner_email:
            continue
        if member_email in team.members:
            raise ConflictError(f"{member_email} is already a member of another team")
        if include_pending and member_email in team.pending_members:
            raise ConflictError(f"{member_email} is already pending approval for another team")


def _check_candidate_account(
    state: AppState, owner_email: str, member_email: str, include_pending: bool = True
):
    _check_other_teams(state, owner_email, member_email, include_pending)
    candidate = state.find_user(member_email)
    if candidate is None:
        return
    if candidate.team is not None:
        raise ConflictError(f"{member_email} owns a team and cannot join another one")
    if candidate.member_of is not None and candidate.member_of != owner_email:
        raise ConflictError(f"{member_email} is already a member of another team")


def request_add_team_member(
    state: AppState,
    owner_email: str,
    member_email: str,
    payment_proof_image: str,
    ctx: TransitionContext,
) -> tuple[AppState, UserState]:
    if not payment_proof_image or not payment_proof_image.strip():
        raise ValidationError("A proof of payment image is required to add a team member")
    member_email = normalize_email(member_email)
    owner = state.require_user(owner_email)

    if member_email == owner.email:
        raise ValidationError("You cannot add yourself to your own team")
    if owner.member_of is not None:
        raise ConflictError(f"{owner.email} is a member of {owner.member_of}'s team and cannot add members")

    members, pending = _team_lists(owner)
    if member_email in members:
        raise ConflictError(f"{member_email} is already a member of this team")
    if member_email in pending or state.pending_team_inquiry(owner.email, member_email):
        raise ConflictError(f"A request to add {member_email} is already pending")
    _check_candidate_account(state, owner.email, member_email)

    inquiry = TeamInquiryState(
        id=new_id(),
        owner_email=owner.email,
        owner_name=owner.name,
        member_email=member_email,
        submitted_at=ctx.now,
        payment_proof_image=payment_proof_image,
        status=InquiryStatus.PENDING,
    )
    updated = owner.model_copy(update={"role": owner_role(members, pending + (member_email,))})
    updated = notify(
        updated,
        f"Your request to add {member_email} to your team is awaiting approval.",
        Severity.INFO,
        ctx,
    )
    state = state.with_team_inquiry(inquiry).with_user(updated)
    return state, updated


def _resolve(
    state: AppState, inquiry_id: str, status: InquiryStatus, ctx: TransitionContext
) -> tuple[AppState, TeamInquiryState, UserState]:
    inquiry = state.require_team_inquiry(inquiry_id)
    if inquiry.status != InquiryStatus.PENDING:
        raise InvalidStateError(f"Team member inquiry {inquiry_id} is already {inquiry.status.value}")
    owner = state.require_user(inquiry.owner_email)

    resolved = inquiry.model_copy(update={"status": status, "resolved_at": ctx.now})
    return state.with_team_inquiry(resolved), resolved, owner


def approve_team_member_inquiry(
    state: AppState, inquiry_id: str, ctx: TransitionContext
) -> tuple[AppState, TeamApprovalResult]:
    state, inquiry, owner = _resolve(state, inquiry_id, InquiryStatus.APPROVED, ctx)
    member_email = inquiry.member_email
    _check_candidate_account(state, owner.email, member_email, include_pending=False)

    members, pending = _team_lists(owner)
    pending = tuple(e for e in pending if e != member_email)
    if member_email not in members:
        members = members + (member_email,)

    updated_owner = owner.model_copy(update={"role": owner_role(members, pending)})
    updated_owner = notify(
        updated_owner,
        f"{member_email} has been added to your team.",
        Severity.SUCCESS,
        ctx,
    )
    updated_users = [updated_owner]

    candidate = state.find_user(member_email)
    if candidate is not None:
        joined = candidate.model_copy(update={"role": MemberRole(member_of=owner.email)})
        joined = notify(
            joined,
            f"You have joined {owner.name}'s team.",
            Severity.INFO,
            ctx,
        )
        updated_users.append(joined)

    state = state.with_users(*updated_users)
    return state, TeamApprovalResult(
        updated_users=tuple(updated_users),
        updated_inquiries=state.team_inquiries,
    )


def reject_team_member_inquiry(
    state: AppState, inquiry_id: str, ctx: TransitionContext
) -> tuple[AppState, TeamRejectionResult]:
    state, inquiry, owner = _resolve(state, inquiry_id, InquiryStatus.REJECTED, ctx)

    members, pending = _team_lists(owner)
    pending = tuple(e for e in pending if e != inquiry.member_email)
    updated_owner = owner.model_copy(update={"role": owner_role(members, pending)})
    updated_owner = notify(
        updated_owner,
        f"Your request to add {inquiry.member_email} to your team was not approved.",
        Severity.WARNING,
        ctx,
    )
    state = state.with_user(updated_owner)
    return state, TeamRejectionResult(
        updated_owner=updated_owner,
        updated_inquiries=state.team_inquiries,
    )


def remove_team_member(
    state: AppState, owner_email: str, member_email: str, ctx: TransitionContext
) -> tuple[AppState, tuple[UserState, ...]]:
    member_email = normalize_email(member_email)
    owner = state.require_user(owner_email)
    members, pending = _team_lists(owner)
    if member_email not in members:
        raise NotFoundError(f"{member_email} is not a member of {owner.email}'s team")

    updated_owner = owner.model_copy(update={
        "role": owner_role(tuple(e for e in members if e != member_email), pending),
    })
    updated_users = [updated_owner]

    member = state.find_user(member_email)
    if member is not None and member.member_of == owner.email:
        left = member.model_copy(update={"role": StandaloneRole()})
        left = notify(left, f"You are no longer a member of {owner.name}'s team.", Severity.INFO, ctx)
        updated_users.append(left)

    state = state.with_users(*updated_users)
    return state, tuple(updated_users)
