"""
Plan-change inquiry lifecycle.

A gated plan request creates a pending inquiry and marks the user's
``pending_plan``; approval applies the plan and restarts the billing period,
rejection only clears the pending marker. ``pending_plan`` is set exactly
while one pending inquiry exists for the user.
"""

from typing import Optional

from app.core.exceptions import ConflictError, InvalidStateError
from app.models.inquiry import InquiryStatus
from app.models.notification import Severity
from app.models.plan import PlanTier
from app.schemas.state import (PlanApprovalResult, PlanChangeDetails,
                               PlanInquiryState, UserState)
from app.workflow.notifications import notify
from app.workflow.state import AppState, TransitionContext, new_id
from app.workflow.subscription import (start_billing_period,
                                       with_recomputed_status)


def request_plan_change(
    state: AppState,
    email: str,
    plan: PlanTier,
    details: Optional[PlanChangeDetails],
    ctx: TransitionContext,
) -> tuple[AppState, UserState]:
    user = state.require_user(email)
    if state.has_pending_plan_inquiry(user.email):
        raise ConflictError(f"A plan change request is already pending for {user.email}")

    spec = ctx.plan(plan)
    details = details or PlanChangeDetails()

    if not spec.requires_approval:
        updated = start_billing_period(user, spec, ctx.now)
        updated = notify(updated, f"Your plan is now {spec.name}.", Severity.INFO, ctx)
        updated = with_recomputed_status(state, updated, ctx)
        return state.with_user(updated), updated

    inquiry = PlanInquiryState(
        id=new_id(),
        user_email=user.email,
        user_name=user.name,
        requested_plan=plan,
        submitted_at=ctx.now,
        status=InquiryStatus.PENDING,
        company_name=details.company_name,
        team_size=details.team_size,
        use_case=details.use_case,
        phone=details.phone,
        payment_proof_image=details.payment_proof_image,
    )
    state = state.with_plan_inquiry(inquiry)

    updated = user.model_copy(update={"pending_plan": plan})
    updated = notify(
        updated,
        f"Your request for the {spec.name} plan was received and is awaiting approval.",
        Severity.INFO,
        ctx,
    )
    updated = with_recomputed_status(state, updated, ctx)
    return state.with_user(updated), updated


def _resolve(
    state: AppState, inquiry_id: str, status: InquiryStatus, ctx: TransitionContext
) -> tuple[AppState, PlanInquiryState, UserState]:
    inquiry = state.require_plan_inquiry(inquiry_id)
    if inquiry.status != InquiryStatus.PENDING:
        raise InvalidStateError(f"Plan inquiry {inquiry_id} is already {inquiry.status.value}")
    user = state.require_user(inquiry.user_email)

    resolved = inquiry.model_copy(update={"status": status, "resolved_at": ctx.now})
    return state.with_plan_inquiry(resolved), resolved, user


def approve_plan_inquiry(
    state: AppState, inquiry_id: str, ctx: TransitionContext
) -> tuple[AppState, PlanApprovalResult]:
    state, inquiry, user = _resolve(state, inquiry_id, InquiryStatus.APPROVED, ctx)
    spec = ctx.plan(inquiry.requested_plan)

    # Same-plan approvals still refresh the dates (renewals)
    updated = start_billing_period(user, spec, ctx.now)
    updated = updated.model_copy(update={"pending_plan": None})
    updated = notify(
        updated,
        f"Your upgrade to the {spec.name} plan has been approved.",
        Severity.SUCCESS,
        ctx,
    )
    updated = with_recomputed_status(state, updated, ctx)
    state = state.with_user(updated)
    return state, PlanApprovalResult(updated_user=updated, updated_inquiries=state.plan_inquiries)


def reject_plan_inquiry(
    state: AppState, inquiry_id: str, ctx: TransitionContext
) -> tuple[AppState, PlanApprovalResult]:
    state, inquiry, user = _resolve(state, inquiry_id, InquiryStatus.REJECTED, ctx)
    spec = ctx.plan(inquiry.requested_plan)

    updated = user.model_copy(update={"pending_plan": None})
    updated = notify(
        updated,
        f"Your request for the {spec.name} plan was not approved. Please contact support.",
        Severity.WARNING,
        ctx,
    )
    updated = with_recomputed_status(state, updated, ctx)
    state = state.with_user(updated)
    return state, PlanApprovalResult(updated_user=updated, updated_inquiries=state.plan_inquiries)
