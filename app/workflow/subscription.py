"""
Subscription status state machine.

``compute_subscription_status`` is a pure function of the plan, the
subscription end date, whether a plan inquiry is pending and the current
time. Writing the result back onto the stored user is a separate step
(``refresh_subscription_status`` reports whether anything changed and the
service persists only then).
"""

from datetime import datetime, timedelta
from typing import Optional

from app.models.plan import PlanTier
from app.models.subscription import SubscriptionStatus
from app.schemas.state import UserState
from app.workflow.state import AppState, PlanSpec, TransitionContext


def compute_subscription_status(
    plan: PlanTier,
    end_date: Optional[datetime],
    has_pending_inquiry: bool,
    now: datetime,
    grace_period_days: int,
) -> SubscriptionStatus:
    if has_pending_inquiry:
        return SubscriptionStatus.PAYMENT_PENDING
    # Free has no expiry concept
    if end_date is None or plan == PlanTier.FREE:
        return SubscriptionStatus.ACTIVE
    if now < end_date:
        return SubscriptionStatus.ACTIVE
    if now < end_date + timedelta(days=grace_period_days):
        return SubscriptionStatus.PAST_DUE
    return SubscriptionStatus.EXPIRED


def with_recomputed_status(state: AppState, user: UserState, ctx: TransitionContext) -> UserState:
    status = compute_subscription_status(
        user.plan,
        user.subscription_end_date,
        state.has_pending_plan_inquiry(user.email),
        ctx.now,
        ctx.grace_period_days,
    )
    if status == user.subscription_status:
        return user
    return user.model_copy(update={"subscription_status": status})


def refresh_subscription_status(
    state: AppState, email: str, ctx: TransitionContext
) -> tuple[AppState, UserState, bool]:
    user = state.require_user(email)
    refreshed = with_recomputed_status(state, user, ctx)
    changed = refreshed.subscription_status != user.subscription_status
    return (state.with_user(refreshed) if changed else state), refreshed, changed


def start_billing_period(user: UserState, spec: PlanSpec, now: datetime) -> UserState:
    """Set the plan and (re)initialize subscription dates for it"""
    if spec.billing_days is None:
        start, end = None, None
    else:
        start, end = now, now + timedelta(days=spec.billing_days)
    return user.model_copy(update={
        "plan": spec.tier,
        "subscription_start_date": start,
        "subscription_end_date": end,
    })


def effective_plan(user: UserState) -> PlanTier:
    """Plan whose features the user may use right now"""
    if user.subscription_status == SubscriptionStatus.EXPIRED:
        return PlanTier.FREE
    return user.plan
