import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.middleware import get_current_user
from app.services.subscription_service import SubscriptionService

router = APIRouter()
logger = logging.getLogger(__name__)


def get_subscription_service() -> SubscriptionService:
    """Dependency to get subscription service instance"""
    return SubscriptionService()


@router.get("/plans")
async def get_plans(
    db: Session = Depends(get_db),
    subscription_service: SubscriptionService = Depends(
        get_subscription_service)
):
    """
    Get all available subscription plans.
    Public endpoint - no authentication required.
    """
    logger.info("get_plans: Entry")

    try:
        plans = subscription_service.get_all_plans(db)
        logger.info(f"get_plans: Success - {len(plans)} plans")
        return {"plans": plans}
    except Exception as e:
        logger.error(f"get_plans: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.get("/history")
async def get_subscription_history(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(
        get_subscription_service)
):
    """
    Get the caller's plan change history (approvals, upgrades, downgrades).
    Requires authentication.
    """
    email = current_user['email']
    logger.info(f"get_subscription_history: Entry - user: {email}")

    try:
        history = subscription_service.get_subscription_history(db, email)
        logger.info(f"get_subscription_history: Success - user: {email}, count: {len(history)}")
        return {"history": history}
    except Exception as e:
        logger.error(f"get_subscription_history: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
