import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.v1.responses import serialize_user, to_http_exception
from app.core.config import settings
from app.core.database import get_db
from app.core.middleware import get_current_user
from app.models.inquiry import InquiryStatus
from app.models.user import User
from app.services.account_service import AccountService
from app.services.approval_service import ApprovalService

router = APIRouter()
logger = logging.getLogger(__name__)


class UserProfileUpdate(BaseModel):
    email: str
    name: Optional[str] = None
    crm_notes: Optional[str] = None


class UpdateUsersRequest(BaseModel):
    users: List[UserProfileUpdate]


def get_account_service() -> AccountService:
    """Dependency to get account service instance"""
    return AccountService()


def get_approval_service() -> ApprovalService:
    """Dependency to get approval service instance"""
    return ApprovalService()


def is_admin(db: Session, current_user: dict) -> bool:
    """Admins are listed in ADMIN_EMAILS or flagged on their account row"""
    email = (current_user.get('email') or '').strip().lower()
    if email in [e.strip().lower() for e in settings.admin_emails]:
        return True
    user = db.get(User, email) if email else None
    return bool(user and user.is_admin)


async def require_admin(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
) -> dict:
    if not is_admin(db, current_user):
        logger.warning(f"require_admin: Unauthorized - user: {current_user['email']}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def _plan_result(result) -> dict:
    return {
        "user": serialize_user(result.updated_user),
        "inquiries": [i.model_dump(mode="json") for i in result.updated_inquiries],
    }


@router.get("/users")
async def get_users(
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service)
):
    """All non-admin accounts with their project counts"""
    logger.info(f"get_users: Entry - admin: {admin['email']}")

    try:
        users = account_service.get_all_users(db)
        logger.info(f"get_users: Success - {len(users)} users")
        return {"users": users}
    except Exception as e:
        logger.error(f"get_users: Failure - {e}")
        raise to_http_exception(e)


@router.put("/users")
async def update_users(
    request: UpdateUsersRequest,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service)
):
    """
    Save CRM edits for several users at once.
    Only name and crm_notes are editable here; plan and team changes go
    through the inquiry workflow.
    """
    logger.info(f"update_users: Entry - admin: {admin['email']}, count: {len(request.users)}")

    try:
        users = account_service.update_user_profiles(
            db, [u.model_dump(exclude_unset=True) for u in request.users]
        )
        logger.info(f"update_users: Success - {len(users)} users")
        return {"users": [serialize_user(u) for u in users]}
    except Exception as e:
        logger.error(f"update_users: Failure - {e}")
        raise to_http_exception(e)


@router.delete("/users/{email}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    email: str,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service)
):
    logger.info(f"delete_user: Entry - admin: {admin['email']}, user: {email}")

    try:
        account_service.delete_user_and_projects(db, email)
        logger.info(f"delete_user: Success - user: {email}")
    except Exception as e:
        logger.error(f"delete_user: Failure - {e}")
        raise to_http_exception(e)


@router.post("/subscriptions/refresh")
async def refresh_subscription_statuses(
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    account_service: AccountService = Depends(get_account_service)
):
    """Recompute every account's subscription status"""
    logger.info(f"refresh_subscription_statuses: Entry - admin: {admin['email']}")

    try:
        changed = account_service.refresh_all_statuses(db)
        logger.info(f"refresh_subscription_statuses: Success - changed: {changed}")
        return {"changed": changed}
    except Exception as e:
        logger.error(f"refresh_subscription_statuses: Failure - {e}")
        raise to_http_exception(e)


@router.get("/plan-inquiries")
async def get_plan_inquiries(
    status_filter: Optional[InquiryStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    approval_service: ApprovalService = Depends(get_approval_service)
):
    logger.info(f"get_plan_inquiries: Entry - admin: {admin['email']}")

    try:
        inquiries = approval_service.list_plan_inquiries(db, status_filter)
        logger.info(f"get_plan_inquiries: Success - {len(inquiries)} inquiries")
        return {"inquiries": [i.model_dump(mode="json") for i in inquiries]}
    except Exception as e:
        logger.error(f"get_plan_inquiries: Failure - {e}")
        raise to_http_exception(e)


@router.post("/plan-inquiries/{inquiry_id}/approve")
async def approve_plan_inquiry(
    inquiry_id: str,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    approval_service: ApprovalService = Depends(get_approval_service)
):
    """Approve a pending plan inquiry and start the user's billing period"""
    logger.info(f"approve_plan_inquiry: Entry - admin: {admin['email']}, inquiry: {inquiry_id}")

    try:
        result = approval_service.approve_plan_inquiry(db, inquiry_id)
        logger.info(f"approve_plan_inquiry: Success - inquiry: {inquiry_id}")
        return _plan_result(result)
    except Exception as e:
        logger.error(f"approve_plan_inquiry: Failure - {e}")
        raise to_http_exception(e)


@router.post("/plan-inquiries/{inquiry_id}/reject")
async def reject_plan_inquiry(
    inquiry_id: str,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    approval_service: ApprovalService = Depends(get_approval_service)
):
    logger.info(f"reject_plan_inquiry: Entry - admin: {admin['email']}, inquiry: {inquiry_id}")

    try:
        result = approval_service.reject_plan_inquiry(db, inquiry_id)
        logger.info(f"reject_plan_inquiry: Success - inquiry: {inquiry_id}")
        return _plan_result(result)
    except Exception as e:
        logger.error(f"reject_plan_inquiry: Failure - {e}")
        raise to_http_exception(e)


@router.get("/team-inquiries")
async def get_team_inquiries(
    status_filter: Optional[InquiryStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    approval_service: ApprovalService = Depends(get_approval_service)
):
    logger.info(f"get_team_inquiries: Entry - admin: {admin['email']}")

    try:
        inquiries = approval_service.list_team_inquiries(db, status_filter)
        logger.info(f"get_team_inquiries: Success - {len(inquiries)} inquiries")
        return {"inquiries": [i.model_dump(mode="json") for i in inquiries]}
    except Exception as e:
        logger.error(f"get_team_inquiries: Failure - {e}")
        raise to_http_exception(e)


@router.post("/team-inquiries/{inquiry_id}/approve")
async def approve_team_member_inquiry(
    inquiry_id: str,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    approval_service: ApprovalService = Depends(get_approval_service)
):
    """Move the requested email from pending to members of the owner's team"""
    logger.info(f"approve_team_member_inquiry: Entry - admin: {admin['email']}, inquiry: {inquiry_id}")

    try:
        result = approval_service.approve_team_member_inquiry(db, inquiry_id)
        logger.info(f"approve_team_member_inquiry: Success - inquiry: {inquiry_id}")
        return {
            "users": [serialize_user(u) for u in result.updated_users],
            "inquiries": [i.model_dump(mode="json") for i in result.updated_inquiries],
        }
    except Exception as e:
        logger.error(f"approve_team_member_inquiry: Failure - {e}")
        raise to_http_exception(e)


@router.post("/team-inquiries/{inquiry_id}/reject")
async def reject_team_member_inquiry(
    inquiry_id: str,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
    approval_service: ApprovalService = Depends(get_approval_service)
):
    logger.info(f"reject_team_member_inquiry: Entry - admin: {admin['email']}, inquiry: {inquiry_id}")

    try:
        result = approval_service.reject_team_member_inquiry(db, inquiry_id)
        logger.info(f"reject_team_member_inquiry: Success - inquiry: {inquiry_id}")
        return {
            "owner": serialize_user(result.updated_owner),
            "inquiries": [i.model_dump(mode="json") for i in result.updated_inquiries],
        }
    except Exception as e:
        logger.error(f"reject_team_member_inquiry: Failure - {e}")
        raise to_http_exception(e)
