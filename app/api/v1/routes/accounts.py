import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.v1.responses import serialize_user, to_http_exception
from app.core.database import get_db
from app.core.middleware import get_current_user
from app.models.plan import PlanTier
from app.schemas.state import PlanChangeDetails
from app.services.account_service import AccountService
from app.services.team_service import TeamService

router = APIRouter()
logger = logging.getLogger(__name__)


def get_account_service() -> AccountService:
    """Dependency to get account service instance"""
    return AccountService()


def get_team_service() -> TeamService:
    """Dependency to get team service instance"""
    return TeamService()


class RegisterRequest(BaseModel):
    name: Optional[str] = None


class PlanChangeRequest(BaseModel):
    plan: PlanTier
    company_name: Optional[str] = None
    team_size: Optional[str] = None
    use_case: Optional[str] = None
    phone: Optional[str] = None
    payment_proof_image: Optional[str] = None  # base64 data URL


class AddTeamMemberRequest(BaseModel):
    member_email: str
    payment_proof_image: str  # base64 data URL


@router.get("/me")
async def get_me(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """
    Current account with its subscription status re-checked.
    Requires authentication.
    """
    email = current_user['email']
    logger.info(f"get_me: Entry - user: {email}")

    try:
        user = account_service.check_subscription_status(db, email)
        logger.info(f"get_me: Success - user: {email}")
        return serialize_user(user)
    except Exception as e:
        logger.error(f"get_me: Failure - {e}")
        raise to_http_exception(e)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """Create the account record for an authenticated Firebase user"""
    email = current_user['email']
    logger.info(f"register: Entry - user: {email}")

    try:
        user = account_service.register_user(db, email, request.name or current_user.get('name'))
        logger.info(f"register: Success - user: {email}")
        return serialize_user(user)
    except Exception as e:
        logger.error(f"register: Failure - {e}")
        raise to_http_exception(e)


@router.post("/plan-requests")
async def request_plan_change(
    request: PlanChangeRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """
    Request a plan change. Gated plans create an inquiry for admin approval
    and return the account with pending_plan set.
    """
    email = current_user['email']
    logger.info(f"request_plan_change: Entry - user: {email}, plan: {request.plan.value}")

    try:
        details = PlanChangeDetails(**request.model_dump(exclude={'plan'}))
        user = account_service.request_plan_change(db, email, request.plan, details)
        logger.info(f"request_plan_change: Success - user: {email}")
        return serialize_user(user)
    except Exception as e:
        logger.error(f"request_plan_change: Failure - {e}")
        raise to_http_exception(e)


@router.post("/team/members")
async def request_add_team_member(
    request: AddTeamMemberRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    team_service: TeamService = Depends(get_team_service)
):
    """Ask an admin to add a member to the caller's team (proof of payment required)"""
    email = current_user['email']
    logger.info(f"request_add_team_member: Entry - owner: {email}")

    try:
        owner = team_service.request_add_team_member(
            db, email, request.member_email, request.payment_proof_image
        )
        logger.info(f"request_add_team_member: Success - owner: {email}")
        return serialize_user(owner)
    except Exception as e:
        logger.error(f"request_add_team_member: Failure - {e}")
        raise to_http_exception(e)


@router.delete("/team/members/{member_email}")
async def remove_team_member(
    member_email: str,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    team_service: TeamService = Depends(get_team_service)
):
    email = current_user['email']
    logger.info(f"remove_team_member: Entry - owner: {email}, member: {member_email}")

    try:
        users = team_service.remove_team_member(db, email, member_email)
        logger.info(f"remove_team_member: Success - owner: {email}")
        return serialize_user(users[0])
    except Exception as e:
        logger.error(f"remove_team_member: Failure - {e}")
        raise to_http_exception(e)


@router.get("/projects")
async def get_projects(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """Projects visible to the caller (the team owner's projects for members)"""
    email = current_user['email']
    logger.info(f"get_projects: Entry - user: {email}")

    try:
        projects = account_service.get_projects_for_user(db, email)
        logger.info(f"get_projects: Success - user: {email}, count: {len(projects)}")
        return {
            "projects": [
                {
                    "id": p.id,
                    "name": p.name,
                    "user_email": p.user_email,
                    "created_at": p.created_at.isoformat() if p.created_at else None,
                }
                for p in projects
            ]
        }
    except Exception as e:
        logger.error(f"get_projects: Failure - {e}")
        raise to_http_exception(e)
