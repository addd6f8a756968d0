from app.models.user import User, AccountRole
from app.models.plan import Plan, PlanTier
from app.models.subscription import SubscriptionStatus
from app.models.notification import Notification, Severity
from app.models.inquiry import PlanChangeInquiry, TeamMemberInquiry, InquiryStatus
from app.models.project import Project
from app.models.subscription_history import SubscriptionHistory

__all__ = ["User", "AccountRole", "Plan", "PlanTier", "SubscriptionStatus", "Notification", "Severity", "PlanChangeInquiry", "TeamMemberInquiry", "InquiryStatus", "Project", "SubscriptionHistory"]
