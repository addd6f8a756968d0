import json
import logging

from sqlalchemy.orm import Session

from app.models.plan import Plan, PlanTier
from app.models.subscription_history import SubscriptionHistory
from app.services.analytics_service import AnalyticsService
from app.workflow.state import DEFAULT_PLAN_CATALOG, PlanSpec

logger = logging.getLogger(__name__)


PLAN_FEATURES = {
    PlanTier.FREE: [
        'Up to 3 inspection projects',
        'AI defect detection on uploaded images',
        'Basic PDF reports',
    ],
    PlanTier.PRO: [
        'Unlimited inspection projects',
        'Blueprint pinning and annotations',
        'Custom-branded reports',
        'Team members (one seat per approved request)',
    ],
    PlanTier.CUSTOM: [
        'Everything in Pro',
        'Dedicated detection models',
        'Annual billing and invoicing',
        'Priority support',
    ],
}

PLAN_PRICES = {
    PlanTier.FREE: 0.00,
    PlanTier.PRO: 49.90,
    PlanTier.CUSTOM: None,  # quote-based
}


class PlanConfiguration:
    """Plan catalog backed by the plans table"""

    @classmethod
    def seed_if_empty(cls, db: Session):
        """Seed plans table if empty (for initial setup or if migration didn't run)"""
        try:
            if db.query(Plan).count() > 0:
                return
            logger.info("seed_if_empty: Plans table is empty, seeding plans")
            for tier, spec in DEFAULT_PLAN_CATALOG.items():
                db.add(Plan(
                    tier=tier.value,
                    name=spec.name,
                    price_monthly=PLAN_PRICES[tier],
                    billing_days=spec.billing_days,
                    requires_approval=spec.requires_approval,
                    features=PLAN_FEATURES[tier],
                    active=True,
                ))
            db.commit()
            logger.info("seed_if_empty: Success - seeded free, pro and custom plans")
        except Exception as e:
            db.rollback()
            logger.error(f"seed_if_empty: Failure - {e}")
            # Don't raise - the built-in catalog still applies

    @classmethod
    def get_catalog(cls, db: Session) -> dict[PlanTier, PlanSpec]:
        """Plan specs keyed by tier; tiers missing from the table use the defaults"""
        cls.seed_if_empty(db)
        catalog = dict(DEFAULT_PLAN_CATALOG)
        for plan in db.query(Plan).filter(Plan.active == True).all():
            try:
                tier = PlanTier(plan.tier)
            except ValueError:
                logger.warning(f"get_catalog: Unknown plan tier in database - {plan.tier}")
                continue
            catalog[tier] = PlanSpec(
                tier=tier,
                name=plan.name,
                billing_days=plan.billing_days,
                requires_approval=plan.requires_approval,
            )
        return catalog


class SubscriptionService:
    def __init__(self):
        self.analytics = AnalyticsService()
        self.logger = logging.getLogger(__name__)

    def get_all_plans(self, db: Session) -> list[dict]:
        """Get all available subscription plans from database"""
        self.logger.info("get_all_plans: Entry")

        try:
            PlanConfiguration.seed_if_empty(db)
            plans_db = db.query(Plan).filter(Plan.active == True).all()
            rank = {tier.value: i for i, tier in enumerate(PlanTier)}
            plans_db.sort(key=lambda p: rank.get(p.tier, len(rank)))

            plans = [
                {
                    'tier': plan.tier,
                    'name': plan.name,
                    'price_monthly': float(plan.price_monthly) if plan.price_monthly is not None else None,
                    'billing_days': plan.billing_days,
                    'requires_approval': plan.requires_approval,
                    'features': plan.features,
                }
                for plan in plans_db
            ]

            self.logger.info(f"get_all_plans: Success - {len(plans)} plans")
            return plans
        except Exception as e:
            self.analytics.log_failure(
                action='get_all_plans',
                error=str(e)
            )
            self.logger.error(f"get_all_plans: Failure - {e}")
            raise

    def get_subscription_history(self, db: Session, email: str) -> list[dict]:
        """Get user's subscription history"""
        self.logger.info(f"get_subscription_history: Entry - user: {email}")

        try:
            history = db.query(SubscriptionHistory).filter(
                SubscriptionHistory.user_email == email
            ).order_by(SubscriptionHistory.created_at.desc()).all()

            result = [
                {
                    'id': entry.id,
                    'action': entry.action,
                    'from_plan': entry.from_plan,
                    'to_plan': entry.to_plan,
                    'created_at': entry.created_at.isoformat(),
                    'details': json.loads(entry.details) if entry.details else None
                }
                for entry in history
            ]

            self.analytics.log_success(
                action='get_subscription_history',
                user_id=email,
                parameters={'count': len(result)}
            )
            self.logger.info(
                f"get_subscription_history: Success - user: {email}, count: {len(result)}")
            return result
        except Exception as e:
            self.analytics.log_failure(
                action='get_subscription_history',
                error=str(e),
                user_id=email
            )
            self.logger.error(f"get_subscription_history: Failure - {e}")
            raise
