from sqlalchemy import Column, String, DateTime, Boolean, Integer, Numeric, JSON
from app.core.database import Base
from datetime import datetime
import enum


class PlanTier(str, enum.Enum):
    FREE = "free"
    PRO = "pro"
    CUSTOM = "custom"


# Ordering used to label plan changes as upgrades or downgrades
PLAN_RANK = {PlanTier.FREE: 0, PlanTier.PRO: 1, PlanTier.CUSTOM: 2}


class Plan(Base):
    __tablename__ = "plans"

    tier = Column(String, primary_key=True)  # 'free', 'pro', 'custom'
    name = Column(String, nullable=False)
    price_monthly = Column(Numeric(10, 2), nullable=True)  # null for quote-based plans
    billing_days = Column(Integer, nullable=True)  # null = no expiry (free tier)
    requires_approval = Column(Boolean, default=True, nullable=False)
    features = Column(JSON, nullable=False)  # Store as array
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
