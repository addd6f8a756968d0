from sqlalchemy import Column, String, DateTime, Boolean, Enum, JSON, Text
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.subscription import SubscriptionStatus
from datetime import datetime
import enum


class AccountRole(str, enum.Enum):
    STANDALONE = "standalone"
    OWNER = "owner"
    MEMBER = "member"


class User(Base):
    __tablename__ = "users"

    email = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    plan = Column(String, nullable=False, default='free', index=True)  # 'free', 'pro', 'custom'
    pending_plan = Column(String, nullable=True)
    subscription_start_date = Column(DateTime, nullable=True)
    subscription_end_date = Column(DateTime, nullable=True)
    subscription_status = Column(Enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.ACTIVE)
    account_role = Column(Enum(AccountRole), nullable=False, default=AccountRole.STANDALONE, index=True)
    member_of = Column(String, nullable=True, index=True)  # owner email, members only
    team_members = Column(JSON, nullable=False, default=list)  # owners only
    team_pending_members = Column(JSON, nullable=False, default=list)  # owners only
    crm_notes = Column(Text, nullable=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    notifications = relationship(
        "Notification",
        back_populates="user",
        order_by="Notification.position",
        cascade="all, delete-orphan",
    )
