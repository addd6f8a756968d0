from sqlalchemy import Column, String, DateTime, Text
from app.core.database import Base
from datetime import datetime


class SubscriptionHistory(Base):
    __tablename__ = "subscription_history"

    id = Column(String, primary_key=True, index=True)
    user_email = Column(String, nullable=False, index=True)
    action = Column(String, nullable=False, index=True)  # 'upgraded', 'downgraded', 'renewed'
    from_plan = Column(String, nullable=True)
    to_plan = Column(String, nullable=True)
    details = Column(Text, nullable=True)  # JSON for additional details
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
