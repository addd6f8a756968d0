from sqlalchemy import Column, String, DateTime, Boolean, Enum, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from app.core.database import Base
from datetime import datetime
import enum


class Severity(str, enum.Enum):
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    ERROR = "error"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, index=True)
    user_email = Column(String, ForeignKey("users.email", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)  # ledger order, oldest first
    message = Column(Text, nullable=False)
    severity = Column(Enum(Severity), nullable=False, default=Severity.INFO)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="notifications")
