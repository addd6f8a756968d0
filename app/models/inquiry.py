from sqlalchemy import Column, String, DateTime, Enum, Text
from app.core.database import Base
from datetime import datetime
import enum


class InquiryStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Inquiries reference users by email only: history survives user deletion.

class PlanChangeInquiry(Base):
    __tablename__ = "plan_change_inquiries"

    id = Column(String, primary_key=True, index=True)
    user_email = Column(String, nullable=False, index=True)
    user_name = Column(String, nullable=False)
    requested_plan = Column(String, nullable=False)
    status = Column(Enum(InquiryStatus), nullable=False, default=InquiryStatus.PENDING, index=True)
    company_name = Column(String, nullable=True)
    team_size = Column(String, nullable=True)
    use_case = Column(Text, nullable=True)
    phone = Column(String, nullable=True)
    payment_proof_image = Column(Text, nullable=True)  # base64 data URL
    submitted_at = Column(DateTime, default=datetime.utcnow, index=True)
    resolved_at = Column(DateTime, nullable=True)


class TeamMemberInquiry(Base):
    __tablename__ = "team_member_inquiries"

    id = Column(String, primary_key=True, index=True)
    owner_email = Column(String, nullable=False, index=True)
    owner_name = Column(String, nullable=False)
    member_email = Column(String, nullable=False, index=True)
    status = Column(Enum(InquiryStatus), nullable=False, default=InquiryStatus.PENDING, index=True)
    payment_proof_image = Column(Text, nullable=False)  # base64 data URL
    submitted_at = Column(DateTime, default=datetime.utcnow, index=True)
    resolved_at = Column(DateTime, nullable=True)
