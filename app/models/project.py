from sqlalchemy import Column, String, DateTime
from app.core.database import Base
from datetime import datetime


class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    user_email = Column(String, nullable=False, index=True)  # team owner for shared projects
    created_at = Column(DateTime, default=datetime.utcnow)
