from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.models.enums import UserRole
from app.db.types import JSONList


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(191), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    phone_number = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)

    # Latest CV analysis
    cv_skills = Column(JSONList, nullable=True)
    cv_experience = Column(JSONList, nullable=True)
    cv_education = Column(JSONList, nullable=True)
    cv_summary = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    discussions = relationship("Discussion", back_populates="user")
    subscriptions = relationship(
        "Subscription",
        back_populates="user",
        order_by="Subscription.created_at.desc()",
    )
    meetings = relationship("Meeting", back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def cv_analysis(self) -> dict:
        return {
            "skills": self.cv_skills or [],
            "experience": self.cv_experience or [],
            "education": self.cv_education or [],
            "summary": self.cv_summary or "",
        }

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
