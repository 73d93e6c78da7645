from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.models.enums import DiscussionStatus
from app.db.types import JSONList


class Discussion(Base):
    """
    A chat / interview-simulation thread owned by one user.

    May carry a snapshot of the CV analysis captured when it was created.
    """
    __tablename__ = "discussions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=DiscussionStatus.ACTIVE.value, index=True)
    last_message_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    cv_skills = Column(JSONList, nullable=True, default=list)
    cv_experience = Column(JSONList, nullable=True, default=list)
    cv_education = Column(JSONList, nullable=True, default=list)
    cv_summary = Column(Text, nullable=True, default="")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="discussions")
    messages = relationship(
        "Message",
        back_populates="discussion",
        order_by="Message.id",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_discussion_user_last_message", "user_id", "last_message_at"),
    )

    @property
    def cv_analysis(self) -> dict:
        return {
            "skills": self.cv_skills or [],
            "experience": self.cv_experience or [],
            "education": self.cv_education or [],
            "summary": self.cv_summary or "",
        }

    def set_cv_analysis(self, analysis) -> None:
        """Store a CV analysis mapping; missing parts fall back to empty values."""
        analysis = analysis or {}
        self.cv_skills = analysis.get("skills") or []
        self.cv_experience = analysis.get("experience") or []
        self.cv_education = analysis.get("education") or []
        self.cv_summary = analysis.get("summary") or ""

    def __repr__(self):
        return f"<Discussion(id={self.id}, title='{self.title}', user_id={self.user_id})>"
