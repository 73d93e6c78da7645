from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.models.enums import SubscriptionStatus


class Subscription(Base):
    """
    Time-bounded grant of a plan to a user.

    Expiry is derived from end_date at read time; status is only ever
    written as active or cancelled.
    """
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value)
    stripe_session_id = Column(String(255), nullable=True, unique=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="subscriptions")
    plan = relationship("Plan", back_populates="subscriptions")

    __table_args__ = (
        Index("idx_subscription_user_status", "user_id", "status"),
    )

    def effective_status(self, now: datetime = None) -> str:
        """Status as seen by readers: an active row past its end date reads as expired."""
        now = now or datetime.utcnow()
        if self.status == SubscriptionStatus.ACTIVE.value and self.end_date <= now:
            return SubscriptionStatus.EXPIRED.value
        return self.status

    def __repr__(self):
        return f"<Subscription(id={self.id}, user_id={self.user_id}, plan_id={self.plan_id}, status='{self.status}')>"
