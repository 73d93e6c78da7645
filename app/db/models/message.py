from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.models.enums import MessageType


class Message(Base):
    """Append-only chat message; removed only together with its discussion."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    discussion_id = Column(Integer, ForeignKey("discussions.id"), nullable=False, index=True)
    role = Column(String(10), nullable=False)  # user | ai
    type = Column(String(10), nullable=False, default=MessageType.TEXT.value)  # text | vocal
    content = Column(Text, nullable=False)  # placeholder label for vocal messages
    audio_url = Column(String(500), nullable=True)
    label = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    discussion = relationship("Discussion", back_populates="messages")

    __table_args__ = (
        Index("idx_message_discussion_created", "discussion_id", "created_at"),
    )

    def __repr__(self):
        return f"<Message(id={self.id}, discussion_id={self.discussion_id}, role='{self.role}')>"
