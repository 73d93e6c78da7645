"""
Database models module.

Imports every model so that they are registered on Base.metadata before
table creation and migrations.
"""
from app.db.models.user import User
from app.db.models.plan import Plan
from app.db.models.subscription import Subscription
from app.db.models.discussion import Discussion
from app.db.models.message import Message
from app.db.models.meeting import Meeting

__all__ = [
    "User",
    "Plan",
    "Subscription",
    "Discussion",
    "Message",
    "Meeting",
]
