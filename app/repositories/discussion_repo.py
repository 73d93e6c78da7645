"""
Discussion data access.

Two repositories with deliberately different reach:

- ScopedDiscussionRepository is bound to one owner; every query it issues
  carries `user_id = owner`, so a discussion belonging to someone else is
  indistinguishable from a missing one.
- AdminDiscussionRepository has no owner scope and is only constructed by
  admin routes.
"""
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.db.models.discussion import Discussion
from app.db.models.message import Message
from app.db.models.user import User


def latest_message(db: Session, discussion_id: int) -> Optional[Message]:
    return (
        db.query(Message)
        .filter(Message.discussion_id == discussion_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .first()
    )


def ordered_messages(db: Session, discussion_id: int) -> List[Message]:
    return (
        db.query(Message)
        .filter(Message.discussion_id == discussion_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


def count_messages(db: Session, discussion_id: int) -> int:
    return db.query(func.count(Message.id)).filter(Message.discussion_id == discussion_id).scalar() or 0


def delete_discussion_rows(db: Session, discussion_ids: List[int]) -> int:
    """
    Delete messages, then their discussions. Caller owns the transaction.

    Returns the number of messages deleted.
    """
    if not discussion_ids:
        return 0
    deleted_messages = (
        db.query(Message)
        .filter(Message.discussion_id.in_(discussion_ids))
        .delete(synchronize_session=False)
    )
    db.query(Discussion).filter(Discussion.id.in_(discussion_ids)).delete(synchronize_session=False)
    return deleted_messages


class ScopedDiscussionRepository:
    def __init__(self, db: Session, owner_id: int):
        self.db = db
        self.owner_id = owner_id

    def _query(self):
        return self.db.query(Discussion).filter(Discussion.user_id == self.owner_id)

    def get(self, discussion_id: int, lock: bool = False) -> Optional[Discussion]:
        query = self._query().filter(Discussion.id == discussion_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def list(self) -> List[Discussion]:
        return self._query().order_by(Discussion.last_message_at.desc(), Discussion.id.desc()).all()

    def add(self, discussion: Discussion) -> Discussion:
        discussion.user_id = self.owner_id
        self.db.add(discussion)
        return discussion

    def delete(self, discussion: Discussion) -> int:
        if discussion.user_id != self.owner_id:
            raise ValueError("discussion is outside this repository's scope")
        return delete_discussion_rows(self.db, [discussion.id])


class AdminDiscussionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, discussion_id: int) -> Optional[Discussion]:
        return self.db.query(Discussion).filter(Discussion.id == discussion_id).first()

    def search(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Discussion], int]:
        query = self.db.query(Discussion).join(User, Discussion.user_id == User.id)

        if search:
            term = f"%{search}%"
            query = query.filter(
                or_(
                    Discussion.title.ilike(term),
                    User.first_name.ilike(term),
                    User.last_name.ilike(term),
                    User.email.ilike(term),
                )
            )
        if status:
            query = query.filter(Discussion.status == status)

        total = query.count()
        rows = (
            query.order_by(Discussion.last_message_at.desc(), Discussion.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def recent(self, limit: int = 4) -> List[Discussion]:
        return (
            self.db.query(Discussion)
            .order_by(Discussion.last_message_at.desc(), Discussion.id.desc())
            .limit(limit)
            .all()
        )

    def ids_for_user(self, user_id: int) -> List[int]:
        return [row.id for row in self.db.query(Discussion.id).filter(Discussion.user_id == user_id).all()]

    def delete(self, discussion: Discussion) -> int:
        return delete_discussion_rows(self.db, [discussion.id])
