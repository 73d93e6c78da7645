"""
Discussion and message operations.

Owner operations go through ScopedDiscussionRepository; the admin_* functions
use AdminDiscussionRepository and intentionally ignore ownership.
"""
import logging
import math
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundException
from app.db.models.discussion import Discussion
from app.db.models.enums import DiscussionStatus, MessageType
from app.db.models.message import Message
from app.db.transaction import transaction
from app.repositories.discussion_repo import (
    AdminDiscussionRepository,
    ScopedDiscussionRepository,
    count_messages,
    latest_message,
    ordered_messages,
)
from app.schemas.discussion import (
    AdminDiscussionDetail,
    AdminDiscussionList,
    AdminDiscussionSummary,
    DiscussionDetail,
    DiscussionSummary,
    MessageResponse,
)

logger = logging.getLogger(__name__)

DISCUSSION_NOT_FOUND = "Discussion not found"


def _get_owned(repo: ScopedDiscussionRepository, discussion_id: int, lock: bool = False) -> Discussion:
    discussion = repo.get(discussion_id, lock=lock)
    if not discussion:
        raise NotFoundException(DISCUSSION_NOT_FOUND)
    return discussion


def to_detail(db: Session, discussion: Discussion, model=DiscussionDetail):
    detail = model.model_validate(discussion)
    detail.messages = [MessageResponse.model_validate(m) for m in ordered_messages(db, discussion.id)]
    return detail


def to_summary(db: Session, discussion: Discussion, model=DiscussionSummary):
    summary = model.model_validate(discussion)
    last = latest_message(db, discussion.id)
    summary.last_message = MessageResponse.model_validate(last) if last else None
    return summary


def create_discussion(db: Session, user_id: int, title: str, cv_analysis: Optional[dict] = None) -> Discussion:
    repo = ScopedDiscussionRepository(db, user_id)
    discussion = Discussion(
        title=title,
        status=DiscussionStatus.ACTIVE.value,
        last_message_at=datetime.utcnow(),
    )
    discussion.set_cv_analysis(cv_analysis)

    with transaction(db):
        repo.add(discussion)
    db.refresh(discussion)

    logger.info(
        f"Discussion created: discussion_id={discussion.id}, user_id={user_id}, "
        f"with_cv={cv_analysis is not None}"
    )
    return discussion


def list_discussions(db: Session, user_id: int) -> List[DiscussionSummary]:
    repo = ScopedDiscussionRepository(db, user_id)
    return [to_summary(db, d) for d in repo.list()]


def get_discussion(db: Session, user_id: int, discussion_id: int) -> DiscussionDetail:
    repo = ScopedDiscussionRepository(db, user_id)
    return to_detail(db, _get_owned(repo, discussion_id))


def rename_discussion(db: Session, user_id: int, discussion_id: int, title: str) -> Discussion:
    repo = ScopedDiscussionRepository(db, user_id)
    with transaction(db):
        discussion = _get_owned(repo, discussion_id)
        discussion.title = title
    db.refresh(discussion)
    return discussion


def set_discussion_status(db: Session, user_id: int, discussion_id: int, status: str) -> Discussion:
    repo = ScopedDiscussionRepository(db, user_id)
    with transaction(db):
        discussion = _get_owned(repo, discussion_id)
        discussion.status = DiscussionStatus(status).value
    db.refresh(discussion)
    logger.info(f"Discussion status changed: discussion_id={discussion_id}, status={status}")
    return discussion


def _new_message(discussion: Discussion, role: str, type: str, content: str,
                 audio_url: Optional[str] = None, label: Optional[str] = None) -> Message:
    return Message(
        discussion_id=discussion.id,
        role=role,
        type=MessageType(type).value,
        content=content,
        audio_url=audio_url,
        label=label,
        created_at=datetime.utcnow(),
    )


def append_message(
    db: Session,
    user_id: int,
    discussion_id: int,
    role: str,
    type: str,
    content: str,
    audio_url: Optional[str] = None,
    label: Optional[str] = None,
) -> Message:
    """Insert a message and bump the parent's last_message_at atomically."""
    repo = ScopedDiscussionRepository(db, user_id)
    with transaction(db):
        discussion = _get_owned(repo, discussion_id, lock=True)
        message = _new_message(discussion, role, type, content, audio_url, label)
        db.add(message)
        discussion.last_message_at = message.created_at
    db.refresh(message)
    return message


def append_exchange(db: Session, discussion: Discussion, user_content: str, ai_content: str) -> Tuple[Message, Message]:
    """Persist a user turn and the assistant's reply together."""
    with transaction(db):
        user_message = _new_message(discussion, "user", "text", user_content)
        db.add(user_message)
        db.flush()
        ai_message = _new_message(discussion, "ai", "text", ai_content)
        db.add(ai_message)
        discussion.last_message_at = ai_message.created_at
    db.refresh(user_message)
    db.refresh(ai_message)
    return user_message, ai_message


def get_owned_discussion(db: Session, user_id: int, discussion_id: int) -> Discussion:
    return _get_owned(ScopedDiscussionRepository(db, user_id), discussion_id)


def delete_discussion(db: Session, user_id: int, discussion_id: int) -> int:
    repo = ScopedDiscussionRepository(db, user_id)
    with transaction(db):
        discussion = _get_owned(repo, discussion_id)
        deleted_messages = repo.delete(discussion)
    logger.info(
        f"Discussion deleted: discussion_id={discussion_id}, user_id={user_id}, "
        f"messages={deleted_messages}"
    )
    return deleted_messages


# --- admin bypass -----------------------------------------------------------

def admin_list_discussions(
    db: Session,
    search: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> AdminDiscussionList:
    repo = AdminDiscussionRepository(db)
    rows, total = repo.search(search=search, status=status, page=page, limit=limit)

    discussions = []
    for discussion in rows:
        summary = to_summary(db, discussion, model=AdminDiscussionSummary)
        summary.message_count = count_messages(db, discussion.id)
        discussions.append(summary)

    return AdminDiscussionList(
        discussions=discussions,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
        current_page=page,
        limit=limit,
    )


def admin_get_discussion(db: Session, discussion_id: int) -> AdminDiscussionDetail:
    discussion = AdminDiscussionRepository(db).get(discussion_id)
    if not discussion:
        raise NotFoundException(DISCUSSION_NOT_FOUND)
    return to_detail(db, discussion, model=AdminDiscussionDetail)


def admin_delete_discussion(db: Session, discussion_id: int) -> int:
    repo = AdminDiscussionRepository(db)
    with transaction(db):
        discussion = repo.get(discussion_id)
        if not discussion:
            raise NotFoundException(DISCUSSION_NOT_FOUND)
        owner_id = discussion.user_id
        deleted_messages = repo.delete(discussion)
    logger.info(
        f"Admin deleted discussion: discussion_id={discussion_id}, owner_id={owner_id}, "
        f"messages={deleted_messages}"
    )
    return deleted_messages
