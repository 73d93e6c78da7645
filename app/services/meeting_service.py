import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundException
from app.db.models.enums import MeetingStatus
from app.db.models.meeting import Meeting
from app.db.transaction import transaction
from app.schemas.meeting import MeetingCreate, MeetingUpdate

logger = logging.getLogger(__name__)


def _naive_utc(value: datetime) -> datetime:
    # Timestamps are stored as naive UTC
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _get_owned(db: Session, user_id: int, meeting_id: int) -> Meeting:
    meeting = (
        db.query(Meeting)
        .filter(Meeting.id == meeting_id, Meeting.user_id == user_id)
        .first()
    )
    if not meeting:
        raise NotFoundException("Meeting not found")
    return meeting


def list_meetings(db: Session, user_id: int) -> List[Meeting]:
    """Upcoming-first ordering: by date ascending."""
    return (
        db.query(Meeting)
        .filter(Meeting.user_id == user_id)
        .order_by(Meeting.date.asc(), Meeting.id.asc())
        .all()
    )


def create_meeting(db: Session, user_id: int, payload: MeetingCreate) -> Meeting:
    meeting = Meeting(
        user_id=user_id,
        title=payload.title,
        date=_naive_utc(payload.date),
        duration=payload.duration,
        type=payload.type,
        status=MeetingStatus.SCHEDULED.value,
    )
    with transaction(db):
        db.add(meeting)
    db.refresh(meeting)
    logger.info(f"Meeting created: meeting_id={meeting.id}, user_id={user_id}")
    return meeting


def update_meeting(db: Session, user_id: int, meeting_id: int, payload: MeetingUpdate) -> Meeting:
    with transaction(db):
        meeting = _get_owned(db, user_id, meeting_id)
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            if field == "date":
                value = _naive_utc(value)
            setattr(meeting, field, value)
    db.refresh(meeting)
    return meeting


def delete_meeting(db: Session, user_id: int, meeting_id: int) -> None:
    with transaction(db):
        meeting = _get_owned(db, user_id, meeting_id)
        db.delete(meeting)
    logger.info(f"Meeting deleted: meeting_id={meeting_id}, user_id={user_id}")
