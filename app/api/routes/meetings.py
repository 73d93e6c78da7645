import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_current_user, get_db
from app.core.exceptions import AppException
from app.db.models.user import User
from app.schemas.common import AckResponse
from app.schemas.meeting import MeetingCreate, MeetingResponse, MeetingUpdate
from app.services import meeting_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meetings", tags=["Meetings"])


@router.get("", response_model=List[MeetingResponse])
def list_meetings(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return meeting_service.list_meetings(db, user.id)
    except Exception as e:
        logger.error(f"Failed to fetch meetings: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch meetings"
        )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MeetingResponse)
def create_meeting(
    payload: MeetingCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return meeting_service.create_meeting(db, user.id, payload)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create meeting: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create meeting"
        )


@router.put("/{meeting_id}", response_model=MeetingResponse)
def update_meeting(
    payload: MeetingUpdate,
    meeting_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return meeting_service.update_meeting(db, user.id, meeting_id, payload)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update meeting {meeting_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update meeting"
        )


@router.delete("/{meeting_id}", response_model=AckResponse)
def delete_meeting(
    meeting_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        meeting_service.delete_meeting(db, user.id, meeting_id)
        return AckResponse(message="Meeting deleted successfully")

    except (HTTPException, AppException):
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete meeting {meeting_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete meeting"
        )
