"""
Discussion (chat thread) endpoints.

Every operation is scoped to the caller; a discussion owned by someone else
answers 404 exactly like a missing one.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_current_user, get_db
from app.core.exceptions import AppException
from app.db.models.user import User
from app.llm.provider import LLMProvider
from app.llm.router import get_llm_provider
from app.schemas.discussion import (
    CoachReplyRequest,
    CoachReplyResponse,
    DiscussionCreate,
    DiscussionDeleteResponse,
    DiscussionDetail,
    DiscussionRename,
    DiscussionStatusUpdate,
    DiscussionSummary,
    MessageCreate,
    MessageResponse,
)
from app.services import coach_service, discussion_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/discussions", tags=["Discussions"])


def _server_error(db: Session, action: str, e: Exception) -> HTTPException:
    db.rollback()
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}"
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=DiscussionDetail)
def create_discussion(
    payload: DiscussionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        cv_analysis = payload.cv_analysis.model_dump() if payload.cv_analysis else None
        discussion = discussion_service.create_discussion(db, user.id, payload.title, cv_analysis)
        return discussion_service.to_detail(db, discussion)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "create discussion", e)


@router.get("", response_model=List[DiscussionSummary])
def list_discussions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Caller's discussions, most recently active first, each with its latest message."""
    try:
        return discussion_service.list_discussions(db, user.id)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "fetch discussions", e)


@router.get("/{discussion_id}", response_model=DiscussionDetail)
def get_discussion(
    discussion_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return discussion_service.get_discussion(db, user.id, discussion_id)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "fetch discussion", e)


@router.put("/{discussion_id}", response_model=DiscussionDetail)
def rename_discussion(
    payload: DiscussionRename,
    discussion_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        discussion = discussion_service.rename_discussion(db, user.id, discussion_id, payload.title)
        return discussion_service.to_detail(db, discussion)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "update discussion", e)


@router.patch("/{discussion_id}/status", response_model=DiscussionDetail)
def set_discussion_status(
    payload: DiscussionStatusUpdate,
    discussion_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        discussion = discussion_service.set_discussion_status(db, user.id, discussion_id, payload.status)
        return discussion_service.to_detail(db, discussion)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "update discussion status", e)


@router.delete("/{discussion_id}", response_model=DiscussionDeleteResponse)
def delete_discussion(
    discussion_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        deleted_messages = discussion_service.delete_discussion(db, user.id, discussion_id)
        return DiscussionDeleteResponse(
            message="Discussion deleted successfully",
            deleted_messages=deleted_messages,
        )

    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "delete discussion", e)


@router.post("/{discussion_id}/messages", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
def append_message(
    payload: MessageCreate,
    discussion_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        message = discussion_service.append_message(
            db,
            user.id,
            discussion_id,
            role=payload.role,
            type=payload.type,
            content=payload.content,
            audio_url=payload.audio_url,
            label=payload.label,
        )
        return MessageResponse.model_validate(message)

    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "add message", e)


@router.post("/{discussion_id}/reply", status_code=status.HTTP_201_CREATED, response_model=CoachReplyResponse)
def coach_reply(
    payload: CoachReplyRequest,
    discussion_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: LLMProvider = Depends(get_llm_provider),
):
    """Send a user turn to the interview coach and store both sides of the exchange."""
    try:
        user_message, ai_message = coach_service.reply(db, provider, user.id, discussion_id, payload.content)
        return CoachReplyResponse(
            user_message=MessageResponse.model_validate(user_message),
            ai_message=MessageResponse.model_validate(ai_message),
        )

    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "get a reply", e)


@router.post("/{discussion_id}/reply/stream")
def coach_reply_stream(
    payload: CoachReplyRequest,
    discussion_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: LLMProvider = Depends(get_llm_provider),
):
    """Stream the coach's answer as plain text; both turns are stored once it completes."""
    try:
        chunks = coach_service.stream_reply(db, provider, user.id, discussion_id, payload.content)
    except (HTTPException, AppException):
        raise
    except Exception as e:
        raise _server_error(db, "get a reply", e)
    return StreamingResponse(chunks, media_type="text/plain; charset=utf-8")
