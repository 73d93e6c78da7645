"""
Interview coach and CV analysis on top of the configured LLM provider.

Provider calls happen before anything is written, so a timeout or upstream
error leaves the discussion untouched.
"""
import json
import logging
from typing import Dict, Iterator, List, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import UpstreamServiceException
from app.db.models.discussion import Discussion
from app.db.models.message import Message
from app.db.models.user import User
from app.llm.provider import LLMProvider
from app.repositories.discussion_repo import ordered_messages
from app.schemas.user import CVAnalysis
from app.services import auth_service, discussion_service

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 30

COACH_PROMPT = (
    "You are an experienced interview coach running a mock job interview. "
    "Ask one question at a time, react briefly to the candidate's previous answer "
    "with concrete feedback, and keep the conversation focused on the role the "
    "candidate is preparing for. Answer in the candidate's language."
)

CV_PROMPT = (
    "You extract structured data from a CV. Reply with a single JSON object with "
    'the keys "skills" (array of strings), "experience" (array of objects with '
    '"title", "company", "period", "description"), "education" (array of objects '
    'with "degree", "school", "period") and "summary" (a short paragraph). '
    "Use empty arrays or an empty string when the CV has no such information."
)

ROLE_MAP = {"user": "user", "ai": "assistant"}


def _cv_context(discussion: Discussion) -> str:
    analysis = discussion.cv_analysis
    if not any(analysis.values()):
        return ""
    return "Candidate CV analysis (JSON): " + json.dumps(analysis, ensure_ascii=False, default=str)


def build_conversation(discussion: Discussion, history: List[Message], content: str) -> List[Dict[str, str]]:
    """System prompt, optional CV context, recent history, then the new user turn."""
    messages = [{"role": "system", "content": COACH_PROMPT}]
    cv_context = _cv_context(discussion)
    if cv_context:
        messages.append({"role": "system", "content": cv_context})

    for message in history[-HISTORY_LIMIT:]:
        messages.append({"role": ROLE_MAP.get(message.role, "user"), "content": message.content})

    messages.append({"role": "user", "content": content})
    return messages


def reply(
    db: Session,
    provider: LLMProvider,
    user_id: int,
    discussion_id: int,
    content: str,
) -> Tuple[Message, Message]:
    discussion = discussion_service.get_owned_discussion(db, user_id, discussion_id)
    conversation = build_conversation(discussion, ordered_messages(db, discussion.id), content)

    response = provider.chat(conversation)
    answer = (response.content or "").strip()
    if not answer:
        raise UpstreamServiceException("The assistant returned an empty reply")

    user_message, ai_message = discussion_service.append_exchange(db, discussion, content, answer)
    logger.info(
        f"Coach reply stored: discussion_id={discussion_id}, tokens_in={response.tokens_in}, "
        f"tokens_out={response.tokens_out}"
    )
    return user_message, ai_message


def stream_reply(
    db: Session,
    provider: LLMProvider,
    user_id: int,
    discussion_id: int,
    content: str,
) -> Iterator[str]:
    """
    Stream the coach's answer chunk by chunk.

    Ownership and the first chunk are resolved before this returns, so a
    missing discussion or an upstream failure surfaces as a normal error
    response. Both turns are stored only after the stream completes; a
    failure mid-stream stores nothing.
    """
    discussion = discussion_service.get_owned_discussion(db, user_id, discussion_id)
    conversation = build_conversation(discussion, ordered_messages(db, discussion.id), content)

    tokens = provider.stream(conversation)
    first = next(tokens, None)
    if first is None:
        raise UpstreamServiceException("The assistant returned an empty reply")

    def generate() -> Iterator[str]:
        parts = [first]
        yield first
        for token in tokens:
            parts.append(token)
            yield token

        answer = "".join(parts).strip()
        if not answer:
            logger.warning(f"Streamed coach reply was blank: discussion_id={discussion_id}")
            return
        # The request session may have been closed while streaming; reload the parent
        owned = discussion_service.get_owned_discussion(db, user_id, discussion_id)
        discussion_service.append_exchange(db, owned, content, answer)
        logger.info(f"Streamed coach reply stored: discussion_id={discussion_id}, chunks={len(parts)}")

    return generate()


def parse_cv_analysis(raw: str) -> dict:
    """
    Coerce model output into a CV analysis dict.

    Raises:
        UpstreamServiceException: If the output is not a JSON object
    """
    text = (raw or "").strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        logger.warning("CV analysis output is not valid JSON")
        raise UpstreamServiceException("The assistant returned an unreadable CV analysis")
    if not isinstance(data, dict):
        raise UpstreamServiceException("The assistant returned an unreadable CV analysis")

    def as_list(value):
        if value is None:
            return []
        return value if isinstance(value, list) else [value]

    summary = data.get("summary")
    return CVAnalysis(
        skills=as_list(data.get("skills")),
        experience=as_list(data.get("experience")),
        education=as_list(data.get("education")),
        summary=summary if isinstance(summary, str) else "",
    ).model_dump()


def analyze_cv(db: Session, provider: LLMProvider, user: User, cv_text: str) -> dict:
    response = provider.chat(
        [
            {"role": "system", "content": CV_PROMPT},
            {"role": "user", "content": cv_text},
        ],
        temperature=0.2,
        json_mode=True,
    )
    analysis = parse_cv_analysis(response.content)
    auth_service.set_cv_analysis(db, user, analysis)
    logger.info(
        f"CV analyzed: user_id={user.id}, skills={len(analysis['skills'])}, "
        f"experience={len(analysis['experience'])}"
    )
    return analysis
