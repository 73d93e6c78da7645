"""
Tests for the interview coach, CV analysis and profile endpoints.
"""
import json

import pytest

from app.core.exceptions import UpstreamServiceException, UpstreamTimeoutException
from app.db.models.message import Message
from app.services import coach_service, discussion_service
from app.services.coach_service import HISTORY_LIMIT, parse_cv_analysis

TEST_PASSWORD = "testpass123"
CV_TEXT = "Jane Doe. Backend engineer, 6 years of Python and PostgreSQL at Acme."


def start_discussion(client, headers, **extra):
    payload = {"title": "Backend interview"}
    payload.update(extra)
    return client.post("/api/discussions", json=payload, headers=headers).json()["id"]


# --- coach reply ------------------------------------------------------------

def test_reply_persists_both_turns(client, user_headers, fake_llm):
    fake_llm.replies = ["Why do you want this role?"]
    discussion_id = start_discussion(client, user_headers)

    response = client.post(
        f"/api/discussions/{discussion_id}/reply",
        json={"content": "Hello, I am ready."},
        headers=user_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["userMessage"]["role"] == "user"
    assert data["userMessage"]["content"] == "Hello, I am ready."
    assert data["aiMessage"]["role"] == "ai"
    assert data["aiMessage"]["content"] == "Why do you want this role?"

    detail = client.get(f"/api/discussions/{discussion_id}", headers=user_headers).json()
    assert [m["role"] for m in detail["messages"]] == ["user", "ai"]

    sent = fake_llm.calls[0]["messages"]
    assert sent[0]["role"] == "system"
    assert sent[-1] == {"role": "user", "content": "Hello, I am ready."}


def test_reply_sends_history_with_assistant_role(client, user_headers, fake_llm):
    fake_llm.replies = ["First question?", "Second question?"]
    discussion_id = start_discussion(client, user_headers)

    client.post(f"/api/discussions/{discussion_id}/reply", json={"content": "Hi"}, headers=user_headers)
    client.post(f"/api/discussions/{discussion_id}/reply", json={"content": "My answer"}, headers=user_headers)

    sent = fake_llm.calls[1]["messages"]
    turns = [m for m in sent if m["role"] != "system"]
    assert turns == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "First question?"},
        {"role": "user", "content": "My answer"},
    ]


def test_reply_includes_cv_context(client, user_headers, fake_llm):
    discussion_id = start_discussion(
        client, user_headers, cvAnalysis={"skills": ["Python"], "summary": "Backend engineer"}
    )

    client.post(f"/api/discussions/{discussion_id}/reply", json={"content": "Hi"}, headers=user_headers)

    system_turns = [m["content"] for m in fake_llm.calls[0]["messages"] if m["role"] == "system"]
    assert len(system_turns) == 2
    assert "Python" in system_turns[1]


def test_history_is_truncated(client, user_headers, fake_llm, db_session, test_user):
    discussion_id = start_discussion(client, user_headers)
    for i in range(HISTORY_LIMIT + 10):
        db_session.add(Message(discussion_id=discussion_id, role="user", type="text", content=f"old {i}"))
    db_session.commit()

    client.post(f"/api/discussions/{discussion_id}/reply", json={"content": "Now"}, headers=user_headers)

    turns = [m for m in fake_llm.calls[0]["messages"] if m["role"] != "system"]
    assert len(turns) == HISTORY_LIMIT + 1
    assert turns[0]["content"] == "old 10"


@pytest.mark.parametrize(
    "error, expected_status",
    [
        (UpstreamTimeoutException("The assistant timed out"), 504),
        (UpstreamServiceException("The assistant is unavailable"), 502),
    ],
)
def test_provider_failure_persists_nothing(client, user_headers, fake_llm, db_session, error, expected_status):
    fake_llm.error = error
    discussion_id = start_discussion(client, user_headers)

    response = client.post(
        f"/api/discussions/{discussion_id}/reply", json={"content": "Hello"}, headers=user_headers
    )
    assert response.status_code == expected_status
    assert response.json()["detail"] == error.detail
    assert db_session.query(Message).filter(Message.discussion_id == discussion_id).count() == 0


def test_empty_reply_is_upstream_error(client, user_headers, fake_llm, db_session):
    fake_llm.replies = ["   "]
    discussion_id = start_discussion(client, user_headers)

    response = client.post(
        f"/api/discussions/{discussion_id}/reply", json={"content": "Hello"}, headers=user_headers
    )
    assert response.status_code == 502
    assert db_session.query(Message).count() == 0


def test_reply_on_foreign_discussion_is_404(client, user_headers, other_headers, fake_llm):
    discussion_id = start_discussion(client, other_headers)

    response = client.post(
        f"/api/discussions/{discussion_id}/reply", json={"content": "Hello"}, headers=user_headers
    )
    assert response.status_code == 404
    assert fake_llm.calls == []


# --- streamed coach reply -------------------------------------------------

def test_stream_reply_sends_text_and_stores_both_turns(client, user_headers, fake_llm):
    fake_llm.replies = ["Walk me through your last project, please."]
    discussion_id = start_discussion(client, user_headers)

    response = client.post(
        f"/api/discussions/{discussion_id}/reply/stream",
        json={"content": "Ready when you are."},
        headers=user_headers,
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "Walk me through your last project, please."

    detail = client.get(f"/api/discussions/{discussion_id}", headers=user_headers).json()
    assert [(m["role"], m["content"]) for m in detail["messages"]] == [
        ("user", "Ready when you are."),
        ("ai", "Walk me through your last project, please."),
    ]


@pytest.mark.parametrize(
    "error, expected_status",
    [
        (UpstreamTimeoutException("The assistant timed out"), 504),
        (UpstreamServiceException("The assistant is unavailable"), 502),
    ],
)
def test_stream_reply_upstream_failure_before_first_chunk(
    client, user_headers, fake_llm, db_session, error, expected_status
):
    fake_llm.error = error
    discussion_id = start_discussion(client, user_headers)

    response = client.post(
        f"/api/discussions/{discussion_id}/reply/stream", json={"content": "Hello"}, headers=user_headers
    )
    assert response.status_code == expected_status
    assert db_session.query(Message).count() == 0


def test_stream_reply_empty_answer_is_upstream_error(client, user_headers, fake_llm, db_session):
    fake_llm.replies = [""]
    discussion_id = start_discussion(client, user_headers)

    response = client.post(
        f"/api/discussions/{discussion_id}/reply/stream", json={"content": "Hello"}, headers=user_headers
    )
    assert response.status_code == 502
    assert db_session.query(Message).count() == 0


def test_stream_reply_on_foreign_discussion_is_404(client, user_headers, other_headers, fake_llm):
    discussion_id = start_discussion(client, other_headers)

    response = client.post(
        f"/api/discussions/{discussion_id}/reply/stream", json={"content": "Hello"}, headers=user_headers
    )
    assert response.status_code == 404
    assert fake_llm.calls == []


def test_stream_reply_failure_mid_stream_stores_nothing(db_session, test_user, fake_llm):
    fake_llm.replies = ["A long answer that arrives in several chunks."]
    fake_llm.stream_error = UpstreamServiceException("The assistant is unavailable")
    discussion = discussion_service.create_discussion(db_session, test_user.id, "Backend interview")

    chunks = coach_service.stream_reply(db_session, fake_llm, test_user.id, discussion.id, "Hello")
    with pytest.raises(UpstreamServiceException):
        list(chunks)

    assert db_session.query(Message).count() == 0


# --- CV analysis ------------------------------------------------------------

def test_parse_cv_analysis_strips_fences_and_fills_defaults():
    raw = '```json\n{"skills": ["Python", "SQL"], "summary": null, "education": "MSc"}\n```'
    assert parse_cv_analysis(raw) == {
        "skills": ["Python", "SQL"],
        "experience": [],
        "education": ["MSc"],
        "summary": "",
    }


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "", None])
def test_parse_cv_analysis_rejects_non_objects(raw):
    with pytest.raises(UpstreamServiceException):
        parse_cv_analysis(raw)


def test_analyze_cv_stores_result(client, user_headers, fake_llm):
    fake_llm.replies = [json.dumps({
        "skills": ["Python", "PostgreSQL"],
        "experience": [{"title": "Backend engineer", "company": "Acme", "period": "2019-2025"}],
        "education": [],
        "summary": "Backend engineer with six years of Python.",
    })]

    response = client.post("/api/user/cv/analyze", json={"cvText": CV_TEXT}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["skills"] == ["Python", "PostgreSQL"]
    assert fake_llm.calls[0]["json_mode"] is True

    stored = client.get("/api/user/cv", headers=user_headers).json()
    assert stored["experience"][0]["company"] == "Acme"
    assert stored["summary"] == "Backend engineer with six years of Python."


def test_analyze_cv_unreadable_output_keeps_previous(client, user_headers, fake_llm):
    client.put("/api/user/cv", json={"skills": ["Go"], "summary": "Existing"}, headers=user_headers)
    fake_llm.replies = ["Sorry, I cannot help with that."]

    response = client.post("/api/user/cv/analyze", json={"cvText": CV_TEXT}, headers=user_headers)
    assert response.status_code == 502

    stored = client.get("/api/user/cv", headers=user_headers).json()
    assert stored["skills"] == ["Go"]
    assert stored["summary"] == "Existing"


def test_analyze_cv_rejects_short_text(client, user_headers, fake_llm):
    response = client.post("/api/user/cv/analyze", json={"cvText": "too short"}, headers=user_headers)
    assert response.status_code == 400
    assert fake_llm.calls == []


def test_cv_defaults_to_empty(client, user_headers):
    assert client.get("/api/user/cv", headers=user_headers).json() == {
        "skills": [],
        "experience": [],
        "education": [],
        "summary": "",
    }


# --- profile ----------------------------------------------------------------

def test_profile_roundtrip(client, user_headers):
    profile = client.get("/api/user/profile", headers=user_headers).json()
    assert profile["email"] == "alice@example.com"
    assert "passwordHash" not in profile

    response = client.put(
        "/api/user/profile",
        json={"firstName": " Alicia ", "lastName": "Martin", "email": "Alicia@Example.com", "phoneNumber": "0600"},
        headers=user_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["firstName"] == "Alicia"
    assert data["email"] == "alicia@example.com"
    assert data["phoneNumber"] == "0600"


def test_profile_email_conflict(client, user_headers, other_user):
    response = client.put(
        "/api/user/profile",
        json={"firstName": "Alice", "lastName": "Martin", "email": other_user.email},
        headers=user_headers,
    )
    assert response.status_code == 400


def test_change_password(client, user_headers, test_user):
    wrong = client.post(
        "/api/user/change-password",
        json={"currentPassword": "nope-nope", "newPassword": "BrandNew123"},
        headers=user_headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Current password is incorrect"

    ok = client.post(
        "/api/user/change-password",
        json={"currentPassword": TEST_PASSWORD, "newPassword": "BrandNew123"},
        headers=user_headers,
    )
    assert ok.status_code == 200

    assert client.post("/api/login", json={"email": test_user.email, "password": TEST_PASSWORD}).status_code == 401
    assert client.post("/api/login", json={"email": test_user.email, "password": "BrandNew123"}).status_code == 200
