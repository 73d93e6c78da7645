"""
Tests for owner-scoped discussion and message endpoints.
"""
from datetime import datetime, timedelta

from app.db.models.discussion import Discussion
from app.db.models.message import Message

CV = {
    "skills": ["Python", "SQL"],
    "experience": [{"title": "Developer", "company": "Acme"}],
    "education": [],
    "summary": "Backend developer",
}


def create_discussion(client, headers, title="Mock interview", cv=None):
    payload = {"title": title}
    if cv is not None:
        payload["cvAnalysis"] = cv
    response = client.post("/api/discussions", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


def add_message(client, headers, discussion_id, content="Hello", role="user", **extra):
    payload = {"role": role, "type": "text", "content": content}
    payload.update(extra)
    return client.post(f"/api/discussions/{discussion_id}/messages", json=payload, headers=headers)


def test_create_discussion_with_cv_analysis(client, user_headers, test_user):
    data = create_discussion(client, user_headers, cv=CV)
    assert data["title"] == "Mock interview"
    assert data["status"] == "active"
    assert data["userId"] == test_user.id
    assert data["cvAnalysis"] == CV
    assert data["messages"] == []
    assert "cvSkills" not in data


def test_create_discussion_without_cv_has_empty_defaults(client, user_headers):
    data = create_discussion(client, user_headers)
    assert data["cvAnalysis"] == {"skills": [], "experience": [], "education": [], "summary": ""}


def test_create_discussion_with_partial_cv(client, user_headers):
    data = create_discussion(client, user_headers, cv={"skills": ["Go"], "summary": None})
    assert data["cvAnalysis"] == {"skills": ["Go"], "experience": [], "education": [], "summary": ""}


def test_create_discussion_requires_title(client, user_headers):
    response = client.post("/api/discussions", json={"title": ""}, headers=user_headers)
    assert response.status_code == 400


def test_list_is_newest_first_with_last_message_preview(client, user_headers):
    first = create_discussion(client, user_headers, title="First")
    second = create_discussion(client, user_headers, title="Second")

    add_message(client, user_headers, first["id"], content="older")
    add_message(client, user_headers, first["id"], content="latest", role="ai")

    response = client.get("/api/discussions", headers=user_headers)
    assert response.status_code == 200
    items = response.json()
    assert [d["id"] for d in items] == [first["id"], second["id"]]
    assert items[0]["lastMessage"]["content"] == "latest"
    assert items[0]["lastMessage"]["role"] == "ai"
    assert items[1]["lastMessage"] is None


def test_list_only_contains_own_discussions(client, user_headers, other_headers):
    create_discussion(client, user_headers, title="Mine")
    create_discussion(client, other_headers, title="Theirs")

    titles = [d["title"] for d in client.get("/api/discussions", headers=user_headers).json()]
    assert titles == ["Mine"]


def test_get_returns_messages_oldest_first(client, user_headers):
    discussion = create_discussion(client, user_headers, cv=CV)
    for content in ("one", "two", "three"):
        assert add_message(client, user_headers, discussion["id"], content=content).status_code == 201

    response = client.get(f"/api/discussions/{discussion['id']}", headers=user_headers)
    assert response.status_code == 200
    data = response.json()
    assert [m["content"] for m in data["messages"]] == ["one", "two", "three"]
    assert data["cvAnalysis"]["skills"] == ["Python", "SQL"]


def test_append_message_bumps_last_message_at(client, user_headers, db_session):
    discussion = create_discussion(client, user_headers)

    stale = datetime.utcnow() - timedelta(days=2)
    row = db_session.get(Discussion, discussion["id"])
    row.last_message_at = stale
    db_session.commit()

    response = add_message(
        client, user_headers, discussion["id"],
        content="Voice answer", type="vocal", audioUrl="https://cdn.example.com/a.webm", label="Answer 1",
    )
    assert response.status_code == 201
    message = response.json()
    assert message["type"] == "vocal"
    assert message["audioUrl"] == "https://cdn.example.com/a.webm"
    assert message["label"] == "Answer 1"

    db_session.expire_all()
    row = db_session.get(Discussion, discussion["id"])
    assert row.last_message_at > stale


def test_append_message_rejects_unknown_role(client, user_headers):
    discussion = create_discussion(client, user_headers)
    response = add_message(client, user_headers, discussion["id"], role="system")
    assert response.status_code == 400


def test_rename_changes_title_only(client, user_headers):
    discussion = create_discussion(client, user_headers, cv=CV)
    response = client.put(
        f"/api/discussions/{discussion['id']}", json={"title": "Renamed"}, headers=user_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Renamed"
    assert data["cvAnalysis"] == CV
    assert data["status"] == "active"


def test_status_can_be_archived_and_completed(client, user_headers):
    discussion = create_discussion(client, user_headers)
    url = f"/api/discussions/{discussion['id']}/status"

    assert client.patch(url, json={"status": "archived"}, headers=user_headers).json()["status"] == "archived"
    assert client.patch(url, json={"status": "completed"}, headers=user_headers).json()["status"] == "completed"
    assert client.patch(url, json={"status": "deleted"}, headers=user_headers).status_code == 400


def test_non_owner_gets_404_everywhere(client, user_headers, other_headers):
    discussion = create_discussion(client, user_headers)
    url = f"/api/discussions/{discussion['id']}"

    assert client.get(url, headers=other_headers).status_code == 404
    assert client.put(url, json={"title": "Hijacked"}, headers=other_headers).status_code == 404
    assert client.patch(f"{url}/status", json={"status": "archived"}, headers=other_headers).status_code == 404
    assert add_message(client, other_headers, discussion["id"]).status_code == 404
    assert client.delete(url, headers=other_headers).status_code == 404

    # Still intact for the owner
    data = client.get(url, headers=user_headers).json()
    assert data["title"] == "Mock interview"
    assert data["messages"] == []


def test_missing_discussion_is_404(client, user_headers):
    response = client.get("/api/discussions/424242", headers=user_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Discussion not found"


def test_delete_cascades_messages(client, user_headers, db_session):
    discussion = create_discussion(client, user_headers)
    keep = create_discussion(client, user_headers, title="Keep")
    for i in range(3):
        add_message(client, user_headers, discussion["id"], content=f"m{i}")
    add_message(client, user_headers, keep["id"], content="kept")

    response = client.delete(f"/api/discussions/{discussion['id']}", headers=user_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["deletedMessages"] == 3

    db_session.expire_all()
    assert db_session.query(Message).filter(Message.discussion_id == discussion["id"]).count() == 0
    assert db_session.get(Discussion, discussion["id"]) is None
    assert db_session.query(Message).filter(Message.discussion_id == keep["id"]).count() == 1
    assert client.get(f"/api/discussions/{discussion['id']}", headers=user_headers).status_code == 404
