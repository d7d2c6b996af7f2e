import threading
from concurrent.futures import ThreadPoolExecutor

from sqlmodel import Session, create_engine, select

from reqhub.init_db import create_db_and_tables
from reqhub.models.activity_log import ActivityLog
from reqhub.models.asset import Asset
from reqhub.models.notification import Notification
from reqhub.models.project import Project
from reqhub.models.requirement import Requirement, RequirementAttachment, RequirementComment
from reqhub.models.user import User
from reqhub.services import activity_service
from reqhub.services.requirement_service import add_comment, comments_of


def test_create_requirement_with_defaults(client, db_engine, make_user, make_project, login_as):
    author = login_as(make_user(role="team_member"))
    project = make_project(author)

    response = client.post(
        "/requirements/",
        json={"title": "Login", "description": "Users sign in", "project": project.id},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["category"] == "functional"
    assert data["priority"] == "medium"
    assert data["status"] == "draft"
    assert data["project"] == {"id": project.id, "name": project.name}
    assert data["created_by"]["id"] == author.id

    with Session(db_engine) as session:
        log = session.exec(select(ActivityLog).where(ActivityLog.action == "requirement_create")).one()
    assert log.target_id == data["id"]


def test_create_requirement_failures_are_not_audited(client, db_engine, make_user, login_as):
    login_as(make_user())

    missing_field = client.post("/requirements/", json={"title": "Login", "project": 1})
    unknown_project = client.post(
        "/requirements/", json={"title": "Login", "description": "Users sign in", "project": 999}
    )

    assert missing_field.status_code == 400
    assert unknown_project.status_code == 400
    assert unknown_project.json()["error"] == "Project not found"
    with Session(db_engine) as session:
        assert session.exec(select(ActivityLog)).all() == []


def test_list_requirements_filters_are_combined(client, make_user, make_project, make_requirement, login_as):
    author = login_as(make_user())
    web = make_project(author, name="Web")
    app_project = make_project(author, name="App")
    make_requirement(web, author, title="A", status="draft", priority="high")
    make_requirement(web, author, title="B", status="approved", priority="high")
    make_requirement(app_project, author, title="C", status="draft", priority="high")

    response = client.get("/requirements/", params={"project": web.id, "priority": "high", "status": "draft"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["title"] == "A"

    assert client.get("/requirements/").json()["count"] == 3


def test_get_requirement_returns_comments(client, make_user, make_project, make_requirement, login_as):
    author = login_as(make_user())
    requirement = make_requirement(make_project(author), author)

    client.post(f"/requirements/{requirement.id}/comments", json={"text": "first"})
    response = client.get(f"/requirements/{requirement.id}")

    assert response.status_code == 200
    comments = response.json()["data"]["comments"]
    assert [c["text"] for c in comments] == ["first"]
    assert comments[0]["user"]["name"] == author.name

    assert client.get("/requirements/999").status_code == 404


def test_comments_keep_insertion_order(client, db_engine, make_user, make_project, make_requirement, login_as):
    owner = make_user(name="Owner", email="owner@example.com", role="client")
    requirement = make_requirement(make_project(owner), owner)

    login_as(make_user(name="Tom", email="tom@example.com", role="team_member"))
    first = client.post(f"/requirements/{requirement.id}/comments", json={"text": "  needs detail  "})
    login_as(make_user(name="Una", email="una@example.com", role="team_member"))
    second = client.post(f"/requirements/{requirement.id}/comments", json={"text": "agreed"})

    assert first.status_code == second.status_code == 200
    assert first.json()["message"] == "Comment added successfully"
    assert first.json()["data"]["text"] == "needs detail"
    assert second.json()["data"]["user"]["name"] == "Una"

    with Session(db_engine) as session:
        comments = session.exec(select(RequirementComment).order_by(RequirementComment.id)).all()
        notes = session.exec(select(Notification).where(Notification.recipient_id == owner.id)).all()
    assert [c.text for c in comments] == ["needs detail", "agreed"]
    assert len(notes) == 2
    assert {n.type for n in notes} == {"requirement_commented"}


def test_blank_comment_is_rejected(client, make_user, make_project, make_requirement, login_as):
    author = login_as(make_user())
    requirement = make_requirement(make_project(author), author)

    response = client.post(f"/requirements/{requirement.id}/comments", json={"text": "   "})

    assert response.status_code == 400
    assert response.json()["error"] == "Comment text is required"


def test_status_change_notifies_creator(client, db_engine, make_user, make_project, make_requirement, login_as):
    owner = make_user(name="Owner", email="owner@example.com", role="client")
    requirement = make_requirement(make_project(owner), owner, status="pending")
    reviewer = login_as(make_user(name="Maya", email="maya@example.com", role="manager"))

    response = client.put(f"/requirements/{requirement.id}", json={"status": "approved"})

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "approved"
    assert response.json()["data"]["title"] == requirement.title

    with Session(db_engine) as session:
        note = session.exec(select(Notification).where(Notification.recipient_id == owner.id)).one()
        change = session.exec(
            select(ActivityLog).where(ActivityLog.action == "requirement_status_change")
        ).one()
    assert note.type == "requirement_status_changed"
    assert change.user_id == reviewer.id
    assert change.meta == {"from": "pending", "to": "approved"}


def test_assignment_notifies_assignee(client, db_engine, make_user, make_project, make_requirement, login_as):
    manager = login_as(make_user(name="Maya", email="maya@example.com", role="manager"))
    worker = make_user(name="Tom", email="tom@example.com", role="team_member")
    requirement = make_requirement(make_project(manager), manager)

    response = client.put(f"/requirements/{requirement.id}", json={"assigned_to": worker.id})

    assert response.json()["data"]["assigned_to"]["id"] == worker.id
    with Session(db_engine) as session:
        note = session.exec(select(Notification).where(Notification.recipient_id == worker.id)).one()
    assert note.type == "requirement_assigned"

    bad = client.put(f"/requirements/{requirement.id}", json={"assigned_to": 999})
    assert bad.status_code == 400


def test_update_missing_requirement(client, make_user, login_as):
    login_as(make_user())
    assert client.put("/requirements/999", json={"status": "approved"}).status_code == 404


def test_delete_requirement_cascade(client, db_engine, make_user, make_project, make_requirement, login_as):
    owner = login_as(make_user())
    project = make_project(owner)
    requirement = make_requirement(project, owner)
    keep = make_requirement(project, owner, title="Other")
    with Session(db_engine) as session:
        asset = Asset(name="spec.pdf", project_id=project.id, type="document", file_url="/uploads/spec.pdf",
                      file_name="spec.pdf", uploaded_by_id=owner.id)
        session.add(asset)
        session.add(RequirementAttachment(requirement_id=requirement.id, filename="spec.pdf", url="/uploads/spec.pdf"))
        session.add(RequirementComment(requirement_id=requirement.id, user_id=owner.id, text="hi"))
        session.add(Notification(recipient_id=owner.id, type="system", title="t", message="m",
                                 target_type="Requirement", target_id=requirement.id))
        session.add(Notification(recipient_id=owner.id, type="system", title="t", message="m",
                                 target_type="Requirement", target_id=keep.id))
        session.commit()

    response = client.delete(f"/requirements/{requirement.id}")

    assert response.status_code == 200
    with Session(db_engine) as session:
        assert session.get(Requirement, requirement.id) is None
        assert session.exec(select(RequirementAttachment)).all() == []
        assert session.exec(select(RequirementComment)).all() == []
        remaining = session.exec(select(Notification)).all()
        assert [n.target_id for n in remaining] == [keep.id]
        assert len(session.exec(select(Asset)).all()) == 1
        log = session.exec(select(ActivityLog).where(ActivityLog.action == "requirement_delete")).one()
        assert log.target_id == requirement.id

    assert client.delete(f"/requirements/{requirement.id}").status_code == 404


def test_blank_title_is_rejected_on_create(client, db_engine, make_user, make_project, login_as):
    author = login_as(make_user())
    project = make_project(author)

    blank_title = client.post("/requirements/", json={"title": "   ", "description": "d", "project": project.id})
    blank_description = client.post(
        "/requirements/", json={"title": "Login", "description": " \n ", "project": project.id}
    )

    assert blank_title.status_code == 400
    assert blank_title.json()["error"] == "Title is required"
    assert blank_description.status_code == 400
    assert blank_description.json()["error"] == "Description is required"
    with Session(db_engine) as session:
        assert session.exec(select(Requirement)).all() == []


def test_update_cannot_blank_title(client, make_user, make_project, make_requirement, login_as):
    author = login_as(make_user())
    requirement = make_requirement(make_project(author), author, title="Login page")

    empty = client.put(f"/requirements/{requirement.id}", json={"title": ""})
    spaces = client.put(f"/requirements/{requirement.id}", json={"title": "  ", "status": "approved"})
    trimmed = client.put(f"/requirements/{requirement.id}", json={"title": "  Sign in  "})

    assert empty.status_code == 400
    assert empty.json()["error"] == "Title is required"
    assert spaces.status_code == 400
    assert trimmed.json()["data"]["title"] == "Sign in"
    assert client.get(f"/requirements/{requirement.id}").json()["data"]["status"] == "draft"


def test_concurrent_comments_all_survive(tmp_path):
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'comments.db'}", connect_args={"check_same_thread": False, "timeout": 30}
    )
    create_db_and_tables(file_engine)
    with Session(file_engine) as session:
        author = User(name="Alice", email="alice@example.com", role="client", password_hash="hashed")
        session.add(author)
        session.commit()
        session.refresh(author)
        project = Project(name="Portal", description="Customer portal", created_by_id=author.id)
        session.add(project)
        session.commit()
        session.refresh(project)
        requirement = Requirement(title="Login", description="d", project_id=project.id, created_by_id=author.id)
        session.add(requirement)
        session.commit()
        session.refresh(requirement)
        requirement_id = requirement.id

    texts = [f"comment {i}" for i in range(6)]
    barrier = threading.Barrier(len(texts))

    def comment(text):
        barrier.wait()
        with Session(file_engine) as session:
            return add_comment(session, requirement_id, text, author)

    with ThreadPoolExecutor(max_workers=len(texts)) as pool:
        results = list(pool.map(comment, texts))

    with Session(file_engine) as session:
        stored = comments_of(session, requirement_id)
    assert sorted(c.text for c in stored) == sorted(texts)
    assert [c.id for c in stored] == sorted(r.id for r in results)
    file_engine.dispose()


def test_audit_failure_does_not_fail_request(client, db_engine, make_user, make_project, login_as, monkeypatch):
    author = login_as(make_user())
    project = make_project(author)

    def broken_session(*args, **kwargs):
        raise RuntimeError("activity store unavailable")

    monkeypatch.setattr(activity_service, "Session", broken_session)

    response = client.post(
        "/requirements/", json={"title": "Login", "description": "Users sign in", "project": project.id}
    )

    assert response.status_code == 201
    assert response.json()["data"]["title"] == "Login"
    with Session(db_engine) as session:
        assert len(session.exec(select(Requirement)).all()) == 1
        assert session.exec(select(ActivityLog)).all() == []
