from sqlmodel import Session

from reqhub.models.asset import Asset


def seed(db_engine, make_user, make_project, make_requirement):
    owner = make_user(name="Walter", email="walter@example.com", role="manager")
    project = make_project(owner, name="Payments gateway", description="Card processing", tags=["billing"])
    make_requirement(project, owner, title="Refund payments", description="Partial refunds", priority="high")
    make_requirement(project, owner, title="Invoice export", description="Monthly payments report", status="approved")
    with Session(db_engine) as session:
        session.add(
            Asset(
                name="checkout.png",
                description="Payments screen",
                project_id=project.id,
                type="image",
                file_url="/uploads/checkout.png",
                file_name="checkout.png",
                tags=["ui"],
                uploaded_by_id=owner.id,
            )
        )
        session.commit()
    return owner, project


def test_short_query_is_rejected(client, make_user, login_as):
    login_as(make_user())

    response = client.get("/search/", params={"q": "a"})

    assert response.status_code == 400
    assert response.json()["error"] == "Search query must be at least 2 characters"
    assert client.get("/search/").status_code == 400


def test_two_character_query_is_accepted(client, make_user, login_as):
    login_as(make_user(name="Abby", email="abby@example.com"))

    response = client.get("/search/", params={"q": "ab"})

    assert response.status_code == 200
    body = response.json()
    assert body["query"] == "ab"
    assert [hit["name"] for hit in body["data"]] == ["Abby"]


def test_invalid_type(client, make_user, login_as):
    login_as(make_user())

    response = client.get("/search/", params={"q": "payments", "type": "widgets"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid search type: widgets"


def test_search_all_types(client, db_engine, make_user, make_project, make_requirement, login_as):
    seed(db_engine, make_user, make_project, make_requirement)
    login_as(make_user())

    body = client.get("/search/", params={"q": "PAYMENTS"}).json()

    assert body["counts"] == {"projects": 1, "requirements": 2, "assets": 1, "users": 0, "total": 4}
    assert sorted(hit["_type"] for hit in body["data"]) == ["asset", "project", "requirement", "requirement"]
    assert set(body["grouped"]) == {"projects", "requirements", "assets", "users"}
    assert body["grouped"]["projects"][0]["created_by"] == "Walter"
    created = [hit["created_at"] for hit in body["data"]]
    assert created == sorted(created, reverse=True)


def test_search_single_type_with_filters(client, db_engine, make_user, make_project, make_requirement, login_as):
    _, project = seed(db_engine, make_user, make_project, make_requirement)
    login_as(make_user())

    body = client.get("/search/", params={"q": "payments", "type": "requirements"}).json()
    assert body["counts"]["total"] == 2
    assert body["grouped"] is None
    assert all(hit["_type"] == "requirement" for hit in body["data"])
    assert body["data"][0]["project"] == {"id": project.id, "name": "Payments gateway"}

    approved = client.get(
        "/search/", params={"q": "payments", "type": "requirements", "status": "approved"}
    ).json()
    assert [hit["title"] for hit in approved["data"]] == ["Invoice export"]


def test_search_matches_tags(client, db_engine, make_user, make_project, make_requirement, login_as):
    seed(db_engine, make_user, make_project, make_requirement)
    login_as(make_user())

    projects = client.get("/search/", params={"q": "billing", "type": "projects"}).json()
    assets = client.get("/search/", params={"q": "ui", "type": "assets"}).json()

    assert [hit["name"] for hit in projects["data"]] == ["Payments gateway"]
    assert [hit["name"] for hit in assets["data"]] == ["checkout.png"]


def test_wildcards_are_literal(client, db_engine, make_user, make_project, make_requirement, login_as):
    seed(db_engine, make_user, make_project, make_requirement)
    login_as(make_user())

    body = client.get("/search/", params={"q": "%%"}).json()

    assert body["counts"]["total"] == 0


def test_limit_is_applied_per_type(client, make_user, make_project, make_requirement, login_as):
    owner = login_as(make_user())
    project = make_project(owner)
    for i in range(4):
        make_requirement(project, owner, title=f"Report {i}")

    body = client.get("/search/", params={"q": "report", "type": "requirements", "limit": 3}).json()

    assert body["counts"]["total"] == 3


def test_suggestions(client, db_engine, make_user, make_project, make_requirement, login_as):
    seed(db_engine, make_user, make_project, make_requirement)
    login_as(make_user())

    body = client.get("/search/suggestions", params={"q": "pay"}).json()
    empty = client.get("/search/suggestions").json()

    assert body["suggestions"] == [{"text": "Payments gateway", "type": "project"}]
    assert empty["suggestions"] == []

    refund = client.get("/search/suggestions", params={"q": "ref"}).json()
    assert refund["suggestions"] == [{"text": "Refund payments", "type": "requirement"}]


def test_singular_type_names(client, db_engine, make_user, make_project, make_requirement, login_as):
    seed(db_engine, make_user, make_project, make_requirement)
    login_as(make_user())

    singular = client.get("/search/", params={"q": "payments", "type": "project"})
    plural = client.get("/search/", params={"q": "payments", "type": "projects"})

    assert singular.status_code == 200
    assert singular.json()["data"] == plural.json()["data"]
    assert [hit["_type"] for hit in singular.json()["data"]] == ["project"]
