import os

from sqlmodel import Session, select

from reqhub.models.activity_log import ActivityLog
from reqhub.models.asset import Asset, AssetVersion


def upload(client, project_id, filename="logo.png", content=b"\x89PNG data", mime="image/png", **fields):
    data = {"project": str(project_id), **fields}
    return client.post("/assets/", data=data, files={"file": (filename, content, mime)})


def test_upload_asset(client, db_engine, settings, make_user, make_project, login_as):
    designer = login_as(make_user(name="Dana", email="dana@example.com", role="team_member"))
    project = make_project(designer)

    response = upload(client, project.id, tags="brand, logo ,", description="Primary logo")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["name"] == "logo.png"
    assert data["type"] == "image"
    assert data["file_name"] == "logo.png"
    assert data["mime_type"] == "image/png"
    assert data["tags"] == ["brand", "logo"]
    assert data["version"] == 1
    assert data["previous_versions"] == []
    assert data["project"] == {"id": project.id, "name": "Portal"}
    assert data["uploaded_by"]["email"] == "dana@example.com"
    assert data["file_url"].startswith("/uploads/")

    stored = os.path.join(settings.upload_dir, data["file_url"].rsplit("/", 1)[1])
    with open(stored, "rb") as fh:
        assert fh.read() == b"\x89PNG data"

    with Session(db_engine) as session:
        log = session.exec(select(ActivityLog).where(ActivityLog.action == "asset_upload")).one()
    assert log.target_id == data["id"]
    assert log.user_id == designer.id


def test_asset_type_follows_mime(client, make_user, make_project, login_as):
    project = make_project(login_as(make_user()))

    pdf = upload(client, project.id, filename="spec.pdf", mime="application/pdf").json()["data"]
    video = upload(client, project.id, filename="demo.mp4", mime="video/mp4").json()["data"]
    archive = upload(client, project.id, filename="bundle.zip", mime="application/zip").json()["data"]

    assert (pdf["type"], video["type"], archive["type"]) == ("document", "video", "other")


def test_upload_requires_file(client, make_user, make_project, login_as):
    project = make_project(login_as(make_user()))

    response = client.post("/assets/", data={"project": str(project.id)})

    assert response.status_code == 400
    assert response.json()["error"] == "Please upload a file"


def test_upload_rejects_bad_project_and_extension(client, db_engine, make_user, make_project, login_as):
    project = make_project(login_as(make_user()))

    missing_project = upload(client, 999)
    bad_extension = upload(client, project.id, filename="run.exe", mime="application/octet-stream")

    assert missing_project.status_code == 400
    assert missing_project.json()["error"] == "A valid project is required"
    assert bad_extension.status_code == 400
    assert bad_extension.json()["error"] == "Invalid file type: run.exe"
    with Session(db_engine) as session:
        assert session.exec(select(Asset)).all() == []


def test_list_assets_filters(client, make_user, make_project, login_as):
    owner = login_as(make_user())
    portal = make_project(owner)
    other = make_project(owner, name="Intranet")
    upload(client, portal.id)
    upload(client, portal.id, filename="brief.pdf", mime="application/pdf")
    upload(client, other.id)

    assert client.get("/assets/").json()["count"] == 3
    assert client.get("/assets/", params={"project": portal.id}).json()["count"] == 2
    images = client.get("/assets/", params={"project": portal.id, "type": "image"}).json()
    assert [a["name"] for a in images["data"]] == ["logo.png"]


def test_replacing_file_bumps_version(client, db_engine, make_user, make_project, login_as):
    project = make_project(login_as(make_user()))
    original = upload(client, project.id).json()["data"]

    response = client.put(
        f"/assets/{original['id']}",
        files={"file": ("logo-v2.png", b"new pixels", "image/png")},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["version"] == 2
    assert data["file_name"] == "logo-v2.png"
    assert data["file_url"] != original["file_url"]
    assert len(data["previous_versions"]) == 1
    assert data["previous_versions"][0]["version"] == 1
    assert data["previous_versions"][0]["file_url"] == original["file_url"]

    third = client.put(
        f"/assets/{original['id']}",
        files={"file": ("logo-v3.png", b"newer pixels", "image/png")},
    ).json()["data"]
    assert third["version"] == 3
    assert [v["version"] for v in third["previous_versions"]] == [1, 2]


def test_metadata_update_keeps_version(client, make_user, make_project, login_as):
    project = make_project(login_as(make_user()))
    original = upload(client, project.id, tags="brand").json()["data"]

    response = client.put(
        f"/assets/{original['id']}",
        data={"name": "Company logo", "description": "Updated", "tags": "brand,primary"},
    )

    data = response.json()["data"]
    assert response.status_code == 200
    assert data["name"] == "Company logo"
    assert data["description"] == "Updated"
    assert data["tags"] == ["brand", "primary"]
    assert data["version"] == 1
    assert data["file_url"] == original["file_url"]
    assert data["previous_versions"] == []


def test_get_and_delete_asset(client, db_engine, make_user, make_project, login_as):
    project = make_project(login_as(make_user()))
    asset = upload(client, project.id).json()["data"]
    client.put(f"/assets/{asset['id']}", files={"file": ("logo-v2.png", b"v2", "image/png")})

    assert client.get(f"/assets/{asset['id']}").json()["data"]["version"] == 2

    response = client.delete(f"/assets/{asset['id']}")

    assert response.status_code == 200
    assert response.json()["message"] == "Asset logo.png deleted successfully"
    assert client.get(f"/assets/{asset['id']}").status_code == 404
    with Session(db_engine) as session:
        assert session.exec(select(AssetVersion)).all() == []
        log = session.exec(select(ActivityLog).where(ActivityLog.action == "asset_delete")).one()
    assert log.target_id == asset["id"]


def test_missing_asset_is_404(client, make_user, login_as):
    login_as(make_user())

    assert client.get("/assets/42").status_code == 404
    assert client.put("/assets/42", data={"name": "x"}).status_code == 404
    assert client.delete("/assets/42").json() == {"error": "Asset not found"}


def test_asset_updates_are_audited(client, db_engine, make_user, make_project, login_as):
    editor = login_as(make_user())
    asset = upload(client, make_project(editor)).json()["data"]

    client.put(f"/assets/{asset['id']}", files={"file": ("logo-v2.png", b"v2", "image/png")})
    client.put(f"/assets/{asset['id']}", data={"name": "Company logo"})

    with Session(db_engine) as session:
        logs = session.exec(select(ActivityLog).order_by(ActivityLog.id)).all()
    assert [log.action for log in logs] == ["asset_upload", "asset_upload", "asset_upload"]
    assert logs[1].description == "Uploaded version 2 of asset: logo.png"
    assert logs[2].description == "Updated asset: Company logo"
    assert all(log.target_id == asset["id"] and log.user_id == editor.id for log in logs)
