import sys
import os
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

os.environ.setdefault("database_url", "sqlite:///:memory:")
os.environ.setdefault("secret_key", "testsecret")
os.environ.setdefault("rate_limit_enabled", "false")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool

from reqhub.main import app
from reqhub.api.endpoints.auth import get_current_user
from reqhub.core.config import get_settings
from reqhub.core.security import get_password_hash
from reqhub.database import get_session
from reqhub.init_db import create_db_and_tables
from reqhub.models.project import Project, ProjectMember
from reqhub.models.requirement import Requirement
from reqhub.models.user import User


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    with Session(engine) as session:
        yield session


@pytest.fixture(autouse=True)
def setup_db():
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables(engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db_engine():
    return engine


@pytest.fixture
def settings(tmp_path):
    return get_settings().model_copy(
        update={"upload_dir": str(tmp_path / "uploads"), "search_max_workers": 1}
    )


@pytest.fixture
def client(settings):
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


@pytest.fixture
def make_user():
    def _make(name="Alice", email="alice@example.com", role="client", password=None):
        with Session(engine) as session:
            user = User(
                name=name,
                email=email,
                role=role,
                password_hash=get_password_hash(password) if password else "hashed",
            )
            session.add(user)
            session.commit()
            session.refresh(user)
        return user

    return _make


@pytest.fixture
def login_as():
    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login


@pytest.fixture
def make_project():
    def _make(creator, name="Portal", description="Customer portal", members=(), **fields):
        with Session(engine) as session:
            project = Project(name=name, description=description, created_by_id=creator.id, **fields)
            session.add(project)
            session.commit()
            session.refresh(project)
            for member in members:
                session.add(ProjectMember(project_id=project.id, user_id=member.id))
            session.commit()
            session.refresh(project)
        return project

    return _make


@pytest.fixture
def make_requirement():
    def _make(project, creator, title="Login page", status="draft", **fields):
        with Session(engine) as session:
            requirement = Requirement(
                title=title,
                description=fields.pop("description", "Users can sign in"),
                project_id=project.id,
                status=status,
                created_by_id=creator.id,
                **fields,
            )
            session.add(requirement)
            session.commit()
            session.refresh(requirement)
        return requirement

    return _make
