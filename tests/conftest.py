import os

# must be set before the application settings are first read
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
import fastapi.testclient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from story_reader import models, schemas
from story_reader.auth import create_access_token, get_password_hash
from story_reader.config import get_settings
from story_reader.database import Base, build_engine, get_db
from story_reader.main import app

PASSWORD = "s3cret-pass"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield fastapi.testclient.TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(username: str, role: models.Role = models.Role.USER, is_active: bool = True):
        user = models.User(
            username=username,
            email=f"{username}@example.com",
            password_hash=get_password_hash(PASSWORD, rounds=4),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


def token_for(user: models.User) -> str:
    identity = schemas.TokenData(user_id=user.id, username=user.username, role=user.role)
    return create_access_token(identity, get_settings())


def auth_headers(user: models.User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def author(make_user):
    return make_user("author")


@pytest.fixture
def reader(make_user):
    return make_user("reader")


@pytest.fixture
def admin(make_user):
    return make_user("admin", role=models.Role.ADMIN)


@pytest.fixture
def make_story(client):
    def _make_story(owner: models.User, title: str = "Đi Tìm Thời Gian", **fields):
        payload = {"title": title, **fields}
        response = client.post("/api/v1/stories", json=payload, headers=auth_headers(owner))
        assert response.status_code == 201, response.json()
        return response.json()["data"]
    return _make_story


@pytest.fixture
def make_chapter(client):
    def _make_chapter(owner: models.User, story_slug: str, title: str, content: str = "one two three",
                      is_published: bool = True):
        response = client.post(
            f"/api/v1/stories/{story_slug}/chapters",
            json={"title": title, "content": content, "is_published": is_published},
            headers=auth_headers(owner),
        )
        assert response.status_code == 201, response.json()
        return response.json()["data"]
    return _make_chapter
