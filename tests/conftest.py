import os
import struct
import tempfile
import zlib
from io import BytesIO

# Settings are read once, configure the test environment before any app import
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DB_URL"] = "sqlite://"
os.environ["UPLOAD_FOLDER"] = tempfile.mkdtemp(prefix="blog_uploads_")
os.environ["EMAIL_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from dependencies import get_session
from core.config import get_settings


@pytest.fixture(scope="session")
def settings():
    return get_settings()

@pytest.fixture
def test_db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)

@pytest.fixture
def db_session(test_db_engine):
    with Session(test_db_engine) as session:
        yield session

@pytest.fixture
def client(db_session):
    app.dependency_overrides[get_session] = lambda: db_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

@pytest.fixture
def image_file():
    def _image_file(name="photo.png", fmt="PNG", color="red"):
        buffer = BytesIO()
        Image.new("RGB", (16, 16), color).save(buffer, format=fmt)
        buffer.seek(0)
        return (name, buffer, f"image/{fmt.lower()}")
    return _image_file

@pytest.fixture
def create_user(client):
    def _create_user(email="writer@example.com", password="secret123"):
        response = client.post("/user/register", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        login = client.post("/user/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        return {
            "id": response.json()["user"]["id"],
            "email": email,
            "headers": {"Authorization": f"Bearer {login.json()['token']}"},
        }
    return _create_user

@pytest.fixture
def create_post(client, image_file):
    def _create_post(user, title="Hello", content="World", images=0):
        files = [("images", image_file(f"img{i}.png")) for i in range(images)]
        response = client.post(
            "/posts",
            headers=user["headers"],
            data={"title": title, "content": content},
            files=files or None,
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create_post

@pytest.fixture
def oversized_png():
    """PNG header declaring a 30000x30000 canvas with no pixel data"""
    def chunk(chunk_type, data):
        body = chunk_type + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body))

    header = struct.pack(">IIBBBBB", 30000, 30000, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IEND", b"")
