import io
import os
import random
import tempfile

# point the app at a throwaway database and media dir before anything imports it
_tmp = tempfile.mkdtemp(prefix="qyou-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["MEDIA_ROOT"] = os.path.join(_tmp, "media")
os.environ["STORAGE_BACKEND"] = "local"

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from qyou.database import Base, SessionLocal, engine, init_db
from qyou.main import app
from qyou.services.auth import AuthService
from qyou.services.storage import ObjectStoreError, get_object_store


class FakeObjectStore:
    def __init__(self):
        self.objects = {}
        self.puts = []
        self.fail_with = None

    def put(self, key, data, *, overwrite=False, content_type="application/octet-stream", cache_control=None):
        if self.fail_with:
            raise self.fail_with
        if key in self.objects and not overwrite:
            raise ObjectStoreError(f"exists: {key}")
        self.objects[key] = data
        self.puts.append({"key": key, "content_type": content_type, "cache_control": cache_control})

    def public_url(self, key):
        return f"https://cdn.example.com/{key}"


def solid_jpeg(size=(64, 64), color=(200, 60, 40), quality=90):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def noise_image(size, seed=7):
    rng = random.Random(seed)
    return Image.frombytes("RGB", size, rng.randbytes(size[0] * size[1] * 3))


def noise_jpeg(size, quality=95, seed=7):
    buffer = io.BytesIO()
    noise_image(size, seed).save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def png_bytes(size=(40, 30), mode="RGBA"):
    buffer = io.BytesIO()
    Image.new(mode, size, (10, 120, 200, 128) if mode == "RGBA" else (10, 120, 200)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_object_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_account(db):
    def _make(email="user@example.com", password="secret123"):
        return AuthService(db).create_account(email, password)
    return _make


def register(client, email="owner@example.com", password="secret123", code=None):
    body = {"email": email, "password": password}
    if code:
        body["code"] = code
    return client.post("/api/auth/register", json=body)


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}
