import io
import os

os.environ["APP_ENV"] = "test"
os.environ.pop("DATABASE_URL", None)

import pytest

from api import create_app
from models import storage

PASSWORD = "Secret#123"


class FakeMediaStore:
    """Stands in for S3: records uploads and honours the temp-file contract."""

    def __init__(self):
        self.uploads = []
        self.deleted = []
        # True fails every upload; a string fails uploads whose id ends with it
        self.fail = False

    def _fails(self, public_id):
        if isinstance(self.fail, str):
            return public_id.endswith(self.fail)
        return bool(self.fail)

    def upload(self, local_path, folder, public_id):
        exists = os.path.exists(local_path)
        os.remove(local_path)
        if self._fails(public_id) or not exists:
            return None
        self.uploads.append((folder, public_id))
        return f"https://media.test/{folder}/{public_id}"

    def delete(self, url):
        self.deleted.append(url)
        folder, public_id = url.rsplit("/", 2)[-2:]
        self.uploads.remove((folder, public_id))
        return True


@pytest.fixture
def app(tmp_path):
    app = create_app("test")
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    app.extensions["media_store"] = FakeMediaStore()
    storage.reset()
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def raw_client(app):
    """Client without a cookie jar; tests pass the Cookie header themselves."""
    return app.test_client(use_cookies=False)


@pytest.fixture
def media(app):
    return app.extensions["media_store"]


@pytest.fixture
def codec(app):
    return app.extensions["token_codec"]


def image(name="avatar.png"):
    return (io.BytesIO(b"\x89PNG fake image bytes"), name)


def register(client, cover=False, **overrides):
    data = {
        "full_name": "Jane Doe",
        "email": "jane@example.com",
        "username": "jane_doe",
        "password": PASSWORD,
        "avatar": image(),
    }
    if cover:
        data["cover-image"] = image("cover.jpg")
    data.update(overrides)
    if data.get("avatar") is None:
        data.pop("avatar")
    return client.post("/api/v1/users/register", data=data, content_type="multipart/form-data")


def login(client, password=PASSWORD, **identifier):
    payload = dict(identifier or {"username": "jane_doe"})
    payload["password"] = password
    return client.post("/api/v1/users/login", json=payload)


def set_cookies(response):
    """Map cookie name -> raw Set-Cookie header for one response."""
    cookies = {}
    for header in response.headers.getlist("Set-Cookie"):
        name = header.split("=", 1)[0]
        cookies[name] = header
    return cookies


def is_cleared(header):
    return header.split(";", 1)[0].endswith("=") and "Max-Age=0" in header


def cookie_header(access=None, refresh=None):
    parts = []
    if access:
        parts.append(f"accessToken={access}")
    if refresh:
        parts.append(f"refreshToken={refresh}")
    return {"Cookie": "; ".join(parts)} if parts else {}
