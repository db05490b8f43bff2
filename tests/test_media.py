import io
import os

import pytest
from botocore.exceptions import ClientError
from werkzeug.datastructures import FileStorage

from utils.media import MediaStore, save_upload


class StubS3:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def upload_fileobj(self, fh, bucket, key):
        if self.error:
            raise self.error
        self.calls.append((bucket, key, fh.read()))

    def delete_object(self, Bucket, Key):
        if self.error:
            raise self.error
        self.calls.append(("delete", Bucket, Key))


@pytest.fixture
def store():
    store = MediaStore(bucket="videos", region="eu-west-1", access_key="k", secret_key="s")
    store.client = StubS3()
    return store


def temp_file(tmp_path, name="avatar.png"):
    path = tmp_path / name
    path.write_bytes(b"img")
    return str(path)


def test_upload_returns_url_and_removes_temp_file(store, tmp_path):
    path = temp_file(tmp_path)
    url = store.upload(path, "jane", "jane-avatar")
    assert url == "https://videos.s3.eu-west-1.amazonaws.com/jane/jane-avatar.png"
    assert store.client.calls == [("videos", "jane/jane-avatar.png", b"img")]
    assert not os.path.exists(path)


def test_failed_upload_returns_none_and_removes_temp_file(store, tmp_path):
    store.client = StubS3(error=ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject"))
    path = temp_file(tmp_path)
    assert store.upload(path, "jane", "jane-avatar") is None
    assert not os.path.exists(path)


def test_upload_without_bucket_fails(tmp_path):
    store = MediaStore(bucket=None, region="eu-west-1")
    path = temp_file(tmp_path)
    assert store.upload(path, "jane", "jane-avatar") is None
    assert not os.path.exists(path)


def test_delete_removes_uploaded_object(store, tmp_path):
    url = store.upload(temp_file(tmp_path), "jane", "jane-avatar")
    assert store.delete(url) is True
    assert store.client.calls[-1] == ("delete", "videos", "jane/jane-avatar.png")


def test_delete_ignores_foreign_urls(store):
    assert store.delete("https://elsewhere.example/jane/jane-avatar.png") is False
    assert store.delete(None) is False
    assert store.client.calls == []


def test_failed_delete_returns_false(store):
    store.client = StubS3(error=ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "DeleteObject"))
    assert store.delete("https://videos.s3.eu-west-1.amazonaws.com/jane/jane-avatar.png") is False


def test_save_upload_writes_unique_temp_file(tmp_path):
    upload = FileStorage(stream=io.BytesIO(b"data"), filename="../evil name.png")
    path = save_upload(upload, str(tmp_path / "temp"))
    assert os.path.dirname(path) == str(tmp_path / "temp")
    assert path.endswith("evil_name.png")
    with open(path, "rb") as fh:
        assert fh.read() == b"data"


def test_save_upload_without_file(tmp_path):
    assert save_upload(None, str(tmp_path)) is None
    assert save_upload(FileStorage(stream=io.BytesIO(b""), filename=""), str(tmp_path)) is None
