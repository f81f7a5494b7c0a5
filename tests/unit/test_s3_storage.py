from __future__ import annotations

import pytest
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet

from storage import MemoryStorage, storage_from_env
from storage import s3_store
from storage.s3_store import S3Storage


class _FakeBody:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class _FakeS3:
    def __init__(self, *, page_size: int = 1000) -> None:
        self._store = {}  # (bucket, key) -> bytes
        self._page_size = page_size
        self.list_calls = 0

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str):
        self._store[(Bucket, Key)] = Body
        return {"ETag": f'"fake-{len(Body)}"'}

    def get_object(self, *, Bucket: str, Key: str):
        item = self._store.get((Bucket, Key))
        if item is None:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": _FakeBody(item)}

    def delete_object(self, *, Bucket: str, Key: str):
        self._store.pop((Bucket, Key), None)
        return {}

    def list_objects_v2(self, *, Bucket: str, Prefix: str = "", ContinuationToken: str | None = None):
        self.list_calls += 1
        keys = sorted(k for (b, k) in self._store if b == Bucket and k.startswith(Prefix))
        start = int(ContinuationToken or 0)
        page = keys[start : start + self._page_size]
        resp = {"Contents": [{"Key": k} for k in page], "IsTruncated": start + self._page_size < len(keys)}
        if resp["IsTruncated"]:
            resp["NextContinuationToken"] = str(start + self._page_size)
        return resp

    def raw(self, bucket: str, key: str) -> bytes:
        return self._store[(bucket, key)]


class _DeniedS3(_FakeS3):
    def get_object(self, *, Bucket: str, Key: str):
        raise ClientError({"Error": {"Code": "AccessDenied"}}, "GetObject")


def test_get_missing_returns_none():
    store = S3Storage(s3=_FakeS3(), bucket="b", prefix="app/")
    assert store.get("count") is None


def test_set_get_plaintext_under_prefix():
    s3 = _FakeS3()
    store = S3Storage(s3=s3, bucket="b", prefix="app/")
    store.set("count", "41")

    assert store.get("count") == "41"
    assert s3.raw("b", "app/count") == b"41"


def test_values_encrypted_at_rest_with_fernet_key():
    s3 = _FakeS3()
    key = Fernet.generate_key()
    store = S3Storage(s3=s3, bucket="b", prefix="app/", fernet_key=key)
    store.set("todos", '[{"id":1}]')

    assert s3.raw("b", "app/todos") != b'[{"id":1}]'
    assert Fernet(key).decrypt(s3.raw("b", "app/todos")) == b'[{"id":1}]'
    assert store.get("todos") == '[{"id":1}]'


def test_get_raises_value_error_on_bad_token():
    s3 = _FakeS3()
    s3.put_object(Bucket="b", Key="count", Body=b"garbage", ContentType="application/octet-stream")

    store = S3Storage(s3=s3, bucket="b", fernet_key=Fernet.generate_key())
    with pytest.raises(ValueError):
        store.get("count")


def test_other_client_errors_propagate():
    store = S3Storage(s3=_DeniedS3(), bucket="b")
    with pytest.raises(ClientError):
        store.get("count")


def test_remove_clear_key_and_length_with_pagination():
    s3 = _FakeS3(page_size=2)
    store = S3Storage(s3=s3, bucket="b", prefix="app/")
    other = S3Storage(s3=s3, bucket="b", prefix="other/")
    for k in ("c", "a", "e", "b", "d"):
        store.set(k, "1")
    other.set("a", "1")

    assert len(store) == 5
    assert [store.key(i) for i in range(5)] == ["a", "b", "c", "d", "e"]
    assert store.key(5) is None
    assert store.key(-1) is None

    store.remove("c")
    store.remove("missing")
    assert len(store) == 4

    store.clear()
    assert len(store) == 0
    assert other.get("a") == "1"


def test_rejects_non_string_values():
    store = S3Storage(s3=_FakeS3(), bucket="b")
    with pytest.raises(TypeError):
        store.set("count", 1)  # type: ignore[arg-type]


def test_from_env_missing_bucket_raises(monkeypatch):
    monkeypatch.delenv("STATESYNC_S3_BUCKET", raising=False)
    with pytest.raises(RuntimeError):
        S3Storage.from_env()


def test_storage_from_env_selects_backend(monkeypatch):
    fake = _FakeS3()
    monkeypatch.setattr(s3_store.boto3, "client", lambda *_args, **_kwargs: fake)
    monkeypatch.setenv("STATESYNC_S3_BUCKET", "b")
    monkeypatch.setenv("STATESYNC_S3_PREFIX", "env/")

    monkeypatch.setenv("STATESYNC_STORAGE", "s3")
    store = storage_from_env()
    assert isinstance(store, S3Storage)
    store.set("x", "1")
    assert fake.raw("b", "env/x") == b"1"

    monkeypatch.setenv("STATESYNC_STORAGE", "memory")
    assert isinstance(storage_from_env(), MemoryStorage)

    monkeypatch.setenv("STATESYNC_STORAGE", "floppy")
    with pytest.raises(RuntimeError):
        storage_from_env()


def test_from_env_treats_empty_bucket_as_missing(monkeypatch):
    monkeypatch.setenv("STATESYNC_S3_BUCKET", "")
    with pytest.raises(RuntimeError, match="STATESYNC_S3_BUCKET"):
        S3Storage.from_env()
