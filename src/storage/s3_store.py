from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet, InvalidToken

from common.env import getenv, require

from .base import check_value


# Environment variable names for convenience configuration
ENV_BUCKET = "STATESYNC_S3_BUCKET"
ENV_PREFIX = "STATESYNC_S3_PREFIX"
ENV_FERNET_KEY = "STATESYNC_FERNET_KEY"

logger = logging.getLogger(__name__)


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


@dataclass
class S3Location:
    bucket: str
    prefix: str

    def object_key(self, key: str) -> str:
        return f"{self.prefix}{key}"


class S3Storage:
    """
    S3-backed storage: one object per storage key, under a common prefix.

    Usage
    - Provide the bucket, an object-key prefix (e.g. "app/state/") and,
      optionally, a Fernet key. With a Fernet key every value is encrypted
      at rest; without one values are stored as UTF-8 text.
    - `get()` returns None when the object does not exist.
    - `key(index)` and `len()` list the prefix; ordinals follow S3's
      lexicographic listing order.

    Environment variables (for `from_env`)
    - `STATESYNC_S3_BUCKET`:  S3 bucket (required)
    - `STATESYNC_S3_PREFIX`:  object-key prefix (optional, default "")
    - `STATESYNC_FERNET_KEY`: urlsafe base64-encoded key for Fernet (optional)
    """

    def __init__(
        self,
        *,
        s3: Optional[object] = None,
        bucket: str,
        prefix: str = "",
        fernet_key: str | bytes | None = None,
        region_name: Optional[str] = None,
    ) -> None:
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._loc = S3Location(bucket=bucket, prefix=prefix)
        self._fernet = _to_fernet(fernet_key) if fernet_key else None

    # -------- Construction helpers --------
    @classmethod
    def from_env(cls) -> "S3Storage":
        return cls(
            bucket=require(getenv(ENV_BUCKET), ENV_BUCKET),
            prefix=getenv(ENV_PREFIX, "") or "",
            fernet_key=getenv(ENV_FERNET_KEY),
        )

    # -------- Payload encoding --------
    def _seal(self, value: str) -> bytes:
        data = value.encode("utf-8")
        return self._fernet.encrypt(data) if self._fernet else data

    def _open(self, body: bytes, key: str) -> str:
        if self._fernet:
            try:
                body = self._fernet.decrypt(body)
            except InvalidToken as ex:
                raise ValueError(f"Failed to decrypt value for key {key!r}: invalid Fernet token") from ex
        return body.decode("utf-8")

    def _list_keys(self) -> List[str]:
        keys: List[str] = []
        kwargs = {"Bucket": self._loc.bucket, "Prefix": self._loc.prefix}
        while True:
            resp = self._s3.list_objects_v2(**kwargs)
            for item in resp.get("Contents", []):
                keys.append(item["Key"][len(self._loc.prefix):])
            if not resp.get("IsTruncated"):
                return keys
            kwargs["ContinuationToken"] = resp["NextContinuationToken"]

    # -------- Storage contract --------
    def get(self, key: str) -> Optional[str]:
        """Read and decrypt one value.

        Raises:
        - ValueError if decryption fails.
        - botocore.exceptions.ClientError for S3 issues other than a missing key.
        """
        try:
            resp = self._s3.get_object(Bucket=self._loc.bucket, Key=self._loc.object_key(key))
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return None
            raise
        return self._open(resp["Body"].read(), key)

    def set(self, key: str, value: str) -> None:
        check_value(key, value)
        self._s3.put_object(
            Bucket=self._loc.bucket,
            Key=self._loc.object_key(key),
            Body=self._seal(value),
            ContentType="application/octet-stream",
        )
        logger.debug("put s3://%s/%s", self._loc.bucket, self._loc.object_key(key))

    def remove(self, key: str) -> None:
        # DeleteObject succeeds for absent keys
        self._s3.delete_object(Bucket=self._loc.bucket, Key=self._loc.object_key(key))

    def clear(self) -> None:
        for key in self._list_keys():
            self.remove(key)

    def key(self, index: int) -> Optional[str]:
        keys = self._list_keys()
        if index < 0 or index >= len(keys):
            return None
        return keys[index]

    def __len__(self) -> int:
        return len(self._list_keys())
