"""
Object storage client (S3 presigned uploads)
"""
from __future__ import annotations

import logging
import re
import time
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from saysense.core.config import get_settings

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageServiceError(RuntimeError):
    pass


class ObjectStorage(Protocol):
    def get_presigned_upload_url(self, file_name: str, content_type: str) -> Dict[str, str]:
        ...


def build_upload_key(file_name: str, now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1]
    safe = _UNSAFE_KEY_CHARS.sub("_", base).strip("._") or "upload"
    return f"uploads/{stamp}-{safe}"


class S3UploadStorage:
    def __init__(
        self,
        bucket: str,
        region: str,
        expires_in: int = 3600,
        access_key_id: str = "",
        secret_access_key: str = "",
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.expires_in = expires_in
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self._access_key_id or None,
                aws_secret_access_key=self._secret_access_key or None,
            )
        return self._client

    def get_presigned_upload_url(self, file_name: str, content_type: str) -> Dict[str, str]:
        if not self.bucket:
            raise StorageServiceError("AWS_S3_BUCKET not configured")
        key = build_upload_key(file_name)
        try:
            url = self._get_client().generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageServiceError(f"Presign failed: {exc}") from exc
        logger.info("presigned_upload_created bucket=%s key=%s", self.bucket, key)
        return {"url": url, "key": key}


@lru_cache()
def get_object_storage() -> S3UploadStorage:
    settings = get_settings()
    return S3UploadStorage(
        bucket=settings.aws_s3_bucket,
        region=settings.aws_region,
        expires_in=settings.presigned_url_expire_seconds,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
    )
