from __future__ import annotations
import io
import uuid
from typing import Protocol
import structlog
from minio import Minio
from minio.error import S3Error

from challengr.config import settings
from challengr.errors import MediaUploadFailed
from challengr.services.media import ext_for_mime

log = structlog.get_logger()

class MediaStore(Protocol):
    def upload(self, data: bytes, content_type: str) -> str: ...


def _parse_endpoint(ep: str) -> tuple[str, bool]:
    # Return (host:port, secure)
    secure = ep.startswith("https://")
    host = ep.replace("http://", "").replace("https://", "")
    return host, secure


class MinioMediaStore:
    """Proof uploads on S3/MinIO. Only the returned URL is kept by the engine."""

    def __init__(self, endpoint: str | None = None, bucket: str | None = None, public_url: str | None = None):
        self.endpoint = endpoint or settings.s3_endpoint
        self.bucket = bucket or settings.s3_bucket_uploads
        self.public_url = (public_url or settings.s3_public_url).rstrip("/")
        self._client: Minio | None = None

    def _get_client(self) -> Minio:
        if self._client is None:
            host, secure = _parse_endpoint(self.endpoint)
            client = Minio(host, access_key=settings.s3_access_key, secret_key=settings.s3_secret_key, secure=secure)
            try:
                if not client.bucket_exists(self.bucket):
                    client.make_bucket(self.bucket)
            except S3Error as e:
                # bucket creation may race with another worker
                if e.code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                    raise
            self._client = client
        return self._client

    def key_for(self, content_type: str) -> str:
        return f"proofs/{uuid.uuid4().hex}.{ext_for_mime(content_type)}"

    def upload(self, data: bytes, content_type: str) -> str:
        key = self.key_for(content_type)
        try:
            self._get_client().put_object(
                self.bucket, key, io.BytesIO(data), length=len(data), content_type=content_type
            )
        except Exception as e:
            log.error("media.upload_failed", key=key, error=str(e))
            raise MediaUploadFailed()
        return f"{self.public_url}/{self.bucket}/{key}"


_default_store: MediaStore | None = None

def get_media_store() -> MediaStore:
    global _default_store
    if _default_store is None:
        _default_store = MinioMediaStore()
    return _default_store
