"""File Store Gateway backed by the local filesystem.

Blobs live under ``<storage_root>/<bucket>/<path>``. Upload returns the
relative path only; URLs are produced on demand by ``resolve_url`` so stored
pointers never go stale. Public buckets get plain URLs; everything else gets a
time-limited HMAC signature outside the dev environment.
"""

import hashlib
import hmac
import logging
import os
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from urllib.parse import urlencode, urlparse
from dailies.core.config import settings
from dailies.core.errors import FileValidationError, StorageError

logger = logging.getLogger(__name__)

BUCKETS = ("thumbnails", "media", "attachments")
_PRESIGN_MARKERS = ("signature=", "X-Amz-Algorithm", "AWSAccessKeyId")


@dataclass
class UploadBlob:
    data: bytes
    content_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ValidationRules:
    allowed_types: list[str] | None = None
    max_size: int | None = None


@dataclass
class UploadResult:
    path: str
    bucket: str
    size: int
    original_name: str


def validation_rules(kind: str) -> ValidationRules:
    mb = 1024 * 1024
    if kind == "thumbnail":
        return ValidationRules(
            allowed_types=["image/jpeg", "image/png", "image/webp"],
            max_size=settings.thumbnail_max_size_mb * mb,
        )
    if kind == "media":
        return ValidationRules(
            allowed_types=[
                "image/x-exr",
                "image/png",
                "image/jpeg",
                "image/webp",
                "text/plain",
                "application/octet-stream",
            ],
            max_size=settings.media_max_size_mb * mb,
        )
    if kind == "attachment":
        return ValidationRules(
            allowed_types=["image/jpeg", "image/png", "image/webp", "application/pdf", "text/plain"],
            max_size=settings.attachment_max_size_mb * mb,
        )
    return ValidationRules()


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("Bytes", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{round(value, 2):g} {unit}"
        value /= 1024
    return f"{size} Bytes"


def validate_blob(blob: UploadBlob | None, rules: ValidationRules) -> None:
    if blob is None:
        raise FileValidationError("No file provided")
    if blob.size == 0:
        raise FileValidationError("File is empty")
    if rules.max_size and blob.size > rules.max_size:
        raise FileValidationError(f"File size exceeds maximum allowed size of {_format_size(rules.max_size)}")
    if rules.allowed_types and blob.content_type not in rules.allowed_types:
        raise FileValidationError(
            f"File type {blob.content_type} is not allowed. Allowed types: {', '.join(rules.allowed_types)}"
        )


def generate_file_path(original_name: str, now: datetime | None = None) -> str:
    now = now or datetime.utcnow()
    extension = Path(original_name).suffix.lstrip(".").lower() or "bin"
    file_name = f"{int(time.time() * 1000)}-{secrets.token_hex(3)}.{extension}"
    return f"{now:%Y/%m/%d}/{file_name}"


class LocalFileStore:
    def __init__(
        self,
        root: str,
        public_base_url: str,
        signing_secret: str,
        presign_ttl_seconds: int = 3600,
        public_buckets: list[str] | None = None,
        sign_private_urls: bool = True,
    ):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self.signing_secret = signing_secret
        self.presign_ttl_seconds = presign_ttl_seconds
        self.public_buckets = set(public_buckets if public_buckets is not None else ["thumbnails"])
        self.sign_private_urls = sign_private_urls

    @classmethod
    def from_settings(cls) -> "LocalFileStore":
        return cls(
            root=settings.storage_root,
            public_base_url=settings.public_base_url,
            signing_secret=settings.signing_secret,
            presign_ttl_seconds=settings.presign_ttl_seconds,
            public_buckets=settings.public_buckets,
            sign_private_urls=not settings.is_dev,
        )

    def _target(self, bucket: str, path: str) -> Path:
        if bucket not in BUCKETS:
            raise StorageError(f"Unknown bucket '{bucket}'")
        bucket_root = (self.root / bucket).resolve()
        target = (bucket_root / path).resolve()
        if not str(target).startswith(str(bucket_root) + os.sep):
            raise StorageError(f"Invalid storage path: {path}")
        return target

    def upload(self, bucket: str, blob: UploadBlob, rules: ValidationRules | None = None) -> UploadResult:
        validate_blob(blob, rules or ValidationRules())
        path = generate_file_path(blob.filename)
        target = self._target(bucket, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(blob.data)
        except OSError as exc:
            logger.error("File upload failed", extra={"bucket": bucket, "path": path})
            raise StorageError(f"File upload failed: {exc}") from exc
        logger.info("File uploaded", extra={"bucket": bucket, "path": path, "size": blob.size})
        return UploadResult(path=path, bucket=bucket, size=blob.size, original_name=blob.filename)

    def delete(self, bucket: str, path: str) -> None:
        target = self._target(bucket, path)
        try:
            if target.exists():
                os.remove(target)
        except OSError as exc:
            logger.error("File deletion failed", extra={"bucket": bucket, "path": path})
            raise StorageError(f"File deletion failed: {exc}") from exc
        logger.info("File deleted", extra={"bucket": bucket, "path": path})

    def open_path(self, bucket: str, path: str) -> Path:
        return self._target(bucket, path)

    def _signature(self, bucket: str, path: str, expires: int) -> str:
        message = f"{bucket}/{path}:{expires}".encode("utf-8")
        return hmac.new(self.signing_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

    def resolve_url(self, bucket: str, path: str) -> str:
        url = f"{self.public_base_url}/{bucket}/{path}"
        if bucket in self.public_buckets or not self.sign_private_urls:
            return url
        expires = int(time.time()) + self.presign_ttl_seconds
        query = urlencode({"expires": expires, "signature": self._signature(bucket, path, expires)})
        return f"{url}?{query}"

    def verify_signature(self, bucket: str, path: str, expires: int | None, signature: str | None) -> bool:
        if bucket in self.public_buckets or not self.sign_private_urls:
            return True
        if expires is None or not signature or expires < int(time.time()):
            return False
        return hmac.compare_digest(self._signature(bucket, path, expires), signature)

    def extract_bucket_and_path(self, path_or_url: str, default_bucket: str | None = None) -> tuple[str, str] | None:
        if not path_or_url:
            return None
        parsed = urlparse(path_or_url)
        if parsed.scheme in ("http", "https"):
            parts = [part for part in parsed.path.split("/") if part]
            prefix = [part for part in urlparse(self.public_base_url).path.split("/") if part]
            if prefix and parts[: len(prefix)] == prefix:
                parts = parts[len(prefix):]
            if len(parts) < 2 or parts[0] not in BUCKETS:
                return None
            return parts[0], "/".join(parts[1:])
        parts = path_or_url.split("/")
        if len(parts) >= 2 and parts[0] in BUCKETS:
            return parts[0], "/".join(parts[1:])
        if default_bucket:
            return default_bucket, path_or_url
        return None

    @staticmethod
    def is_presigned(url: str) -> bool:
        return any(marker in url for marker in _PRESIGN_MARKERS)
