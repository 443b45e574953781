"""Media storage for logos, favicons, verification documents and lesson files.

Uploads arrive fully buffered (the API caps them at MAX_UPLOAD_BYTES) and
are forwarded to an S3-compatible bucket.  Nothing touches local disk.
Without MEDIA_BUCKET the service keeps objects in process memory, which
is what dev and the test suite run on.

Object keys are ``<folder>/<scope>/<prefix>-<random><ext>``; the key is
the ``public_id`` handed back to callers and used for deletes.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from lms.core.config import SETTINGS
from lms.core.errors import BadRequestError, InternalError

logger = logging.getLogger(__name__)

ORG_LOGO_FOLDER = "org-logos"
ORG_FAVICON_FOLDER = "org-favicons"
EDUCATOR_DOC_FOLDER = "educator-docs"
LESSON_MATERIAL_FOLDER = "lesson-materials"


@dataclass(frozen=True, slots=True)
class StoredMedia:
    url: str
    public_id: str


@dataclass(frozen=True, slots=True)
class MediaUpload:
    """A buffered multipart file."""

    data: bytes
    filename: str | None = None
    content_type: str | None = None


class MediaStore(Protocol):
    async def upload(self, data: bytes, *, key: str, content_type: str | None) -> StoredMedia: ...
    async def delete(self, public_id: str) -> None: ...


class InMemoryMediaStore:
    def __init__(self, base_url: str = "memory://media") -> None:
        self._base_url = base_url.rstrip("/")
        self.objects: dict[str, tuple[bytes, str | None]] = {}

    async def upload(self, data: bytes, *, key: str, content_type: str | None) -> StoredMedia:
        self.objects[key] = (data, content_type)
        return StoredMedia(url=f"{self._base_url}/{key}", public_id=key)

    async def delete(self, public_id: str) -> None:
        self.objects.pop(public_id, None)


class S3MediaStore:
    """boto3 is synchronous; calls run in a worker thread."""

    def __init__(self, client, bucket: str, public_base_url: str) -> None:
        self._client = client
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")

    async def upload(self, data: bytes, *, key: str, content_type: str | None) -> StoredMedia:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            await asyncio.to_thread(
                self._client.put_object, Bucket=self._bucket, Key=key, Body=data, **extra
            )
        except (BotoCoreError, ClientError):
            logger.exception("Media upload failed key=%s", key)
            raise InternalError("Media upload failed", code="MEDIA_UPLOAD_FAILED") from None
        return StoredMedia(url=f"{self._public_base_url}/{key}", public_id=key)

    async def delete(self, public_id: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.delete_object, Bucket=self._bucket, Key=public_id
            )
        except (BotoCoreError, ClientError):
            logger.exception("Media delete failed key=%s", public_id)
            raise InternalError("Media delete failed", code="MEDIA_DELETE_FAILED") from None


def _build_media_store() -> MediaStore:
    if not SETTINGS.media_bucket:
        return InMemoryMediaStore()
    client = boto3.client(
        "s3",
        endpoint_url=SETTINGS.media_endpoint_url,
        aws_access_key_id=SETTINGS.media_key_id,
        aws_secret_access_key=SETTINGS.media_secret,
        config=Config(signature_version="s3v4"),
    )
    public_base = SETTINGS.media_public_base_url or (
        f"{SETTINGS.media_endpoint_url.rstrip('/')}/{SETTINGS.media_bucket}"
        if SETTINGS.media_endpoint_url
        else f"https://{SETTINGS.media_bucket}.s3.amazonaws.com"
    )
    logger.info("Media store: bucket=%s", SETTINGS.media_bucket)
    return S3MediaStore(client, SETTINGS.media_bucket, public_base)


media_store: MediaStore = _build_media_store()


def require_image(content_type: str | None, field: str) -> None:
    if not content_type or not content_type.startswith("image/"):
        raise BadRequestError(f"{field} must be an image file")


def _key(folder: str, scope: str, prefix: str, filename: str | None) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    return f"{folder}/{scope}/{prefix}-{uuid.uuid4().hex}{ext}"


async def upload_org_logo(
    store: MediaStore, data: bytes, *, org_slug: str, filename: str | None, content_type: str | None
) -> StoredMedia:
    require_image(content_type, "logo")
    return await store.upload(
        data, key=_key(ORG_LOGO_FOLDER, org_slug, "logo", filename), content_type=content_type
    )


async def upload_org_favicon(
    store: MediaStore, data: bytes, *, org_slug: str, filename: str | None, content_type: str | None
) -> StoredMedia:
    require_image(content_type, "favicon")
    return await store.upload(
        data,
        key=_key(ORG_FAVICON_FOLDER, org_slug, "favicon", filename),
        content_type=content_type,
    )


async def upload_educator_doc(
    store: MediaStore,
    data: bytes,
    *,
    tenant: str,
    educator_id: uuid.UUID,
    filename: str | None,
    content_type: str | None,
) -> StoredMedia:
    return await store.upload(
        data,
        key=_key(EDUCATOR_DOC_FOLDER, tenant, f"doc-{educator_id}", filename),
        content_type=content_type,
    )


async def upload_lesson_material(
    store: MediaStore,
    data: bytes,
    *,
    tenant: str,
    lesson_id: uuid.UUID,
    filename: str | None,
    content_type: str | None,
) -> StoredMedia:
    return await store.upload(
        data,
        key=_key(LESSON_MATERIAL_FOLDER, tenant, f"lesson-{lesson_id}", filename),
        content_type=content_type,
    )
