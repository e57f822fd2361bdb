from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional

from journal.core.config import UploadConfig
from journal.core.exceptions import InternalError, ValidationError
from journal.lib.api_client import get_supabase_admin

logger = logging.getLogger("journal.storage")

upload_config = UploadConfig.from_env()

# 签名下载链接有效期（秒）
SIGNED_URL_TTL = 60 * 60


def _normalize_signed_url(resp: object) -> str | None:
    if not isinstance(resp, dict):
        return None
    return str(resp.get("signedUrl") or resp.get("signedURL") or "") or None


def validate_manuscript_file(filename: Optional[str], content_type: Optional[str], size: int) -> None:
    """
    稿件文件校验（必须在写 Storage / 写数据库之前调用）

    中文注释:
    - MIME 必须严格等于 application/pdf（不看扩展名）。
    - 大小上限 10 MiB，空文件直接拒绝。
    """
    if (content_type or "").strip().lower() != upload_config.allowed_content_type:
        raise ValidationError(
            f"Only PDF files are allowed (received {content_type or 'unknown'})",
            error="Invalid file type",
        )
    if size <= 0:
        raise ValidationError("Manuscript file is empty", error="Invalid file")
    if size > upload_config.max_bytes:
        limit_mb = upload_config.max_bytes // (1024 * 1024)
        raise ValidationError(f"File size exceeds the {limit_mb}MB limit", error="File too large")
    logger.debug("Manuscript file accepted: %s (%s bytes)", filename, size)


def sanitize_filename(filename: Optional[str]) -> str:
    name = PurePosixPath(str(filename or "").replace("\\", "/")).name
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name or "manuscript.pdf"


def build_manuscript_path(author_id: str, filename: Optional[str], *, timestamp_ms: Optional[int] = None) -> str:
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{author_id}/{ts}_{sanitize_filename(filename)}"


def ensure_bucket_exists(*, bucket: str, public: bool = False) -> None:
    """
    确保 Storage bucket 存在（开发/演示环境兜底）。

    中文注释:
    - 正式环境建议用 Dashboard / migration 创建 bucket。
    """
    storage = getattr(get_supabase_admin(), "storage", None)
    if storage is None or not hasattr(storage, "get_bucket") or not hasattr(storage, "create_bucket"):
        return

    try:
        storage.get_bucket(bucket)
        return
    except Exception:
        logger.info("Bucket %s not found, creating it", bucket)

    try:
        storage.create_bucket(bucket, options={"public": bool(public)})
    except Exception as e:
        text = str(e).lower()
        if "already" in text or "exists" in text or "duplicate" in text:
            return
        raise


@dataclass(frozen=True)
class StoredFile:
    path: str
    url: str


@dataclass(frozen=True)
class SignedUrl:
    url: str
    expires_in: int


def upload_bytes(
    *,
    bucket: str,
    path: str,
    content: bytes,
    content_type: str,
    upsert: bool = False,
) -> None:
    ensure_bucket_exists(bucket=bucket, public=False)
    # storage3 期望 header value 为字符串；传 bool 会触发 httpx "Header value must be str or bytes"。
    opts = {"content-type": content_type, "upsert": "true" if upsert else "false"}
    get_supabase_admin().storage.from_(bucket).upload(path, content, opts)


def upload_manuscript(
    *,
    author_id: str,
    filename: Optional[str],
    content: bytes,
    content_type: Optional[str],
) -> StoredFile:
    validate_manuscript_file(filename, content_type, len(content or b""))
    bucket = upload_config.bucket
    path = build_manuscript_path(author_id, filename)
    try:
        upload_bytes(bucket=bucket, path=path, content=content, content_type=upload_config.allowed_content_type)
        url = get_supabase_admin().storage.from_(bucket).get_public_url(path)
    except Exception as e:
        logger.error("Manuscript upload failed: path=%s error=%s", path, e)
        raise InternalError("Failed to upload manuscript file") from e
    logger.info("Manuscript uploaded: bucket=%s path=%s", bucket, path)
    return StoredFile(path=path, url=str(url or ""))


def delete_manuscript(*, path: str, bucket: Optional[str] = None) -> bool:
    """
    删除已上传的稿件文件；用于写库失败后的回滚，失败只记日志，不覆盖原始异常。
    """
    bucket = bucket or upload_config.bucket
    try:
        get_supabase_admin().storage.from_(bucket).remove([path])
    except Exception as e:
        logger.warning("Manuscript cleanup failed: bucket=%s path=%s error=%s", bucket, path, e)
        return False
    logger.info("Manuscript removed: bucket=%s path=%s", bucket, path)
    return True


def create_signed_url(*, path: str, bucket: Optional[str] = None, expires_in: int = SIGNED_URL_TTL) -> SignedUrl:
    try:
        signed = get_supabase_admin().storage.from_(bucket or upload_config.bucket).create_signed_url(path, expires_in)
    except Exception as e:
        raise InternalError("Failed to create signed url") from e
    url = _normalize_signed_url(signed)
    if not url:
        raise InternalError("Failed to create signed url")
    return SignedUrl(url=url, expires_in=expires_in)
