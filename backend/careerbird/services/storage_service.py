"""
Object storage client for tryout deliverables and profile documents.

Files go to the hosted object store over its REST API; this service only
hands back the reference string that gets recorded on the row. File
contents are never inspected beyond the advisory checks below.
"""

import logging
import mimetypes
from dataclasses import dataclass, field
from typing import List, Optional, Union

import httpx

from careerbird.core.config import settings
from careerbird.core.exceptions import PersistenceError
from careerbird.core.sanitization import sanitize_filename
from careerbird.utils.retry import is_transient_http_error, retry_with_backoff

logger = logging.getLogger(__name__)

# Object path prefix per upload kind
PATH_PREFIXES = {
    "proposal": "proposals",
    "video": "videos",
    "portfolio": "portfolios",
    "document": "documents",
}

# Accepted extensions per kind (advisory)
ALLOWED_EXTENSIONS = {
    "proposal": (".pdf",),
    "transcript": (".pdf",),
    "portfolio": (".zip", ".rar"),
}

ARCHIVE_CONTENT_TYPES = (
    "application/zip",
    "application/x-zip-compressed",
    "application/vnd.rar",
    "application/x-rar-compressed",
)


@dataclass
class UploadCheck:
    """Advisory result of the client-side file check; never blocks an upload."""
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


def check_upload(kind: str, filename: str, content_type: Optional[str] = None, size: Optional[int] = None) -> UploadCheck:
    """
    Check a file against what the upload control expects.

    PDF for proposals and transcripts, a video MIME type for the intro video,
    zip/rar for portfolios, and the configured size limit for everything.
    """
    warnings = []
    name = (filename or "").lower()
    content_type = (content_type or mimetypes.guess_type(name)[0] or "").lower()

    if kind in ("proposal", "transcript"):
        if not name.endswith(".pdf") and content_type != "application/pdf":
            warnings.append(f"{kind.capitalize()} should be a PDF file")
    elif kind == "video":
        if not content_type.startswith("video/"):
            warnings.append("Intro video should be a video file")
    elif kind == "portfolio":
        if not name.endswith(ALLOWED_EXTENSIONS["portfolio"]) and content_type not in ARCHIVE_CONTENT_TYPES:
            warnings.append("Portfolio should be a .zip or .rar archive")

    if size is not None and size > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
        warnings.append(f"File is larger than {limit_mb:g} MB")

    return UploadCheck(warnings=warnings)


def object_path(kind: str, owner_id: Union[int, str], filename: str) -> str:
    """
    Build the object key for an upload.

    Tryout deliverables are grouped by application id, documents by user id.
    """
    if kind not in PATH_PREFIXES:
        raise ValueError(f"Unknown upload kind '{kind}'")
    safe_name = sanitize_filename(filename)
    return f"{PATH_PREFIXES[kind]}/{owner_id}/{safe_name}"


class StorageService:
    """Thin client over the object store's upload endpoint."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 bucket: Optional[str] = None, client: Optional[httpx.Client] = None):
        self.base_url = (base_url if base_url is not None else settings.STORAGE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.STORAGE_API_KEY
        self.bucket = bucket or settings.STORAGE_BUCKET
        self._client = client

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{path}"

    @retry_with_backoff(max_retries=2, initial_delay=0.5, exceptions=(httpx.HTTPError,), retry_if=is_transient_http_error)
    def _put(self, path: str, data: bytes, content_type: str) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": content_type,
            "x-upsert": "true",
        }
        if self._client is not None:
            response = self._client.post(self._object_url(path), content=data, headers=headers)
        else:
            with httpx.Client(timeout=30) as client:
                response = client.post(self._object_url(path), content=data, headers=headers)
        response.raise_for_status()
        return response

    def upload(self, kind: str, owner_id: Union[int, str], filename: str, data: bytes,
               content_type: Optional[str] = None) -> str:
        """
        Store a file and return its reference (the object path).

        Raises PersistenceError when the store rejects the upload or stays unreachable.
        """
        if not self.base_url:
            raise PersistenceError("File storage is not configured")

        path = object_path(kind, owner_id, filename)
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"

        check = check_upload(kind, filename, content_type, len(data))
        for warning in check.warnings:
            logger.info(f"Upload check for {path}: {warning}")

        try:
            self._put(path, data, content_type)
        except httpx.HTTPStatusError as e:
            logger.error(f"Object store rejected {path}: {e.response.status_code}", exc_info=True)
            raise PersistenceError("Upload failed, please retry") from e
        except httpx.TransportError as e:
            logger.error(f"Object store unreachable for {path}: {e}", exc_info=True)
            raise PersistenceError("Upload failed, please retry") from e

        logger.info(f"Stored {kind} upload at {path}")
        return path
