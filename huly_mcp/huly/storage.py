"""
HulyStorageClient and file-source helpers for uploads.

A file can come from a local path, a URL or inline base64. Whatever the
source, the bytes are checked against MAX_FILE_SIZE and the content type
against ALLOWED_CONTENT_TYPES before anything is sent to the server.
"""

import base64
import binascii
import errno
import ipaddress
import logging
import socket
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlencode, urlparse

import httpx
from pydantic import BaseModel

from huly_mcp.errors import (
    FileFetchError,
    FileTooLargeError,
    FileUploadError,
    HulyFileNotFoundError,
    InvalidContentTypeError,
    InvalidFileDataError,
)
from huly_mcp.huly.connection import AUTH_HTTP_STATUSES, WorkspaceLogin, auth_headers, translate_http_error

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

MAX_FILE_SIZE = 100 * 1024 * 1024
FETCH_TIMEOUT_S = 30.0

ALLOWED_CONTENT_TYPES = frozenset({
    # Images
    "image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml", "image/bmp", "image/tiff",
    # Documents
    "application/pdf", "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain", "text/csv", "text/markdown", "text/html",
    # Archives
    "application/zip", "application/x-tar", "application/gzip",
    "application/x-7z-compressed", "application/x-rar-compressed",
    # Media
    "audio/mpeg", "audio/wav", "audio/ogg", "video/mp4", "video/webm", "video/quicktime",
    # Code/data
    "application/json", "application/xml", "text/xml", "application/javascript",
    "application/octet-stream",
})


class UploadedFile(BaseModel):
    blob_id: str
    content_type: str
    size: int
    url: str


# ─── Validation ──────────────────────────────────────────────────────────────


def validate_file_size(data: bytes, filename: str) -> None:
    if len(data) > MAX_FILE_SIZE:
        raise FileTooLargeError(filename=filename, size=len(data), max_size=MAX_FILE_SIZE)


def validate_content_type(content_type: str, filename: str) -> None:
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidContentTypeError(filename=filename, content_type=content_type)


# ─── File Sources ────────────────────────────────────────────────────────────


def decode_base64(data: str) -> bytes:
    """Decode base64, accepting an optional ``data:...;base64,`` prefix.

    Raises:
        InvalidFileDataError: if the input is empty or not valid base64.
    """
    cleaned = data.split(",", 1)[1] if "," in data else data
    cleaned = "".join(cleaned.split())
    try:
        decoded = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidFileDataError(reason="Invalid base64 data: Invalid base64 encoding") from None
    if not decoded:
        raise InvalidFileDataError(reason="Invalid base64 data: Empty buffer after decoding")
    return decoded


def read_from_file_path(file_path: str) -> bytes:
    try:
        return Path(file_path).resolve().read_bytes()
    except OSError as e:
        if e.errno == errno.ENOENT:
            raise HulyFileNotFoundError(file_path=file_path) from None
        raise InvalidFileDataError(reason=f"Failed to read file {file_path}: {e.strerror}") from e


def _host_address(hostname: str) -> Optional[IPAddress]:
    """Parse an IP literal host, including shorthand IPv4 such as ``127.1`` or ``0x7f000001``."""
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        try:
            # inet_aton accepts the same numeric forms the resolver does.
            address = ipaddress.IPv4Address(socket.inet_aton(hostname))
        except (OSError, ValueError):
            return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def is_blocked_url(url: str) -> bool:
    """True for loopback, private, link-local, unspecified and cloud metadata hosts."""
    try:
        hostname = (urlparse(url).hostname or "").lower().rstrip(".")
    except ValueError:
        return True
    if not hostname:
        return True
    if hostname in ("localhost", "metadata.google.internal"):
        return True
    address = _host_address(hostname)
    if address is None:
        return False
    return address.is_loopback or address.is_private or address.is_link_local or address.is_unspecified


async def fetch_from_url(http: httpx.AsyncClient, file_url: str) -> bytes:
    """Download ``file_url``. Redirects are not followed.

    Raises:
        FileFetchError: on blocked hosts, HTTP errors or transport failures.
    """
    if is_blocked_url(file_url):
        raise FileFetchError(file_url=file_url, reason="URL blocked: internal/private addresses not allowed")
    try:
        response = await http.get(file_url, follow_redirects=False, timeout=FETCH_TIMEOUT_S)
    except httpx.HTTPError as e:
        raise FileFetchError(file_url=file_url, reason=type(e).__name__) from e
    if response.status_code != 200:
        raise FileFetchError(file_url=file_url, reason=f"HTTP {response.status_code}: {response.reason_phrase}")
    return response.content


async def get_buffer_from_params(
    http: httpx.AsyncClient,
    file_path: Optional[str] = None,
    file_url: Optional[str] = None,
    data: Optional[str] = None,
) -> bytes:
    """Resolve upload bytes from exactly one source: path, then URL, then base64."""
    if file_path:
        return read_from_file_path(file_path)
    if file_url:
        return await fetch_from_url(http, file_url)
    if data:
        return decode_base64(data)
    raise InvalidFileDataError(reason="One of file_path, file_url or data is required")


# ─── Client ──────────────────────────────────────────────────────────────────


class HulyStorageClient:
    """Uploads blobs to the workspace file store."""

    def __init__(self, http: httpx.AsyncClient, login: WorkspaceLogin):
        self._http = http
        self._login = login

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    def file_url(self, blob_id: str) -> str:
        query = urlencode({"workspace": self._login.workspace_id, "file": blob_id})
        return f"{self._login.files_url}?{query}"

    async def upload_file(self, filename: str, data: bytes, content_type: str) -> UploadedFile:
        """Upload ``data`` and return the stored blob.

        Raises:
            HulyAuthError: if the upload token is rejected.
            FileUploadError: on any other upload failure.
        """
        try:
            response = await self._http.post(
                self._login.upload_url,
                headers=auth_headers(self._login.token),
                params={"workspace": self._login.workspace_id},
                files={"file": (filename, data, content_type)},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code in AUTH_HTTP_STATUSES:
                raise translate_http_error(e, "File upload") from e
            raise FileUploadError(reason=f"File upload failed: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise FileUploadError(reason=f"File upload failed: {type(e).__name__}") from e

        entry = body[0] if isinstance(body, list) and body else body
        blob_id = entry.get("id") if isinstance(entry, dict) else None
        if not blob_id:
            raise FileUploadError(reason="File upload failed: no blob id in response")

        logger.info("file_uploaded blob=%s size=%d", blob_id, len(data))
        return UploadedFile(blob_id=blob_id, content_type=content_type, size=len(data), url=self.file_url(blob_id))
