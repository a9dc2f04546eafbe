"""File upload tool."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from huly_mcp.dispatch.registry import STORAGE_CLIENT, RegisteredTool
from huly_mcp.huly.storage import (
    HulyStorageClient,
    UploadedFile,
    get_buffer_from_params,
    validate_content_type,
    validate_file_size,
)

CATEGORY = "storage"


class UploadFileInput(BaseModel):
    """Input for uploading a file. Provide ONE of file_path, file_url or data."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    filename: str = Field(..., description="Name of the file (e.g., 'screenshot.png')", min_length=1)
    content_type: str = Field(..., description="MIME type of the file (e.g., 'image/png', 'application/pdf')", min_length=1)
    file_path: Optional[str] = Field(default=None, description="Local file path to upload (preferred)")
    file_url: Optional[str] = Field(default=None, description="URL to fetch the file from")
    data: Optional[str] = Field(default=None, description="Base64-encoded file data (small files only)")

    @model_validator(mode="after")
    def check_source(self) -> "UploadFileInput":
        if not (self.file_path or self.file_url or self.data):
            raise ValueError("Must provide file_path, file_url, or data")
        return self


async def upload_file(params: UploadFileInput, storage_client: HulyStorageClient) -> UploadedFile:
    """Upload a file from a path, URL or base64 payload.

    Source priority is file_path, then file_url, then data.

    Raises:
        InvalidContentTypeError: if the content type is not allowed.
        FileNotFoundError: if ``file_path`` does not exist.
        FileFetchError: if ``file_url`` cannot be fetched.
        InvalidFileDataError: if ``data`` is not valid base64.
        FileTooLargeError: if the payload exceeds the size limit.
    """
    validate_content_type(params.content_type, params.filename)
    data = await get_buffer_from_params(
        storage_client.http,
        file_path=params.file_path,
        file_url=params.file_url,
        data=params.data,
    )
    validate_file_size(data, params.filename)
    return await storage_client.upload_file(params.filename, data, params.content_type)


TOOLS = [
    RegisteredTool(
        name="upload_file",
        description=(
            "Upload a file to Huly storage. Provide ONE of: file_path (local file, preferred), "
            "file_url (remote URL), or data (base64, small files only). Returns the blob ID and URL."
        ),
        category=CATEGORY,
        input_model=UploadFileInput,
        operation=upload_file,
        requires=(STORAGE_CLIENT,),
    ),
]
