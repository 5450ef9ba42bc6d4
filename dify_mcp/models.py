from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class ChatRequest(BaseModel):
    """Validated arguments of a chat tool call.

    ``imageFilePath`` must point at an existing file, so a request never
    reaches the remote API with an unresolved image path.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    query: StrictStr = Field(..., min_length=1, description="The message to send")
    image_file_path: Optional[StrictStr] = Field(
        None, alias="imageFilePath", description="Absolute path of an image to attach"
    )
    inputs: Dict[str, Any] = Field(default_factory=dict, description="App input variables")

    @field_validator("image_file_path")
    @classmethod
    def _image_must_exist(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not Path(value).is_file():
            raise ValueError(f"image file not found: {value}")
        return value


class UploadedFileMetadata(BaseModel):
    """Response of ``POST /files/upload``. Only ``id`` is used downstream."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    size: Optional[int] = None
    extension: Optional[str] = None
    mime_type: Optional[str] = None
    created_by: Optional[Union[str, int]] = None
    created_at: Optional[int] = None


class FileReference(BaseModel):
    """A previously uploaded file attached to a chat message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    transfer_method: Literal["local_file"] = "local_file"
    upload_file_id: str

    @classmethod
    def from_upload(cls, metadata: UploadedFileMetadata) -> "FileReference":
        return cls(upload_file_id=metadata.id)


class ChatPayload(BaseModel):
    """Wire body of ``POST /chat-messages``."""

    query: str
    inputs: Dict[str, Any] = Field(default_factory=dict)
    files: List[FileReference] = Field(default_factory=list)
    user: str
    response_mode: Literal["streaming"] = "streaming"


class AggregationResult(BaseModel):
    """Answer text accumulated from a chat stream.

    Once ``is_error`` is set it stays set and the text is frozen at the
    error message.
    """

    text: str = ""
    is_error: bool = False

    def append(self, fragment: str) -> bool:
        if self.is_error:
            return False
        self.text += fragment
        return True

    def fail(self, message: str) -> None:
        if self.is_error:
            return
        self.is_error = True
        self.text = message
