"""Async client for the remote Dify API.

Only the two endpoints the chat flow needs are wrapped: ``POST /files/upload``
and the streaming ``POST /chat-messages``.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from dify_mcp.errors import ChatCallError, UploadError
from dify_mcp.models import ChatPayload, UploadedFileMetadata
from dify_mcp.settings import Settings


def _remote_message(response: httpx.Response) -> Optional[str]:
    """Return the ``message`` field of an error body when there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None


def _status_text(response: httpx.Response) -> str:
    return f"Request failed with status code {response.status_code}"


class DifyClient:
    """Thin wrapper around :class:`httpx.AsyncClient` bound to one API key."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.dify.ai/v1",
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "DifyClient":
        return cls(settings.DIFY_API_KEY, settings.base_url, timeout=settings.REQUEST_TIMEOUT, **kwargs)

    async def __aenter__(self) -> "DifyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------
    async def upload_file(self, file_path: str, user: str) -> UploadedFileMetadata:
        """Upload *file_path* on behalf of *user*.

        The file is handed to httpx as an open handle so the multipart body is
        streamed instead of read into memory.  There is no retry: the first
        failure is raised as :class:`UploadError`.
        """
        path = Path(file_path)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        logger.info("Uploading {} ({}) for {}", path.name, mime_type, user)

        try:
            with path.open("rb") as fh:
                response = await self._http.post(
                    "/files/upload",
                    files={"file": (path.name, fh, mime_type)},
                    data={"user": user},
                )
        except httpx.HTTPError as exc:
            logger.error("File upload failed: {}", exc)
            raise UploadError(f"File upload failed: {exc}") from exc

        if response.is_error:
            message = _remote_message(response) or _status_text(response)
            logger.error("File upload failed: {}", message)
            raise UploadError(f"File upload failed: {message}", data={"status_code": response.status_code})

        try:
            metadata = UploadedFileMetadata.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            logger.error("File upload returned an unreadable body: {}", exc)
            raise UploadError(
                "File upload failed: invalid upload response",
                data={"status_code": response.status_code},
            ) from exc
        logger.debug("Uploaded file id={}", metadata.id)
        return metadata

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------
    async def stream_chat(self, payload: ChatPayload) -> AsyncIterator[bytes]:
        """Send *payload* and yield the raw response body as it arrives.

        Any transport or HTTP status failure surfaces as :class:`ChatCallError`
        carrying the remote ``message`` when the body has one.
        """
        logger.info("Sending chat message for {} ({} file(s))", payload.user, len(payload.files))
        try:
            async with self._http.stream("POST", "/chat-messages", json=payload.model_dump(mode="json")) as response:
                if response.is_error:
                    await response.aread()
                    message = _remote_message(response) or _status_text(response)
                    logger.error("Chat call failed: {}", message)
                    raise ChatCallError(message, status_code=response.status_code)
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as exc:
            logger.error("Chat call failed: {}", exc)
            raise ChatCallError(str(exc) or exc.__class__.__name__) from exc
