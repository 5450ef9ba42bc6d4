"""The chat flow shared by every front-end: upload, build, stream, aggregate."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from dify_mcp.client import DifyClient
from dify_mcp.models import AggregationResult, ChatRequest, FileReference
from dify_mcp.request_builder import build_chat_payload
from dify_mcp.stream import FragmentCallback, StreamAggregator


class ChatService:
    """Run one chat request end-to-end against the remote API.

    *user* is the fixed identifier of the calling transport.
    """

    def __init__(self, client: DifyClient, user: str, *, buffered: bool = True) -> None:
        self.client = client
        self.user = user
        self.buffered = buffered

    async def run(self, request: ChatRequest, on_fragment: Optional[FragmentCallback] = None) -> AggregationResult:
        """Return the aggregated answer for *request*.

        Raises :class:`~dify_mcp.errors.UploadError` when the image upload
        fails and :class:`~dify_mcp.errors.ChatCallError` when the chat call
        itself fails.
        """
        file_ref: Optional[FileReference] = None
        if request.image_file_path:
            metadata = await self.client.upload_file(request.image_file_path, self.user)
            file_ref = FileReference.from_upload(metadata)

        payload = build_chat_payload(request, self.user, file_ref)
        aggregator = StreamAggregator(buffered=self.buffered, on_fragment=on_fragment)
        result = await aggregator.aggregate(self.client.stream_chat(payload))

        if aggregator.parse_errors:
            logger.warning("Skipped {} malformed record(s)", len(aggregator.parse_errors))
        logger.info("Chat finished for {} (chars={}, error={})", self.user, len(result.text), result.is_error)
        return result
