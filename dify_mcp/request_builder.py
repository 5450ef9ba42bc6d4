"""Assembly of the outbound chat body."""

from typing import Optional

from dify_mcp.models import ChatPayload, ChatRequest, FileReference

# Fixed user identifiers, one per calling transport
PIPE_USER = "pipe-user"
PUSH_USER = "push-user"
CLI_USER = "cli-user"


def build_chat_payload(
    request: ChatRequest,
    user: str,
    file_ref: Optional[FileReference] = None,
) -> ChatPayload:
    """Return the ``/chat-messages`` body for *request* sent on behalf of *user*."""
    return ChatPayload(
        query=request.query,
        inputs=dict(request.inputs),
        files=[file_ref] if file_ref is not None else [],
        user=user,
    )
