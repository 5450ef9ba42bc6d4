import json

import httpx

from dify_mcp.client import DifyClient

BASE_URL = "https://dify.test/v1"

# A small 1x1 PNG (black pixel)
SAMPLE_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000001e221bc330000000049454e44ae426082"
)


def sse_lines(*records) -> bytes:
    """Encode *records* the way the chat endpoint streams them."""
    return b"".join(b"data: " + json.dumps(r).encode() + b"\n\n" for r in records)


def make_client(handler) -> DifyClient:
    return DifyClient("test-key", BASE_URL, transport=httpx.MockTransport(handler))
