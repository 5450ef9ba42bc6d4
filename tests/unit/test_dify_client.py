import json

import httpx
import pytest

from dify_mcp.errors import ChatCallError, UploadError
from dify_mcp.models import ChatPayload

from tests.helpers import make_client, sse_lines

UPLOAD_RESPONSE = {
    "id": "file-123",
    "name": "mockup.png",
    "size": 68,
    "extension": "png",
    "mime_type": "image/png",
    "created_by": "6ad1ab0a",
    "created_at": 1700000000,
}


@pytest.mark.asyncio
async def test_upload_sends_multipart_with_user(image_file):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = request.read()
        return httpx.Response(201, json=UPLOAD_RESPONSE)

    async with make_client(handler) as client:
        meta = await client.upload_file(str(image_file), "pipe-user")

    assert meta.id == "file-123"
    assert meta.mime_type == "image/png"
    assert seen["url"] == "https://dify.test/v1/files/upload"
    assert seen["auth"] == "Bearer test-key"
    assert b'name="user"' in seen["body"]
    assert b"pipe-user" in seen["body"]
    assert b'filename="mockup.png"' in seen["body"]


@pytest.mark.asyncio
async def test_upload_failure_uses_remote_message(image_file):
    def handler(request):
        return httpx.Response(413, json={"code": "file_too_large", "message": "File size exceeded"})

    async with make_client(handler) as client:
        with pytest.raises(UploadError) as excinfo:
            await client.upload_file(str(image_file), "pipe-user")

    assert excinfo.value.message == "File upload failed: File size exceeded"


@pytest.mark.asyncio
async def test_upload_failure_without_body(image_file):
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    async with make_client(handler) as client:
        with pytest.raises(UploadError, match="status code 502"):
            await client.upload_file(str(image_file), "pipe-user")


@pytest.mark.asyncio
async def test_upload_transport_error(image_file):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(UploadError, match="connection refused"):
            await client.upload_file(str(image_file), "pipe-user")


@pytest.mark.asyncio
async def test_stream_chat_posts_payload_and_yields_body():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["json"] = json.loads(request.read())
        return httpx.Response(200, content=sse_lines({"answer": "Hi"}))

    payload = ChatPayload(query="hello", user="cli-user")
    async with make_client(handler) as client:
        body = b"".join([chunk async for chunk in client.stream_chat(payload)])

    assert seen["url"] == "https://dify.test/v1/chat-messages"
    assert seen["json"] == {
        "query": "hello",
        "inputs": {},
        "files": [],
        "user": "cli-user",
        "response_mode": "streaming",
    }
    assert body == b'data: {"answer": "Hi"}\n\n'


@pytest.mark.asyncio
async def test_stream_chat_status_error():
    def handler(request):
        return httpx.Response(400, json={"code": "invalid_param", "message": "query is required"})

    async with make_client(handler) as client:
        with pytest.raises(ChatCallError) as excinfo:
            async for _ in client.stream_chat(ChatPayload(query="x", user="u")):
                pass

    assert excinfo.value.message == "query is required"
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_stream_chat_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with make_client(handler) as client:
        with pytest.raises(ChatCallError, match="timed out"):
            async for _ in client.stream_chat(ChatPayload(query="x", user="u")):
                pass


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"name": "x"}),
        httpx.Response(200, text="<html>maintenance</html>", headers={"content-type": "text/html"}),
    ],
)
async def test_upload_with_unreadable_body_is_upload_error(image_file, response):
    async with make_client(lambda request: response) as client:
        with pytest.raises(UploadError) as excinfo:
            await client.upload_file(str(image_file), "pipe-user")

    assert excinfo.value.message == "File upload failed: invalid upload response"
    assert excinfo.value.data == {"status_code": 200}


@pytest.mark.asyncio
async def test_upload_hands_httpx_an_open_file_handle(image_file, monkeypatch):
    seen = {}
    client = make_client(lambda request: httpx.Response(201, json=UPLOAD_RESPONSE))
    real_post = client._http.post

    async def spy(url, **kwargs):
        _, fh, mime_type = kwargs["files"]["file"]
        seen["fh"] = fh
        seen["position"] = fh.tell()
        seen["mime_type"] = mime_type
        return await real_post(url, **kwargs)

    monkeypatch.setattr(client._http, "post", spy)
    async with client:
        await client.upload_file(str(image_file), "pipe-user")

    # nothing was read up front; httpx pulls from the handle while sending
    assert not isinstance(seen["fh"], (bytes, bytearray))
    assert seen["position"] == 0
    assert seen["mime_type"] == "image/png"
    assert seen["fh"].closed
