import argparse
import asyncio
import sys
from pathlib import Path

from dify_mcp.chat import ChatService
from dify_mcp.client import DifyClient
from dify_mcp.errors import ChatCallError, ConfigurationError, UploadError
from dify_mcp.logging import setup_logger
from dify_mcp.models import ChatRequest
from dify_mcp.request_builder import CLI_USER
from dify_mcp.settings import load_settings

USAGE = "Usage: DIFY_API_KEY=**** dify-chat <query> [imageFilePath]"


def _write_fragment(fragment: str) -> None:
    sys.stdout.write(fragment)
    sys.stdout.flush()


async def send_chat_message(settings, query: str, image_file_path: str | None = None) -> int:
    # a missing image is skipped rather than rejected
    if image_file_path and not Path(image_file_path).is_file():
        image_file_path = None

    request = ChatRequest(query=query, imageFilePath=image_file_path)
    async with DifyClient.from_settings(settings) as client:
        chat = ChatService(client, CLI_USER, buffered=not settings.LEGACY_CHUNK_SPLITTING)
        try:
            result = await chat.run(request, on_fragment=_write_fragment)
        except (ChatCallError, UploadError) as exc:
            print(f"\nError: {exc.message}", file=sys.stderr)
            return 1

    if result.is_error:
        print(f"\nError: {result.text}", file=sys.stderr)
        return 1
    sys.stdout.write("\n")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="dify-chat", description="Send one message to the Dify chat API")
    parser.add_argument("query", nargs="?", help="Message to send")
    parser.add_argument("image_file_path", nargs="?", help="Path to an image file to attach")
    args = parser.parse_args(argv)

    if not args.query:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    setup_logger("WARNING", settings.LOG_DIR)
    return asyncio.run(send_chat_message(settings, args.query, args.image_file_path))


if __name__ == "__main__":
    sys.exit(main())
