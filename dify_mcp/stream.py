"""Aggregation of the streamed chat answer.

The remote API answers with newline-delimited event records::

    data: {"event": "message", "answer": "Hel"}
    data: {"event": "message", "answer": "lo"}

Chunks arrive with arbitrary boundaries.  By default partial lines are carried
over to the next chunk and only complete lines are parsed.  With
``buffered=False`` each chunk is split on its own, which truncates any record
spanning two chunks; that mode is kept for parity with older deployments.
"""

from __future__ import annotations

import codecs
import json
from typing import AsyncIterable, Callable, List, Optional, Union

from loguru import logger

from dify_mcp.errors import StreamParseError
from dify_mcp.models import AggregationResult

DATA_PREFIX = "data: "

FragmentCallback = Callable[[str], None]


class StreamAggregator:
    """Turn a chunked ``data: {...}`` byte stream into one :class:`AggregationResult`.

    Parse failures are logged and collected in :attr:`parse_errors`; they
    never abort aggregation.  The first error record replaces the text with
    its message and every later record is ignored.
    """

    def __init__(self, *, buffered: bool = True, on_fragment: Optional[FragmentCallback] = None) -> None:
        self.buffered = buffered
        self.on_fragment = on_fragment
        self.result = AggregationResult()
        self.parse_errors: List[StreamParseError] = []
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._finished = False

    # ------------------------------------------------------------------
    # Feeding
    # ------------------------------------------------------------------
    def feed(self, chunk: Union[bytes, str]) -> List[str]:
        """Consume one chunk; return the answer fragments it contributed."""
        if self._finished:
            raise RuntimeError("aggregator already finished")

        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        if self.buffered:
            lines = (self._pending + text).split("\n")
            self._pending = lines.pop()
        else:
            lines = text.split("\n")
        return self._consume(lines)

    def finish(self) -> AggregationResult:
        """Flush whatever is left and return the terminal result."""
        if not self._finished:
            tail = self._decoder.decode(b"", final=True)
            if self.buffered:
                rest = self._pending + tail
                self._pending = ""
                if rest:
                    self._consume(rest.split("\n"))
            elif tail:
                self._consume(tail.split("\n"))
            self._finished = True
        return self.result

    async def aggregate(self, chunks: AsyncIterable[Union[bytes, str]]) -> AggregationResult:
        async for chunk in chunks:
            self.feed(chunk)
        return self.finish()

    # ------------------------------------------------------------------
    # Record handling
    # ------------------------------------------------------------------
    def _consume(self, lines: List[str]) -> List[str]:
        fragments: List[str] = []
        for line in lines:
            if self.result.is_error:
                break
            if not line.startswith(DATA_PREFIX):
                continue

            record = self._parse(line)
            if record is None:
                continue

            error = _error_message(record)
            if error is not None:
                logger.warning("Chat stream reported an error: {}", error)
                self.result.fail(error)
                break

            fragment = record.get("answer") or ""
            if not isinstance(fragment, str):
                fragment = str(fragment)
            if fragment and self.result.append(fragment):
                fragments.append(fragment)
                if self.on_fragment is not None:
                    self.on_fragment(fragment)
        return fragments

    def _parse(self, line: str) -> Optional[dict]:
        payload = line[len(DATA_PREFIX):]
        try:
            record = json.loads(payload)
        except json.JSONDecodeError as exc:
            self._record_parse_error(f"Failed to parse SSE data: {exc}", line)
            return None
        if not isinstance(record, dict):
            self._record_parse_error("Failed to parse SSE data: record is not an object", line)
            return None
        return record

    def _record_parse_error(self, message: str, line: str) -> None:
        logger.warning("{} ({!r})", message, line[:200])
        self.parse_errors.append(StreamParseError(message, line=line))


def _error_message(record: dict) -> Optional[str]:
    """Return the error text carried by *record*, if it is an error record."""
    error = record.get("error")
    if error:
        return error if isinstance(error, str) else json.dumps(error)
    if record.get("event") == "error":
        return str(record.get("message") or "Unknown stream error")
    return None
