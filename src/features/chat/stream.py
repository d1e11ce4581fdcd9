"""Server-sent events in the AI SDK UI message stream format."""

import json
import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

from fastapi.responses import StreamingResponse

logger = logging.getLogger(__name__)

UI_MESSAGE_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "x-vercel-ai-ui-message-stream": "v1",
}


def sse(payload: dict[str, Any] | str) -> str:
    """One SSE `data:` frame."""
    data = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return f"data: {data}\n\n"


async def encode_ui_message_stream(
    deltas: AsyncIterator[str],
    error_text: str = "An error occurred.",
) -> AsyncIterator[str]:
    """
    Wrap text deltas into UI message stream frames.

    Errors raised by `deltas` after the response has started are sent as an
    `error` frame, since the status code can no longer change.
    """
    message_id = f"msg-{uuid.uuid4().hex}"
    text_id = uuid.uuid4().hex

    yield sse({"type": "start", "messageId": message_id})
    yield sse({"type": "start-step"})
    yield sse({"type": "text-start", "id": text_id})

    try:
        async for delta in deltas:
            yield sse({"type": "text-delta", "id": text_id, "delta": delta})
    except Exception:
        logger.exception("Chat stream failed after the response started")
        yield sse({"type": "error", "errorText": error_text})
        yield sse("[DONE]")
        return

    yield sse({"type": "text-end", "id": text_id})
    yield sse({"type": "finish-step"})
    yield sse({"type": "finish"})
    yield sse("[DONE]")


def ui_message_stream_response(
    deltas: AsyncIterator[str],
    error_text: str = "An error occurred.",
) -> StreamingResponse:
    """StreamingResponse carrying a UI message stream."""
    return StreamingResponse(
        encode_ui_message_stream(deltas, error_text),
        media_type="text/event-stream",
        headers=UI_MESSAGE_STREAM_HEADERS,
    )

