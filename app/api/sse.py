"""Server-Sent Events helpers."""

import json
from typing import Any

from fastapi.responses import StreamingResponse

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: str, data: Any) -> str:
    """Encode one event frame."""
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


def sse_response(stream) -> StreamingResponse:
    return StreamingResponse(stream, media_type="text/event-stream", headers=SSE_HEADERS)
