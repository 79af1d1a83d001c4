import json
from datetime import datetime, timezone

from app.api.sse import SSE_HEADERS, format_sse, sse_response


def test_frame_layout():
    frame = format_sse("status", {"phase": "scraping", "progress": 5})
    assert frame.startswith("event: status\ndata: ")
    assert frame.endswith("\n\n")
    payload = frame.split("data: ", 1)[1].strip()
    assert json.loads(payload) == {"phase": "scraping", "progress": 5}


def test_non_json_values_are_stringified():
    when = datetime(2026, 1, 2, tzinfo=timezone.utc)
    frame = format_sse("complete", {"at": when})
    assert "2026-01-02 00:00:00+00:00" in frame


def test_response_disables_buffering():
    async def stream():
        yield format_sse("status", {})

    response = sse_response(stream())
    assert response.media_type == "text/event-stream"
    for name, value in SSE_HEADERS.items():
        assert response.headers[name.lower()] == value
