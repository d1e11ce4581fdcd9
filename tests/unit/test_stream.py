"""UI message stream encoding tests."""

from src.features.chat.stream import encode_ui_message_stream, sse
from tests.fakes import parse_ui_stream


async def deltas(*items, error=None):
    for item in items:
        yield item
    if error:
        raise error


async def encode(stream, **kwargs) -> str:
    return "".join([frame async for frame in encode_ui_message_stream(stream, **kwargs)])


def test_sse_frame():
    assert sse({"type": "finish"}) == 'data: {"type": "finish"}\n\n'
    assert sse("[DONE]") == "data: [DONE]\n\n"


def test_sse_keeps_cyrillic_readable():
    assert "Здравейте" in sse({"delta": "Здравейте"})


async def test_frame_sequence():
    frames = parse_ui_stream(await encode(deltas("Hello", " world")))

    assert [f if f == "[DONE]" else f["type"] for f in frames] == [
        "start",
        "start-step",
        "text-start",
        "text-delta",
        "text-delta",
        "text-end",
        "finish-step",
        "finish",
        "[DONE]",
    ]
    text_id = frames[2]["id"]
    assert all(f["id"] == text_id for f in frames[3:6])
    assert [f["delta"] for f in frames[3:5]] == ["Hello", " world"]


async def test_error_after_start():
    body = await encode(deltas("Hello", error=RuntimeError("boom")), error_text="Try again")
    frames = parse_ui_stream(body)

    assert frames[-2] == {"type": "error", "errorText": "Try again"}
    assert frames[-1] == "[DONE]"
    assert "boom" not in body
