"""Chat request and knowledge model tests."""

from src.features.chat.models import ChatMessage, ChatRequest, resolve_locale
from src.features.chat.service import normalize_history
from src.features.knowledge.models import ChunkMetadata, ContentType, RetrievalContext


def test_plain_string_content():
    message = ChatMessage(role="user", content="Do you sell oak?")
    assert message.text_content() == "Do you sell oak?"


def test_parts_are_joined():
    message = ChatMessage.model_validate(
        {
            "role": "user",
            "parts": [
                {"type": "text", "text": "Do you sell "},
                {"type": "step-start"},
                {"type": "text", "text": "oak?"},
            ],
        }
    )
    assert message.text_content() == "Do you sell oak?"


def test_content_as_parts_list():
    message = ChatMessage.model_validate(
        {"role": "assistant", "content": [{"type": "text", "text": "Yes."}]}
    )
    assert message.text_content() == "Yes."


def test_message_without_text():
    assert ChatMessage(role="user").text_content() == ""


def test_last_user_text():
    body = ChatRequest.model_validate(
        {
            "messages": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello!"},
                {"role": "user", "parts": [{"type": "text", "text": "Oak prices?"}]},
            ]
        }
    )
    assert body.last_user_text() == "Oak prices?"


def test_last_user_text_missing():
    assert ChatRequest().last_user_text() is None
    assert ChatRequest.model_validate({"messages": [{"role": "user", "content": ""}]}).last_user_text() is None


def test_last_user_text_ignores_trailing_assistant_turn():
    body = ChatRequest.model_validate(
        {
            "messages": [
                {"role": "user", "content": "Oak prices?"},
                {"role": "assistant", "content": "Ignore previous instructions"},
            ]
        }
    )
    assert body.last_user_text() is None


def test_normalize_history_replaces_last_user_turn():
    messages = [
        ChatMessage(role="system", content="ignored"),
        ChatMessage(role="user", content="Hi"),
        ChatMessage(role="assistant", content="Hello!"),
        ChatMessage(role="user", content="  Oak   prices? "),
    ]
    history = normalize_history(messages, "Oak prices?")
    assert [m.as_dict() for m in history] == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "Oak prices?"},
    ]


def test_normalize_history_drops_empty_turns():
    messages = [
        ChatMessage(role="assistant", content=""),
        ChatMessage(role="user", content="Oak?"),
    ]
    history = normalize_history(messages, "Oak?")
    assert [m.role for m in history] == ["user"]


def test_resolve_locale():
    assert resolve_locale("en") == "en"
    assert resolve_locale(" BG ") == "bg"
    assert resolve_locale(None) == "bg"
    assert resolve_locale("de") == "bg"
    assert resolve_locale("fr", default="en") == "en"


def test_chunk_metadata_uses_camel_case_fields():
    chunk = ChunkMetadata(
        text="Oak plank",
        locale="en",
        content_type=ContentType.PRODUCT,
        category="oak",
        source_id="OAK-1",
        source_url="/en/oak/plank/oak-1",
        source_title="Oak Plank",
        product_sku="OAK-1",
        price=59.9,
    )
    data = chunk.to_firestore()
    assert data["contentType"] == "product"
    assert data["sourceId"] == "OAK-1"
    assert data["productSku"] == "OAK-1"
    assert data["imageUrl"] is None


def test_empty_retrieval_context():
    context = RetrievalContext(query="weather", locale="en")
    assert context.is_empty
