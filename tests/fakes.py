"""In-memory stand-ins for the hosted services."""

import json
from collections.abc import AsyncIterator
from typing import Any

DIMS = 1536


def unit_vector(index: int = 0, dims: int = DIMS) -> list[float]:
    vector = [0.0] * dims
    vector[index] = 1.0
    return vector


class FakeGemini:
    """Stands in for GeminiClient; records calls and replays scripted output."""

    def __init__(self, deltas: list[str] | None = None, dims: int = DIMS):
        self.deltas = deltas if deltas is not None else ["Hybrid wood ", "is water resistant."]
        self.dims = dims
        self.embed_error: Exception | None = None
        self.stream_error: Exception | None = None
        self.fail_after: int | None = None
        self.embedded: list[str] = []
        self.chat_calls: list[dict[str, Any]] = []

    async def embed_query(self, text: str) -> list[float]:
        if self.embed_error:
            raise self.embed_error
        self.embedded.append(text)
        return unit_vector(dims=self.dims)

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if self.embed_error:
            raise self.embed_error
        self.embedded.extend(texts)
        return [unit_vector(dims=self.dims) for _ in texts]

    async def stream_chat(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        self.chat_calls.append({"system_prompt": system_prompt, "messages": messages})
        if self.stream_error:
            raise self.stream_error
        for i, delta in enumerate(self.deltas):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("stream interrupted")
            yield delta


class FakeDocumentRef:
    def __init__(self, store: "FakeDb", collection: str, doc_id: str):
        self.store = store
        self.collection = collection
        self.id = doc_id

    def set(self, data: dict[str, Any]) -> None:
        self.store.collections.setdefault(self.collection, {})[self.id] = data


class FakeCollection:
    def __init__(self, store: "FakeDb", name: str):
        self.store = store
        self.name = name

    def document(self) -> FakeDocumentRef:
        self.store.counter += 1
        return FakeDocumentRef(self.store, self.name, f"event-{self.store.counter}")


class FakeDb:
    def __init__(self):
        self.collections: dict[str, dict[str, Any]] = {}
        self.counter = 0

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)


class FakeFirestore:
    """Stands in for FirestoreClient with an in-memory knowledge collection."""

    def __init__(self, docs: list[dict[str, Any]] | None = None):
        self.docs = docs if docs is not None else []
        self.db = FakeDb()
        self.added: list[dict[str, Any]] = []
        self.existing: set[tuple[str, str]] = set()
        self.search_error: Exception | None = None
        self.exists_error: Exception | None = None
        self.searches: list[tuple[str, int]] = []

    async def find_nearest(
        self, locale: str, query_vector: list[float], limit: int = 5
    ) -> list[dict[str, Any]]:
        if self.search_error:
            raise self.search_error
        self.searches.append((locale, limit))
        return [doc for doc in self.docs if doc["locale"] == locale][:limit]

    async def add_chunk(self, chunk: dict[str, Any], embedding: list[float]) -> str:
        self.added.append({**chunk, "embedding": embedding})
        return f"doc-{len(self.added)}"

    async def chunk_exists(self, source_id: str, locale: str) -> bool:
        if self.exists_error:
            raise self.exists_error
        return (source_id, locale) in self.existing

    async def delete_all_chunks(self, pause_seconds: float = 0.1) -> dict[str, Any]:
        deleted = len(self.docs)
        self.docs = []
        return {"total_deleted": deleted, "batches": 1 if deleted else 0, "elapsed_seconds": 0.0}


def knowledge_doc(
    text: str,
    locale: str = "en",
    distance: float = 0.2,
    **fields: Any,
) -> dict[str, Any]:
    """A stored chunk as returned by find_nearest."""
    doc = {
        "id": fields.pop("id", text[:24]),
        "text": text,
        "locale": locale,
        "contentType": "page",
        "category": "general",
        "sourceId": "home-en-0",
        "sourceUrl": "/en",
        "sourceTitle": "EcoVibe Floors",
        "vector_distance": distance,
    }
    doc.update(fields)
    return doc


def parse_ui_stream(body: str) -> list[Any]:
    """Decode the `data:` frames of a UI message stream."""
    frames = []
    for line in body.splitlines():
        if not line.startswith("data: "):
            continue
        data = line[len("data: "):]
        frames.append(data if data == "[DONE]" else json.loads(data))
    return frames


def stream_text(body: str) -> str:
    """Concatenated text deltas of a UI message stream body."""
    return "".join(
        frame["delta"]
        for frame in parse_ui_stream(body)
        if isinstance(frame, dict) and frame["type"] == "text-delta"
    )
