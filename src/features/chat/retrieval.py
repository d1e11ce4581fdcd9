"""Vector search over the knowledge base for RAG."""

import logging
from typing import Any

import numpy as np
from fastapi import Request

from src.core.firestore import DISTANCE_FIELD, FirestoreClient
from src.core.gemini import GeminiClient
from src.features.knowledge.models import Locale, RetrievalContext, VectorSearchResult

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Calculate cosine similarity between two vectors."""
    a_np = np.asarray(a, dtype=float)
    b_np = np.asarray(b, dtype=float)
    norm = np.linalg.norm(a_np) * np.linalg.norm(b_np)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(a_np, b_np) / norm, -1.0, 1.0))


class KnowledgeRetriever:
    """Retrieve the chunks most similar to a query within one locale."""

    def __init__(
        self,
        firestore: FirestoreClient,
        gemini: GeminiClient,
    ):
        self.firestore = firestore
        self.gemini = gemini

    async def embed(self, query: str) -> list[float]:
        """Embed the query text."""
        return await self.gemini.embed_query(query)

    async def search(
        self,
        query_embedding: list[float],
        query: str,
        locale: Locale,
        k: int = DEFAULT_TOP_K,
    ) -> RetrievalContext:
        """
        Nearest-neighbour search for an already embedded query.

        Args:
            query_embedding: Embedding of `query`
            query: Query text, kept on the context for logging
            locale: Only chunks of this locale are searched
            k: Number of results

        Returns:
            Results ranked by descending similarity, at most k
        """
        docs = await self.firestore.find_nearest(locale, query_embedding, limit=k)

        results = [self._to_result(doc, query_embedding) for doc in docs]
        # Stable sort keeps the store's order for equal scores
        results.sort(
            key=lambda r: r.similarity if r.similarity is not None else -1.0,
            reverse=True,
        )

        logger.debug(
            "Retrieved %d chunks for locale=%s (top similarity %s)",
            len(results),
            locale,
            results[0].similarity if results else None,
        )
        return RetrievalContext(query=query, locale=locale, results=results[:k])

    async def retrieve(
        self,
        query: str,
        locale: Locale,
        k: int = DEFAULT_TOP_K,
    ) -> RetrievalContext:
        """
        Embed `query` and return its top-k chunks.

        Errors from the embedding call or the vector query propagate.
        """
        query_embedding = await self.embed(query)
        return await self.search(query_embedding, query, locale, k)

    @staticmethod
    def _to_result(doc: dict[str, Any], query_embedding: list[float]) -> VectorSearchResult:
        """Build a result, deriving similarity from the cosine distance."""
        distance = doc.get(DISTANCE_FIELD)
        if distance is not None:
            similarity = max(-1.0, min(1.0, 1.0 - float(distance)))
        elif doc.get("embedding") is not None:
            similarity = cosine_similarity(query_embedding, list(doc["embedding"]))
        else:
            similarity = None

        fields = {k: v for k, v in doc.items() if k not in ("embedding", DISTANCE_FIELD)}
        return VectorSearchResult(**fields, similarity=similarity)


def get_knowledge_retriever(request: Request) -> KnowledgeRetriever:
    """Get retriever wired to the app-wide clients."""
    return KnowledgeRetriever(
        firestore=request.app.state.firestore,
        gemini=request.app.state.gemini,
    )
