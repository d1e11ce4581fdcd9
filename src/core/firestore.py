"""Firestore client wrapper for the knowledge base collection."""

import asyncio
import logging
import time
from typing import Any

from fastapi import Request
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.base_vector_query import DistanceMeasure
from google.cloud.firestore_v1.vector import Vector

from src.config import Settings

logger = logging.getLogger(__name__)

# Field that find_nearest fills with the cosine distance of each hit
DISTANCE_FIELD = "vector_distance"

# Firestore batch write limit
DELETE_BATCH_SIZE = 500


class FirestoreClient:
    """Wrapper for Firestore operations on `project-knowledge`."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._db: firestore.Client | None = None

    @property
    def db(self) -> firestore.Client:
        """Get or create Firestore client."""
        if self._db is None:
            # Use project from settings if provided, otherwise auto-detect
            project = self.settings.google_cloud_project or None
            self._db = firestore.Client(project=project)
        return self._db

    @property
    def knowledge(self) -> firestore.CollectionReference:
        return self.db.collection(self.settings.knowledge_collection)

    # Vector search
    async def find_nearest(
        self,
        locale: str,
        query_vector: list[float],
        limit: int = 5,
    ) -> list[dict[str, Any]]:
        """
        Nearest chunks of one locale by cosine distance.

        Args:
            locale: Exact-match locale filter
            query_vector: Query embedding
            limit: Number of neighbours

        Returns:
            Chunk dicts (with `id` and `vector_distance`) in ascending distance
        """
        return await asyncio.to_thread(self._find_nearest, locale, query_vector, limit)

    def _find_nearest(
        self, locale: str, query_vector: list[float], limit: int
    ) -> list[dict[str, Any]]:
        vector_query = self.knowledge.where(
            filter=FieldFilter("locale", "==", locale)
        ).find_nearest(
            vector_field="embedding",
            query_vector=Vector(query_vector),
            distance_measure=DistanceMeasure.COSINE,
            limit=limit,
            distance_result_field=DISTANCE_FIELD,
        )
        return [{"id": doc.id, **doc.to_dict()} for doc in vector_query.get()]

    # Chunk writes (indexer only)
    async def add_chunk(self, chunk: dict[str, Any], embedding: list[float]) -> str:
        """Store a chunk with a native vector field. Returns the new document ID."""
        data = {
            **chunk,
            "embedding": Vector(embedding),
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        _, doc_ref = self.knowledge.add(data)
        return doc_ref.id

    async def chunk_exists(self, source_id: str, locale: str) -> bool:
        """Check whether a chunk with this source ID and locale is stored."""
        docs = (
            self.knowledge.where(filter=FieldFilter("sourceId", "==", source_id))
            .where(filter=FieldFilter("locale", "==", locale))
            .limit(1)
            .get()
        )
        return len(docs) > 0

    async def delete_all_chunks(self, pause_seconds: float = 0.1) -> dict[str, Any]:
        """
        Delete every document of the knowledge collection in batches.

        The collection itself stays in place.

        Returns:
            Deletion stats (total_deleted, batches, elapsed_seconds)
        """
        started = time.monotonic()
        total_deleted = 0
        batches = 0

        while True:
            docs = self.knowledge.limit(DELETE_BATCH_SIZE).get()
            if not docs:
                break

            batch = self.db.batch()
            for doc in docs:
                batch.delete(doc.reference)
                logger.debug("Deleting knowledge document %s", doc.id)
            batch.commit()

            total_deleted += len(docs)
            batches += 1
            logger.info(
                "Deleted batch %d: %d documents (total %d)", batches, len(docs), total_deleted
            )
            await asyncio.sleep(pause_seconds)

        return {
            "total_deleted": total_deleted,
            "batches": batches,
            "elapsed_seconds": round(time.monotonic() - started, 2),
        }


def get_firestore_client(request: Request) -> FirestoreClient:
    """Get the app-wide Firestore client (dependency injection)."""
    return request.app.state.firestore
