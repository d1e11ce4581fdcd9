"""Gemini client using Vertex AI (chat streaming and embeddings)."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar

import vertexai
from fastapi import Request
from vertexai.generative_models import Content, GenerationConfig, GenerativeModel, Part
from vertexai.language_models import TextEmbeddingInput, TextEmbeddingModel

from src.config import Settings

from .errors import MalformedResponseError, UpstreamError, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_RETRY_DELAY_SECONDS = 1.0


class GeminiClient:
    """Wrapper for Gemini operations using Vertex AI."""

    # Embedding inputs longer than this are cut before the call
    MAX_EMBEDDING_CHARS = 8000

    def __init__(self, settings: Settings):
        self.settings = settings
        self._initialized = False
        self._embedding_model: TextEmbeddingModel | None = None

    @property
    def project_id(self) -> str | None:
        """Project from settings, or None to let google.auth detect it."""
        return self.settings.google_cloud_project or None

    @property
    def embedding_dimensions(self) -> int:
        return self.settings.embedding_dimensions

    def _ensure_initialized(self) -> None:
        """Initialize Vertex AI if not already done."""
        if not self._initialized:
            try:
                vertexai.init(project=self.project_id, location=self.settings.vertex_region)
            except Exception as e:
                raise classify_error(e) from e
            self._initialized = True

    @property
    def embedding_model(self) -> TextEmbeddingModel:
        """Get or load the embedding model."""
        self._ensure_initialized()
        if self._embedding_model is None:
            self._embedding_model = TextEmbeddingModel.from_pretrained(self.settings.embedding_model)
        return self._embedding_model

    def _chat_model(self, system_instruction: str) -> GenerativeModel:
        self._ensure_initialized()
        return GenerativeModel(
            self.settings.chat_model,
            system_instruction=system_instruction,
        )

    @staticmethod
    def _to_contents(messages: list[dict[str, str]]) -> list[Content]:
        """Convert role/content pairs into Vertex contents."""
        contents = []
        for msg in messages:
            role = "user" if msg["role"] == "user" else "model"
            contents.append(Content(role=role, parts=[Part.from_text(msg["content"])]))
        return contents

    async def embed_query(self, text: str) -> list[float]:
        """
        Embed a search query.

        Args:
            text: Query text (already validated)

        Returns:
            Embedding vector with `embedding_dimensions` values
        """
        vectors = await self._embed([text], task_type="RETRIEVAL_QUERY")
        return vectors[0]

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """
        Embed knowledge-base texts.

        Args:
            texts: Chunk texts

        Returns:
            One vector per input text, in input order
        """
        if not texts:
            return []
        return await self._embed(texts, task_type="RETRIEVAL_DOCUMENT")

    async def _embed(self, texts: list[str], task_type: str) -> list[list[float]]:
        inputs = [
            TextEmbeddingInput(text=t[: self.MAX_EMBEDDING_CHARS], task_type=task_type)
            for t in texts
        ]
        try:
            embeddings = await self.embedding_model.get_embeddings_async(
                inputs,
                output_dimensionality=self.embedding_dimensions,
            )
        except UpstreamError:
            raise
        except Exception as e:
            raise classify_error(e) from e
        return [list(e.values) for e in embeddings]

    async def stream_chat(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream a chat completion.

        Args:
            system_prompt: System instructions for the model
            messages: Conversation as role/content dicts, last one from the user
            temperature: Sampling temperature (defaults to settings)
            max_output_tokens: Output cap (defaults to settings)

        Yields:
            Text deltas as they are generated
        """
        model = self._chat_model(system_prompt)
        config = GenerationConfig(
            temperature=self.settings.chat_temperature if temperature is None else temperature,
            max_output_tokens=max_output_tokens or self.settings.chat_max_output_tokens,
        )
        try:
            responses = await model.generate_content_async(
                self._to_contents(messages),
                generation_config=config,
                stream=True,
            )
            async for chunk in responses:
                text = _chunk_text(chunk)
                if text:
                    yield text
        except UpstreamError:
            raise
        except Exception as e:
            raise classify_error(e) from e

    async def generate_json(
        self,
        system_prompt: str,
        message: str,
        max_output_tokens: int = 3000,
    ) -> dict[str, Any]:
        """
        Ask the model for a JSON object.

        A malformed body is retried once after a short delay; any other
        failure propagates immediately.
        """

        async def attempt() -> dict[str, Any]:
            model = self._chat_model(system_prompt)
            try:
                response = await model.generate_content_async(
                    self._to_contents([{"role": "user", "content": message}]),
                    generation_config=GenerationConfig(
                        max_output_tokens=max_output_tokens,
                        response_mime_type="application/json",
                    ),
                )
            except Exception as e:
                raise classify_error(e) from e
            return parse_json_object(_chunk_text(response))

        return await retry_on_malformed(attempt)


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a model response body that must be a JSON object."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseError("Response JSON is not an object")
    return data


async def retry_on_malformed(
    call: Callable[[], Awaitable[T]],
    max_retries: int = 1,
    delay: float = JSON_RETRY_DELAY_SECONDS,
) -> T:
    """Run `call`, retrying only when it raises MalformedResponseError."""
    for attempt in range(max_retries + 1):
        try:
            result = await call()
        except MalformedResponseError as e:
            if attempt >= max_retries:
                raise
            logger.warning(
                "Malformed model response, retrying (attempt %d/%d): %s",
                attempt + 2,
                max_retries + 1,
                e,
            )
            await asyncio.sleep(delay)
            continue
        if attempt > 0:
            logger.info("Retry successful on attempt %d", attempt + 1)
        return result
    raise AssertionError("unreachable")


def _chunk_text(response: Any) -> str:
    """Text of a response chunk; empty for chunks without text parts."""
    try:
        return response.text or ""
    except ValueError:
        # Raised by the SDK for chunks carrying only finish/safety metadata
        return ""


def get_gemini_client(request: Request) -> GeminiClient:
    """Get the app-wide Gemini client (dependency injection)."""
    return request.app.state.gemini
