"""Chat service with RAG pipeline."""

import logging
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from fastapi import Request

from src.config import Settings
from src.core.gemini import GeminiClient
from src.features.analytics.service import AnalyticsService, get_analytics_service
from src.features.knowledge.models import Locale, RetrievalContext

from .messages import OFF_TOPIC_DECLINE
from .models import TERMINAL_STAGES, ChatMessage, ChatRequest, ChatStage, ModelMessage
from .prompts import build_system_prompt
from .retrieval import KnowledgeRetriever, get_knowledge_retriever
from .validator import ValidationErrorCode, validate_chat_input

logger = logging.getLogger(__name__)


class ChatInputError(Exception):
    """The request was rejected before any hosted service was called."""

    def __init__(self, message_key: str, code: ValidationErrorCode | None = None):
        super().__init__(code.value if code else message_key)
        self.message_key = message_key
        self.code = code


@dataclass
class ChatTurn:
    """State of one chat request as it moves through the pipeline."""

    locale: Locale
    stage: ChatStage = ChatStage.RECEIVED
    history: list[ChatStage] = field(default_factory=lambda: [ChatStage.RECEIVED])
    started_at: float = field(default_factory=time.monotonic)
    stream: AsyncIterator[str] | None = None

    def advance(self, stage: ChatStage) -> None:
        if self.stage in TERMINAL_STAGES:
            raise RuntimeError(f"Chat turn already finished in {self.stage.value}")
        logger.debug("Chat stage %s -> %s", self.stage.value, stage.value)
        self.stage = stage
        self.history.append(stage)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)


def normalize_history(messages: list[ChatMessage], sanitized_input: str) -> list[ModelMessage]:
    """
    Reduce widget messages to user/assistant turns with plain string content.

    The final user turn is replaced by the sanitized input, whatever text the
    client sent for it. System messages and empty turns are dropped.
    """
    turns = [
        ModelMessage(role=msg.role, content=msg.text_content())
        for msg in messages
        if msg.role in ("user", "assistant")
    ]

    for i in range(len(turns) - 1, -1, -1):
        if turns[i].role == "user":
            turns[i] = ModelMessage(role="user", content=sanitized_input)
            break
    else:
        turns.append(ModelMessage(role="user", content=sanitized_input))

    return [t for t in turns if t.content.strip()]


async def _single(text: str) -> AsyncIterator[str]:
    yield text


async def _empty() -> AsyncIterator[str]:
    return
    yield


async def _prime(stream: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Pull the first delta now so a failing completion call raises here,
    before any response bytes are sent.
    """
    iterator = aiter(stream)
    try:
        first = await anext(iterator)
    except StopAsyncIteration:
        return _empty()

    async def chained() -> AsyncIterator[str]:
        yield first
        async for delta in iterator:
            yield delta

    return chained()


class ChatService:
    """Service for chat with RAG."""

    def __init__(
        self,
        retriever: KnowledgeRetriever,
        gemini: GeminiClient,
        analytics: AnalyticsService,
        settings: Settings,
    ):
        self.retriever = retriever
        self.gemini = gemini
        self.analytics = analytics
        self.settings = settings

    async def respond(
        self,
        messages: list[ChatMessage],
        retrieval: RetrievalContext,
        locale: Locale,
        sanitized_input: str,
    ) -> AsyncIterator[str]:
        """
        Build the prompt for a request and start streaming the answer.

        Args:
            messages: Full conversation as sent by the widget
            retrieval: Context retrieved for the sanitized input
            locale: Answer language
            sanitized_input: Validated text of the last user turn

        Returns:
            Async iterator of text deltas
        """
        if retrieval.is_empty:
            logger.info("No knowledge found for locale=%s, sending scripted decline", locale)
            return _single(OFF_TOPIC_DECLINE[locale])

        system_prompt = build_system_prompt(retrieval, locale)
        history = normalize_history(messages, sanitized_input)

        return self.gemini.stream_chat(
            system_prompt=system_prompt,
            messages=[m.as_dict() for m in history],
            temperature=self.settings.chat_temperature,
            max_output_tokens=self.settings.chat_max_output_tokens,
        )

    async def handle(
        self,
        body: ChatRequest,
        locale: Locale,
        client_ip: str | None = None,
    ) -> ChatTurn:
        """
        Run a chat request up to the first streamed delta.

        Raises:
            ChatInputError: missing message or validation rejection
            Exception: any upstream failure before streaming started
        """
        turn = ChatTurn(locale=locale)

        user_message = body.last_user_text()
        if user_message is None:
            turn.advance(ChatStage.REJECTED)
            raise ChatInputError("noMessage")

        turn.advance(ChatStage.VALIDATING)
        validation = validate_chat_input(user_message, self.settings.chat_max_input_length)
        if not validation.is_valid:
            turn.advance(ChatStage.REJECTED)
            await self.analytics.log_rejection(
                error_code=validation.error_code.value,
                message_length=len(user_message),
                locale=locale,
                client_ip=client_ip,
            )
            raise ChatInputError(validation.error_code.value, validation.error_code)
        turn.advance(ChatStage.VALIDATED)
        sanitized = validation.sanitized_input

        try:
            turn.advance(ChatStage.EMBEDDING)
            query_embedding = await self.retriever.embed(sanitized)

            turn.advance(ChatStage.RETRIEVING)
            retrieval = await self.retriever.search(
                query_embedding, sanitized, locale, k=self.settings.chat_top_k
            )

            turn.advance(ChatStage.PROMPTING)
            stream = await self.respond(body.messages, retrieval, locale, sanitized)

            turn.advance(ChatStage.STREAMING)
            stream = await _prime(stream)
        except Exception:
            turn.advance(ChatStage.ERRORED)
            raise

        turn.stream = self._track(turn, stream)
        return turn

    async def _track(self, turn: ChatTurn, stream: AsyncIterator[str]) -> AsyncIterator[str]:
        """Pass deltas through and close the turn when the stream ends."""
        chars = 0
        try:
            async for delta in stream:
                chars += len(delta)
                yield delta
        except Exception:
            turn.advance(ChatStage.ERRORED)
            raise
        turn.advance(ChatStage.COMPLETE)
        logger.info(
            "Chat answered: locale=%s chars=%d elapsed_ms=%d", turn.locale, chars, turn.elapsed_ms
        )


def get_chat_service(request: Request) -> ChatService:
    """Get chat service instance."""
    return ChatService(
        retriever=get_knowledge_retriever(request),
        gemini=request.app.state.gemini,
        analytics=get_analytics_service(request),
        settings=request.app.state.settings,
    )
