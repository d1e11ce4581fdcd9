"""Chat API endpoints."""

import logging

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.core.rate_limiter import chat_rate_limit, get_rate_limit_key, limiter

from .messages import error_message, validation_error_message
from .models import ChatRequest, ErrorResponse, resolve_locale
from .service import ChatInputError, ChatService, get_chat_service
from .stream import ui_message_stream_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@router.post("")
@limiter.limit(chat_rate_limit)
async def chat(
    request: Request,
    x_locale: str | None = Header(default=None),
    service: ChatService = Depends(get_chat_service),
):
    """
    Answer the last user message with RAG over the knowledge base.

    The answer is streamed in the UI message stream format. Rejected input
    gets a localized 400, upstream failures a localized 500.
    """
    settings = request.app.state.settings
    locale = resolve_locale(x_locale, default=settings.default_locale)

    try:
        body = ChatRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        # Unparseable body counts as a missing message
        return _error(status.HTTP_400_BAD_REQUEST, error_message(locale, "noMessage"))

    try:
        turn = await service.handle(body, locale, client_ip=get_rate_limit_key(request))
    except ChatInputError as e:
        if e.code is not None:
            text = validation_error_message(locale, e.code, settings.chat_max_input_length)
        else:
            text = error_message(locale, e.message_key)
        return _error(status.HTTP_400_BAD_REQUEST, text)
    except Exception as e:
        logger.exception("Chat API error")
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_message(locale, "processingFailed"),
            details=str(e) or type(e).__name__,
        )

    return ui_message_stream_response(
        turn.stream,
        error_text=error_message(locale, "processingFailed"),
    )

