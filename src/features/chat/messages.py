"""Localized user-facing strings for the chat assistant."""

from src.features.knowledge.models import Locale

from .validator import ValidationErrorCode

OFF_TOPIC_DECLINE: dict[Locale, str] = {
    "en": (
        "Sorry, I can only answer questions related to flooring and our products. "
        "You can ask about Floer and Ter Hürne collections, types of parquet, vinyl, "
        "laminate, installation, or maintenance. Do you have such a question?"
    ),
    "bg": (
        "Извинявайте, отговарям само на въпроси, свързани с подови настилки и нашите "
        "продукти. Можете да попитате за колекциите Floer и Ter Hürne, видове паркети, "
        "винил, ламинат, монтаж или поддръжка. Имате ли такъв въпрос?"
    ),
}

ERRORS: dict[Locale, dict[str, str]] = {
    "en": {
        "noMessage": "No message provided.",
        "tooLong": "Your message is too long. Please keep it under {max} characters.",
        "invalidContent": "Your message could not be processed. Please enter a valid question.",
        "tooManySpecialChars": (
            "Your message contains too many special characters. Please rephrase your question."
        ),
        "suspiciousPattern": (
            "Your message contains a pattern that is not allowed. "
            "Please ask a question about our flooring products."
        ),
        "processingFailed": "Failed to process your request. Please try again later.",
    },
    "bg": {
        "noMessage": "Не е изпратено съобщение.",
        "tooLong": "Съобщението е твърде дълго. Моля, използвайте до {max} символа.",
        "invalidContent": "Съобщението не може да бъде обработено. Моля, въведете валиден въпрос.",
        "tooManySpecialChars": (
            "Съобщението съдържа твърде много специални символи. Моля, перифразирайте въпроса си."
        ),
        "suspiciousPattern": (
            "Съобщението съдържа непозволен шаблон. "
            "Моля, задайте въпрос за нашите подови настилки."
        ),
        "processingFailed": "Заявката не можа да бъде обработена. Моля, опитайте отново по-късно.",
    },
}

_CODE_KEYS = {
    ValidationErrorCode.TOO_LONG: "tooLong",
    ValidationErrorCode.INVALID_CONTENT: "invalidContent",
    ValidationErrorCode.TOO_MANY_SPECIAL_CHARS: "tooManySpecialChars",
    ValidationErrorCode.SUSPICIOUS_PATTERN: "suspiciousPattern",
}


def error_message(locale: Locale, key: str, max_length: int = 800) -> str:
    """Localized error text for a message key."""
    return ERRORS[locale][key].format(max=max_length)


def validation_error_message(
    locale: Locale, code: ValidationErrorCode, max_length: int = 800
) -> str:
    """Localized error text for a validation rejection."""
    return error_message(locale, _CODE_KEYS[code], max_length)
