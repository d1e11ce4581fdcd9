"""Input validation and sanitization for chat messages.

Rejects oversized, flooded or prompt-injection-looking input before any
hosted service is called. Pattern matching is a best-effort heuristic: it
can both reject legitimate questions and miss novel phrasings.
"""

import re
import unicodedata
from enum import Enum

from pydantic import BaseModel, model_validator

DEFAULT_MAX_LENGTH = 800

# More than this share of special characters is rejected
MAX_SPECIAL_CHAR_RATIO = 0.3

# A character repeated this many times in a row is rejected
MAX_REPEATED_CHARS = 6


class ValidationErrorCode(str, Enum):
    """Reasons a chat input can be rejected."""
    TOO_LONG = "TOO_LONG"
    INVALID_CONTENT = "INVALID_CONTENT"
    TOO_MANY_SPECIAL_CHARS = "TOO_MANY_SPECIAL_CHARS"
    SUSPICIOUS_PATTERN = "SUSPICIOUS_PATTERN"


class ValidationResult(BaseModel):
    """Outcome of validating one chat input."""

    is_valid: bool
    sanitized_input: str | None = None
    error_code: ValidationErrorCode | None = None
    error_details: str | None = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ValidationResult":
        if self.is_valid != (self.sanitized_input is not None):
            raise ValueError("sanitized_input must be set exactly when is_valid")
        if not self.is_valid and self.error_code is None:
            raise ValueError("invalid result needs an error_code")
        return self

    @classmethod
    def rejected(cls, code: ValidationErrorCode, details: str) -> "ValidationResult":
        return cls(is_valid=False, error_code=code, error_details=details)


# Prompt injection patterns (case-insensitive)
INJECTION_PATTERNS = [
    # Role manipulation
    re.compile(r"ignore\s+(previous|above|prior)\s+(instructions|prompts?|commands?)", re.I),
    re.compile(r"disregard\s+(previous|above|all)\s+(instructions|prompts?|commands?)", re.I),
    re.compile(r"you\s+are\s+now\s+(a|an|the)?", re.I),
    re.compile(r"act\s+as\s+(a|an|the)?", re.I),
    re.compile(r"pretend\s+(you|to)\s+(are|be)", re.I),
    re.compile(r"forget\s+(everything|all|previous)", re.I),
    re.compile(r"new\s+(instructions|prompt|role|task)", re.I),

    # System prompt leakage
    re.compile(r"show\s+(me\s+)?(your|the)\s+(system\s+)?(prompt|instructions|rules)", re.I),
    re.compile(r"what\s+(is|are)\s+your\s+(system\s+)?(prompt|instructions|rules)", re.I),
    re.compile(r"reveal\s+your\s+(system\s+)?(prompt|instructions)", re.I),
    re.compile(r"print\s+(your|the)\s+(system\s+)?(prompt|instructions)", re.I),

    # Command markers
    re.compile(r"```\s*(system|admin|root|sudo)", re.I),
    re.compile(r"\[SYSTEM\]", re.I),
    re.compile(r"\[ADMIN\]", re.I),
    re.compile(r"\[OVERRIDE\]", re.I),

    # Delimiter manipulation
    re.compile(r"#{5,}"),
    re.compile(r"-{3,}\s*(system|admin|override|instruction)", re.I),
    re.compile(r"={10,}"),
    re.compile(r"_{10,}"),
]

# C0 and C1 control characters except \t and \n
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_WHITESPACE_RUN = re.compile(r"\s+")
_NEWLINE_RUN = re.compile(r"\n{3,}")
_REPEATED_CHAR = re.compile(r"(.)\1{%d,}" % (MAX_REPEATED_CHARS - 1), re.S)

# Latin letters, digits and the Cyrillic block count as alphanumeric
_ALNUM = re.compile(r"[a-zA-Z0-9\u0400-\u04FF]")
_SPECIAL = re.compile(r"[^a-zA-Z0-9\s\u0400-\u04FF]")


def sanitize(text: str) -> str:
    """Trim, strip control characters, NFC-normalise and collapse whitespace."""
    sanitized = text.strip()
    sanitized = _CONTROL_CHARS.sub("", sanitized)
    sanitized = unicodedata.normalize("NFC", sanitized)
    sanitized = _WHITESPACE_RUN.sub(" ", sanitized)
    sanitized = _NEWLINE_RUN.sub("\n\n", sanitized)
    return sanitized


def special_char_ratio(text: str) -> float | None:
    """Share of special characters among alnum + special; None for blank text."""
    alnum = len(_ALNUM.findall(text))
    special = len(_SPECIAL.findall(text))
    if alnum + special == 0:
        return None
    return special / (alnum + special)


def validate_chat_input(raw_input: object, max_length: int = DEFAULT_MAX_LENGTH) -> ValidationResult:
    """
    Validate and sanitize user input for the chat assistant.

    Checks run in a fixed order and the first failing check wins: type and
    emptiness, raw length, repeated characters, special character ratio,
    injection patterns, sanitized length.

    Args:
        raw_input: Raw user input
        max_length: Maximum allowed character length

    Returns:
        ValidationResult with the sanitized input or the rejection reason
    """
    if not isinstance(raw_input, str) or not raw_input:
        return ValidationResult.rejected(
            ValidationErrorCode.INVALID_CONTENT, "Input must be a non-empty string"
        )

    # Length before sanitization, so padding that collapses away still counts
    if len(raw_input) > max_length:
        return ValidationResult.rejected(
            ValidationErrorCode.TOO_LONG, f"Input exceeds {max_length} characters"
        )

    sanitized = sanitize(raw_input)
    if not sanitized:
        return ValidationResult.rejected(
            ValidationErrorCode.INVALID_CONTENT, "Input must be a non-empty string"
        )

    if _REPEATED_CHAR.search(sanitized):
        return ValidationResult.rejected(
            ValidationErrorCode.SUSPICIOUS_PATTERN, "Excessive repeated characters detected"
        )

    ratio = special_char_ratio(sanitized)
    if ratio is not None and ratio > MAX_SPECIAL_CHAR_RATIO:
        return ValidationResult.rejected(
            ValidationErrorCode.TOO_MANY_SPECIAL_CHARS, "Too many special characters in input"
        )

    for pattern in INJECTION_PATTERNS:
        if pattern.search(sanitized):
            return ValidationResult.rejected(
                ValidationErrorCode.SUSPICIOUS_PATTERN, "Suspicious pattern detected in input"
            )

    if len(sanitized) > max_length:
        return ValidationResult.rejected(
            ValidationErrorCode.TOO_LONG, f"Sanitized input exceeds {max_length} characters"
        )

    return ValidationResult(is_valid=True, sanitized_input=sanitized)


def validate_message(message: object) -> ValidationResult:
    """Validate a chat message with the default length limit."""
    return validate_chat_input(message, DEFAULT_MAX_LENGTH)
