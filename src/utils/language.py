"""Language detection utilities."""

from langdetect import DetectorFactory, LangDetectException, detect

from src.features.knowledge.models import Locale

# Deterministic results across runs
DetectorFactory.seed = 0

# Bulgarian text is often detected as a close Cyrillic language
CYRILLIC_LANGUAGES = {"bg", "mk", "ru", "uk", "sr"}


def detect_language(text: str) -> str | None:
    """
    Detect language of text.

    Args:
        text: Text to analyze

    Returns:
        ISO 639-1 language code (e.g., 'en', 'bg'), or None when the text is
        too short or detection fails
    """
    try:
        if not text or len(text.strip()) < 10:
            return None
        return detect(text)
    except LangDetectException:
        return None


def detect_locale(text: str, default: Locale = "en") -> Locale:
    """Knowledge-base locale of a text: `bg` for Cyrillic languages, else `en`."""
    language = detect_language(text)
    if language is None:
        return default
    return "bg" if language in CYRILLIC_LANGUAGES else "en"
