"""Custom document loading for the knowledge base (md, txt, pdf, docx)."""

import logging
import re
from pathlib import Path

import fitz  # PyMuPDF
from docx import Document

from src.utils.language import detect_locale

from .chunking import RecursiveChunking
from .models import ChunkMetadata, ContentType, Locale

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".md", ".txt", ".pdf", ".docx"}

DEFAULT_CATEGORY = "documentation"

_LOCALE_SUFFIX = re.compile(r"[-_](en|bg)\.(md|txt|pdf|docx)$", re.IGNORECASE)
_HEADING = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def matches_pattern(filename: str, pattern: str) -> bool:
    """Exact filename match, or `*` wildcard match when the pattern has one."""
    if "*" not in pattern:
        return filename == pattern
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.fullmatch(regex, filename) is not None


def find_documents(docs_dir: str | Path, pattern: str) -> list[Path]:
    """Files anywhere under `docs_dir` whose name matches `pattern`, sorted."""
    root = Path(docs_dir)
    if not root.is_dir():
        return []
    return sorted(
        path for path in root.rglob("*")
        if path.is_file() and matches_pattern(path.name, pattern)
    )


def locale_from_filename(filename: str) -> Locale | None:
    """Locale from a `-en`/`-bg`/`_en`/`_bg` suffix before the extension."""
    match = _LOCALE_SUFFIX.search(filename)
    if match:
        return match.group(1).lower()  # type: ignore[return-value]
    return None


def resolve_document_locale(
    filename: str,
    text: str,
    locale_override: Locale | None = None,
) -> Locale:
    """Override wins, then the filename suffix, then language detection."""
    if locale_override:
        return locale_override
    return locale_from_filename(filename) or detect_locale(text)


def extract_category(path: Path, docs_dir: str | Path) -> str:
    """First sub-directory below the docs directory, if any."""
    relative = path.relative_to(docs_dir)
    if len(relative.parts) > 1:
        return relative.parts[0]
    return DEFAULT_CATEGORY


def extract_title(text: str, filename: str) -> str:
    """First markdown `# ` heading, else the file name without extension."""
    match = _HEADING.search(text)
    if match:
        return match.group(1).strip()
    return Path(filename).stem


def extract_text(path: Path) -> str:
    """
    Extract text from a document file.

    Raises:
        ValueError: Unsupported file type
    """
    ext = path.suffix.lower()
    if ext in (".md", ".txt"):
        return path.read_text(encoding="utf-8")
    if ext == ".pdf":
        return _extract_pdf(path)
    if ext == ".docx":
        return _extract_docx(path)
    raise ValueError(f"Unsupported file type: {ext}")


def _extract_pdf(path: Path) -> str:
    """Extract text from PDF (text-based PDFs only)."""
    text_parts = []
    with fitz.open(path) as doc:
        for page in doc:
            page_text = page.get_text()
            if page_text.strip():
                text_parts.append(page_text)
        logger.info("Loaded PDF %s: %d pages", path.name, doc.page_count)
    return "\n\n".join(text_parts)


def _extract_docx(path: Path) -> str:
    """Extract text from DOCX."""
    doc = Document(str(path))
    paragraphs = [p.text for p in doc.paragraphs if p.text.strip()]
    return "\n\n".join(paragraphs)


def load_document_chunks(
    path: Path,
    docs_dir: str | Path,
    locale_override: Locale | None = None,
    chunker: RecursiveChunking | None = None,
) -> list[ChunkMetadata]:
    """
    Load one document and split it into knowledge chunks.

    Unsupported or unreadable files are logged and yield no chunks.
    """
    chunker = chunker or RecursiveChunking()
    try:
        text = extract_text(path)
    except Exception as e:
        logger.error("Failed to load %s: %s", path.name, e)
        return []

    locale = resolve_document_locale(path.name, text, locale_override)
    category = extract_category(path, docs_dir)
    title = extract_title(text, path.name)
    is_pdf = path.suffix.lower() == ".pdf"
    logger.info("Loading %s: locale=%s category=%s", path.name, locale, category)

    chunks = []
    for index, chunk_text in enumerate(chunker.split(text)):
        source_id = (
            f"doc-{path.stem}-pdf-chunk-{index}" if is_pdf else f"doc-{path.stem}-{index}"
        )
        chunks.append(
            ChunkMetadata(
                text=chunk_text,
                locale=locale,
                content_type=ContentType.DOCUMENT,
                category=category,
                source_id=source_id,
                source_url=f"/docs/{path.name}",
                source_title=title,
            )
        )
    return chunks
