"""Text chunking for pages and documents."""

from langchain_text_splitters import RecursiveCharacterTextSplitter

CHUNK_SIZE = 2000
CHUNK_OVERLAP = 300

# Paragraph, line, sentence, word, character
SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


class RecursiveChunking:
    """Recursive character-based chunking with overlap."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        self.splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            separators=SEPARATORS,
        )

    def split(self, text: str) -> list[str]:
        """Split text into chunks, dropping blank ones."""
        if not text or not text.strip():
            return []
        return [chunk for chunk in self.splitter.split_text(text) if chunk.strip()]
