"""Document chunking.

Splits extracted document text into bounded-size chunks that never cut
through a paragraph. Paragraphs are accumulated until the next one would
push the chunk past the size bound; a single paragraph longer than the
bound is kept whole as its own oversized chunk.
"""

import re

DEFAULT_MAX_CHUNK_SIZE = 1500
PARAGRAPH_SEPARATOR = "\n\n"

# One or more blank (possibly whitespace-only) lines
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def split_paragraphs(text: str) -> list[str]:
    """Split text on blank lines, dropping empty paragraphs."""
    paragraphs = (p.strip() for p in _PARAGRAPH_BREAK.split(text))
    return [p for p in paragraphs if p]


def chunk_text(text: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE) -> list[str]:
    """Split text into paragraph-respecting chunks of roughly max_chunk_size characters.

    Args:
        text: Extracted document text
        max_chunk_size: Soft upper bound on chunk length

    Returns:
        Chunks in document order. Empty input yields no chunks.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be a positive integer")

    chunks: list[str] = []
    buffer = ""

    for paragraph in split_paragraphs(text):
        if buffer and len(buffer) + len(paragraph) + len(PARAGRAPH_SEPARATOR) > max_chunk_size:
            chunks.append(buffer.strip())
            buffer = ""
        buffer += paragraph + PARAGRAPH_SEPARATOR

    if buffer.strip():
        chunks.append(buffer.strip())

    return chunks


class ParagraphChunker:
    """Paragraph-based chunker bound to a configured size."""

    def __init__(self, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE):
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be a positive integer")
        self.max_chunk_size = max_chunk_size

    def chunk(self, text: str) -> list[str]:
        """Split text by paragraphs."""
        return chunk_text(text, self.max_chunk_size)


__all__ = [
    "DEFAULT_MAX_CHUNK_SIZE",
    "ParagraphChunker",
    "chunk_text",
    "split_paragraphs",
]
