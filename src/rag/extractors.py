"""Document text extraction for various file types.

Supports: PDF, Markdown, TXT. The extractor is chosen by file extension
since source documents are identified only by their object name.
"""

import logging
import re
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import PurePosixPath

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from src.core.errors import ExtractionError, NoTextExtractedError

logger = logging.getLogger(__name__)


class TextExtractor(ABC):
    """Base class for text extractors."""

    @abstractmethod
    def extract(self, content: bytes) -> str:
        """Extract text from document content."""

    @abstractmethod
    def supported_extensions(self) -> list[str]:
        """Return list of supported file extensions."""


class PlainTextExtractor(TextExtractor):
    """Extract text from plain text files."""

    def extract(self, content: bytes) -> str:
        """Decode bytes to text."""
        for encoding in ["utf-8", "utf-16", "latin-1"]:
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                continue

        # Last resort: ignore errors
        return content.decode("utf-8", errors="ignore")

    def supported_extensions(self) -> list[str]:
        return [".txt"]


# Header row, separator row, then one or more body rows
_TABLE = re.compile(r"\|(.+)\|\n\|[\s\-:|]+\|\n((?:\|.+\|\n?)+)")
_LIST_BULLET = re.compile(r"^\s*[-*]\s+", re.MULTILINE)
_HEADING = re.compile(r"^(#{1,6}\s+.*)$", re.MULTILINE)


def _table_cells(line: str) -> list[str]:
    return [cell.strip() for cell in line.split("|") if cell.strip()]


def _table_to_text(match: re.Match) -> str:
    headers = _table_cells(match.group(1))
    lines = [f"TABELA: {' | '.join(headers)}", "---"]

    rows = [row for row in match.group(2).split("\n") if row.strip()]
    for index, row in enumerate(rows, 1):
        cells = _table_cells(row)
        # Rows that do not line up with the header are dropped
        if len(cells) == len(headers):
            pairs = " | ".join(f"{h}: {c}" for h, c in zip(headers, cells))
            lines.append(f"Linha {index}: {pairs}")

    lines.append("---")
    return "\n" + "\n".join(lines) + "\n\n"


class MarkdownExtractor(TextExtractor):
    """Extract retrieval-friendly text from Markdown.

    Tables become labelled rows so each cell keeps its column header,
    headings get their own paragraph, and list bullets are normalised.
    """

    def extract(self, content: bytes) -> str:
        text = PlainTextExtractor().extract(content)
        text = text.replace("\r\n", "\n")
        text = _TABLE.sub(_table_to_text, text)
        text = _LIST_BULLET.sub("\n• ", text)
        text = _HEADING.sub(r"\n\1\n", text)
        return re.sub(r"\n{3,}", "\n\n", text)

    def supported_extensions(self) -> list[str]:
        return [".md", ".markdown"]


class PDFExtractor(TextExtractor):
    """Extract text from PDF files using pypdf."""

    def extract(self, content: bytes) -> str:
        """Extract text from all pages of a PDF, one paragraph block per page."""
        try:
            reader = PdfReader(BytesIO(content))
        except (PyPdfError, ValueError, OSError) as e:
            raise ExtractionError(f"PDF extraction failed: {e}") from e

        text_parts = []
        for page_num, page in enumerate(reader.pages, 1):
            try:
                page_text = page.extract_text()
            except (PyPdfError, ValueError, KeyError) as e:
                logger.warning(f"Skipping unreadable PDF page {page_num}: {e}")
                continue
            if page_text and page_text.strip():
                text_parts.append(page_text)

        return "\n\n".join(text_parts)

    def supported_extensions(self) -> list[str]:
        return [".pdf"]


class DocumentExtractor:
    """Unified document extractor that delegates to specific extractors."""

    def __init__(self):
        self.extractors: list[TextExtractor] = [
            PlainTextExtractor(),
            MarkdownExtractor(),
            PDFExtractor(),
        ]

        self._extension_map: dict[str, TextExtractor] = {}
        for extractor in self.extractors:
            for extension in extractor.supported_extensions():
                self._extension_map[extension] = extractor

    def ensure_supported(self, document_name: str) -> None:
        """Raise ExtractionError if no extractor handles the document's extension."""
        extension = PurePosixPath(document_name).suffix.lower()
        if extension not in self._extension_map:
            raise ExtractionError(
                f"Unsupported file type: {extension or document_name}. "
                f"Supported types: {', '.join(self.supported_extensions())}"
            )

    def supported_extensions(self) -> list[str]:
        return list(self._extension_map.keys())

    def extract(self, content: bytes, document_name: str) -> str:
        """Extract text from a document based on its file extension.

        Args:
            content: Raw document bytes
            document_name: Object name, used to pick the extractor

        Returns:
            Extracted, normalised text

        Raises:
            ExtractionError: If extraction fails or the type is not supported
            NoTextExtractedError: If the document yields no text
        """
        self.ensure_supported(document_name)
        extractor = self._extension_map[PurePosixPath(document_name).suffix.lower()]

        text = self._clean_text(extractor.extract(content))
        if not text:
            raise NoTextExtractedError()

        return text

    def _clean_text(self, text: str) -> str:
        """Clean and normalize extracted text, keeping blank-line paragraph breaks."""
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = text.replace("\x00", "")

        text = re.sub(r"[ \t]+", " ", text)

        lines = [line.strip() for line in text.split("\n")]
        text = "\n".join(lines)

        text = re.sub(r"\n{3,}", "\n\n", text)

        return text.strip()
