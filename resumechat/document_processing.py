"""Resume loading and text chunking functionality."""

import asyncio
import re
from pathlib import Path
from typing import Protocol

import pypdf
from pypdf.errors import PyPdfError

from .config import config
from .exceptions import ConfigurationError, DocumentUnavailable
from .models import DocumentChunk

logger = config.get_logger(__name__)

CHUNK_STRATEGIES = ("window", "sentence", "delimiter")
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class DocumentLoader:
    """Handles loading of PDF and plain text resumes."""

    TEXT_SUFFIXES = (".txt", ".md")

    @staticmethod
    def load_pdf(file_path: Path) -> str:
        """Load text content from a PDF file.

        Returns:
            The extracted text of every page, one page per line block.
        """
        try:
            with file_path.open("rb") as file:
                pdf_reader = pypdf.PdfReader(file)
                pages = [page.extract_text() or "" for page in pdf_reader.pages]
        except Exception:
            logger.exception("Error loading PDF %s", file_path)
            raise
        else:
            return "\n".join(pages)

    @staticmethod
    def load_txt(file_path: Path) -> str:
        """Load text content from a UTF-8 text file.

        Returns:
            The content of the file as a string.
        """
        try:
            text = file_path.read_text(encoding="utf-8")
            logger.info("Successfully loaded text file %s", file_path.name)
        except Exception:
            logger.exception("Error loading text file %s", file_path)
            raise
        else:
            return text

    @classmethod
    def load_document(cls, file_path: Path) -> str:
        """Load document based on file extension.

        Args:
            file_path: Path to the document file.

        Returns:
            The text content of the document as a string.

        Raises:
            ValueError: If the file type is not supported.
        """
        file_ext = file_path.suffix.lower()
        if file_ext == ".pdf":
            return cls.load_pdf(file_path)
        if file_ext in cls.TEXT_SUFFIXES:
            return cls.load_txt(file_path)
        msg = f"Unsupported file type: {file_ext}"
        raise ValueError(msg)


class DocumentSource(Protocol):
    """Anything that can hand over the resume text once per session."""

    async def fetch_document(self) -> str: ...


class FileDocumentSource:
    """Reads the resume from disk without blocking the event loop."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path) if path is not None else config.RESUME_PATH

    async def fetch_document(self) -> str:
        """Load the resume text.

        Returns:
            The raw resume text.

        Raises:
            DocumentUnavailable: If the file is missing, unreadable, of an
                unsupported type, or contains no text.
        """
        try:
            text = await asyncio.to_thread(DocumentLoader.load_document, self.path)
        except (OSError, ValueError, PyPdfError) as exc:
            msg = f"Failed to fetch resume from {self.path}: {exc}"
            raise DocumentUnavailable(msg) from exc

        if not text.strip():
            msg = f"Resume at {self.path} is empty"
            raise DocumentUnavailable(msg)

        logger.info("Resume fetched. Length: %d characters", len(text))
        return text


class TextDocumentSource:
    """Serves an in-memory resume, used by the web upload and by tests."""

    def __init__(self, text: str) -> None:
        self.text = text

    async def fetch_document(self) -> str:
        """Return the wrapped text.

        Raises:
            DocumentUnavailable: If the text is blank.
        """
        if not self.text or not self.text.strip():
            msg = "Resume text is empty"
            raise DocumentUnavailable(msg)
        return self.text


class TextChunker:
    """Splits the resume into chunks using one of three strategies.

    ``window`` slides a fixed-size window with overlap, ``sentence`` cuts after
    sentence-terminal punctuation and ``delimiter`` cuts on an explicit marker.
    Chunks whose trimmed text has no more than ``min_length`` characters are
    dropped and the survivors are re-indexed from zero.
    """

    def __init__(
        self,
        chunk_size: int = 400,
        overlap: int = 50,
        *,
        strategy: str = "window",
        min_length: int = 10,
        delimiter: str = "[Chunk]",
    ) -> None:
        """Initialize the TextChunker.

        Args:
            chunk_size: Window size in characters.
            overlap: Characters shared by consecutive windows.
            strategy: One of ``window``, ``sentence`` or ``delimiter``.
            min_length: Trimmed length a chunk must exceed to be kept.
            delimiter: Marker used by the ``delimiter`` strategy.

        Raises:
            ConfigurationError: If the window would not advance or the
                strategy is unknown.
        """
        if chunk_size <= 0:
            msg = f"Chunk size must be positive, got {chunk_size}"
            raise ConfigurationError(msg)
        if not 0 <= overlap < chunk_size:
            msg = (
                f"Overlap ({overlap}) must be non-negative and less than "
                f"chunk size ({chunk_size})"
            )
            raise ConfigurationError(msg)
        if strategy not in CHUNK_STRATEGIES:
            msg = f"Unknown chunking strategy: {strategy}"
            raise ConfigurationError(msg)
        if strategy == "delimiter" and not delimiter:
            msg = "Delimiter strategy requires a non-empty delimiter"
            raise ConfigurationError(msg)

        self.chunk_size = chunk_size
        self.overlap = overlap
        self.strategy = strategy
        self.min_length = min_length
        self.delimiter = delimiter

    @classmethod
    def from_config(cls) -> "TextChunker":
        return cls(
            chunk_size=config.CHUNK_SIZE,
            overlap=config.CHUNK_OVERLAP,
            strategy=config.CHUNK_STRATEGY,
            min_length=config.CHUNK_MIN_LENGTH,
            delimiter=config.CHUNK_DELIMITER,
        )

    def chunk_text(self, text: str) -> list[DocumentChunk]:
        """Split text into chunks.

        Returns:
            Ordered chunks with contiguous indices starting at zero.
        """
        if self.strategy == "window":
            spans = self._window_spans(text)
        elif self.strategy == "sentence":
            spans = self._split_spans(text, SENTENCE_BOUNDARY.split(text))
        else:
            spans = self._split_spans(text, text.split(self.delimiter))

        chunks = []
        for start, end, chunk_text in spans:
            if len(chunk_text.strip()) <= self.min_length:
                continue
            chunks.append(
                DocumentChunk(
                    text=chunk_text,
                    index=len(chunks),
                    start_char=start,
                    end_char=end,
                )
            )

        logger.info(
            "Text split into %d chunks (strategy=%s)", len(chunks), self.strategy
        )
        return chunks

    def _window_spans(self, text: str) -> list[tuple[int, int, str]]:
        spans = []
        start = 0
        step = self.chunk_size - self.overlap

        while start < len(text):
            end = min(start + self.chunk_size, len(text))
            spans.append((start, end, text[start:end]))
            if end == len(text):
                break
            start += step

        return spans

    @staticmethod
    def _split_spans(text: str, pieces: list[str]) -> list[tuple[int, int, str]]:
        spans = []
        cursor = 0
        for piece in pieces:
            stripped = piece.strip()
            if not stripped:
                continue
            start = text.find(stripped, cursor)
            end = start + len(stripped)
            spans.append((start, end, stripped))
            cursor = end
        return spans
