"""Unit tests for resume loading and chunking."""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from resumechat import (
    ConfigurationError,
    DocumentLoader,
    DocumentUnavailable,
    FileDocumentSource,
    TextChunker,
    TextDocumentSource,
)


def test_load_txt_document(sample_resume_path):
    text = DocumentLoader.load_document(sample_resume_path)

    assert isinstance(text, str)
    assert "Acme Corp" in text


def test_load_nonexistent_file():
    with pytest.raises(FileNotFoundError):
        DocumentLoader.load_document(Path("nonexistent_file.txt"))


def test_unsupported_file_type():
    with pytest.raises(ValueError, match="Unsupported file type"):
        DocumentLoader.load_document(Path("resume.docx"))


def test_load_pdf_joins_pages(tmp_path):
    pdf_path = tmp_path / "resume.pdf"
    pdf_path.write_bytes(b"%PDF-1.4")
    pages = [
        type("Page", (), {"extract_text": lambda self: "Page one"})(),
        type("Page", (), {"extract_text": lambda self: None})(),
        type("Page", (), {"extract_text": lambda self: "Page three"})(),
    ]

    with patch("resumechat.document_processing.pypdf.PdfReader") as mock_reader:
        mock_reader.return_value.pages = pages
        text = DocumentLoader.load_document(pdf_path)

    assert text == "Page one\n\nPage three"


def test_file_source_reads_resume(sample_resume_path):
    text = asyncio.run(FileDocumentSource(sample_resume_path).fetch_document())

    assert "Delhi Technological University" in text


@pytest.mark.parametrize("filename", ["missing.txt", "resume.docx"])
def test_file_source_unavailable(tmp_path, filename):
    path = tmp_path / filename
    if path.suffix == ".docx":
        path.write_text("not supported")

    with pytest.raises(DocumentUnavailable):
        asyncio.run(FileDocumentSource(path).fetch_document())


def test_file_source_empty_file(tmp_path):
    path = tmp_path / "resume.txt"
    path.write_text("   \n  ")

    with pytest.raises(DocumentUnavailable, match="empty"):
        asyncio.run(FileDocumentSource(path).fetch_document())


def test_text_source_rejects_blank():
    with pytest.raises(DocumentUnavailable):
        asyncio.run(TextDocumentSource("").fetch_document())


def test_window_chunk_creation():
    chunker = TextChunker(chunk_size=100, overlap=20)
    text = "This is a test resume line. " * 20

    chunks = chunker.chunk_text(text)

    assert len(chunks) > 1
    assert [chunk.index for chunk in chunks] == list(range(len(chunks)))
    for chunk in chunks:
        assert chunk.text == text[chunk.start_char : chunk.end_char]
        assert len(chunk.text) <= 100


def test_window_overlap():
    chunker = TextChunker(chunk_size=50, overlap=10)
    chunks = chunker.chunk_text("A" * 100)

    assert [(c.start_char, c.end_char) for c in chunks] == [
        (0, 50),
        (40, 90),
        (80, 100),
    ]


@pytest.mark.parametrize(
    ("size", "overlap", "length"),
    [
        (1, 0, 7),
        (5, 4, 23),
        (10, 3, 10),
        (10, 3, 11),
        (50, 49, 120),
        (400, 50, 1234),
        (100, 0, 999),
    ],
)
def test_window_covers_text_with_increasing_starts(size, overlap, length):
    text = "".join(chr(ord("a") + i % 26) for i in range(length))
    chunker = TextChunker(chunk_size=size, overlap=overlap, min_length=0)

    chunks = chunker.chunk_text(text)

    covered = [False] * length
    for chunk in chunks:
        for position in range(chunk.start_char, chunk.end_char):
            covered[position] = True
    assert all(covered)

    starts = [chunk.start_char for chunk in chunks]
    assert all(b > a for a, b in zip(starts, starts[1:], strict=False))
    assert chunks[-1].end_char == length


def test_short_document_is_single_chunk():
    chunker = TextChunker(chunk_size=400, overlap=50)
    chunks = chunker.chunk_text("Anmol works at Acme Corp.")

    assert len(chunks) == 1
    assert chunks[0].text == "Anmol works at Acme Corp."


def test_empty_text_chunking():
    assert TextChunker().chunk_text("") == []


def test_tiny_trailing_fragment_is_dropped():
    chunker = TextChunker(chunk_size=20, overlap=0, min_length=10)
    text = "Senior engineer here" + "  ok"

    chunks = chunker.chunk_text(text)

    assert [chunk.text for chunk in chunks] == ["Senior engineer here"]


@pytest.mark.parametrize(
    ("size", "overlap"),
    [(100, 100), (100, 150), (0, 0), (100, -1)],
)
def test_invalid_window_is_configuration_error(size, overlap):
    with pytest.raises(ConfigurationError):
        TextChunker(chunk_size=size, overlap=overlap)


def test_unknown_strategy_is_configuration_error():
    with pytest.raises(ConfigurationError, match="Unknown chunking strategy"):
        TextChunker(strategy="paragraph")


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError, match="Overlap"):
        TextChunker(chunk_size=10, overlap=10)


def test_sentence_strategy(sentence_chunker):
    text = "Anmol works at Acme Corp. Anmol studied CS."

    chunks = sentence_chunker.chunk_text(text)

    assert [chunk.text for chunk in chunks] == [
        "Anmol works at Acme Corp.",
        "Anmol studied CS.",
    ]
    assert [chunk.index for chunk in chunks] == [0, 1]
    assert text[chunks[1].start_char : chunks[1].end_char] == "Anmol studied CS."


def test_sentence_strategy_handles_question_and_exclamation():
    chunker = TextChunker(strategy="sentence", min_length=0)

    chunks = chunker.chunk_text("Hired in 2021! Why Acme?  Great team.")

    assert [chunk.text for chunk in chunks] == [
        "Hired in 2021!",
        "Why Acme?",
        "Great team.",
    ]


def test_delimiter_strategy():
    chunker = TextChunker(strategy="delimiter", min_length=5)
    text = "[Chunk] Experience at Acme Corp\n[Chunk]\n  Education: CS degree  [Chunk] x"

    chunks = chunker.chunk_text(text)

    assert [chunk.text for chunk in chunks] == [
        "Experience at Acme Corp",
        "Education: CS degree",
    ]


def test_chunker_from_config():
    with (
        patch("resumechat.document_processing.config.CHUNK_SIZE", 120),
        patch("resumechat.document_processing.config.CHUNK_OVERLAP", 30),
        patch("resumechat.document_processing.config.CHUNK_STRATEGY", "window"),
    ):
        chunker = TextChunker.from_config()

    assert chunker.chunk_size == 120
    assert chunker.overlap == 30
    assert chunker.strategy == "window"
