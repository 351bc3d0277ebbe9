"""Test configuration and fixtures for ResumeChat tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Fake embedding and generation services
- Recording UI sink
- Mock OpenAI API responses
- Pipeline and orchestrator factories
"""

import asyncio
import hashlib
from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import numpy as np
import pytest

from resumechat import (
    Delta,
    GenerationOptions,
    QueryOrchestrator,
    RAGPipeline,
    TextChunker,
    TextDocumentSource,
)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
TEST_DATA_DIR = PROJECT_ROOT / "tests" / "data"


class TestConstants:
    """Centralized test constants to avoid repetition across test files."""

    __test__ = False

    TEST_API_KEY = "test-key"
    TEST_EMBEDDING_MODEL = "text-embedding-3-small"
    TEST_CHAT_MODEL = "test-chat-model"
    DEFAULT_EMBEDDING_DIMENSION = 16

    SMALL_CHUNK_SIZE = 100
    SMALL_CHUNK_OVERLAP = 20

    ANMOL_RESUME = "Anmol works at Acme Corp. Anmol studied CS."
    ANMOL_QUESTION = "Where does Anmol work?"


class MockEmbedder:
    """Fake embedding service for testing without API calls.

    Generates deterministic unit vectors from a hash of the text. Specific
    texts can be mapped to fixed raw results (any vector-like shape), and
    ``delays`` lets tests reorder completions.
    """

    def __init__(
        self,
        dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION,
        overrides: dict[str, Any] | None = None,
        delays: dict[str, float] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.dimension = dimension
        self.overrides = overrides or {}
        self.delays = delays or {}
        self.error = error
        self.calls: list[str] = []

    def vector_for(self, text: str) -> np.ndarray:
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return embedding / np.linalg.norm(embedding)

    async def embed(self, text: str) -> Any:
        self.calls.append(text)
        if text in self.delays:
            await asyncio.sleep(self.delays[text])
        if self.error is not None:
            raise self.error
        if text in self.overrides:
            return self.overrides[text]
        return self.vector_for(text).tolist()


async def iterate(items: Iterable[Any]) -> AsyncIterator[Any]:
    """Turn a plain iterable into an async iterator."""
    for item in items:
        yield item


class ScriptedGenerator:
    """Fake generation service replaying a scripted response.

    ``response`` is either a completed string or a list of delta fragments
    (``None`` fragments are no-op ticks). ``fail_after`` raises after that
    many deltas, ``error`` raises before anything is produced.
    """

    def __init__(
        self,
        response: str | list[str | None] = "",
        *,
        fail_after: int | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.response = response
        self.fail_after = fail_after
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []
        self.options: list[GenerationOptions] = []

    async def generate(
        self, prompt: str, options: GenerationOptions
    ) -> str | AsyncIterator[Delta]:
        self.prompts.append(prompt)
        self.options.append(options)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if isinstance(self.response, str):
            return self.response
        return self._stream(self.response)

    async def _stream(self, fragments: list[str | None]) -> AsyncIterator[Delta]:
        for position, fragment in enumerate(fragments):
            if self.fail_after is not None and position >= self.fail_after:
                msg = "stream broke"
                raise RuntimeError(msg)
            yield Delta(content=fragment)


class RecordingHandle:
    def __init__(self, text: str) -> None:
        self.text = text
        self.appended: list[str] = []
        self.final: str | None = None

    def append(self, text: str) -> None:
        self.appended.append(text)
        self.text += text

    def finalize(self, text: str) -> None:
        self.final = text


class RecordingSink:
    """UI sink that records every call for assertions."""

    def __init__(self) -> None:
        self.statuses: list[str] = []
        self.messages: list[tuple[str, str, bool]] = []
        self.handles: list[RecordingHandle] = []
        self.progress: list[int] = []
        self.input_states: list[bool] = []

    def on_status(self, text: str) -> None:
        self.statuses.append(text)

    def on_message(
        self, sender: str, text: str, *, streaming: bool = False
    ) -> RecordingHandle | None:
        self.messages.append((sender, text, streaming))
        if streaming:
            handle = RecordingHandle(text)
            self.handles.append(handle)
            return handle
        return None

    def on_progress(self, percent: int) -> None:
        self.progress.append(percent)

    def set_input_enabled(self, enabled: bool) -> None:  # noqa: FBT001
        self.input_states.append(enabled)

    @property
    def input_enabled(self) -> bool:
        return bool(self.input_states) and self.input_states[-1]


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response."""
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response."""
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


def create_mock_stream_chunk(content: str | None, *, empty: bool = False) -> Mock:
    """Create one mock streamed chat completion chunk."""
    chunk = Mock()
    chunk.choices = [] if empty else [Mock(delta=Mock(content=content))]
    return chunk


@pytest.fixture
def mock_async_client():
    """AsyncOpenAI stand-in with awaitable embeddings and chat endpoints."""
    client = Mock()
    client.embeddings.create = AsyncMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def mock_embedder():
    return MockEmbedder()


@pytest.fixture(scope="session")
def sample_resume_path():
    """Path to the sample resume used by loader and end-to-end tests."""
    return TEST_DATA_DIR / "sample_resume.txt"


@pytest.fixture
def sentence_chunker():
    return TextChunker(strategy="sentence", min_length=10)


@pytest.fixture
def anmol_embedder():
    """Embedder whose vectors make the first Anmol sentence the best match."""
    return MockEmbedder(
        overrides={
            "Anmol works at Acme Corp.": [1.0, 0.0, 0.0],
            "Anmol studied CS.": [0.0, 1.0, 0.0],
            TestConstants.ANMOL_QUESTION: [0.9, 0.1, 0.0],
        },
    )


@pytest.fixture
def pipeline_factory(sentence_chunker):
    """Factory for RAGPipeline instances over an in-memory resume."""

    def _create_pipeline(
        embedder: Any,
        text: str = TestConstants.ANMOL_RESUME,
        chunker: TextChunker | None = None,
        concurrency: int = 4,
        memory_turns: int = 3,
    ) -> RAGPipeline:
        return RAGPipeline(
            embedder,
            TextDocumentSource(text),
            chunker or sentence_chunker,
            concurrency=concurrency,
            memory_turns=memory_turns,
        )

    return _create_pipeline


@pytest.fixture
def orchestrator_factory(pipeline_factory, recording_sink):
    """Factory for QueryOrchestrator instances wired to fakes."""

    def _create_orchestrator(
        embedder: Any,
        generator: Any,
        text: str = TestConstants.ANMOL_RESUME,
        top_k: int = 3,
        generation_timeout: float = 5.0,
        sink: Any = None,
    ) -> QueryOrchestrator:
        return QueryOrchestrator(
            pipeline_factory(embedder, text),
            generator,
            sink or recording_sink,
            top_k=top_k,
            options=GenerationOptions(max_tokens=50, temperature=0.2, stream=True),
            generation_timeout=generation_timeout,
            persona="Anmol",
        )

    return _create_orchestrator
