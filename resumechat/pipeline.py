"""Session pipeline: Load -> Split -> Embed once, then retrieve per question."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace

import numpy as np

from .config import config
from .conversation import ConversationMemory
from .document_processing import DocumentSource, TextChunker
from .embeddings import Embedder, embed_text
from .exceptions import ConfigurationError, DocumentUnavailable, EmbeddingFormatError
from .models import DocumentChunk, RankedChunk
from .similarity import rank_chunks

logger = config.get_logger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass
class ResumeSession:
    """State owned by one chat session.

    ``embeddings[i]`` is the vector of ``chunks[i]``. Chunks and embeddings
    are read-only after startup; only the orchestrator mutates ``memory``.
    """

    document: str
    chunks: list[DocumentChunk]
    embeddings: list[np.ndarray]
    memory: ConversationMemory
    skipped_chunks: list[int] = field(default_factory=list)

    @property
    def dimension(self) -> int:
        return int(self.embeddings[0].size) if self.embeddings else 0


class RAGPipeline:
    """Builds the session index and retrieves chunks for questions."""

    def __init__(
        self,
        embedder: Embedder,
        document_source: DocumentSource,
        chunker: TextChunker | None = None,
        *,
        concurrency: int | None = None,
        memory_turns: int | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            embedder: Embedding backend.
            document_source: Where the resume text comes from.
            chunker: Chunker to use. If None, built from config.
            concurrency: Maximum embedding calls in flight at startup.
                If None, uses config.EMBEDDING_CONCURRENCY.
            memory_turns: Size of the session's conversation memory.
                If None, uses config.MEMORY_MAX_TURNS.

        Raises:
            ConfigurationError: If concurrency is smaller than 1.
        """
        if concurrency is None:
            concurrency = config.EMBEDDING_CONCURRENCY
        if concurrency < 1:
            msg = f"Embedding concurrency must be at least 1, got {concurrency}"
            raise ConfigurationError(msg)

        self.embedder = embedder
        self.document_source = document_source
        self.chunker = chunker or TextChunker.from_config()
        self.concurrency = concurrency
        self.memory_turns = memory_turns

    async def build_session(
        self, on_progress: ProgressCallback | None = None
    ) -> ResumeSession:
        """Fetch, chunk and embed the resume.

        Returns:
            ResumeSession: A fresh session with empty memory.

        Raises:
            DocumentUnavailable: If the resume cannot be fetched or yields no
                usable chunk.
        """
        document = await self.document_source.fetch_document()
        chunks = self.chunker.chunk_text(document)
        if not chunks:
            msg = "Resume produced no chunks"
            raise DocumentUnavailable(msg)

        chunks, embeddings, skipped = await self.embed_chunks(chunks, on_progress)
        if not chunks:
            msg = "No resume chunk could be embedded"
            raise DocumentUnavailable(msg)

        session = ResumeSession(
            document=document,
            chunks=chunks,
            embeddings=embeddings,
            memory=ConversationMemory(self.memory_turns),
            skipped_chunks=skipped,
        )
        logger.info(
            "Session ready: %d chunks, dimension %d, %d skipped",
            len(session.chunks),
            session.dimension,
            len(skipped),
        )
        return session

    async def embed_chunks(
        self,
        chunks: list[DocumentChunk],
        on_progress: ProgressCallback | None = None,
    ) -> tuple[list[DocumentChunk], list[np.ndarray], list[int]]:
        """Embed every chunk with bounded concurrency.

        Each vector is stored at its chunk's own index, so completion order
        does not matter. Chunks whose result cannot be normalized, or whose
        dimension differs from the first good vector, are skipped.

        Returns:
            Kept chunks (re-indexed), their embeddings, and the original
            indices of the skipped chunks.
        """
        results: list[np.ndarray | None] = [None] * len(chunks)
        semaphore = asyncio.Semaphore(self.concurrency)
        completed = 0

        async def _embed_chunk(position: int) -> None:
            nonlocal completed
            async with semaphore:
                try:
                    results[position] = await embed_text(
                        self.embedder, chunks[position].text
                    )
                except EmbeddingFormatError as exc:
                    logger.warning("Skipping chunk %d: %s", position, exc)
            completed += 1
            if on_progress is not None:
                on_progress(completed * 100 // len(chunks))

        tasks = [asyncio.create_task(_embed_chunk(i)) for i in range(len(chunks))]
        try:
            await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.exception("Error generating chunk embeddings")
            raise

        dimension = next((vec.size for vec in results if vec is not None), 0)
        kept_chunks: list[DocumentChunk] = []
        kept_embeddings: list[np.ndarray] = []
        skipped: list[int] = []
        for chunk, vector in zip(chunks, results, strict=True):
            if vector is None or vector.size != dimension:
                if vector is not None:
                    logger.warning(
                        "Skipping chunk %d: %d dimensions, expected %d",
                        chunk.index,
                        vector.size,
                        dimension,
                    )
                skipped.append(chunk.index)
                continue
            kept_chunks.append(replace(chunk, index=len(kept_chunks)))
            kept_embeddings.append(vector)

        return kept_chunks, kept_embeddings, skipped

    async def embed_query(self, session: ResumeSession, question: str) -> np.ndarray:
        """Embed a question, checked against the session's dimension.

        Returns:
            np.ndarray: The question vector.
        """
        return await embed_text(self.embedder, question, session.dimension or None)

    async def find_relevant_chunks(
        self, session: ResumeSession, question: str, top_k: int | None = None
    ) -> list[RankedChunk]:
        """Embed the question and rank the session's chunks against it.

        Returns:
            The ``top_k`` most similar chunks, best first.
        """
        if top_k is None:
            top_k = config.RETRIEVAL_TOP_K
        query_vector = await self.embed_query(session, question)
        return rank_chunks(query_vector, session.embeddings, session.chunks, top_k)
