"""ResumeChat - chat with a resume through a small RAG core."""

from .answer import NO_INFORMATION_ANSWER, extract_answer
from .conversation import ConversationMemory
from .document_processing import (
    DocumentLoader,
    FileDocumentSource,
    TextChunker,
    TextDocumentSource,
)
from .embeddings import OpenAIEmbedder, embed_text, extract_embedding
from .exceptions import (
    ConfigurationError,
    DocumentUnavailable,
    EmbeddingFormatError,
    GenerationFailure,
    QueryInProgressError,
    ResumeChatError,
    SessionNotReadyError,
)
from .generation import Delta, GenerationOptions, OpenAIGenerator
from .models import DocumentChunk, MemoryTurn, QueryResult, QueryState, RankedChunk
from .orchestrator import FAILURE_ANSWER, QueryOrchestrator
from .pipeline import RAGPipeline, ResumeSession
from .prompting import ANSWER_CUE, FALLBACK_PHRASE, build_prompt
from .similarity import cosine_similarity, rank_chunks
from .sinks import ConsoleSink, LoggingSink

__all__ = [
    "ANSWER_CUE",
    "FAILURE_ANSWER",
    "FALLBACK_PHRASE",
    "NO_INFORMATION_ANSWER",
    "ConfigurationError",
    "ConsoleSink",
    "ConversationMemory",
    "Delta",
    "DocumentChunk",
    "DocumentLoader",
    "DocumentUnavailable",
    "EmbeddingFormatError",
    "FileDocumentSource",
    "GenerationFailure",
    "GenerationOptions",
    "LoggingSink",
    "MemoryTurn",
    "OpenAIEmbedder",
    "OpenAIGenerator",
    "QueryInProgressError",
    "QueryOrchestrator",
    "QueryResult",
    "QueryState",
    "RAGPipeline",
    "RankedChunk",
    "ResumeChatError",
    "ResumeSession",
    "SessionNotReadyError",
    "TextChunker",
    "TextDocumentSource",
    "build_prompt",
    "cosine_similarity",
    "embed_text",
    "extract_answer",
    "extract_embedding",
    "rank_chunks",
]
