"""Data models for the resume chat session."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class DocumentChunk:
    """Represents a chunk of text from the resume."""

    text: str
    index: int
    start_char: int = 0
    end_char: int = 0


@dataclass(frozen=True)
class RankedChunk:
    """A chunk paired with its cosine similarity to the current question."""

    chunk: DocumentChunk
    score: float

    @property
    def text(self) -> str:
        return self.chunk.text


@dataclass(frozen=True)
class MemoryTurn:
    """Represents a single question/answer turn kept in conversation memory."""

    question: str
    answer: str
    timestamp: str = ""


class QueryState(Enum):
    """Lifecycle of one query inside the orchestrator."""

    IDLE = "idle"
    EMBEDDING = "embedding"
    RANKING = "ranking"
    PROMPTING = "prompting"
    GENERATING = "generating"
    FINALIZING = "finalizing"
    ERRORED = "errored"


@dataclass
class QueryResult:
    """Everything produced while answering one question."""

    question: str
    answer: str = ""
    ranked_chunks: list[RankedChunk] = field(default_factory=list)
    prompt: str = ""
    raw_output: str = ""
    errored: bool = False
    used_fallback: bool = False
    states: list[QueryState] = field(default_factory=list)
