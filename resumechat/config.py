"""Settings for ResumeChat, read once from the environment (and ``.env``)."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .exceptions import ConfigurationError

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Every tunable of the chat, one class attribute per environment variable."""

    # Model service (any OpenAI-compatible endpoint)
    @classmethod
    def get_openai_api_key(cls) -> str:
        """Read the API key at call time so tests and reloads see changes.

        Returns:
            The key, or an empty string when OPENAI_API_KEY is unset.
        """
        return os.getenv("OPENAI_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "ResumeChat/1.0")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Resume
    RESUME_PATH: Path = Path(os.getenv("RESUME_PATH", "data/resume.txt"))
    PERSONA_NAME: str = os.getenv("PERSONA_NAME", "the resume owner")

    # Chunking
    CHUNK_STRATEGY: str = os.getenv("CHUNK_STRATEGY", "window").lower()
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "400"))
    CHUNK_OVERLAP: int = int(os.getenv("CHUNK_OVERLAP", "50"))
    CHUNK_MIN_LENGTH: int = int(os.getenv("CHUNK_MIN_LENGTH", "10"))
    CHUNK_DELIMITER: str = os.getenv("CHUNK_DELIMITER", "[Chunk]")

    # Embeddings
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    EMBEDDING_CONCURRENCY: int = int(os.getenv("EMBEDDING_CONCURRENCY", "4"))

    # Generation
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4.1-nano-2025-04-14")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "250"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.2"))
    STREAM_RESPONSES: bool = _env_flag("STREAM_RESPONSES", "true")
    GENERATION_TIMEOUT: float = float(os.getenv("GENERATION_TIMEOUT", "60"))

    # Retrieval, memory and answers
    RETRIEVAL_TOP_K: int = int(os.getenv("RETRIEVAL_TOP_K", "3"))
    MEMORY_MAX_TURNS: int = int(os.getenv("MEMORY_MAX_TURNS", "3"))
    MIN_ANSWER_LENGTH: int = int(os.getenv("MIN_ANSWER_LENGTH", "3"))

    @classmethod
    def validate(cls) -> None:
        """Fail fast on settings the chat cannot start with.

        Raises:
            ConfigurationError: If no API key is set or a numeric setting is
                out of range.
        """
        if not cls.get_openai_api_key():
            msg = "OPENAI_API_KEY is required to embed the resume and answer questions"
            raise ConfigurationError(msg)

        if not 0 <= cls.CHUNK_OVERLAP < cls.CHUNK_SIZE:
            msg = (
                f"CHUNK_OVERLAP ({cls.CHUNK_OVERLAP}) must be non-negative and "
                f"smaller than CHUNK_SIZE ({cls.CHUNK_SIZE})"
            )
            raise ConfigurationError(msg)

        for name in ("RETRIEVAL_TOP_K", "MEMORY_MAX_TURNS", "EMBEDDING_CONCURRENCY"):
            if getattr(cls, name) < 1:
                msg = f"{name} must be at least 1"
                raise ConfigurationError(msg)

        if cls.GENERATION_TIMEOUT <= 0:
            msg = "GENERATION_TIMEOUT must be positive"
            raise ConfigurationError(msg)

    @classmethod
    def setup_logging(cls) -> None:
        """Configure the root logger once per process.

        Unknown level names fall back to INFO (and WARNING for the openai
        client, which is chatty at INFO).
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        logging.getLogger("openai").setLevel(
            getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Return the module logger for ``name`` (usually ``__name__``)."""  # noqa: DOC201
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Extra headers sent with every model service request.

        Returns:
            A User-Agent header, or nothing when API_USER_AGENT is blank.
        """
        if not cls.API_USER_AGENT:
            return {}
        return {"User-Agent": cls.API_USER_AGENT}


config = Config()
