"""Generation service boundary: the Generator interface and an OpenAI backend."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Protocol

from openai import AsyncOpenAI

from .config import config

logger = config.get_logger(__name__)


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling options passed to the generation service."""

    max_tokens: int = 250
    temperature: float = 0.2
    stream: bool = True

    @classmethod
    def from_config(cls) -> "GenerationOptions":
        return cls(
            max_tokens=config.CHAT_MAX_TOKENS,
            temperature=config.CHAT_TEMPERATURE,
            stream=config.STREAM_RESPONSES,
        )


@dataclass(frozen=True)
class Delta:
    """One streamed increment. ``content`` of None is a no-op tick."""

    content: str | None = None


class Generator(Protocol):
    """Capability interface for any text generation backend.

    ``generate`` returns either the completed text or an async iterator of
    :class:`Delta` values, in the order the backend produced them.
    """

    async def generate(
        self, prompt: str, options: GenerationOptions
    ) -> str | AsyncIterator[Delta]: ...


class OpenAIGenerator:
    """Generator backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Chat model name. If None, uses config.CHAT_MODEL.
            client: Pre-built async client, mainly for tests.
        """
        if client is None:
            default_headers = config.get_api_headers()
            client = AsyncOpenAI(
                api_key=api_key or config.get_openai_api_key(),
                base_url=config.OPENAI_BASE_URL,
                default_headers=default_headers or None,
            )
        self.client = client
        self.model = model or config.CHAT_MODEL

    async def generate(
        self, prompt: str, options: GenerationOptions
    ) -> str | AsyncIterator[Delta]:
        """Send the prompt as a single user message.

        Returns:
            The completed text when ``options.stream`` is false, otherwise an
            async iterator of deltas.
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=options.max_tokens,
                temperature=options.temperature,
                stream=options.stream,
            )
        except Exception:
            logger.exception("Error requesting chat completion")
            raise

        if options.stream:
            return self._iter_deltas(response)

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    @staticmethod
    async def _iter_deltas(stream: Any) -> AsyncIterator[Delta]:
        async for chunk in stream:
            if not chunk.choices:
                yield Delta()
                continue
            yield Delta(content=chunk.choices[0].delta.content)
