"""Embedding service boundary: the Embedder interface and vector extraction."""

from typing import Any, Protocol

import numpy as np
from openai import AsyncOpenAI

from .config import config
from .exceptions import EmbeddingFormatError

logger = config.get_logger(__name__)

NUMERIC_KINDS = frozenset("iuf")


class Embedder(Protocol):
    """Capability interface for any embedding backend (remote API, local model).

    ``embed`` returns a vector-like result: a flat or nested numeric sequence,
    a numpy array, a typed buffer, or an object exposing ``tolist()`` or
    ``flatten()``. Pooling and normalization are configured on the backend.
    """

    async def embed(self, text: str) -> Any: ...


def extract_embedding(raw: Any, dimension: int | None = None) -> np.ndarray:
    """Normalize an embedding service result into one flat float vector.

    Multi-row results keep their first row; any nesting left after that is
    flattened.

    Args:
        raw: The value returned by ``Embedder.embed``.
        dimension: Expected vector length, when already known for the session.

    Returns:
        np.ndarray: A 1-D float64 vector.

    Raises:
        EmbeddingFormatError: If the result is missing, empty, ragged,
            non-numeric, non-finite, or of the wrong length.
    """
    if raw is None:
        msg = "Embedding service returned no result"
        raise EmbeddingFormatError(msg)

    data = raw
    if not isinstance(data, np.ndarray):
        if callable(getattr(data, "tolist", None)):
            data = data.tolist()
        elif callable(getattr(data, "flatten", None)):
            data = data.flatten()

    if isinstance(data, (str, bytes)):
        msg = f"Embedding result is text, not numbers: {type(raw).__name__}"
        raise EmbeddingFormatError(msg)

    try:
        array = np.asarray(data)
    except (TypeError, ValueError) as exc:
        msg = f"Embedding result has an irregular shape: {type(raw).__name__}"
        raise EmbeddingFormatError(msg) from exc

    if array.dtype.kind not in NUMERIC_KINDS:
        msg = f"Embedding result is not numeric (dtype={array.dtype})"
        raise EmbeddingFormatError(msg)

    if array.ndim == 0:
        msg = "Embedding result is a scalar, not a vector"
        raise EmbeddingFormatError(msg)
    if array.ndim > 1 and array.shape[0] > 0:
        array = array[0]

    vector = array.astype(np.float64).ravel()

    if vector.size == 0:
        msg = "Embedding result is empty"
        raise EmbeddingFormatError(msg)
    if not np.all(np.isfinite(vector)):
        msg = "Embedding result contains NaN or infinite values"
        raise EmbeddingFormatError(msg)
    if dimension is not None and vector.size != dimension:
        msg = f"Embedding has {vector.size} dimensions, expected {dimension}"
        raise EmbeddingFormatError(msg)

    return vector


async def embed_text(
    embedder: Embedder, text: str, dimension: int | None = None
) -> np.ndarray:
    """Call the embedding service once and normalize its result.

    Returns:
        np.ndarray: The flat embedding vector for ``text``.
    """
    raw = await embedder.embed(text)
    return extract_embedding(raw, dimension)


class OpenAIEmbedder:
    """Embedder backed by an OpenAI-compatible embeddings endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the embedder.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
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
        self.model = model or config.EMBEDDING_MODEL

    async def embed(self, text: str) -> list[float]:
        """Get the raw embedding for a single text.

        Returns:
            list[float]: The embedding as returned by the API.
        """
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text,
            )
        except Exception:
            logger.exception("Error generating embedding")
            raise

        if not response.data:
            return []
        return response.data[0].embedding
