"""Embedding provider - text to fixed-length vectors via LiteLLM."""

from abc import ABC, abstractmethod

import litellm
from litellm import aembedding

from brainstem.core.errors import UpstreamError
from brainstem.core.logging import get_logger
from brainstem.core.typing import Vector

logger = get_logger("llm.embeddings")

litellm.suppress_debug_info = True

# Longer inputs are truncated, not rejected
MAX_EMBEDDING_INPUT = 8000


class EmbeddingProvider(ABC):
    """Turns text into a vector of fixed dimensionality."""

    dimensions: int

    @abstractmethod
    async def embed(self, text: str) -> Vector:
        """Embed one text. Single attempt; callers decide on retries."""
        ...


class LiteLLMEmbeddingProvider(EmbeddingProvider):
    """Embeddings through any LiteLLM-supported model."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        api_key: str | None = None,
        api_base: str | None = None,
        timeout: float = 10.0,
    ):
        self.model = model
        self.dimensions = dimensions
        self.api_key = api_key or None
        self.api_base = api_base or None
        self.timeout = timeout

    async def embed(self, text: str) -> Vector:
        payload = text[:MAX_EMBEDDING_INPUT]
        if len(text) > MAX_EMBEDDING_INPUT:
            logger.debug(f"Truncated embedding input from {len(text)} to {MAX_EMBEDDING_INPUT} chars")

        try:
            response = await aembedding(
                model=self.model,
                input=[payload],
                api_key=self.api_key,
                api_base=self.api_base,
                timeout=self.timeout,
                max_retries=0,
            )
        except Exception as e:
            raise UpstreamError(f"Embedding request failed: {e}") from e

        try:
            item = response.data[0]
            vector = item["embedding"] if isinstance(item, dict) else item.embedding
            vector = [float(x) for x in vector]
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            raise UpstreamError(f"Malformed embedding response: {e}") from e

        if len(vector) != self.dimensions:
            raise UpstreamError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
            )
        return vector
