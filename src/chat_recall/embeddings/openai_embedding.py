"""OpenAI-compatible embedding adapter for chat-recall."""

import logging
from typing import List, Optional

from openai import OpenAI, OpenAIError

from chat_recall.config import (
    DEFAULT_EMBEDDING_API_BASE,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_VECTOR_SIZE,
    EmbeddingConfig,
)
from chat_recall.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


class OpenAICompatibleEmbedding:
    """
    Embedding adapter for any API exposing an OpenAI-style ``/embeddings`` endpoint.

    Defaults to Mistral's ``mistral-embed`` model (1024 dimensions). Works
    equally with OpenAI, Azure, OpenRouter or a local server by changing
    ``api_base`` and ``model``.

    Requests are single round trips: the SDK's own retry loop is disabled so
    that a failure surfaces to the caller, who owns the retry policy.

    Example:
        >>> embedder = OpenAICompatibleEmbedding(api_key="...")
        >>> vector = embedder.embed_one("I like pizza")
        >>> len(vector)
        1024
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        model: Optional[str] = None,
        dimension: int = DEFAULT_VECTOR_SIZE,
        timeout: float = 60.0,
    ):
        """
        Initialize the embedder.

        Args:
            api_key: Provider API key. Without one, every embed call fails.
            api_base: Base URL of the API (default: Mistral)
            model: Embedding model name (default: mistral-embed)
            dimension: Expected output dimension
            timeout: Per-request deadline in seconds
        """
        self._api_key = api_key or ""
        self._api_base = (api_base or DEFAULT_EMBEDDING_API_BASE).rstrip("/")
        self._model = model or DEFAULT_EMBEDDING_MODEL
        self._dimension = dimension

        self._client: Optional[OpenAI] = None
        if self._api_key:
            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._api_base,
                timeout=timeout,
                max_retries=0,
            )
        else:
            logger.warning(
                f"No API key configured for embedding model {self._model}; "
                "embedding requests will fail"
            )

        logger.info(f"Embedding client initialized: {self._model} ({self._api_base})")

    @classmethod
    def from_config(
        cls, config: EmbeddingConfig, dimension: int = DEFAULT_VECTOR_SIZE
    ) -> "OpenAICompatibleEmbedding":
        return cls(
            api_key=config.api_key,
            api_base=config.api_base,
            model=config.model,
            dimension=dimension,
        )

    @property
    def dimension(self) -> int:
        """Vector dimension produced by this model."""
        return self._dimension

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        return self._model

    @property
    def api_base(self) -> str:
        return self._api_base

    def _create(self, texts: List[str]) -> List[List[float]]:
        if self._client is None:
            raise EmbeddingError(f"API key is not configured for embedding model {self._model}")

        try:
            response = self._client.embeddings.create(
                model=self._model,
                input=texts,
                encoding_format="float",
            )
        except OpenAIError as e:
            raise EmbeddingError(f"embedding request to {self._api_base} failed: {e}") from e

        # Providers are not required to return items in request order
        data = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in data]

    def embed_one(self, text: str) -> List[float]:
        """
        Generate the embedding for a single text.

        Raises:
            EmbeddingError: If no API key is configured, the request fails,
                or the response contains no vector
        """
        vectors = self._create([text])
        if not vectors:
            raise EmbeddingError(f"no embeddings returned from {self._api_base}")
        return vectors[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for several texts in one request.

        Returns an empty list without calling the API when ``texts`` is empty.

        Raises:
            EmbeddingError: If no API key is configured or the request fails
        """
        if not texts:
            return []

        vectors = self._create(list(texts))
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"embedding count mismatch: requested {len(texts)}, received {len(vectors)}"
            )

        logger.debug(f"Embedded batch of {len(texts)} texts with {self._model}")
        return vectors
