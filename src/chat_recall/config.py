"""
Configuration for the conversation memory subsystem.

Settings can be built directly from the pydantic models, loaded from a JSON
config file, or read from ``CHAT_RECALL_`` prefixed environment variables
(nested fields use ``__``, e.g. ``CHAT_RECALL_QDRANT__ENABLED=true``).
"""

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_API_BASE = "https://api.mistral.ai/v1"
DEFAULT_EMBEDDING_MODEL = "mistral-embed"
DEFAULT_VECTOR_SIZE = 1024  # mistral-embed output dimension


class QdrantConfig(BaseModel):
    enabled: bool = False
    host: str = "localhost"
    port: int = 6333
    grpc_port: int = 6334
    api_key: str = ""
    collection: str = "chat_messages"
    vector_size: int = DEFAULT_VECTOR_SIZE
    secure: bool = Field(default=False, description="Use HTTPS for the REST transport")


class EmbeddingConfig(BaseModel):
    enabled: bool = False
    model: str = DEFAULT_EMBEDDING_MODEL
    api_base: str = DEFAULT_EMBEDDING_API_BASE
    api_key: str = ""


class StorageConfig(BaseModel):
    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    deterministic_point_ids: bool = Field(
        default=False,
        description="Derive point IDs from (session_key, index) instead of a process-local counter",
    )


class StorageSettings(BaseSettings):
    """Storage configuration read from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RECALL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    deterministic_point_ids: bool = False

    def to_storage_config(self) -> StorageConfig:
        return StorageConfig(
            qdrant=self.qdrant,
            embedding=self.embedding,
            deterministic_point_ids=self.deterministic_point_ids,
        )


def load_storage_config(path: Union[str, Path]) -> StorageConfig:
    """
    Load storage configuration from a JSON file.

    The file may either contain the storage section directly or an agent
    config with a top-level ``"storage"`` key.

    Args:
        path: Path to the JSON config file

    Returns:
        Validated StorageConfig

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the file contents are invalid
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict) and "storage" in data:
        data = data["storage"]

    config = StorageConfig.model_validate(data)
    logger.debug(
        f"Loaded storage config from {path} "
        f"(qdrant.enabled={config.qdrant.enabled}, collection={config.qdrant.collection})"
    )
    return config
