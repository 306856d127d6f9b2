"""
Models for vector storage.

Defines the data structures exchanged with vector storage implementations:
points to upsert and scored hits returned by similarity search.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class Point(BaseModel):
    """
    A point to write into the vector database.

    Combines an integer ID, an embedding vector, and its payload
    (``MessagePayload.to_dict()`` for stored messages).
    """

    id: int
    vector: List[float]
    payload: Dict[str, Any] = Field(default_factory=dict)


class ScoredPoint(BaseModel):
    """A search hit: point ID, similarity score and payload (vectors are not returned)."""

    id: Union[int, str]
    score: float
    payload: Dict[str, Any] = Field(default_factory=dict)
    version: Optional[int] = None
