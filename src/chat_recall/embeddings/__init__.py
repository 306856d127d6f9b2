"""
Text embedding abstractions for chat-recall.

Provides a protocol-based embedding interface and an adapter for
OpenAI-compatible embedding APIs (Mistral, OpenAI, Azure, OpenRouter, ...).
"""

from chat_recall.embeddings.openai_embedding import OpenAICompatibleEmbedding
from chat_recall.embeddings.protocol import TextEmbedding

__all__ = [
    "TextEmbedding",
    "OpenAICompatibleEmbedding",
]
