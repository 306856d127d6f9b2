"""Vector storage implementations (Qdrant and in-memory)."""
