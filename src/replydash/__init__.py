"""ReplyDash knowledge backend: document ingestion and retrieval for grounded replies."""

__version__ = "2.0.0"
