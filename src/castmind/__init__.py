"""Feed ingestion and two-tier memory alignment pipeline."""

__version__ = "0.1.0"
