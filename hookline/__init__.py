"""hookline: webhook ingestion and trigger registration."""

__version__ = "0.1.0"
