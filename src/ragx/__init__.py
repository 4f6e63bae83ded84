"""ragx — document ingestion and similarity retrieval over knowledge partitions."""

__version__ = "0.1.0"
