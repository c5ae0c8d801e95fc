"""Note Companion - share-to-process client for the Note Companion service."""

__version__ = "0.1.0"
