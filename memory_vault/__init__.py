"""Memory Vault: memories and groups backed by MongoDB and a hosted image store."""

__version__ = "1.0.0"
