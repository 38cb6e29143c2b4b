"""In-memory blockchain runtime modules with origins, storage, balances and events."""

__version__ = "0.1.0"