"""In-memory hierarchical key-value tree, a sample-tree demo and a small HTTP/1.0 server."""

__version__ = "0.1.0"
__all__ = ["__version__"]