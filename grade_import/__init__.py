"""Grade import service: bulk mark entry for the school backend."""

__version__ = "1.0.0"
