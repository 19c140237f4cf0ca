"""Version 1 API routers."""

from . import batches, corpus, documents, health, validations

__all__ = ["batches", "corpus", "documents", "health", "validations"]
