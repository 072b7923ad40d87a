"""dirembed - directory-scoped embedding cache with cosine search."""

__version__ = "0.1.0"
