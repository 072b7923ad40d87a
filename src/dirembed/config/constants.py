"""Configuration constants.

Defaults shared by the config models and the index engine, plus values
that are not user-configurable.
"""

# =============================================================================
# Index Defaults
# =============================================================================

DEFAULT_CHUNK_SIZE = 512
"""Bytes per chunk window."""

DEFAULT_MAX_CHUNKS = 256
"""Maximum chunks embedded per file."""

DEFAULT_CHUNKS_PER_CALL = 32
"""Chunks batched into one embedder call."""

DEFAULT_DOTFILE_NAME = ".dirembed_index"
"""Per-directory cache file name."""

# =============================================================================
# Embedder / Search Defaults
# =============================================================================

DEFAULT_EMBED_MODEL = "BAAI/bge-small-en-v1.5"
"""fastembed model used when none is configured (384-dim)."""

DEFAULT_SEARCH_K = 5
"""Results returned by a search when no count is given."""

# =============================================================================
# Internal Implementation Constants
# =============================================================================

VERBOSITY_MAX = 2
"""Highest diagnostic level."""

SNIFF_BYTES = 1024
"""Bytes read from the head of a file when sniffing text vs binary."""

INDEX_FORMAT_VERSION = 1
"""Version tag written into every persisted directory record."""
