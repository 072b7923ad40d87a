"""Default ignore lists for indexing.

Both lists are defaults only: ``IndexConfig.ignore_dirs`` and
``IndexConfig.ignore_files`` replace them wholesale when configured.
Matching is by exact base name.
"""

from __future__ import annotations

# =============================================================================
# Directories: never recursed into
# =============================================================================

DEFAULT_IGNORE_DIRS: tuple[str, ...] = (
    # VCS internals
    ".git",
    ".svn",
    ".hg",
    ".bzr",
)

# =============================================================================
# Files: housekeeping files with no useful text to search
# =============================================================================

DEFAULT_IGNORE_FILES: tuple[str, ...] = (
    ".gitignore",
    ".gitmodules",
    "go.sum",
    "LICENSE",
    "LICENSE.md",
)

# =============================================================================
# Media types
# =============================================================================
# mimetypes maps several plain-text formats to application/*. These are
# accepted in addition to anything under text/*.

TEXT_APPLICATION_TYPES: frozenset[str] = frozenset(
    (
        "application/json",
        "application/xml",
        "application/javascript",
        "application/x-javascript",
        "application/x-sh",
        "application/x-csh",
        "application/toml",
        "application/yaml",
        "application/x-yaml",
        "application/sql",
    )
)

HIDDEN_PREFIX = "."
"""Names starting with this marker are hidden and never indexed."""
