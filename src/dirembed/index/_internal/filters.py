"""Inclusion rules for indexing.

A file is indexable when, in order:
1. its name is not hidden,
2. its extension does not map to a non-text media type,
3. its name is not on the ignore list,
4. if it is a symbolic link, the link resolves to a regular file,
5. its content sniffs as text,
6. its cached entry (if any) is older than its mtime, unless forced.

Rules are applied cheapest first; the content sniff is the only one that
opens the file. A link is judged by its target, including the target's
mtime for freshness.
"""

from __future__ import annotations

import codecs
import mimetypes
import os

from dirembed.config.constants import SNIFF_BYTES
from dirembed.core.excludes import HIDDEN_PREFIX, TEXT_APPLICATION_TYPES
from dirembed.index._internal.filesystem import FileInfo, FileSystem
from dirembed.index.models import FileEmbeddings

# Control characters allowed in text: tab, newline, form feed, carriage return
_ALLOWED_CONTROL = frozenset("\t\n\f\r")


def is_hidden(name: str) -> bool:
    return name.startswith(HIDDEN_PREFIX)


def is_text_media_type(name: str) -> bool:
    """False only when the extension maps to a known non-text media type."""
    mime_type, _encoding = mimetypes.guess_type(name, strict=False)
    if mime_type is None:
        return True
    return mime_type.startswith("text/") or mime_type in TEXT_APPLICATION_TYPES


def looks_like_text(head: bytes) -> bool:
    """Sniff the first bytes of a file.

    Binary if it contains NUL, is not valid UTF-8 (a multi-byte sequence cut
    off at the end of the sample is tolerated), or contains control
    characters other than common whitespace.
    """
    if b"\x00" in head:
        return False
    decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
    try:
        text = decoder.decode(head, final=False)
    except UnicodeDecodeError:
        return False
    for ch in text:
        if (ch < " " and ch not in _ALLOWED_CONTROL) or ch == "\x7f":
            return False
    return True


def is_text_file(fs: FileSystem, path: str) -> bool:
    """Content sniff through the filesystem capability."""
    with fs.open_read(path) as f:
        head = f.read(SNIFF_BYTES)
    return looks_like_text(head)


def is_indexable_dir(path: str, ignore_dirs: list[str] | tuple[str, ...]) -> bool:
    return os.path.basename(path) not in ignore_dirs


def indexable_file_reason(
    fs: FileSystem,
    dir_path: str,
    info: FileInfo,
    *,
    force_update: bool,
    previous: FileEmbeddings | None,
    ignore_files: list[str] | tuple[str, ...],
) -> str | None:
    """Return why ``info`` should be skipped, or None if it should be indexed."""
    name = info.name
    if info.is_dir:
        return "directory"
    if is_hidden(name):
        return "hidden"
    if not is_text_media_type(name):
        return "media_type"
    if name in ignore_files:
        return "ignored_name"
    path = os.path.join(dir_path, name)
    if info.is_link:
        if not fs.exists(path):
            return "broken_link"
        info = fs.stat(path)
        if info.is_dir:
            return "directory"
    if not is_text_file(fs, path):
        return "binary"
    if not force_update and previous is not None and previous.is_fresh(info.mtime):
        return "unchanged"
    return None
