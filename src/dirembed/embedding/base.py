"""Embedder capability."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Embedder(Protocol):
    """Turns a batch of texts into parallel fixed-dimension vectors.

    Must return exactly one vector per input, in input order, all of the
    same dimension. Failures are raised, typically as EmbedderError.
    """

    def embed(self, texts: list[str]) -> Sequence[Any]: ...
