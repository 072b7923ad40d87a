"""fastembed-backed Embedder (ONNX runtime, CPU or CUDA).

The model is loaded lazily on the first ``embed`` call so that commands
that never embed (``show``, ``clear``) do not pay for the download and
ONNX session start-up.
"""

from __future__ import annotations

import os
import time
from typing import Any

import numpy as np
import structlog

from dirembed.config.constants import DEFAULT_EMBED_MODEL
from dirembed.core.errors import EmbedderError

log = structlog.get_logger()


def _detect_providers() -> list[str]:
    """Detect available ONNX Runtime execution providers."""
    try:
        import onnxruntime as ort  # type: ignore[import-not-found]

        available = set(ort.get_available_providers())
    except Exception:  # noqa: BLE001
        return []

    providers: list[str] = []
    if "CUDAExecutionProvider" in available:
        providers.append("CUDAExecutionProvider")
    providers.append("CPUExecutionProvider")
    return providers


class FastEmbedEmbedder:
    """Embedder wrapping ``fastembed.TextEmbedding``."""

    def __init__(
        self,
        model_name: str = DEFAULT_EMBED_MODEL,
        *,
        threads: int | None = None,
        cache_dir: str | None = None,
    ) -> None:
        self.model_name = model_name
        self._threads = threads
        self._cache_dir = cache_dir
        self._model: Any | None = None

    def embed(self, texts: list[str]) -> list[np.ndarray[Any, np.dtype[np.float32]]]:
        if not texts:
            return []
        model = self._ensure_model()
        start = time.monotonic()
        try:
            vectors = [np.asarray(vec, dtype=np.float32) for vec in model.embed(texts)]
        except Exception as e:
            raise EmbedderError.failed(str(e), model=self.model_name, batch=len(texts)) from e
        log.debug(
            "embedder.batch",
            model=self.model_name,
            texts=len(texts),
            elapsed_ms=round((time.monotonic() - start) * 1000),
        )
        return vectors

    def _ensure_model(self) -> Any:
        """Lazy-load the fastembed TextEmbedding model with GPU auto-detect."""
        if self._model is not None:
            return self._model

        try:
            from fastembed import TextEmbedding  # type: ignore[import-not-found]
        except ImportError as e:
            raise EmbedderError.unavailable(
                "fastembed is not installed", hint="pip install 'dirembed[fastembed]'"
            ) from e

        providers = _detect_providers()
        threads = self._threads or max(1, (os.cpu_count() or 4) // 2)
        kwargs: dict[str, Any] = {
            "model_name": self.model_name,
            "threads": threads,
        }
        if providers:
            kwargs["providers"] = providers
        if self._cache_dir:
            kwargs["cache_dir"] = self._cache_dir

        start = time.monotonic()
        try:
            self._model = TextEmbedding(**kwargs)
        except Exception as e:
            raise EmbedderError.unavailable(f"failed to load {self.model_name}: {e}") from e
        log.info(
            "embedder.model_loaded",
            model=self.model_name,
            providers=providers or ["CPUExecutionProvider"],
            threads=threads,
            elapsed_s=round(time.monotonic() - start, 2),
        )
        return self._model
