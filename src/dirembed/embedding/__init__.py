"""Embedding providers."""

from dirembed.embedding.base import Embedder
from dirembed.embedding.fastembed import FastEmbedEmbedder

__all__ = ["Embedder", "FastEmbedEmbedder"]
