"""Consistent chunking strategy shared by loaders & the CLI."""

from __future__ import annotations

from functools import lru_cache

from mdchunk.core.config import get_settings
from mdchunk.splitters.markdown_header import MarkdownHeaderTextSplitter

__all__ = ["default_splitter", "split_markdown"]


@lru_cache
def default_splitter() -> MarkdownHeaderTextSplitter:
    """Splitter configured from the environment, built on first use."""
    return MarkdownHeaderTextSplitter.from_settings(get_settings())


def split_markdown(text: str) -> list[str]:
    """Return header-aware chunks suitable for embedding."""
    return default_splitter().split_text(text)
