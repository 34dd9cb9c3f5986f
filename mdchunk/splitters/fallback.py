"""Plain-text splitter used for oversized snippets and unstructured input."""

from __future__ import annotations

from langchain_text_splitters import RecursiveCharacterTextSplitter

__all__ = ["FALLBACK_SEPARATORS", "build_fallback_splitter"]

# paragraph > line > word; no "" so a single long word is never cut
FALLBACK_SEPARATORS = ["\n\n", "\n", " "]


def build_fallback_splitter(
    chunk_size: int, chunk_overlap: int
) -> RecursiveCharacterTextSplitter:
    """Return a boundary-preferring splitter sharing the caller's budget."""
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=FALLBACK_SEPARATORS,
    )
