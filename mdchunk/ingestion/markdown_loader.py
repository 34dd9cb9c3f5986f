"""Load a Markdown file → List[dict] of header-aware chunks.

Every chunk record carries the file's front-matter metadata plus a
``created_at`` timestamp resolved with these priority rules:

1. `created:` front-matter (e.g. “Jun 11, 2024 at 9:40 AM”)
2. Date encoded in the **filename**  (yyyy-mm-dd.*) - time fixed to 12:00
3. File-system mtime.
If front-matter *and* filename disagree on the **date**, we keep
the filename date (12 PM) to avoid silent conflicts.
"""

from __future__ import annotations

from datetime import date, datetime
import logging
from pathlib import Path
import re
from typing import Any
import uuid

import frontmatter
from langchain_core.documents import Document

from mdchunk.core.types import to_document
from mdchunk.splitters.markdown_header import MarkdownHeaderTextSplitter
from mdchunk.utils.text_splitter import default_splitter

__all__ = ["load_markdown_documents", "parse_markdown_file"]

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------- #
# Helpers                                                               #
# --------------------------------------------------------------------- #
_FILENAME_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")

_CREATED_FORMATS = ("%b %d, %Y at %I:%M %p", "%b %d, %Y")


def _frontmatter_datetime(value: Any) -> datetime | None:
    """Interpret a front-matter ``created`` value; returns tz-naive."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 12)
    if not isinstance(value, str):
        return None

    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    for fmt in _CREATED_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def _filename_datetime(path: Path) -> datetime | None:
    """Extract yyyy-mm-dd from the filename; attach 12:00."""
    m = _FILENAME_DATE_RE.match(path.stem)
    if not m:
        return None
    try:
        return datetime.fromisoformat(f"{m.group(1)}T12:00:00")
    except ValueError:
        return None


def _resolve_created_at(path: Path, fm_created: Any) -> datetime:
    fm_dt = _frontmatter_datetime(fm_created) if fm_created else None
    fn_dt = _filename_datetime(path)

    # Resolve conflicts
    if fn_dt and fm_dt and fn_dt.date() != fm_dt.date():
        logger.debug("%s: filename date wins over front-matter date", path)
        return fn_dt
    return fm_dt or fn_dt or datetime.fromtimestamp(path.stat().st_mtime)


# --------------------------------------------------------------------- #
# Public API                                                            #
# --------------------------------------------------------------------- #
def parse_markdown_file(
    path: str | Path, splitter: MarkdownHeaderTextSplitter | None = None
) -> list[dict[str, Any]]:
    """Return *chunked* representation of one Markdown file."""
    path = Path(path)
    post = frontmatter.load(path)
    metadata = dict(post.metadata)
    created_at = _resolve_created_at(path, metadata.pop("created", None))

    chunks = (splitter or default_splitter()).split_text(post.content)
    logger.debug("%s: %d chunks", path, len(chunks))
    return [
        {
            **metadata,
            "id": str(uuid.uuid4()),
            "content": chunk,
            "created_at": created_at.isoformat(),
            "source": str(path),
        }
        for chunk in chunks
    ]


def load_markdown_documents(
    path: str | Path, splitter: MarkdownHeaderTextSplitter | None = None
) -> list[Document]:
    """Same as :func:`parse_markdown_file`, as Langchain Documents."""
    return [to_document(chunk) for chunk in parse_markdown_file(path, splitter)]
