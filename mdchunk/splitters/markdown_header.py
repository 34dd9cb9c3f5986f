"""Header-aware Markdown splitter.

The splitter walks markdown-it's flat token stream block by block and keeps
the nearest heading as context for everything below it:

* every chunk of a section starts with its heading line (``## Title``),
* list items keep their ``-`` / ``1.`` markers and nesting indentation,
* blockquote content keeps its ``> `` prefix,
* every table row becomes its own chunk carrying the table header.

Snippets are packed up to ``chunk_size`` characters; a snippet that still
ends up larger than ``chunk_size + chunk_overlap`` is handed to a secondary
(plain-text) splitter. Supported blocks are headings, paragraphs, bullet and
ordered lists, blockquotes and tables - anything else (fenced code, html,
rules) is dropped.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging
from typing import Any

from langchain_text_splitters import TextSplitter
from markdown_it.token import Token

from mdchunk.core.config import Settings, get_settings
from mdchunk.splitters.fallback import build_fallback_splitter
from mdchunk.splitters.tokens import (
    TokenKind,
    heading_level,
    index_of_close_tag,
    kind_of,
    parse_markdown,
    render_inline,
)

__all__ = ["MarkdownHeaderTextSplitter", "MarkdownNestingError"]

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 512
DEFAULT_CHUNK_OVERLAP = 64
DEFAULT_MAX_DEPTH = 64

_INDENT = "  "
_LIST_KINDS = (TokenKind.BULLET_LIST_OPEN, TokenKind.ORDERED_LIST_OPEN)


class MarkdownNestingError(ValueError):
    """Lists / blockquotes nest deeper than the splitter allows."""

    def __init__(self, depth: int, max_depth: int):
        super().__init__(f"markdown nesting depth {depth} exceeds limit {max_depth}")
        self.depth = depth
        self.max_depth = max_depth


class _MarkdownContext:
    """Mutable walk state over ``tokens[cursor:bound]``.

    Sub-contexts created by :meth:`clone` share the parent's token list (no
    copy) and only differ in their cursor range and their own output.
    """

    def __init__(
        self,
        tokens: Sequence[Token],
        cursor: int,
        bound: int,
        *,
        chunk_size: int,
        chunk_overlap: int,
        second_splitter: TextSplitter,
        max_depth: int,
        depth: int = 0,
    ):
        self.tokens = tokens
        self.cursor = cursor
        self.bound = bound
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.second_splitter = second_splitter
        self.max_depth = max_depth
        # blockquote nesting above this context
        self.depth = depth

        self.header_title = ""
        self.header_emitted = False
        self.indent_depth = 0
        self.list_kind: TokenKind | None = None
        self.list_counter = 0

        self.pending = ""
        self.chunks: list[str] = []
        # indexes into chunks that are table rows
        self.row_chunks: set[int] = set()

    def clone(self, start: int, end: int) -> _MarkdownContext:
        """Independent context over ``tokens[start:end]``."""
        sub = _MarkdownContext(
            self.tokens,
            start,
            end,
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            second_splitter=self.second_splitter,
            max_depth=self.max_depth,
            depth=self.nesting + 1,
        )
        sub.header_emitted = self.header_emitted
        sub.indent_depth = self.indent_depth
        return sub

    @property
    def nesting(self) -> int:
        return self.depth + self.indent_depth

    def _check_depth(self, depth: int) -> None:
        if depth > self.max_depth:
            raise MarkdownNestingError(depth, self.max_depth)

    # ------------------------------------------------------------------ #
    # Walker                                                             #
    # ------------------------------------------------------------------ #
    def split_text(self) -> list[str]:
        """Walk the whole range, flush the last snippet, return the chunks."""
        self._walk(self.bound)
        self.close()
        return self.chunks

    def _walk(self, end: int) -> None:
        while self.cursor < end:
            handler = self._HANDLERS.get(kind_of(self.tokens[self.cursor]))
            if handler is None:
                self._skip()
            else:
                handler(self)

    def _skip(self) -> None:
        end = index_of_close_tag(self.tokens, self.cursor, self.bound)
        logger.debug(
            "Skipping unsupported %s at %d..%d",
            self.tokens[self.cursor].type,
            self.cursor,
            end,
        )
        self.cursor = end + 1

    def _close_of_current(self) -> int:
        return index_of_close_tag(self.tokens, self.cursor, self.bound)

    def _inline_at(self, idx: int, end: int) -> Token | None:
        if idx < end and kind_of(self.tokens[idx]) is TokenKind.INLINE:
            return self.tokens[idx]
        return None

    # ------------------------------------------------------------------ #
    # Element handlers                                                   #
    # ------------------------------------------------------------------ #
    def _on_heading(self) -> None:
        end = self._close_of_current()
        try:
            inline = self._inline_at(self.cursor + 1, end)
            if inline is None:
                logger.debug("Heading at %d has no inline content", self.cursor)
                return

            # a new heading always starts a new section
            self.close()
            self.header_title = self._heading_line(self.cursor, inline)
            self.header_emitted = False
        finally:
            self.cursor = end + 1

    def _heading_line(self, idx: int, inline: Token) -> str:
        """``## Title`` for the heading at *idx*; empty when it has no text."""
        text = inline.content.strip()
        if not text:
            return ""
        return f"{'#' * heading_level(self.tokens[idx])} {text}"

    def _on_item_heading(self, lead: str) -> None:
        """A heading inside a list item is item content, not a new section."""
        end = self._close_of_current()
        inline = self._inline_at(self.cursor + 1, end)
        line = self._heading_line(self.cursor, inline) if inline is not None else ""
        self.cursor = end + 1
        if line:
            self.join(lead + line)

    def _on_paragraph(self, lead: str = "") -> None:
        """Join the paragraph text; *lead* is a list marker or item indent."""
        end = self._close_of_current()
        inline = self._inline_at(self.cursor + 1, end)
        self.cursor = end + 1
        if inline is None:
            return

        text = render_inline(inline)
        if not text:
            return
        if lead:
            text = lead + text.replace("\n", "\n" + " " * len(lead))
        self.join(text)

    def _on_list(self) -> None:
        token = self.tokens[self.cursor]
        end = self._close_of_current()
        self._check_depth(self.nesting + 1)

        saved = (self.list_kind, self.list_counter)
        self.indent_depth += 1
        self.list_kind = kind_of(token)
        self.list_counter = 0
        if self.list_kind is TokenKind.ORDERED_LIST_OPEN:
            self.list_counter = int(token.attrGet("start") or 1) - 1

        self.cursor += 1
        try:
            self._walk(end)
        finally:
            self.indent_depth -= 1
            self.list_kind, self.list_counter = saved
            self.cursor = end + 1

    def _on_list_item(self) -> None:
        end = self._close_of_current()
        if self.list_kind is TokenKind.ORDERED_LIST_OPEN:
            self.list_counter += 1
            marker = f"{self.list_counter}. "
        else:
            marker = "- "
        indent = _INDENT * max(self.indent_depth - 1, 0)

        self.cursor += 1
        titled = False
        try:
            while self.cursor < end:
                kind = kind_of(self.tokens[self.cursor])
                if kind is TokenKind.PARAGRAPH_OPEN:
                    lead = indent + (" " * len(marker) if titled else marker)
                    self._on_paragraph(lead)
                    titled = True
                elif kind in _LIST_KINDS:
                    self._on_list()
                elif kind is TokenKind.BLOCKQUOTE_OPEN:
                    self._on_blockquote(prefix=indent + " " * len(marker))
                elif kind is TokenKind.TABLE_OPEN:
                    self._on_table()
                elif kind is TokenKind.HEADING_OPEN:
                    self._on_item_heading(indent + " " * len(marker))
                else:
                    self._skip()
        finally:
            self.cursor = end + 1

        # each top-level item (with its nested items) is its own unit
        if self.indent_depth == 1 and self.pending:
            self.close()

    def _on_blockquote(self, prefix: str = "") -> None:
        end = self._close_of_current()
        self._check_depth(self.nesting + 1)
        sub = self.clone(self.cursor + 1, end)
        sub.header_title = ""
        sub.indent_depth = 0
        self.cursor = end + 1

        for idx, chunk in enumerate(sub.split_text()):
            quoted = "\n".join(
                f"{prefix}> {line}" if line else f"{prefix}>"
                for line in chunk.split("\n")
            )
            if idx in sub.row_chunks:
                if self.pending:
                    self.close()
                self._emit(quoted, table_row=True)
            else:
                self.join(quoted)

        # the quote ends its snippet
        if self.pending:
            self.close()

    def _on_table(self) -> None:
        end = self._close_of_current()
        try:
            header, rows = self._read_table(self.cursor + 1, end)
            if header is None:
                logger.debug("Table at %d has no header section", self.cursor)
                return

            # no real header row: the first data row is the header
            if not any(header) and rows:
                header, rows = rows[0], rows[1:]
            if not any(header):
                return

            header_md = _table_header(header)
            if self.pending:
                self.close()
            if not rows:
                self._emit(header_md, table_row=True)
                return

            for row in rows:
                if len(row) != len(header):
                    logger.debug(
                        "Table at %d: row has %d cells, header has %d",
                        self.cursor,
                        len(row),
                        len(header),
                    )
                    return
                # one chunk per row, whatever its size
                self._emit(f"{header_md}\n{_table_row(row)}", table_row=True)
        finally:
            self.cursor = end + 1

    def _read_table(
        self, start: int, end: int
    ) -> tuple[list[str] | None, list[list[str]]]:
        """Collect header cells and body rows of the table in ``[start, end)``."""
        header: list[str] | None = None
        rows: list[list[str]] = []
        row: list[str] = []
        in_head = False

        for idx in range(start, end):
            kind = kind_of(self.tokens[idx])
            if kind is TokenKind.THEAD_OPEN:
                in_head = True
            elif kind is TokenKind.THEAD_CLOSE:
                in_head = False
            elif kind is TokenKind.TR_OPEN:
                row = []
            elif kind in (TokenKind.TH_OPEN, TokenKind.TD_OPEN):
                inline = self._inline_at(idx + 1, end)
                row.append(render_inline(inline).strip() if inline is not None else "")
            elif kind is TokenKind.TR_CLOSE:
                if in_head:
                    if header is None:
                        header = row
                else:
                    rows.append(row)
        return header, rows

    _HANDLERS = {
        TokenKind.HEADING_OPEN: _on_heading,
        TokenKind.PARAGRAPH_OPEN: _on_paragraph,
        TokenKind.BULLET_LIST_OPEN: _on_list,
        TokenKind.ORDERED_LIST_OPEN: _on_list,
        TokenKind.LIST_ITEM_OPEN: _on_list_item,
        TokenKind.BLOCKQUOTE_OPEN: _on_blockquote,
        TokenKind.TABLE_OPEN: _on_table,
    }

    # ------------------------------------------------------------------ #
    # Snippet accumulator                                                #
    # ------------------------------------------------------------------ #
    def join(self, fragment: str) -> None:
        """Append *fragment* to the pending snippet, closing it when full."""
        if not self.pending:
            self.pending = fragment
        elif len(self.pending) + 1 + len(fragment) >= self.chunk_size:
            self.close()
            self.pending = fragment
        else:
            self.pending = f"{self.pending}\n{fragment}"

    def close(self) -> None:
        """Turn the pending snippet into chunk(s) under the current header."""
        snippet, self.pending = self.pending, ""

        if not snippet:
            pieces: list[str] = []
        elif len(snippet) <= self.chunk_size + self.chunk_overlap:
            pieces = [snippet]
        else:
            logger.debug("Re-splitting %d-char snippet", len(snippet))
            pieces = [p for p in self.second_splitter.split_text(snippet) if p]

        if not pieces:
            # a section with only a heading still yields the heading
            if self.header_title and not self.header_emitted:
                self.chunks.append(self.header_title)
                self.header_emitted = True
            return

        for piece in pieces:
            self._emit(piece)

    def _emit(self, text: str, table_row: bool = False) -> None:
        if table_row:
            self.row_chunks.add(len(self.chunks))
        if self.header_title:
            text = f"{self.header_title}\n{text}"
        self.header_emitted = True
        self.chunks.append(text)


def _table_header(cells: list[str]) -> str:
    separator = "| " + " | ".join("---" for _ in cells) + " |"
    return f"{_table_row(cells)}\n{separator}"


def _table_row(cells: list[str]) -> str:
    return "| " + " | ".join(cells) + " |"


class MarkdownHeaderTextSplitter(TextSplitter):
    """Split Markdown into chunks that carry their section heading.

    Example::

        splitter = MarkdownHeaderTextSplitter(chunk_size=64, chunk_overlap=32)
        splitter.split_text("### H\\n\\n- a\\n- b\\n")
        # ['### H\\n- a', '### H\\n- b']

    Args:
        chunk_size: Soft maximum number of characters per chunk.
        chunk_overlap: Slack on top of ``chunk_size`` before a snippet is
            re-split; also passed to the default secondary splitter.
        second_splitter: Splitter for oversized snippets and for documents
            without any supported block. Defaults to a paragraph / line /
            word boundary splitter with the same budget.
        max_depth: Maximum list / blockquote nesting before
            :class:`MarkdownNestingError` is raised.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        second_splitter: TextSplitter | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        **kwargs: Any,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {chunk_size}")
        if chunk_overlap < 0:
            raise ValueError(f"chunk_overlap must be >= 0, got {chunk_overlap}")
        super().__init__(chunk_size=chunk_size, chunk_overlap=chunk_overlap, **kwargs)
        self._second_splitter = second_splitter or build_fallback_splitter(
            chunk_size, chunk_overlap
        )
        self._max_depth = max_depth

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, **kwargs: Any
    ) -> MarkdownHeaderTextSplitter:
        """Build a splitter from :class:`~mdchunk.core.config.Settings`."""
        settings = settings or get_settings()
        return cls(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            max_depth=settings.max_depth,
            **kwargs,
        )

    def split_text(self, text: str) -> list[str]:
        tokens = parse_markdown(text)
        context = _MarkdownContext(
            tokens,
            0,
            len(tokens),
            chunk_size=self._chunk_size,
            chunk_overlap=self._chunk_overlap,
            second_splitter=self._second_splitter,
            max_depth=self._max_depth,
        )
        chunks = context.split_text()

        if not chunks and text.strip():
            logger.debug("No supported blocks found, using secondary splitter")
            return self._second_splitter.split_text(text)
        return chunks
