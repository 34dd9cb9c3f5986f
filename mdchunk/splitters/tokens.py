"""Markdown token stream helpers used by the header-aware splitter.

The tokenizer itself is ``markdown-it-py``; this module only narrows its flat
block stream down to the handful of kinds the splitter understands and knows
how to find the close tag that matches an open tag.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from markdown_it import MarkdownIt
from markdown_it.token import Token

__all__ = [
    "CLOSE_TAGS",
    "TokenKind",
    "heading_level",
    "index_of_close_tag",
    "kind_of",
    "parse_markdown",
    "render_inline",
]


class TokenKind(str, Enum):
    """Block token kinds the splitter dispatches on (markdown-it type names)."""

    HEADING_OPEN = "heading_open"
    HEADING_CLOSE = "heading_close"
    INLINE = "inline"
    PARAGRAPH_OPEN = "paragraph_open"
    PARAGRAPH_CLOSE = "paragraph_close"
    BULLET_LIST_OPEN = "bullet_list_open"
    BULLET_LIST_CLOSE = "bullet_list_close"
    ORDERED_LIST_OPEN = "ordered_list_open"
    ORDERED_LIST_CLOSE = "ordered_list_close"
    LIST_ITEM_OPEN = "list_item_open"
    LIST_ITEM_CLOSE = "list_item_close"
    BLOCKQUOTE_OPEN = "blockquote_open"
    BLOCKQUOTE_CLOSE = "blockquote_close"
    TABLE_OPEN = "table_open"
    TABLE_CLOSE = "table_close"
    THEAD_OPEN = "thead_open"
    THEAD_CLOSE = "thead_close"
    TBODY_OPEN = "tbody_open"
    TBODY_CLOSE = "tbody_close"
    TR_OPEN = "tr_open"
    TR_CLOSE = "tr_close"
    TH_OPEN = "th_open"
    TH_CLOSE = "th_close"
    TD_OPEN = "td_open"
    TD_CLOSE = "td_close"
    OTHER = "other"


_KIND_BY_TYPE = {kind.value: kind for kind in TokenKind if kind is not TokenKind.OTHER}

# open kind -> matching close kind
CLOSE_TAGS: dict[TokenKind, TokenKind] = {
    TokenKind.HEADING_OPEN: TokenKind.HEADING_CLOSE,
    TokenKind.PARAGRAPH_OPEN: TokenKind.PARAGRAPH_CLOSE,
    TokenKind.BULLET_LIST_OPEN: TokenKind.BULLET_LIST_CLOSE,
    TokenKind.ORDERED_LIST_OPEN: TokenKind.ORDERED_LIST_CLOSE,
    TokenKind.LIST_ITEM_OPEN: TokenKind.LIST_ITEM_CLOSE,
    TokenKind.BLOCKQUOTE_OPEN: TokenKind.BLOCKQUOTE_CLOSE,
    TokenKind.TABLE_OPEN: TokenKind.TABLE_CLOSE,
    TokenKind.THEAD_OPEN: TokenKind.THEAD_CLOSE,
    TokenKind.TBODY_OPEN: TokenKind.TBODY_CLOSE,
    TokenKind.TR_OPEN: TokenKind.TR_CLOSE,
    TokenKind.TH_OPEN: TokenKind.TH_CLOSE,
    TokenKind.TD_OPEN: TokenKind.TD_CLOSE,
}

_parser = MarkdownIt("commonmark").enable("table")


def parse_markdown(text: str) -> list[Token]:
    """Tokenize *text* into markdown-it's flat block token stream."""
    return _parser.parse(text)


def kind_of(token: Token) -> TokenKind:
    return _KIND_BY_TYPE.get(token.type, TokenKind.OTHER)


def heading_level(token: Token) -> int:
    """``h3`` -> ``3``."""
    return int(token.tag[1:])


def _close_type(token: Token) -> str | None:
    kind = kind_of(token)
    if kind in CLOSE_TAGS:
        return CLOSE_TAGS[kind].value
    # Unknown containers (plugins, html wrappers) still come in open/close pairs
    if token.nesting == 1 and token.type.endswith("_open"):
        return token.type[: -len("_open")] + "_close"
    return None


def index_of_close_tag(tokens: Sequence[Token], start: int, end: int | None = None) -> int:
    """Return the index of the token closing ``tokens[start]``.

    Same-kind nesting is counted, so a bullet list inside a bullet list
    resolves to the outer list's close. Tokens that do not open a region
    (fences, rules, html blocks) close themselves and ``start`` is returned.
    If no close tag exists before *end*, the last index of the range is
    returned so callers never step past their bound.
    """
    end = len(tokens) if end is None else end
    close_type = _close_type(tokens[start])
    if close_type is None:
        return start

    open_type = tokens[start].type
    depth = 0
    for idx in range(start + 1, end):
        current = tokens[idx].type
        if current == open_type:
            depth += 1
        elif current == close_type:
            if depth == 0:
                return idx
            depth -= 1
    return end - 1


def render_inline(token: Token) -> str:
    """Render an inline run as retrieval text.

    A run that is exactly one link becomes ``[text](href)``, a run starting
    with an image renders as nothing, anything else is the literal source.
    """
    children = token.children or []
    if children:
        first = children[0]
        if first.type == "link_open" and len(children) == 3:
            return f"[{children[1].content}]({first.attrGet('href') or ''})"
        if first.type == "image":
            return ""
    return token.content
