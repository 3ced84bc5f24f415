"""
schema_parser.py — Atlas
Parses Prisma-style schema text into a SchemaModel.

Supported input
---------------
    datasource db { ... }
    generator client { ... }

    model Post {
      id       String @id @default(cuid())
      author   User   @relation(fields: [authorId], references: [id])
      authorId String
      @@index([authorId])
    }

    enum Role { ... }

Parsing is line oriented and deliberately forgiving: lines that do not
look like a block opener, a field or a ``@@`` option are skipped, and an
unterminated block simply runs to the end of the text. Only the four
block kinds above are recognised; anything else is ignored.

Copyright 2026 Common Gene Labs. All rights reserved.
Original concept by Dr. Amelia Miramonti, PhD.
"""

from __future__ import annotations

from enum import Enum

from atlas_config import get_logger
from schema_model import (
    BLOCK_KINDS,
    Block,
    Entity,
    Field,
    SchemaModel,
    resolve_relations,
    summarize,
)

logger = get_logger(__name__)


# ─── Constants ───────────────────────────────────────────────────────────────

OPTION_PREFIX  = "@@"
COMMENT_PREFIX = "//"
QUOTES         = ("'", '"')


def _is_word_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def _read_word(text: str, pos: int) -> int:
    """Index just past the run of word characters starting at ``pos``."""
    while pos < len(text) and _is_word_char(text[pos]):
        pos += 1
    return pos


def _skip_space(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def normalize_newlines(raw: str) -> str:
    return raw.replace("\r\n", "\n")


# ─── Text sanitizer ──────────────────────────────────────────────────────────

def strip_inline_comment(line: str) -> str:
    """
    Drop a trailing ``//`` comment unless it sits inside a quoted string.

    Quote state is tracked within the line only. A quote preceded by a
    backslash does not open or close a string, and a string is closed
    only by the quote character that opened it. Trailing whitespace is
    trimmed only when a comment was actually removed.
    """
    quote: str | None = None
    for i in range(len(line) - 1):
        ch = line[i]
        if ch in QUOTES and (i == 0 or line[i - 1] != "\\"):
            if quote is None:
                quote = ch
            elif quote == ch:
                quote = None
        if quote is None and ch == "/" and line[i + 1] == "/":
            return line[:i].rstrip()
    return line


# ─── Block extractor ─────────────────────────────────────────────────────────

class _ScanState(Enum):
    OUTSIDE_BLOCK = "outside"
    INSIDE_BLOCK  = "inside"


def match_block_open(line: str) -> tuple[str, str, str] | None:
    """
    Recognise ``<kind> <name> {`` at the start of a sanitized line.

    Returns
    -------
    (kind, name, rest) where ``rest`` is the text after the opening
    brace, or None when the line is not a block opener.
    """
    text = line.strip()
    end  = _read_word(text, 0)
    kind = text[:end]
    if kind not in BLOCK_KINDS:
        return None

    pos = _skip_space(text, end)
    if pos == end:
        return None
    name_end = _read_word(text, pos)
    if name_end == pos:
        return None

    brace = _skip_space(text, name_end)
    if brace >= len(text) or text[brace] != "{":
        return None
    return kind, text[pos:name_end], text[brace + 1:]


def _brace_delta(line: str) -> int:
    clean = strip_inline_comment(line)
    return clean.count("{") - clean.count("}")


def _inline_tokens(text: str) -> list[str]:
    """Whitespace-separated tokens; brackets and quotes keep a token whole."""
    tokens: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None

    for ch in text:
        if quote is not None:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch.isspace() and depth == 0:
            if current:
                tokens.append("".join(current))
                current = []
            continue
        if ch in QUOTES:
            quote = ch
        elif ch in "([":
            depth += 1
        elif ch in ")]" and depth > 0:
            depth -= 1
        current.append(ch)

    if current:
        tokens.append("".join(current))
    return tokens


def split_inline_fields(text: str) -> list[str]:
    """
    Break the body of a one-line model into one line per declaration.

    'id String @id b B?' → ['id String @id', 'b B?']. A declaration is a
    name, a type and any ``@`` attributes after it; ``@@`` options stand
    on their own.
    """
    lines: list[str] = []
    group: list[str] = []

    for tok in _inline_tokens(text):
        if tok.startswith(OPTION_PREFIX):
            if group:
                lines.append(" ".join(group))
            lines.append(tok)
            group = []
        elif tok.startswith("@") or len(group) < 2:
            group.append(tok)
        else:
            lines.append(" ".join(group))
            group = [tok]

    if group:
        lines.append(" ".join(group))
    return lines


def _inline_body(kind: str, inner: str) -> tuple[str, ...]:
    if not inner.strip():
        return ()
    if kind == "model":
        return tuple(split_inline_fields(inner))
    return (inner,)


def extract_blocks(text: str) -> list[Block]:
    """
    Split schema text into top-level blocks.

    Depth counting starts at 1 on the opener and counts every brace on
    the following lines (comments excluded) until it returns to zero.
    Body lines are kept verbatim; the closing line is not part of the
    body. Braces after ``{`` on the opener line count too, so a block
    opened and closed on one line does not swallow what follows; the
    declarations of a one-line model are split into one body line each.
    """
    lines  = normalize_newlines(text).split("\n")
    blocks: list[Block] = []

    state = _ScanState.OUTSIDE_BLOCK
    kind  = name = ""
    body: list[str] = []
    depth = 0

    for line in lines:
        if state is _ScanState.OUTSIDE_BLOCK:
            opened = match_block_open(strip_inline_comment(line))
            if opened is None:
                continue
            kind, name, rest = opened
            depth = 1 + rest.count("{") - rest.count("}")
            if depth <= 0:
                blocks.append(Block(kind, name, _inline_body(kind, rest[:rest.rfind("}")])))
                continue
            body  = [rest] if rest.strip() else []
            state = _ScanState.INSIDE_BLOCK
            continue

        depth += _brace_delta(line)
        if depth <= 0:
            blocks.append(Block(kind, name, tuple(body)))
            state = _ScanState.OUTSIDE_BLOCK
            continue
        body.append(line)

    if state is _ScanState.INSIDE_BLOCK:
        logger.debug("Unterminated %s %s consumed to end of input", kind, name)
        blocks.append(Block(kind, name, tuple(body)))

    return blocks


# ─── Body parser ─────────────────────────────────────────────────────────────

class _AttrState(Enum):
    SCANNING       = "scanning"
    ATTRIBUTE_NAME = "name"
    ATTRIBUTE_ARGS = "args"


def scan_attributes(tail: str) -> list[str]:
    """
    Collect ``@name`` and ``@name(args)`` tokens from the text after a
    field's type.

    Arguments run to the first ``)``; nested parentheses are not
    balanced. An opening ``(`` with no ``)`` after it is left out and
    the attribute is captured by name only.
    """
    attrs: list[str] = []
    state = _AttrState.SCANNING
    start = pos = 0

    while pos < len(tail):
        if state is _AttrState.SCANNING:
            if tail[pos] == "@" and pos + 1 < len(tail) and _is_word_char(tail[pos + 1]):
                start = pos
                state = _AttrState.ATTRIBUTE_NAME
            pos += 1
            continue

        if state is _AttrState.ATTRIBUTE_NAME:
            pos = _read_word(tail, pos)
            if pos < len(tail) and tail[pos] == "(" and ")" in tail[pos:]:
                state = _AttrState.ATTRIBUTE_ARGS
                continue
            attrs.append(tail[start:pos])
            state = _AttrState.SCANNING
            continue

        # ATTRIBUTE_ARGS
        pos = tail.index(")", pos) + 1
        attrs.append(tail[start:pos])
        state = _AttrState.SCANNING

    return attrs


def match_field(line: str) -> Field | None:
    """'title String @unique' → Field(name='title', type='String', ...)"""
    name_end = _read_word(line, 0)
    if name_end == 0:
        return None
    type_start = _skip_space(line, name_end)
    if type_start == name_end or type_start >= len(line):
        return None
    type_end = type_start
    while type_end < len(line) and not line[type_end].isspace():
        type_end += 1

    return Field(
        name       = line[:name_end],
        type       = line[type_start:type_end],
        attributes = tuple(scan_attributes(line[type_end:])),
        raw        = line,
    )


def parse_block_body(lines: list[str] | tuple[str, ...]) -> tuple[list[Field], list[str]]:
    """
    Extract fields and ``@@`` options from a block's interior lines.

    Returns
    -------
    fields  : list[Field]  — unclassified (``is_relation`` is False)
    options : list[str]    — raw option lines
    """
    fields:  list[Field] = []
    options: list[str]   = []

    for raw in lines:
        line = strip_inline_comment(raw).strip()
        if not line:
            continue
        if line.startswith(OPTION_PREFIX):
            options.append(line)
            continue
        if line.startswith(COMMENT_PREFIX):
            continue
        parsed = match_field(line)
        if parsed is not None:
            fields.append(parsed)

    return fields, options


# ─── Parser facade ───────────────────────────────────────────────────────────

class SchemaParser:
    """
    Turns raw schema text into a SchemaModel.

    Usage
    -----
        model = SchemaParser().parse(text)
        model.info.models, model.entity("Post").relations

    The parser is stateless and safe to reuse across calls.
    """

    def parse(self, raw: str) -> SchemaModel:
        """
        Parse a schema string.

        Parameters
        ----------
        raw : str — file content, ``\\n`` or ``\\r\\n`` line endings
        """
        text   = normalize_newlines(raw)
        blocks = extract_blocks(text)
        drafts = [self._draft_entity(b) for b in blocks if b.kind == "model"]
        entities = resolve_relations(drafts)
        info = summarize(blocks, entities, line_count=len(text.split("\n")))

        logger.debug(
            "Parsed %d block(s), %d model(s), %d relation(s)",
            len(blocks), info.models, info.total_relations,
        )
        return SchemaModel(raw=raw, blocks=tuple(blocks), entities=tuple(entities), info=info)

    # ── Internal ──────────────────────────────────────────────────────────

    @staticmethod
    def _draft_entity(block: Block) -> Entity:
        fields, options = parse_block_body(block.body)
        return Entity(name=block.name, fields=tuple(fields), options=tuple(options), kind=block.kind)
