"""Source Scanner (C1) — Code / comment / string mode tracking.

Character-level state machine shared by every parser in the package. It
knows where code ends and comments or string literals begin, so that the
parsers built on top of it never match text inside a comment or a string.

Unterminated strings and comments at end of input are accepted silently.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Optional, Sequence


class ScanMode(Enum):
    CODE = "code"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"
    STRING = "string"
    TEMPLATE = "template"


COMMENT_MODES = frozenset({ScanMode.LINE_COMMENT, ScanMode.BLOCK_COMMENT})


@dataclass(frozen=True)
class SourceRange:
    """Half-open character range ``[start, end)`` within a source text."""

    start: int
    end: int

    def as_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


class Scanner:
    """Tracks the lexical mode while walking a source text.

    ``line_comments`` controls whether ``//`` opens a comment.  CSS turns it
    off because ``//`` is a valid part of a URL there.
    """

    def __init__(self, line_comments: bool = True):
        self.line_comments = line_comments
        self.mode = ScanMode.CODE
        self.quote: Optional[str] = None

    def step(self, text: str, i: int) -> tuple[ScanMode, int]:
        """Consume the unit starting at ``i``.

        Returns the mode the unit belongs to and its width in characters.
        Comment and string delimiters belong to the comment or string they
        open or close; the newline ending a line comment belongs to code.
        """
        ch = text[i]
        nxt = text[i + 1] if i + 1 < len(text) else ""
        mode = self.mode

        if mode is ScanMode.CODE:
            if ch == "/" and nxt == "/" and self.line_comments:
                self.mode = ScanMode.LINE_COMMENT
                return ScanMode.LINE_COMMENT, 2
            if ch == "/" and nxt == "*":
                self.mode = ScanMode.BLOCK_COMMENT
                return ScanMode.BLOCK_COMMENT, 2
            if ch == "'" or ch == '"':
                self.mode = ScanMode.STRING
                self.quote = ch
                return ScanMode.STRING, 1
            if ch == "`":
                self.mode = ScanMode.TEMPLATE
                return ScanMode.TEMPLATE, 1
            return ScanMode.CODE, 1

        if mode is ScanMode.LINE_COMMENT:
            if ch == "\n":
                self.mode = ScanMode.CODE
                return ScanMode.CODE, 1
            return ScanMode.LINE_COMMENT, 1

        if mode is ScanMode.BLOCK_COMMENT:
            if ch == "*" and nxt == "/":
                self.mode = ScanMode.CODE
                return ScanMode.BLOCK_COMMENT, 2
            return ScanMode.BLOCK_COMMENT, 1

        # Quoted or template string
        if ch == "\\":
            return mode, 2 if nxt else 1
        if (mode is ScanMode.STRING and ch == self.quote) or (
            mode is ScanMode.TEMPLATE and ch == "`"
        ):
            self.mode = ScanMode.CODE
            self.quote = None
        return mode, 1

    def iter_chars(self, text: str) -> Iterator[tuple[int, str, ScanMode]]:
        """Yield ``(index, char, mode)`` for every character of ``text``."""
        i = 0
        n = len(text)
        while i < n:
            mode, width = self.step(text, i)
            for j in range(i, min(i + width, n)):
                yield j, text[j], mode
            i += width

    def scan(
        self,
        text: str,
        on_code: Callable[[int], Optional[int]],
    ) -> ScanMode:
        """Walk ``text``, calling ``on_code(i)`` at every code position.

        The callback returns the position to continue from when it consumed
        a construct, or ``None`` to advance by one unit.  Returns the mode the
        scanner ended in.
        """
        i = 0
        n = len(text)
        while i < n:
            mode, width = self.step(text, i)
            if mode is ScanMode.CODE:
                resume = on_code(i)
                if resume is not None and resume > i:
                    i = resume
                    continue
            i += width
        return self.mode


def strip_comments(text: str, line_comments: bool = True) -> str:
    """Remove comments from ``text``, leaving strings untouched."""
    scanner = Scanner(line_comments=line_comments)
    return "".join(
        ch for _, ch, mode in scanner.iter_chars(text) if mode not in COMMENT_MODES
    )


# ── Comment processing ──

# Tool directives that carry no meaning for a reader of the code
IGNORE_COMMENT_PREFIXES = (
    "prettier-ignore",
    "eslint-disable",
    "@ts-ignore",
    "@ts-expect-error",
    "@ts-nocheck",
)


@dataclass
class ProcessedComments:
    """Result of ``process_comments``.

    ``comments`` maps a zero-based line of ``code`` to the collected comment
    texts that started on it.  ``stripped`` is False when no comment matched
    a removal prefix, in which case ``code`` is the input unchanged.
    """

    code: str
    comments: dict[int, list[str]] = field(default_factory=dict)
    stripped: bool = False


def comment_spans(text: str, line_comments: bool = True) -> list[SourceRange]:
    """Ranges of every comment in ``text``, delimiters included.

    A line comment's range stops before its terminating newline.
    """
    spans = []
    scanner = Scanner(line_comments=line_comments)
    start: Optional[int] = None
    i = 0
    n = len(text)
    while i < n:
        before = scanner.mode
        mode, width = scanner.step(text, i)
        if before is ScanMode.CODE and mode in COMMENT_MODES:
            start = i
        if start is not None and scanner.mode is ScanMode.CODE:
            end = i + width if mode is ScanMode.BLOCK_COMMENT else i
            spans.append(SourceRange(start, end))
            start = None
        i += width
    if start is not None:
        spans.append(SourceRange(start, n))
    return spans


def _comment_body(comment: str) -> str:
    if comment.startswith("//"):
        return comment[2:]
    body = comment[2:]
    return body[:-2] if body.endswith("*/") else body


def _has_prefix(comment: str, prefixes: Optional[Sequence[str]]) -> bool:
    if not prefixes:
        return False
    body = _comment_body(comment).strip()
    return any(body.startswith(prefix) for prefix in prefixes)


def _comment_lines(comment: str) -> list[str]:
    body = _comment_body(comment)
    if comment.startswith("//"):
        return [body.strip()]
    return [line.strip() for line in body.split("\n") if line.strip()]


def process_comments(
    text: str,
    remove_prefixes: Optional[Sequence[str]] = None,
    notable_prefixes: Optional[Sequence[str]] = None,
    line_comments: bool = True,
) -> ProcessedComments:
    """Strip and collect comments by prefix.

    Comments whose text starts with one of ``remove_prefixes`` are removed.
    A line left holding nothing but such a comment is removed with its
    newline; an inline comment takes the whitespace before it along.  A JSX
    comment ``{/* ... */}`` is removed together with its braces.

    Comments matching ``notable_prefixes`` are collected whether or not they
    are removed.  Without ``notable_prefixes`` every removed comment is
    collected.
    """
    pieces: list[str] = []
    comments: dict[int, list[str]] = {}
    stripped = False
    line = 0
    cursor = 0
    n = len(text)

    def emit(chunk: str) -> None:
        nonlocal line
        pieces.append(chunk)
        line += chunk.count("\n")

    for span in comment_spans(text, line_comments):
        if span.start < cursor:
            continue
        comment = text[span.start : span.end]
        remove = _has_prefix(comment, remove_prefixes)
        if _has_prefix(comment, notable_prefixes) or (remove and notable_prefixes is None):
            start_line = line + text.count("\n", cursor, span.start)
            comments.setdefault(start_line, []).extend(_comment_lines(comment))
        if not remove:
            continue
        stripped = True

        line_start = text.rfind("\n", 0, span.start) + 1
        line_end = text.find("\n", span.end)
        if line_end < 0:
            line_end = n
        before = text[line_start : span.start]
        after = text[span.end : line_end]
        start, end = span.start, span.end
        if before.rstrip().endswith("{") and after.lstrip().startswith("}"):
            before = before.rstrip()[:-1]
            after = after.lstrip()[1:]
            start = line_start + len(before)
            end = line_end - len(after)

        if not before.strip() and not after.strip():
            emit(text[cursor : max(cursor, line_start)])
            cursor = min(line_end + 1, n)
        else:
            emit(text[cursor:start].rstrip(" \t"))
            cursor = end

    if not stripped:
        return ProcessedComments(text, comments)
    emit(text[cursor:])
    return ProcessedComments("".join(pieces), comments, stripped=True)
