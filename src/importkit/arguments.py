"""Argument Parser (C2) — Split and classify call-argument text.

Splits an argument list at top-level commas and classifies every segment
into a ``ParsedElement``: object literal, type assertion, array literal,
arrow function, call, generic, or leaf (in that precedence order).  The
parse is syntax-level and best-effort: anything it cannot classify is
returned verbatim as a ``Leaf``.

Also finds ``export const Name = factory(...)`` statements in a source file
and parses their argument lists.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from importkit.scanner import Scanner, ScanMode, SourceRange, strip_comments

logger = logging.getLogger(__name__)

# ── Element types ──


@dataclass
class Leaf:
    """Verbatim text that is not further structured."""

    text: str


@dataclass
class ArrayLiteral:
    items: list["ParsedElement"] = field(default_factory=list)


@dataclass
class Call:
    name: str
    args: list["ParsedElement"] = field(default_factory=list)


@dataclass
class Generic:
    """A generic reference ``Name<T, ...>``, optionally invoked.

    ``call_args is None`` marks a bare type reference (type position).
    ``call_args == []`` marks a value-position generic: a standalone
    reference when ``invoked`` is false, ``Name<T>()`` when it is true.
    """

    name: str
    type_args: list["ParsedElement"] = field(default_factory=list)
    call_args: Optional[list["ParsedElement"]] = None
    invoked: bool = False


@dataclass
class ArrowTypes:
    param_types: list[Optional[str]] = field(default_factory=list)
    return_type: str = ""


@dataclass
class ArrowFn:
    params: list["ParsedElement"] = field(default_factory=list)
    types: Optional[ArrowTypes] = None
    body: "ParsedElement" = field(default_factory=lambda: Leaf(""))
    is_async: bool = False


@dataclass
class ObjectLiteral:
    """Object literal; keys keep their source spelling, values are parsed."""

    properties: dict[str, "ParsedElement"] = field(default_factory=dict)


@dataclass
class TypeAssertion:
    """``expression as target_type``."""

    target_type: str
    expression: "ParsedElement"


ParsedElement = Union[
    Leaf, ArrayLiteral, Call, Generic, ArrowFn, ObjectLiteral, TypeAssertion
]


@dataclass
class FactoryCall:
    """An ``export const export_name = function_name(...)`` statement."""

    export_name: str
    function_name: str
    arguments: list[ParsedElement] = field(default_factory=list)
    source_range: SourceRange = field(default_factory=lambda: SourceRange(0, 0))


# ── Constants ──

_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][\w$]*")
_IDENTIFIER_PATH_RE = re.compile(r"[A-Za-z_$][\w$]*(?:\s*\.\s*[A-Za-z_$][\w$]*)*")
_ASYNC_RE = re.compile(r"async(?:\s*(?=\()|\s+(?=[A-Za-z_$]))")
_EXPORT_FACTORY_RE = re.compile(r"export\s+const\s+(\w+)\s*=\s*(\w+)\s*\(")

_OPENERS = {"(": ")", "{": "}", "[": "]"}


# ── Bracket helpers ──


def _iter_top_level(text: str):
    """Yield ``(index, char, at_top_level)`` for every code character.

    Depth counts ``()``, ``{}``, ``[]`` and ``<>``.  A ``>`` preceded by
    ``=`` is an arrow, and ``<=``/``>=`` are comparisons; none of them move
    the angle depth, which never goes below zero.
    """
    depth = 0
    angle = 0
    prev = ""
    for i, ch, mode in Scanner().iter_chars(text):
        if mode is not ScanMode.CODE:
            prev = ""
            continue
        nxt = text[i + 1] if i + 1 < len(text) else ""
        yield i, ch, depth == 0 and angle == 0
        if ch in "({[":
            depth += 1
        elif ch in ")}]":
            depth = max(depth - 1, 0)
        elif ch == "<" and nxt != "=":
            angle += 1
        elif ch == ">" and prev != "=" and nxt != "=" and angle > 0:
            angle -= 1
        prev = ch


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split ``text`` at top-level ``separator`` characters.

    Segments are stripped and empty ones (trailing separators) dropped.
    """
    parts: list[str] = []
    start = 0
    for i, ch, top in _iter_top_level(text):
        if top and ch == separator:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return [part.strip() for part in parts if part.strip()]


def _find_top_level(text: str, token: str) -> int:
    for i, _, top in _iter_top_level(text):
        if top and text.startswith(token, i):
            return i
    return -1


def _find_closing(text: str, start: int) -> int:
    """Index of the bracket closing the one at ``text[start]``, or -1."""
    opener = text[start]
    closer = _OPENERS[opener]
    depth = 0
    for i, ch, mode in Scanner().iter_chars(text[start:]):
        if mode is not ScanMode.CODE:
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return start + i
    return -1


def _find_closing_angle(text: str, start: int) -> int:
    depth = 0
    prev = ""
    for i, ch, mode in Scanner().iter_chars(text[start:]):
        if mode is not ScanMode.CODE:
            prev = ""
            continue
        if ch == "<":
            depth += 1
        elif ch == ">" and prev != "=":
            depth -= 1
            if depth == 0:
                return start + i
        prev = ch
    return -1


def _is_wrapped(text: str, opener: str) -> bool:
    return text.startswith(opener) and _find_closing(text, 0) == len(text) - 1


# ── Classification ──


def parse_arguments(text: str) -> list[ParsedElement]:
    """Parse the text between a call's parentheses into elements."""
    return [_parse_segment(segment) for segment in split_top_level(strip_comments(text))]


def parse_element(text: str) -> ParsedElement:
    """Parse a single expression (no top-level splitting)."""
    return _parse_segment(strip_comments(text).strip())


def _parse_segment(text: str, type_context: bool = False) -> ParsedElement:
    text = text.strip()

    if _is_wrapped(text, "{"):
        return _parse_object(text, type_context)

    as_index = _find_top_level(text, " as ")
    if as_index >= 0:
        return TypeAssertion(
            target_type=text[as_index + 4 :].strip(),
            expression=_parse_segment(text[:as_index]),
        )

    if _is_wrapped(text, "["):
        return ArrayLiteral(
            items=[_parse_segment(item, type_context) for item in split_top_level(text[1:-1])]
        )

    if _find_top_level(text, "=>") >= 0:
        return _parse_arrow(text)

    if _find_top_level(text, "(") >= 0 or _find_top_level(text, "<") >= 0:
        return _parse_call_or_generic(text, type_context)

    return Leaf(text)


def _parse_object(text: str, type_context: bool) -> ObjectLiteral:
    properties: dict[str, ParsedElement] = {}
    for entry in split_top_level(text[1:-1]):
        colon = _find_top_level(entry, ":")
        if colon < 0:
            # Shorthand, spread or method entry
            properties[entry] = Leaf(entry)
            continue
        key = entry[:colon].strip()
        properties[key] = _parse_segment(entry[colon + 1 :], type_context)
    return ObjectLiteral(properties=properties)


def _parse_arrow(text: str) -> ParsedElement:
    arrow = _find_top_level(text, "=>")
    head = text[:arrow].strip()
    body_text = text[arrow + 2 :].strip()

    is_async = False
    match = _ASYNC_RE.match(head)
    if match:
        is_async = True
        head = head[match.end() :].strip()

    types: Optional[ArrowTypes] = None
    if head.startswith("("):
        close = _find_closing(head, 0)
        if close < 0:
            return Leaf(text)
        raw_params = split_top_level(head[1:close])
        rest = head[close + 1 :].strip()
        if rest.startswith(":"):
            names: list[str] = []
            param_types: list[Optional[str]] = []
            for raw in raw_params:
                colon = _find_top_level(raw, ":")
                if colon >= 0:
                    names.append(raw[:colon].strip())
                    param_types.append(raw[colon + 1 :].strip())
                else:
                    names.append(raw)
                    param_types.append(None)
            params: list[ParsedElement] = [Leaf(name) for name in names]
            types = ArrowTypes(param_types=param_types, return_type=rest[1:].strip())
        elif rest:
            return Leaf(text)
        else:
            params = [_parse_segment(raw) for raw in raw_params]
    elif _IDENTIFIER_RE.fullmatch(head):
        params = [Leaf(head)]
    else:
        return Leaf(text)

    # Block bodies are kept verbatim
    body = Leaf(body_text) if body_text.startswith("{") else _parse_segment(body_text)
    return ArrowFn(params=params, types=types, body=body, is_async=is_async)


def _parse_call_or_generic(text: str, type_context: bool) -> ParsedElement:
    paren = _find_top_level(text, "(")
    angle = _find_top_level(text, "<")
    if angle >= 0 and (paren < 0 or angle < paren):
        return _parse_generic(text, angle, type_context)

    name = text[:paren].strip()
    if not _IDENTIFIER_PATH_RE.fullmatch(name):
        return Leaf(text)
    close = _find_closing(text, paren)
    if close < 0:
        return Leaf(text)
    if text[close + 1 :].strip():
        # Chained call, property access or non-null assertion: a.b().c, f()[0], f()!
        return Leaf(text)
    return Call(name=name, args=parse_arguments(text[paren + 1 : close]))


def _parse_generic(text: str, angle: int, type_context: bool) -> ParsedElement:
    name = text[:angle].strip()
    if not _IDENTIFIER_PATH_RE.fullmatch(name):
        return Leaf(text)
    close = _find_closing_angle(text, angle)
    if close < 0:
        return Leaf(text)

    type_args = [
        _parse_segment(arg, type_context=True)
        for arg in split_top_level(text[angle + 1 : close])
    ]
    rest = text[close + 1 :].strip()
    if not rest:
        return Generic(
            name=name, type_args=type_args, call_args=None if type_context else []
        )
    if rest.startswith("(") and _find_closing(rest, 0) == len(rest) - 1:
        return Generic(
            name=name,
            type_args=type_args,
            call_args=parse_arguments(rest[1:-1]),
            invoked=True,
        )
    # Comparison expression such as a < b && c > d
    return Leaf(text)


# ── Factory call discovery ──


def parse_file_exports(source: str) -> dict[str, FactoryCall]:
    """Find ``export const Name = factory(...)`` statements in ``source``.

    Statements inside comments or strings are ignored.  Returns a mapping of
    export name to the parsed call, in source order.
    """
    found: dict[str, FactoryCall] = {}

    def on_code(i: int) -> Optional[int]:
        if not source.startswith("export", i):
            return None
        if i > 0 and (source[i - 1].isalnum() or source[i - 1] in "_$."):
            return None
        match = _EXPORT_FACTORY_RE.match(source, i)
        if match is None:
            return None
        paren = match.end() - 1
        close = _find_closing(source, paren)
        if close < 0:
            logger.debug("Unclosed factory call for export %s", match.group(1))
            return match.end()
        found[match.group(1)] = FactoryCall(
            export_name=match.group(1),
            function_name=match.group(2),
            arguments=parse_arguments(source[paren + 1 : close]),
            source_range=SourceRange(match.start(), close + 1),
        )
        return close + 1

    Scanner().scan(source, on_code)
    return found
