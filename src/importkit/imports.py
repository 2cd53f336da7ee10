"""Import Declaration Parser (C4) — Script and style-sheet import scanning.

Finds ``import``/``export ... from`` declarations in JavaScript/TypeScript
sources and ``@import`` rules in CSS, classifies each specifier as relative
or external, and extracts the bound names.  Detection runs on top of the
source scanner, so declarations inside comments and strings never match.

Dynamic ``import(...)`` calls and ``import.meta`` are not declarations.
"""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence
from urllib.parse import unquote, urlparse

from importkit.scanner import (
    Scanner,
    ScanMode,
    SourceRange,
    process_comments,
    strip_comments,
)

logger = logging.getLogger(__name__)

# ── Data types ──


class BindingKind(Enum):
    DEFAULT = "default"
    NAMED = "named"
    NAMESPACE = "namespace"


@dataclass
class ImportBinding:
    """One name bound by an import declaration."""

    name: str
    kind: BindingKind
    alias: Optional[str] = None
    is_type: bool = False

    @property
    def key(self) -> tuple:
        return (self.name, self.kind, self.alias)

    def as_dict(self) -> dict:
        result = {"name": self.name, "type": self.kind.value}
        if self.alias:
            result["alias"] = self.alias
        if self.is_type:
            result["isType"] = True
        return result


@dataclass
class ImportRecord:
    """Every occurrence of one module specifier within a source file."""

    specifier: str
    bindings: list[ImportBinding] = field(default_factory=list)
    positions: list[SourceRange] = field(default_factory=list)
    path: Optional[str] = None
    resolved_path: Optional[str] = None
    resolved_type_path: Optional[str] = None
    include_type_defs: bool = False

    def add_binding(self, binding: ImportBinding) -> None:
        """Add ``binding`` unless an equivalent one is already present.

        A runtime binding supersedes a type-only one with the same key.
        """
        for existing in self.bindings:
            if existing.key == binding.key:
                if existing.is_type and not binding.is_type:
                    existing.is_type = False
                return
        self.bindings.append(binding)

    def as_dict(self) -> dict:
        result: dict = {
            "names": [binding.as_dict() for binding in self.bindings],
            "positions": [position.as_dict() for position in self.positions],
        }
        if self.path is not None:
            result["path"] = self.path
        if self.resolved_path is not None:
            result["resolvedPath"] = self.resolved_path
        if self.resolved_type_path is not None:
            result["resolvedTypePath"] = self.resolved_type_path
        if self.include_type_defs:
            result["includeTypeDefs"] = True
        return result


@dataclass
class ImportsResult:
    """Relative and external imports of one file, keyed by specifier.

    ``code`` is set only when comments were stripped; positions then refer
    to it rather than to the input.  ``comments`` maps a zero-based line of
    the output code to the comments collected on it.
    """

    relative: dict[str, ImportRecord] = field(default_factory=dict)
    externals: dict[str, ImportRecord] = field(default_factory=dict)
    code: Optional[str] = None
    comments: dict[int, list[str]] = field(default_factory=dict)

    def records(self) -> list[ImportRecord]:
        return list(self.relative.values()) + list(self.externals.values())

    def as_dict(self) -> dict:
        result: dict = {
            "relative": {k: v.as_dict() for k, v in self.relative.items()},
            "externals": {k: v.as_dict() for k, v in self.externals.items()},
        }
        if self.code is not None:
            result["code"] = self.code
        if self.comments:
            result["comments"] = {str(k): v for k, v in self.comments.items()}
        return result


# ── Constants ──

_IDENTIFIER = r"[A-Za-z_$][\w$]*"
_TYPE_PREFIX_RE = re.compile(r"type\b\s*(?=[{*A-Za-z_$])")
_NAMESPACE_RE = re.compile(rf"\*\s*as\s+({_IDENTIFIER})")
_NAMED_TYPE_RE = re.compile(rf"type\s+({_IDENTIFIER})(?:\s+as\s+({_IDENTIFIER}))?$")
_NAMED_RE = re.compile(rf"({_IDENTIFIER})(?:\s+as\s+({_IDENTIFIER}))?$")
_EXPORT_FROM_START_RE = re.compile(r"export\s+(?:type\s+)?[{*]")
_EXTERNAL_CSS_RE = re.compile(r"(?:https?:)?//")


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../")


def _normalize_file_path(file_path: str) -> str:
    if file_path.startswith("file://"):
        return unquote(urlparse(file_path).path)
    return file_path


def _is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _is_keyword_at(code: str, i: int, keyword: str) -> bool:
    if not code.startswith(keyword, i):
        return False
    if i > 0 and (_is_identifier_char(code[i - 1]) or code[i - 1] == "."):
        return False
    end = i + len(keyword)
    return end >= len(code) or not _is_identifier_char(code[end])


def _skip_whitespace(code: str, i: int) -> int:
    while i < len(code) and code[i].isspace():
        i += 1
    return i


def _read_quoted(code: str, start: int) -> Optional[tuple[str, int]]:
    """Read the string literal opening at ``start`` on a single line.

    Returns ``(value, end)`` with ``end`` just past the closing quote, or
    None when the literal is not closed before the end of the line.
    """
    quote = code[start]
    i = start + 1
    chars: list[str] = []
    while i < len(code) and code[i] != quote:
        if code[i] == "\n":
            return None
        if code[i] == "\\" and i + 1 < len(code):
            chars.append(code[i + 1])
            i += 2
            continue
        chars.append(code[i])
        i += 1
    if i >= len(code):
        return None
    return "".join(chars), i + 1


# ── Result building ──


def _add_import(
    result: ImportsResult,
    specifier: str,
    relative: bool,
    file_dir: str,
    position: SourceRange,
    bindings: list[ImportBinding],
    include_type_defs: bool = False,
    join_specifier: Optional[str] = None,
) -> None:
    if relative:
        record = result.relative.get(specifier)
        if record is None:
            path = posixpath.normpath(posixpath.join(file_dir, join_specifier or specifier))
            record = result.relative[specifier] = ImportRecord(specifier, path=path)
        if include_type_defs:
            record.include_type_defs = True
    else:
        record = result.externals.get(specifier)
        if record is None:
            record = result.externals[specifier] = ImportRecord(specifier)
    for binding in bindings:
        record.add_binding(binding)
    record.positions.append(position)


# ── Script imports ──


def _find_from_clause(code: str, start: int) -> Optional[tuple[int, int]]:
    """Locate ``from '<path>'`` ending the declaration that begins at ``start``.

    Returns ``(from_index, quote_index)`` or None when the declaration ends
    (``;`` or a new top-level statement keyword) without one.
    """
    depth = 0
    scanner = Scanner()
    i = start
    n = len(code)
    while i < n:
        mode, width = scanner.step(code, i)
        if mode is ScanMode.CODE:
            ch = code[i]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
            elif ch == ";" and depth <= 0:
                return None
            elif depth <= 0 and _is_keyword_at(code, i, "from"):
                quote = _skip_whitespace(code, i + 4)
                if quote < n and code[quote] in "'\"":
                    return i, quote
            elif depth <= 0 and (
                _is_keyword_at(code, i, "import") or _is_keyword_at(code, i, "export")
            ):
                return None
        i += width
    return None


def _parse_named_bindings(text: str, is_type: bool) -> list[ImportBinding]:
    bindings = []
    for part in text.split(","):
        part = " ".join(part.split())
        if not part:
            continue
        match = _NAMED_TYPE_RE.match(part)
        binding_is_type = is_type
        if match:
            binding_is_type = True
        else:
            match = _NAMED_RE.match(part)
        if match is None:
            logger.debug("Skipping unrecognised import binding %r", part)
            continue
        bindings.append(
            ImportBinding(
                name=match.group(1),
                kind=BindingKind.NAMED,
                alias=match.group(2),
                is_type=binding_is_type,
            )
        )
    return bindings


def _parse_import_clause(clause: str) -> tuple[list[ImportBinding], bool]:
    """Extract bindings from the text between ``import`` and ``from``.

    Returns the bindings and whether the whole declaration is type-only.
    """
    clause = strip_comments(clause).strip()
    is_type = False
    match = _TYPE_PREFIX_RE.match(clause)
    if match:
        is_type = True
        clause = clause[match.end() :]

    bindings: list[ImportBinding] = []
    if clause and clause[0] not in "{*":
        comma = clause.find(",")
        default = clause if comma < 0 else clause[:comma]
        clause = "" if comma < 0 else clause[comma + 1 :]
        if default.strip():
            bindings.append(
                ImportBinding(default.strip(), BindingKind.DEFAULT, is_type=is_type)
            )
        clause = clause.strip()

    if clause.startswith("*"):
        match = _NAMESPACE_RE.match(clause)
        if match:
            bindings.append(
                ImportBinding(match.group(1), BindingKind.NAMESPACE, is_type=is_type)
            )
    elif clause.startswith("{"):
        close = clause.find("}")
        inner = clause[1:] if close < 0 else clause[1:close]
        bindings.extend(_parse_named_bindings(inner, is_type))
    return bindings, is_type


class _ScriptImportParser:
    """Collects the import declarations of one script file."""

    def __init__(self, code: str, file_dir: str):
        self.code = code
        self.file_dir = file_dir
        self.result = ImportsResult()

    def parse(self) -> ImportsResult:
        Scanner().scan(self.code, self._on_code)
        return self.result

    def _on_code(self, i: int) -> Optional[int]:
        code = self.code
        if code[i] == "i" and _is_keyword_at(code, i, "import"):
            return self._parse_import(i)
        if code[i] == "e" and _is_keyword_at(code, i, "export"):
            if _EXPORT_FROM_START_RE.match(code, i):
                return self._parse_declaration(i, i + len("export"))
        return None

    def _parse_import(self, i: int) -> Optional[int]:
        code = self.code
        j = _skip_whitespace(code, i + len("import"))
        if j >= len(code) or code[j] in "(.":
            # import(...) or import.meta
            return j
        if code[j] in "'\"":
            return self._record(j, [], False)
        return self._parse_declaration(i, j)

    def _parse_declaration(self, i: int, clause_start: int) -> Optional[int]:
        found = _find_from_clause(self.code, clause_start)
        if found is None:
            logger.debug("No module specifier for declaration at offset %d", i)
            return clause_start
        from_index, quote = found
        bindings, is_type = _parse_import_clause(self.code[clause_start:from_index])
        return self._record(quote, bindings, is_type)

    def _record(
        self, quote: int, bindings: list[ImportBinding], is_type: bool
    ) -> int:
        literal = _read_quoted(self.code, quote)
        if literal is None:
            logger.debug("Unterminated module specifier at offset %d", quote)
            return quote + 1
        specifier, end = literal
        _add_import(
            self.result,
            specifier,
            is_relative_specifier(specifier),
            self.file_dir,
            SourceRange(quote, end),
            bindings,
            include_type_defs=is_type,
        )
        return end


# ── Style-sheet imports ──


def _parse_css_specifier(code: str, i: int) -> tuple[Optional[tuple[str, int, int]], int]:
    """Parse the target of an ``@import`` rule whose target starts at ``i``.

    Returns ``((specifier, start, end), next_index)``; the first item is None
    for a malformed rule.
    """
    n = len(code)
    found: Optional[tuple[str, int, int]] = None
    if code.startswith("url(", i):
        i = _skip_whitespace(code, i + 4)
        if i < n and code[i] in "'\"":
            literal = _read_quoted(code, i)
            if literal is not None:
                found = (literal[0], i, literal[1])
                i = literal[1]
        else:
            start = i
            while i < n and code[i] != ")" and not code[i].isspace():
                i += 1
            found = (code[start:i], start, i)
        while i < n and code[i] not in ");\n":
            i += 1
        if i < n and code[i] == ")":
            i += 1
        else:
            found = None
    elif i < n and code[i] in "'\"":
        literal = _read_quoted(code, i)
        if literal is not None:
            found = (literal[0], i, literal[1])
            i = literal[1]

    while i < n and code[i] not in ";\n":
        i += 1
    if i < n and code[i] == ";":
        i += 1
    if found is not None and not found[0]:
        found = None
    return found, i


def _parse_css_imports(code: str, file_dir: str) -> ImportsResult:
    result = ImportsResult()

    def on_code(i: int) -> Optional[int]:
        if not code.startswith("@import", i):
            return None
        after = i + len("@import")
        if after >= len(code) or not code[after].isspace():
            return None
        found, next_index = _parse_css_specifier(code, _skip_whitespace(code, after))
        if found is None:
            logger.debug("Skipping malformed @import at offset %d", i)
            return next_index
        specifier, start, end = found
        external = bool(_EXTERNAL_CSS_RE.match(specifier))
        join_specifier = specifier
        if not is_relative_specifier(specifier):
            join_specifier = f"./{specifier}"
        _add_import(
            result,
            specifier,
            not external,
            file_dir,
            SourceRange(start, end),
            [],
            join_specifier=join_specifier,
        )
        return next_index

    Scanner(line_comments=False).scan(code, on_code)
    return result


# ── Entry point ──


def parse_imports(
    code: str,
    file_path: str,
    remove_comments_with_prefix: Optional[Sequence[str]] = None,
    notable_comments_prefix: Optional[Sequence[str]] = None,
) -> ImportsResult:
    """Parse the import declarations of one source file.

    ``file_path`` may be a POSIX path or a ``file://`` URL; its extension
    selects the CSS or script grammar and its directory anchors relative
    specifiers.

    With ``remove_comments_with_prefix``, matching comments are stripped
    first and the stripped text is returned as ``code``; import positions
    then index into it.  Comments matching ``notable_comments_prefix`` (or,
    without it, every stripped comment) are collected into ``comments``.
    """
    file_path = _normalize_file_path(file_path)
    file_dir = posixpath.dirname(file_path)
    is_css = file_path.lower().endswith(".css")

    processed = None
    if remove_comments_with_prefix is not None or notable_comments_prefix is not None:
        processed = process_comments(
            code,
            remove_comments_with_prefix,
            notable_comments_prefix,
            line_comments=not is_css,
        )
        code = processed.code

    if is_css:
        result = _parse_css_imports(code, file_dir)
    else:
        result = _ScriptImportParser(code, file_dir).parse()
    if processed is not None:
        if processed.stripped:
            result.code = processed.code
        result.comments = processed.comments
    return result
