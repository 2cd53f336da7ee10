"""Import Rewriter (C7) — Replace module specifiers by recorded position.

Uses the specifier ranges captured by the import parser, so only real
declarations are touched: look-alike text in comments and strings stays
byte-identical.

``process_relative_imports`` builds on that to relocate a file's relative
dependencies.  It decides the path each dependency is stored under next to
the file, rewrites the source to match, and lists the dependencies as
extra files.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Union

from importkit.errors import FlatNamingError
from importkit.imports import ImportsResult
from importkit.resolver import JAVASCRIPT_MODULE_EXTENSIONS

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"\.[^/]+$")
_LAST_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def rewrite_import_paths(
    code: str, result: ImportsResult, mapping: Mapping[str, str]
) -> str:
    """Return ``code`` with every specifier in ``mapping`` replaced.

    ``result`` must come from parsing ``code``.  Quoted specifiers keep
    their quote character; unquoted ``url(...)`` targets stay unquoted.
    """
    edits = []
    for record in result.records():
        replacement = mapping.get(record.specifier)
        if replacement is None:
            continue
        for position in record.positions:
            edits.append((position.start, position.end, replacement))

    # Apply from the end so earlier offsets stay valid
    for start, end, replacement in sorted(edits, reverse=True):
        quote = code[start]
        if quote in "'\"" and end - start >= 2 and code[end - 1] == quote:
            text = f"{quote}{replacement}{quote}"
        else:
            text = replacement
        logger.debug("Rewriting %r -> %r", code[start:end], text)
        code = code[:start] + text + code[end:]
    return code


# ── Relative import storage ──


class StoreAtMode(Enum):
    """Where relocated dependencies are stored.

    ``CANONICAL`` keys each file by its import path plus the resolved file
    name, ``IMPORT`` by its import path plus extension, and ``FLAT`` puts
    every file beside the source under a short collision-free name.
    """

    CANONICAL = "canonical"
    IMPORT = "import"
    FLAT = "flat"


@dataclass
class ProcessedImports:
    """Rewritten source plus the files it now depends on.

    ``extra_files`` maps the path a dependency is stored under, relative to
    the source, to its ``file://`` URL.
    """

    code: str
    extra_files: dict[str, str] = field(default_factory=dict)


def file_extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    if name.endswith(".d.ts"):
        return ".d.ts"
    dot = name.rfind(".")
    return name[dot:] if dot > 0 else ""


def is_javascript_module(specifier: str) -> bool:
    """Whether ``specifier`` names a script module rather than an asset.

    Extensionless specifiers count as scripts.
    """
    if _EXTENSION_RE.search(specifier):
        return specifier.endswith(JAVASCRIPT_MODULE_EXTENSIONS)
    return True


def _file_url(path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    return f"file://{path}"


def _strip_extension(path: str) -> str:
    if path.endswith(".d.ts"):
        return path[: -len(".d.ts")]
    return _LAST_EXTENSION_RE.sub("", path)


@dataclass
class _StoredFile:
    specifier: str
    resolved_path: str

    @property
    def segments(self) -> list[str]:
        return [segment for segment in self.resolved_path.split("/") if segment]

    def name(self, prefix: Optional[str] = None) -> str:
        """Flat name, optionally under one distinguishing directory.

        ``dir/index.ext`` is named after ``dir`` unless it was imported as
        ``./index.ext`` directly.
        """
        segments = self.segments
        file_name = segments[-1]
        if file_name.startswith("index."):
            parts = self.specifier.split("/")
            direct = len(parts) == 2 and parts[0] == "." and parts[1].startswith("index.")
            extension = file_extension(file_name)
            if direct or len(segments) < 2:
                file_name = f"index{extension}"
            else:
                file_name = f"{segments[-2]}{extension}"
        return f"{prefix}/{file_name}" if prefix else file_name


def _distinguishing_index(files: list[_StoredFile]) -> Optional[int]:
    """First path segment index at which every file differs."""
    longest = max(len(f.segments) for f in files)
    for i in range(longest):
        present = {f.segments[i] for f in files if i < len(f.segments)}
        if len(present) == len(files):
            return i
    return None


def _split_name_group(files: list[_StoredFile]) -> dict[str, str]:
    """Distinct names for files whose flat names collide."""
    shallowest = min(len(f.segments) for f in files)
    shallow = [f for f in files if len(f.segments) == shallowest]
    deep = [f for f in files if len(f.segments) > shallowest]

    # One file in a parent directory of all the others keeps its plain name
    if len(shallow) == 1 and deep:
        parent = shallow[0].segments[:-1]
        if all(f.segments[: len(parent)] == parent for f in deep):
            index = _distinguishing_index(deep)
            if index is not None:
                names = {f.resolved_path: f.name(f.segments[index]) for f in deep}
                names[shallow[0].resolved_path] = shallow[0].name()
                return names

    index = _distinguishing_index(files)
    if index is None:
        raise FlatNamingError([f.resolved_path for f in files])
    return {f.resolved_path: f.name(f.segments[index]) for f in files}


def flat_file_names(files: Mapping[str, str]) -> dict[str, str]:
    """Assign flat storage names.

    ``files`` maps an import specifier to the file it resolved to.  Returns
    resolved path to name.  Colliding names are prefixed with the first
    directory that tells the files apart.
    """
    stored: dict[str, _StoredFile] = {}
    for specifier, resolved_path in files.items():
        stored.setdefault(resolved_path, _StoredFile(specifier, resolved_path))

    groups: dict[str, list[_StoredFile]] = {}
    for f in stored.values():
        groups.setdefault(f.name(), []).append(f)

    names: dict[str, str] = {}
    for candidate, group in groups.items():
        if len(group) == 1:
            names[group[0].resolved_path] = candidate
        else:
            logger.debug("Flat name %s is shared by %d files", candidate, len(group))
            names.update(_split_name_group(group))
    return names


def _process_scripts(
    code: str,
    result: ImportsResult,
    resolved: Mapping[str, str],
    store_at: StoreAtMode,
) -> ProcessedImports:
    targets = {}
    for specifier, record in result.relative.items():
        target = resolved.get(record.path) if record.path is not None else None
        if target is not None:
            targets[specifier] = target

    if store_at is StoreAtMode.FLAT:
        names = flat_file_names(targets)
        extra_files = {f"./{name}": _file_url(path) for path, name in names.items()}
        mapping = {}
        for specifier, target in targets.items():
            new_path = f"./{names[target]}"
            if is_javascript_module(specifier):
                new_path = _strip_extension(new_path)
            mapping[specifier] = new_path
        return ProcessedImports(rewrite_import_paths(code, result, mapping), extra_files)

    extra_files = {}
    for specifier, target in targets.items():
        if not is_javascript_module(specifier) or _EXTENSION_RE.search(specifier):
            key = specifier
        else:
            extension = file_extension(target)
            path = result.relative[specifier].path
            if store_at is StoreAtMode.CANONICAL and target == f"{path}/index{extension}":
                key = f"{specifier}/index{extension}"
            else:
                key = f"{specifier}{extension}"
        extra_files[key] = _file_url(target)
    return ProcessedImports(code, extra_files)


def _process_assets(
    code: str, result: ImportsResult, store_at: StoreAtMode
) -> ProcessedImports:
    records = {
        specifier: record.path
        for specifier, record in result.relative.items()
        if record.path is not None
    }

    if store_at is StoreAtMode.FLAT:
        names: dict[str, str] = {}
        used: set[str] = set()
        for path in records.values():
            if path in names:
                continue
            file_name = path.rsplit("/", 1)[-1]
            extension = file_extension(file_name)
            stem = file_name[: len(file_name) - len(extension)]
            name = file_name
            counter = 1
            while name in used:
                name = f"{stem}-{counter}{extension}"
                counter += 1
            used.add(name)
            names[path] = name
        mapping = {specifier: names[path] for specifier, path in records.items()}
        extra_files = {f"./{name}": _file_url(path) for path, name in names.items()}
        return ProcessedImports(rewrite_import_paths(code, result, mapping), extra_files)

    extra_files = {specifier: _file_url(path) for specifier, path in records.items()}
    if store_at is StoreAtMode.IMPORT:
        mapping = {
            specifier: specifier[2:]
            for specifier in records
            if specifier.startswith("./")
        }
        code = rewrite_import_paths(code, result, mapping)
    return ProcessedImports(code, extra_files)


def process_relative_imports(
    code: str,
    result: ImportsResult,
    resolved: Optional[Mapping[str, str]] = None,
    store_at: Union[StoreAtMode, str] = StoreAtMode.FLAT,
) -> ProcessedImports:
    """Relocate the relative dependencies of one parsed file.

    ``resolved`` maps import paths to files, as returned by
    ``ModuleResolver.resolve_imports``; unresolved imports are left alone.
    Without it the import paths are taken as the files themselves, which
    suits style sheets and other sources whose imports name files directly.

    ``code`` must be the text ``result`` positions index into, i.e.
    ``result.code`` when comments were stripped while parsing.  Only
    ``FLAT`` storage, and ``IMPORT`` storage without ``resolved``, rewrite
    the source.
    """
    store_at = StoreAtMode(store_at)
    if resolved is None:
        return _process_assets(code, result, store_at)
    return _process_scripts(code, result, resolved, store_at)
