"""Module Path Resolver (C5) — Extension and index-file probing.

Resolves extensionless module paths to concrete files by probing a
directory listing: ``name`` + extension first, then ``name/index`` +
extension, with extensions tried in priority order.  Directory access goes
through an injected lister so resolution can run against any file system.

``resolve_many`` groups paths by parent directory and lists each directory
at most once; distinct directories are listed concurrently.  Type imports
are matched twice against the same listing, once with runtime files first
and once with ``.d.ts`` first.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from importkit.errors import UnresolvedModuleError
from importkit.imports import ImportsResult

logger = logging.getLogger(__name__)

# ── Constants ──

DEFAULT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")

JAVASCRIPT_MODULE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mdx", ".d.ts")

# Type-aware lookups: runtime files first for values, declarations first for types
VALUE_IMPORT_EXTENSIONS = JAVASCRIPT_MODULE_EXTENSIONS
TYPE_IMPORT_EXTENSIONS = (".d.ts", ".ts", ".tsx", ".js", ".jsx", ".mdx")

STATIC_ASSET_EXTENSIONS = (
    ".css",
    ".scss",
    ".sass",
    ".less",
    ".json",
    ".svg",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".ico",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
)


# ── Data types ──


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    is_file: bool
    is_directory: bool


DirectoryLister = Callable[[str], list[DirectoryEntry]]


@dataclass
class ResolveOptions:
    """Resolution settings.

    ``extensions`` are tried in order; ``max_workers`` bounds the number of
    directories listed concurrently by ``resolve_many``.
    """

    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    max_workers: int = 8


def list_directory(path: str) -> list[DirectoryEntry]:
    """List ``path`` on the local file system."""
    with os.scandir(path) as entries:
        return [
            DirectoryEntry(
                name=entry.name,
                is_file=entry.is_file(),
                is_directory=entry.is_dir(),
            )
            for entry in entries
        ]


def is_static_asset(path: str) -> bool:
    return path.lower().endswith(STATIC_ASSET_EXTENSIONS)


def _split_path(module_path: str) -> tuple[str, str, str]:
    """Split into ``(directory to list, prefix of resolved paths, base name)``."""
    idx = module_path.rfind("/")
    if idx < 0:
        return ".", "", module_path
    directory = module_path[:idx] or "/"
    return directory, module_path[: idx + 1], module_path[idx + 1 :]


def _match_file(
    entries: list[DirectoryEntry], stem: str, extensions: Iterable[str]
) -> Optional[str]:
    files = {entry.name for entry in entries if entry.is_file}
    for ext in extensions:
        if stem + ext in files:
            return stem + ext
    return None


# ── Resolver ──


class ModuleResolver:
    """Resolves module paths against directory listings."""

    def __init__(
        self,
        lister: DirectoryLister = list_directory,
        options: Optional[ResolveOptions] = None,
    ):
        self.lister = lister
        self.options = options or ResolveOptions()

    def _list(self, directory: str) -> Optional[list[DirectoryEntry]]:
        try:
            return self.lister(directory)
        except OSError as exc:
            logger.debug("Cannot list %s: %s", directory, exc)
            return None

    def _list_all(self, directories: Iterable[str]) -> dict[str, Optional[list[DirectoryEntry]]]:
        ordered = list(dict.fromkeys(directories))
        if len(ordered) <= 1 or self.options.max_workers <= 1:
            return {directory: self._list(directory) for directory in ordered}
        workers = min(self.options.max_workers, len(ordered))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return dict(zip(ordered, pool.map(self._list, ordered)))

    def _match(
        self, entries: list[DirectoryEntry], stem: str, typed: bool
    ) -> tuple[Optional[str], Optional[str]]:
        """Return ``(value file, type file)`` for ``stem`` within ``entries``.

        The type file is only reported for ``typed`` lookups, and only when
        it differs from the value file.
        """
        if not typed:
            return _match_file(entries, stem, self.options.extensions), None
        value = _match_file(entries, stem, VALUE_IMPORT_EXTENSIONS)
        type_file = _match_file(entries, stem, TYPE_IMPORT_EXTENSIONS)
        if value is None:
            return type_file, None
        return value, type_file if type_file != value else None

    def resolve(self, module_path: str) -> str:
        """Resolve one module path or raise ``UnresolvedModuleError``."""
        resolved = self.resolve_many([module_path]).get(module_path)
        if resolved is None:
            raise UnresolvedModuleError(module_path, self.options.extensions)
        return resolved

    def resolve_many(self, module_paths: Iterable[str]) -> dict[str, str]:
        """Resolve a batch of module paths.

        Unresolvable paths are left out of the result.  Each parent
        directory, and each sub-directory probed for an index file, is
        listed at most once per call.
        """
        resolved, _ = self._resolve_batch(module_paths)
        return resolved

    def resolve_many_with_types(
        self, module_paths: Iterable[str]
    ) -> tuple[dict[str, str], dict[str, str]]:
        """Resolve a batch for type-aware imports.

        Returns the value resolution of every resolvable path, plus the
        type-definition file for paths where it differs (``X.d.ts`` beside
        ``X.js``).  Both come from the same directory listings.
        """
        module_paths = list(module_paths)
        return self._resolve_batch(module_paths, typed=module_paths)

    def _resolve_batch(
        self, module_paths: Iterable[str], typed: Iterable[str] = ()
    ) -> tuple[dict[str, str], dict[str, str]]:
        module_paths = list(dict.fromkeys(module_paths))
        typed = set(typed)
        split = {path: _split_path(path) for path in module_paths}
        listings = self._list_all(directory for directory, _, _ in split.values())

        resolved: dict[str, str] = {}
        type_resolved: dict[str, str] = {}
        index_probes: dict[str, str] = {}
        for path, (directory, prefix, name) in split.items():
            entries = listings.get(directory)
            if entries is None:
                continue
            value, type_file = self._match(entries, name, path in typed)
            if value is not None:
                resolved[path] = prefix + value
                if type_file is not None:
                    type_resolved[path] = prefix + type_file
                continue
            if any(entry.name == name and entry.is_directory for entry in entries):
                index_probes[path] = prefix + name
            else:
                logger.debug("No match for %s in %s", name, directory)

        sub_listings = self._list_all(index_probes.values())
        for path, subdirectory in index_probes.items():
            entries = sub_listings.get(subdirectory)
            if entries is None:
                continue
            value, type_file = self._match(entries, "index", path in typed)
            if value is not None:
                resolved[path] = f"{subdirectory}/{value}"
                if type_file is not None:
                    type_resolved[path] = f"{subdirectory}/{type_file}"
            else:
                logger.debug("No index file in %s", subdirectory)

        # Preserve input order
        return (
            {path: resolved[path] for path in module_paths if path in resolved},
            {path: type_resolved[path] for path in module_paths if path in type_resolved},
        )

    def resolve_imports(self, result: ImportsResult) -> dict[str, str]:
        """Resolve the relative imports of a parsed file.

        Static assets and paths that already carry a script extension pass
        through unchanged.  Sets ``resolved_path`` on every resolved record,
        and ``resolved_type_path`` on type imports whose type definitions
        live in a separate file.  Returns a mapping of import path to
        resolved path.
        """
        mapping: dict[str, str] = {}
        pending = []
        typed = []
        for specifier, record in result.relative.items():
            if record.path is None:
                continue
            if is_static_asset(specifier) or specifier.endswith(JAVASCRIPT_MODULE_EXTENSIONS):
                mapping[record.path] = record.path
            else:
                pending.append(record.path)
                if record.include_type_defs:
                    typed.append(record.path)

        resolved, type_resolved = self._resolve_batch(pending, typed)
        mapping.update(resolved)
        for record in result.relative.values():
            if record.path in mapping:
                record.resolved_path = mapping[record.path]
            if record.include_type_defs and record.path in type_resolved:
                record.resolved_type_path = type_resolved[record.path]
        return mapping
