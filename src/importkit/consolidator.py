"""Import Consolidator (C6) — Collision-free import plans and provider text.

Merges the external import requirements of many files into one plan:
type-only and blank bindings are dropped, duplicates collapse, and every
bound name is made unique across the whole plan.  The plan renders as
import statements, as provider mapping entries, and as a compact value map
of resolved externals.

Naming on collision:
  - namespace bindings, and any binding from a module named ``lib<N>``,
    take numeric suffixes ``1, 2, ...``;
  - other bindings first try ``name + module key`` (module path without
    ``@ / . -``, lower-cased, at most 20 characters), then numeric suffixes.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from importkit.imports import BindingKind, ImportBinding, ImportsResult

logger = logging.getLogger(__name__)

# ── Constants ──

_NUMBERED_MODULE_RE = re.compile(r"lib\d+")
_MODULE_KEY_STRIP_RE = re.compile(r"[@/.\-]")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
MODULE_KEY_LENGTH = 20

Externals = Mapping[str, Iterable[ImportBinding]]


# ── Plan types ──


@dataclass
class NamedImport:
    original: str
    unique: str

    def specifier(self) -> str:
        if self.original == self.unique:
            return self.original
        return f"{self.original} as {self.unique}"


@dataclass
class ModuleImports:
    """Everything imported from one module, under unique local names."""

    default_name: Optional[str] = None
    named: list[NamedImport] = field(default_factory=list)
    namespaces: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return self.default_name is None and not self.named and not self.namespaces

    def as_dict(self) -> dict:
        return {
            "default": self.default_name,
            "named": [{"original": n.original, "unique": n.unique} for n in self.named],
            "namespaces": list(self.namespaces),
        }


@dataclass
class ConsolidatedImportPlan:
    modules: dict[str, ModuleImports] = field(default_factory=dict)

    def import_statements(self) -> list[str]:
        """One statement per module for default + named bindings, plus one
        per namespace binding."""
        statements = []
        for module, imports in self.modules.items():
            parts = []
            if imports.default_name:
                parts.append(imports.default_name)
            if imports.named:
                parts.append("{ " + ", ".join(n.specifier() for n in imports.named) + " }")
            if parts:
                statements.append(f"import {', '.join(parts)} from '{module}';")
            for namespace in imports.namespaces:
                statements.append(f"import * as {namespace} from '{module}';")
        return statements

    def export_mappings(self) -> list[str]:
        """Provider entries mapping each module to its local bindings."""
        mappings = []
        for module, imports in self.modules.items():
            if imports.namespaces and imports.default_name is None and not imports.named:
                if len(imports.namespaces) == 1:
                    mappings.append(f"'{module}': {imports.namespaces[0]}")
                    continue
            entries = []
            if imports.default_name:
                entries.append(f"default: {imports.default_name}")
            for named in imports.named:
                if named.original == named.unique:
                    entries.append(named.original)
                else:
                    entries.append(f"{named.original}: {named.unique}")
            entries.extend(imports.namespaces)
            mappings.append(f"'{module}': {{ {', '.join(entries)} }}")
        return mappings

    def resolved_externals(self) -> dict[str, str]:
        """Compact map of module key to the value expression it resolves to."""
        resolved = {}
        for module, imports in self.modules.items():
            key = module if _IDENTIFIER_RE.fullmatch(module) else f'"{module}"'
            if imports.named and imports.default_name is None and not imports.namespaces:
                entries = [
                    n.original if n.original == n.unique else f"{n.original}: {n.unique}"
                    for n in imports.named
                ]
                resolved[key] = "{ " + ", ".join(entries) + " }"
            elif imports.default_name is not None:
                resolved[key] = imports.default_name
            else:
                resolved[key] = imports.namespaces[0]
        return resolved

    def as_dict(self) -> dict:
        return {
            "modules": {module: imports.as_dict() for module, imports in self.modules.items()},
            "imports": self.import_statements(),
            "resolvedExternals": self.resolved_externals(),
        }


# ── Naming ──


def module_key(module: str) -> str:
    return _MODULE_KEY_STRIP_RE.sub("", module).lower()[:MODULE_KEY_LENGTH]


def _numbered_name(name: str, used: set[str]) -> str:
    attempt = 1
    while f"{name}{attempt}" in used:
        attempt += 1
    return f"{name}{attempt}"


def unique_import_name(
    name: str, module: str, kind: BindingKind, used: set[str]
) -> str:
    """Pick a local name for ``name`` imported from ``module``.

    Does not add the result to ``used``.
    """
    if name not in used:
        return name
    if kind is BindingKind.NAMESPACE or _NUMBERED_MODULE_RE.fullmatch(module):
        return _numbered_name(name, used)
    candidate = f"{name}{module_key(module)}"
    if candidate not in used:
        return candidate
    return _numbered_name(name, used)


# ── Consolidation ──


def consolidate(externals: Externals) -> ConsolidatedImportPlan:
    """Build a collision-free import plan from ``module -> bindings``.

    Modules and bindings keep their input order, so the same input always
    yields the same plan.
    """
    plan = ConsolidatedImportPlan()
    used: set[str] = set()
    seen: set[tuple] = set()

    for module, bindings in externals.items():
        imports = ModuleImports()
        for binding in bindings:
            if binding.is_type or not binding.name.strip():
                continue
            key = (module, binding.name, binding.kind, binding.alias)
            if key in seen:
                continue
            seen.add(key)

            if binding.kind is BindingKind.DEFAULT and imports.default_name is not None:
                logger.debug(
                    "Ignoring second default %s from %s", binding.name, module
                )
                continue
            # Aliases of one original share its local name
            if binding.kind is BindingKind.NAMED and any(
                n.original == binding.name for n in imports.named
            ):
                continue

            unique = unique_import_name(binding.name, module, binding.kind, used)
            used.add(unique)
            if binding.kind is BindingKind.DEFAULT:
                imports.default_name = unique
            elif binding.kind is BindingKind.NAMED:
                imports.named.append(NamedImport(original=binding.name, unique=unique))
            else:
                imports.namespaces.append(unique)

        if not imports.is_empty():
            plan.modules[module] = imports
    return plan


def generate_provider_source(
    plan: ConsolidatedImportPlan, export_name: str = "externals"
) -> str:
    """Render a provider module: the import statements followed by one
    exported table mapping each module to its bindings."""
    lines = plan.import_statements()
    if lines:
        lines.append("")
    mappings = plan.export_mappings()
    if mappings:
        lines.append(f"export const {export_name} = {{")
        lines.extend(f"  {mapping}," for mapping in mappings)
        lines.append("};")
    else:
        lines.append(f"export const {export_name} = {{}};")
    return "\n".join(lines) + "\n"


# ── Externals helpers ──


def externals_from_records(result: ImportsResult) -> dict[str, list[ImportBinding]]:
    """Consolidator input for the external imports of one parsed file."""
    return {
        specifier: list(record.bindings)
        for specifier, record in result.externals.items()
    }


def merge_externals(
    externals_list: Iterable[Externals],
) -> dict[str, list[ImportBinding]]:
    """Merge per-file externals in order.

    Bindings that differ only in ``is_type`` are kept as distinct entries.
    """
    merged: dict[str, list[ImportBinding]] = {}
    seen: set[tuple] = set()
    for externals in externals_list:
        for module, bindings in externals.items():
            target = merged.setdefault(module, [])
            for binding in bindings:
                key = (module, binding.name, binding.kind, binding.alias, binding.is_type)
                if key in seen:
                    continue
                seen.add(key)
                target.append(binding)
    return merged


def externals_to_packages(specifiers: Iterable[str]) -> dict[str, bool]:
    """Map module specifiers to the package names they come from.

    ``@scope/pkg/sub`` becomes ``@scope/pkg`` and ``pkg/sub`` becomes
    ``pkg``; ``./x`` maps to ``.`` and ``../x`` to ``..``.  Path aliases
    (``@/...``) and malformed scopes are dropped.
    """
    packages: dict[str, bool] = {}
    for specifier in specifiers:
        if not specifier or specifier.startswith("@/"):
            continue
        if specifier.startswith("../"):
            packages[".."] = True
            continue
        if specifier.startswith("./"):
            packages["."] = True
            continue
        parts = specifier.split("/")
        if specifier.startswith("@"):
            if len(parts) < 2 or len(parts[0]) < 2 or not parts[1]:
                logger.debug("Dropping malformed scoped specifier %r", specifier)
                continue
            packages[f"{parts[0]}/{parts[1]}"] = True
        else:
            packages[parts[0]] = True
    return packages
