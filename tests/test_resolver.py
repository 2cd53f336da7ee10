"""Tests for Module Path Resolver (C5).

Covers: extension priority, direct files over index files, index
resolution, unresolved paths, directory batching (each directory listed at
most once), lister failures, custom extensions, resolution of parsed
import results, and the file-system lister.
"""

from collections import Counter

import pytest

from importkit.errors import ResolverError, UnresolvedModuleError
from importkit.imports import parse_imports
from importkit.resolver import (
    DirectoryEntry,
    ModuleResolver,
    ResolveOptions,
    is_static_asset,
    list_directory,
)


# ── Fixtures ──


class FakeLister:
    """In-memory directory lister that counts reads.

    ``tree`` maps a directory to its entries; names ending in ``/`` are
    sub-directories.
    """

    def __init__(self, tree: dict[str, list[str]]):
        self.tree = tree
        self.calls: list[str] = []

    def __call__(self, path: str) -> list[DirectoryEntry]:
        self.calls.append(path)
        if path not in self.tree:
            raise FileNotFoundError(path)
        return [
            DirectoryEntry(
                name=name.rstrip("/"),
                is_file=not name.endswith("/"),
                is_directory=name.endswith("/"),
            )
            for name in self.tree[path]
        ]


@pytest.fixture
def lister():
    return FakeLister(
        {
            "/src": ["Button.js", "Button.ts", "Card.tsx", "Card/", "Modal/", "A.ts", "B.jsx"],
            "/src/Card": ["index.ts"],
            "/src/Modal": ["index.js", "Modal.css"],
            "/lib": ["D.js"],
            ".": ["Local.tsx"],
        }
    )


# ── Single resolution ──


class TestResolve:
    def test_extension_priority(self, lister):
        assert ModuleResolver(lister).resolve("/src/Button") == "/src/Button.ts"

    def test_direct_file_beats_index(self, lister):
        assert ModuleResolver(lister).resolve("/src/Card") == "/src/Card.tsx"

    def test_index_file(self, lister):
        assert ModuleResolver(lister).resolve("/src/Modal") == "/src/Modal/index.js"

    def test_unresolved_raises(self, lister):
        with pytest.raises(UnresolvedModuleError) as excinfo:
            ModuleResolver(lister).resolve("/src/Nope")
        assert excinfo.value.specifier == "/src/Nope"
        assert excinfo.value.tried == (".ts", ".tsx", ".js", ".jsx")
        assert 'Could not resolve module at path "/src/Nope"' in str(excinfo.value)

    def test_unresolved_is_resolver_error(self, lister):
        with pytest.raises(ResolverError):
            ModuleResolver(lister).resolve("/missing/x")

    def test_path_without_directory(self, lister):
        assert ModuleResolver(lister).resolve("Local") == "Local.tsx"

    def test_custom_extensions(self, lister):
        resolver = ModuleResolver(lister, ResolveOptions(extensions=(".js",)))
        assert resolver.resolve("/src/Button") == "/src/Button.js"


# ── Batching ──


class TestResolveMany:
    def test_resolves_batch(self, lister):
        resolved = ModuleResolver(lister).resolve_many(
            ["/src/A", "/src/B", "/src/Modal", "/lib/D", "/src/Nope"]
        )
        assert resolved == {
            "/src/A": "/src/A.ts",
            "/src/B": "/src/B.jsx",
            "/src/Modal": "/src/Modal/index.js",
            "/lib/D": "/lib/D.js",
        }

    def test_each_directory_listed_once(self, lister):
        ModuleResolver(lister).resolve_many(
            ["/src/A", "/src/B", "/src/Button", "/src/Modal", "/lib/D"]
        )
        assert Counter(lister.calls) == {"/src": 1, "/lib": 1, "/src/Modal": 1}

    def test_sequential_listing(self, lister):
        resolver = ModuleResolver(lister, ResolveOptions(max_workers=1))
        assert resolver.resolve_many(["/src/A", "/lib/D"]) == {
            "/src/A": "/src/A.ts",
            "/lib/D": "/lib/D.js",
        }

    def test_missing_directory_is_unresolved(self, lister):
        assert ModuleResolver(lister).resolve_many(["/missing/x"]) == {}

    def test_duplicates(self, lister):
        resolved = ModuleResolver(lister).resolve_many(["/src/A", "/src/A"])
        assert resolved == {"/src/A": "/src/A.ts"}
        assert lister.calls == ["/src"]

    def test_empty(self, lister):
        assert ModuleResolver(lister).resolve_many([]) == {}
        assert lister.calls == []

    def test_state_is_not_shared_between_calls(self, lister):
        resolver = ModuleResolver(lister)
        resolver.resolve_many(["/src/A"])
        resolver.resolve_many(["/src/B"])
        assert lister.calls == ["/src", "/src"]


# ── Parsed import results ──


class TestResolveImports:
    def test_assets_and_extensions_pass_through(self, lister):
        code = (
            "import a from './A';\n"
            "import './Modal/Modal.css';\n"
            "import b from './B.jsx';\n"
            "import m from './Missing';\n"
        )
        result = parse_imports(code, "/src/index.ts")
        mapping = ModuleResolver(lister).resolve_imports(result)

        assert mapping == {
            "/src/Modal/Modal.css": "/src/Modal/Modal.css",
            "/src/B.jsx": "/src/B.jsx",
            "/src/A": "/src/A.ts",
        }
        assert result.relative["./A"].resolved_path == "/src/A.ts"
        assert result.relative["./Missing"].resolved_path is None
        assert lister.calls == ["/src"]

    def test_type_definitions_beside_runtime_files(self):
        lister = FakeLister(
            {
                "/src": ["X.js", "X.d.ts", "Y.d.ts", "Z.ts", "W.js", "W.d.ts", "Types/"],
                "/src/Types": ["index.js", "index.d.ts"],
            }
        )
        code = (
            "import type { XProps } from './X';\n"
            "import type { Y } from './Y';\n"
            "import type { Z } from './Z';\n"
            "import type { T } from './Types';\n"
            "import w from './W';\n"
        )
        result = parse_imports(code, "/src/index.ts")
        ModuleResolver(lister).resolve_imports(result)

        resolved = {
            specifier: (record.resolved_path, record.resolved_type_path)
            for specifier, record in result.relative.items()
        }
        assert resolved == {
            "./X": ("/src/X.js", "/src/X.d.ts"),
            "./Y": ("/src/Y.d.ts", None),
            "./Z": ("/src/Z.ts", None),
            "./Types": ("/src/Types/index.js", "/src/Types/index.d.ts"),
            "./W": ("/src/W.js", None),
        }
        assert Counter(lister.calls) == {"/src": 1, "/src/Types": 1}
        assert result.relative["./X"].as_dict()["resolvedTypePath"] == "/src/X.d.ts"

    def test_resolve_many_with_types(self, lister):
        resolved, types = ModuleResolver(lister).resolve_many_with_types(
            ["/src/Button", "/src/Modal"]
        )
        assert resolved == {"/src/Button": "/src/Button.ts", "/src/Modal": "/src/Modal/index.js"}
        assert types == {}

    def test_static_asset_detection(self):
        assert is_static_asset("./logo.SVG")
        assert is_static_asset("./data.json")
        assert not is_static_asset("./Button")


# ── File system lister ──


class TestListDirectory:
    def test_lists_files_and_directories(self, tmp_path):
        (tmp_path / "util.ts").write_text("export {};")
        (tmp_path / "components").mkdir()

        entries = {entry.name: entry for entry in list_directory(str(tmp_path))}
        assert entries["util.ts"].is_file
        assert entries["components"].is_directory

    def test_default_resolver_uses_file_system(self, tmp_path):
        (tmp_path / "util.js").write_text("")
        (tmp_path / "util.ts").write_text("")
        (tmp_path / "widgets").mkdir()
        (tmp_path / "widgets" / "index.tsx").write_text("")

        resolver = ModuleResolver()
        root = tmp_path.as_posix()
        assert resolver.resolve(f"{root}/util") == f"{root}/util.ts"
        assert resolver.resolve(f"{root}/widgets") == f"{root}/widgets/index.tsx"

    def test_missing_directory(self, tmp_path):
        resolver = ModuleResolver()
        assert resolver.resolve_many([f"{tmp_path.as_posix()}/nope/x"]) == {}
