"""Tests for Import Consolidator (C6).

Covers: collision naming (module-derived, numbered, namespace), type-only
and blank filtering, dedupe idempotence, statement and mapping rendering,
resolved externals, provider text, merging per-file externals, and package
name extraction.
"""

import textwrap

from importkit.consolidator import (
    ConsolidatedImportPlan,
    NamedImport,
    consolidate,
    externals_from_records,
    externals_to_packages,
    generate_provider_source,
    merge_externals,
    module_key,
    unique_import_name,
)
from importkit.imports import BindingKind, ImportBinding, parse_imports


def default(name, **kwargs):
    return ImportBinding(name, BindingKind.DEFAULT, **kwargs)


def named(name, **kwargs):
    return ImportBinding(name, BindingKind.NAMED, **kwargs)


def namespace(name, **kwargs):
    return ImportBinding(name, BindingKind.NAMESPACE, **kwargs)


# ── Naming ──


class TestUniqueNames:
    def test_numbered_modules(self):
        plan = consolidate({f"lib{i}": [named("Utils")] for i in range(1, 6)})

        uniques = [plan.modules[f"lib{i}"].named[0].unique for i in range(1, 6)]
        assert uniques == ["Utils", "Utils1", "Utils2", "Utils3", "Utils4"]
        assert plan.import_statements() == [
            "import { Utils } from 'lib1';",
            "import { Utils as Utils1 } from 'lib2';",
            "import { Utils as Utils2 } from 'lib3';",
            "import { Utils as Utils3 } from 'lib4';",
            "import { Utils as Utils4 } from 'lib5';",
        ]
        assert len(plan.export_mappings()) == 5
        assert plan.export_mappings()[1] == "'lib2': { Utils: Utils1 }"

    def test_module_derived_name(self):
        plan = consolidate({"react": [named("Component")], "vue": [named("Component")]})
        assert plan.import_statements() == [
            "import { Component } from 'react';",
            "import { Component as Componentvue } from 'vue';",
        ]
        assert plan.export_mappings()[1] == "'vue': { Component: Componentvue }"

    def test_scoped_module_default(self):
        plan = consolidate(
            {"@mui/material": [named("Button")], "@emotion/styled": [default("Button")]}
        )
        assert plan.import_statements()[1] == (
            "import Buttonemotionstyled from '@emotion/styled';"
        )

    def test_module_key_is_truncated(self):
        plan = consolidate(
            {
                "react": [named("Component")],
                "very-long-module-name-that-exceeds": [named("Component")],
            }
        )
        unique = plan.modules["very-long-module-name-that-exceeds"].named[0].unique
        assert unique == "Componentverylongmodulenameth"

    def test_namespaces_are_numbered(self):
        plan = consolidate(
            {
                "react": [namespace("Utils")],
                "lodash": [namespace("Utils")],
                "moment": [namespace("Utils")],
            }
        )
        assert plan.import_statements() == [
            "import * as Utils from 'react';",
            "import * as Utils1 from 'lodash';",
            "import * as Utils2 from 'moment';",
        ]

    def test_numbered_fallback_when_module_name_taken(self):
        plan = consolidate({"x": [named("X")], "ab": [named("X")], "a.b": [named("X")]})
        assert [plan.modules[m].named[0].unique for m in ("x", "ab", "a.b")] == [
            "X",
            "Xab",
            "X1",
        ]

    def test_unique_import_name_does_not_reserve(self):
        used = {"A"}
        assert unique_import_name("A", "lib7", BindingKind.NAMED, used) == "A1"
        assert used == {"A"}

    def test_module_key(self):
        assert module_key("@Scope/Pkg.name-x") == "scopepkgnamex"


# ── Filtering and dedupe ──


class TestFiltering:
    def test_type_only_and_blank_names_are_dropped(self):
        plan = consolidate({"react": [named("FC", is_type=True)], "x": [named("  ")]})
        assert plan.modules == {}
        assert plan.import_statements() == []
        assert plan.export_mappings() == []

    def test_type_only_does_not_reserve_a_name(self):
        plan = consolidate({"a": [named("T", is_type=True)], "b": [named("T")]})
        assert plan.import_statements() == ["import { T } from 'b';"]

    def test_runtime_binding_survives_type_twin(self):
        plan = consolidate({"m": [named("A", is_type=True), named("A")]})
        assert plan.import_statements() == ["import { A } from 'm';"]
        assert plan.export_mappings() == ["'m': { A }"]

    def test_duplicates_collapse(self):
        single = consolidate({"react": [default("React"), named("useState")]})
        doubled = consolidate(
            {"react": [default("React"), named("useState"), default("React"), named("useState")]}
        )
        assert doubled == single
        assert consolidate({"react": [default("React"), named("useState")]}) == single

    def test_aliased_named_reuses_existing_binding(self):
        plan = consolidate({"m": [named("a"), named("a", alias="b")]})
        assert plan.modules["m"].named == [NamedImport("a", "a")]
        assert plan.import_statements() == ["import { a } from 'm';"]
        assert plan.export_mappings() == ["'m': { a }"]

    def test_modules_keep_input_order_and_empty_ones_are_omitted(self):
        plan = consolidate(
            {"b": [named("x")], "t": [named("T", is_type=True)], "a": [default("A")]}
        )
        assert list(plan.modules) == ["b", "a"]

    def test_second_default_is_ignored(self):
        plan = consolidate({"x": [default("A"), default("B")], "y": [default("B")]})
        assert plan.modules["x"].default_name == "A"
        assert plan.modules["y"].default_name == "B"


# ── Rendering ──


class TestRendering:
    def test_mixed_module(self):
        plan = consolidate(
            {"react": [default("React"), named("useState"), namespace("ReactNS")]}
        )
        assert plan.import_statements() == [
            "import React, { useState } from 'react';",
            "import * as ReactNS from 'react';",
        ]
        assert plan.export_mappings() == ["'react': { default: React, useState, ReactNS }"]
        assert plan.resolved_externals() == {"react": "React"}

    def test_lone_namespace_maps_directly(self):
        plan = consolidate({"lodash": [namespace("_")]})
        assert plan.export_mappings() == ["'lodash': _"]
        assert plan.resolved_externals() == {"lodash": "_"}

    def test_resolved_externals_quotes_non_identifiers(self):
        plan = consolidate({"@mui/material": [named("Button"), named("TextField")]})
        assert plan.resolved_externals() == {'"@mui/material"': "{ Button, TextField }"}

    def test_resolved_externals_named_and_namespace(self):
        plan = consolidate({"m": [named("a"), namespace("M")]})
        assert plan.resolved_externals() == {"m": "M"}

    def test_provider_source(self):
        plan = consolidate({"react": [default("React")], "lodash": [namespace("_")]})
        assert generate_provider_source(plan) == textwrap.dedent("""\
            import React from 'react';
            import * as _ from 'lodash';

            export const externals = {
              'react': { default: React },
              'lodash': _,
            };
            """)

    def test_empty_provider_source(self):
        assert generate_provider_source(ConsolidatedImportPlan(), export_name="deps") == (
            "export const deps = {};\n"
        )

    def test_named_import_specifier(self):
        assert NamedImport("A", "A").specifier() == "A"
        assert NamedImport("A", "A1").specifier() == "A as A1"

    def test_as_dict(self):
        data = consolidate({"react": [default("React")]}).as_dict()
        assert data["modules"]["react"]["default"] == "React"
        assert data["imports"] == ["import React from 'react';"]


# ── Externals helpers ──


class TestMergeExternals:
    def test_merges_in_first_occurrence_order(self):
        merged = merge_externals(
            [
                {},
                {"react": [default("React")]},
                {"lodash": [named("map")], "react": [default("React"), named("useState")]},
            ]
        )
        assert list(merged) == ["react", "lodash"]
        assert merged["react"] == [default("React"), named("useState")]

    def test_is_type_distinguishes_entries(self):
        merged = merge_externals([{"r": [named("A", is_type=True)]}, {"r": [named("A")]}])
        assert merged["r"] == [named("A", is_type=True), named("A")]

    def test_empty(self):
        assert merge_externals([]) == {}

    def test_records_feed_the_consolidator(self):
        first = parse_imports("import React from 'react';\nimport a from './a';", "/a.ts")
        second = parse_imports("import { Button } from 'antd';\nimport R from 'react';", "/b.ts")
        plan = consolidate(
            merge_externals([externals_from_records(first), externals_from_records(second)])
        )
        assert plan.import_statements() == [
            "import React from 'react';",
            "import { Button } from 'antd';",
        ]


class TestExternalsToPackages:
    def test_packages(self):
        assert externals_to_packages(
            ["react", "lodash/get", "@mui/material", "@mui/material/Button"]
        ) == {"react": True, "lodash": True, "@mui/material": True}

    def test_invalid_inputs(self):
        assert externals_to_packages(["", "@", "@scope", "@scope/package/x"]) == {
            "@scope/package": True
        }

    def test_path_aliases_are_dropped(self):
        assert externals_to_packages(["@/components/Button", "react"]) == {"react": True}

    def test_relative_paths(self):
        assert externals_to_packages(["./relative", "../parent", "pkg/sub"]) == {
            ".": True,
            "..": True,
            "pkg": True,
        }
