"""importkit — Source-text analysis for script and style-sheet imports."""

from importkit.arguments import (
    ArrayLiteral,
    ArrowFn,
    ArrowTypes,
    Call,
    FactoryCall,
    Generic,
    Leaf,
    ObjectLiteral,
    ParsedElement,
    TypeAssertion,
    parse_arguments,
    parse_element,
    parse_file_exports,
)
from importkit.consolidator import (
    ConsolidatedImportPlan,
    ModuleImports,
    NamedImport,
    consolidate,
    externals_from_records,
    externals_to_packages,
    generate_provider_source,
    merge_externals,
)
from importkit.errors import (
    FlatNamingError,
    ImportKitError,
    ResolverError,
    UnresolvedModuleError,
)
from importkit.imports import (
    BindingKind,
    ImportBinding,
    ImportRecord,
    ImportsResult,
    parse_imports,
)
from importkit.resolver import (
    DirectoryEntry,
    ModuleResolver,
    ResolveOptions,
    list_directory,
)
from importkit.rewriter import (
    ProcessedImports,
    StoreAtMode,
    flat_file_names,
    process_relative_imports,
    rewrite_import_paths,
)
from importkit.scanner import (
    IGNORE_COMMENT_PREFIXES,
    ProcessedComments,
    Scanner,
    ScanMode,
    SourceRange,
    process_comments,
    strip_comments,
)
from importkit.serializer import serialize_arguments, serialize_element

__all__ = [
    # Scanner (C1)
    "Scanner",
    "ScanMode",
    "SourceRange",
    "strip_comments",
    "IGNORE_COMMENT_PREFIXES",
    "ProcessedComments",
    "process_comments",
    # Argument Parser (C2)
    "ParsedElement",
    "Leaf",
    "ArrayLiteral",
    "Call",
    "Generic",
    "ArrowFn",
    "ArrowTypes",
    "ObjectLiteral",
    "TypeAssertion",
    "FactoryCall",
    "parse_arguments",
    "parse_element",
    "parse_file_exports",
    # Argument Serializer (C3)
    "serialize_arguments",
    "serialize_element",
    # Import Declaration Parser (C4)
    "BindingKind",
    "ImportBinding",
    "ImportRecord",
    "ImportsResult",
    "parse_imports",
    # Module Path Resolver (C5)
    "DirectoryEntry",
    "ModuleResolver",
    "ResolveOptions",
    "list_directory",
    # Import Consolidator (C6)
    "ConsolidatedImportPlan",
    "ModuleImports",
    "NamedImport",
    "consolidate",
    "externals_from_records",
    "externals_to_packages",
    "generate_provider_source",
    "merge_externals",
    # Import Rewriter (C7)
    "rewrite_import_paths",
    "StoreAtMode",
    "ProcessedImports",
    "flat_file_names",
    "process_relative_imports",
    # Errors
    "ImportKitError",
    "ResolverError",
    "UnresolvedModuleError",
    "FlatNamingError",
]
