"""Exception hierarchy for importkit.

The parsers never raise on malformed input: unparsable fragments degrade to
leaves and malformed declarations are skipped. Two operations fail hard:
resolving a single path that matches no file, and flat storage of files
that cannot be told apart.
"""

from typing import Sequence


class ImportKitError(Exception):
    """Base exception for all importkit errors."""


class ResolverError(ImportKitError):
    """Base exception for module path resolution failures."""


class UnresolvedModuleError(ResolverError):
    """No file or index file matched a module specifier."""

    def __init__(self, specifier: str, tried: Sequence[str]):
        self.specifier = specifier
        self.tried = tuple(tried)
        super().__init__(
            f'Could not resolve module at path "{specifier}". '
            f"Tried extensions: {', '.join(self.tried)}"
        )


class FlatNamingError(ImportKitError):
    """Files stored side by side could not be given distinct names."""

    def __init__(self, paths: Sequence[str]):
        self.paths = tuple(paths)
        super().__init__(
            f"Cannot find distinguishing segment for files: {', '.join(self.paths)}"
        )
