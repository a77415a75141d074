"""Error types raised by lazy-bump.

Validation errors abort the whole run before anything is written to disk.
Propagation itself never raises once its inputs have been validated.
"""

from __future__ import annotations


class LazyBumpError(Exception):
    """Base class for all lazy-bump errors."""


class MalformedChangeFile(LazyBumpError):
    """A change file could not be turned into a valid change record."""


class InvalidBumpType(MalformedChangeFile):
    """A bump type string is not one of the recognized values."""


class UnknownPackage(MalformedChangeFile):
    """A change file or config entry names a package outside the workspace."""


class DanglingDependency(LazyBumpError):
    """A package declares an internal dependency that is not in the graph."""


class ConfigError(LazyBumpError):
    """The [tool.lazy-bump] configuration table is invalid."""
