"""Exceptions raised by the workspace core.

Absent files, nodes and identifiers are not errors: lookups return None.
"""


class WorkspaceError(Exception):
    """Base class for workspace errors."""


class PathViolationError(WorkspaceError):
    """A requested path resolves outside the configured export roots."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path escapes the workspace exports: {path}")
