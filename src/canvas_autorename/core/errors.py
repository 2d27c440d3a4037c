"""error taxonomy for canvas autorename.

every error is scoped to a single pass; none of them should take down
the running service.
"""

from __future__ import annotations


class AutoRenameError(Exception):
    """base class for all canvas autorename errors."""

    pass


class SkippableNodeError(AutoRenameError):
    """a qualifying node is malformed. skip it, keep going."""

    def __init__(self, node_id: str, reason: str):
        self.node_id = node_id
        self.reason = reason
        super().__init__(f"node {node_id}: {reason}")


class ParseError(AutoRenameError):
    """the canvas document could not be parsed. abort the pass."""

    pass


class ConfigError(AutoRenameError):
    """settings file missing required shape or holding invalid values."""

    pass


class StoreError(AutoRenameError):
    """document store failure (base of the store-side errors)."""

    pass


class DocumentNotFoundError(StoreError):
    """path does not resolve to a document."""

    pass


class SourceMissingError(StoreError):
    """rename source no longer resolves to a file. retried once."""

    pass


class RenameConflictError(StoreError):
    """rename destination is already taken. never retried."""

    pass
