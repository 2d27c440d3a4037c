"""core primitives shared between frontends."""

from .models import (
    CanvasNode,
    CanvasDocument,
    PositionedImage,
    GridCell,
    RenameEntry,
)
from .planner import RenamePlan, plan_renames, cluster_axis, axis_index
from .store import DocumentStore, VaultFile, VaultStore, MemoryStore
from .config import Settings, load_settings, save_settings, get_settings_path
from .apply import ApplyResult, apply_plan
from .service import RenameService, PasteEvent, PassResult, PassStatus, Trigger
from .errors import (
    AutoRenameError,
    SkippableNodeError,
    ParseError,
    ConfigError,
    StoreError,
    DocumentNotFoundError,
    SourceMissingError,
    RenameConflictError,
)

__all__ = [
    # models
    "CanvasNode",
    "CanvasDocument",
    "PositionedImage",
    "GridCell",
    "RenameEntry",
    # planner
    "RenamePlan",
    "plan_renames",
    "cluster_axis",
    "axis_index",
    # store
    "DocumentStore",
    "VaultFile",
    "VaultStore",
    "MemoryStore",
    # config
    "Settings",
    "load_settings",
    "save_settings",
    "get_settings_path",
    # apply / service
    "ApplyResult",
    "apply_plan",
    "RenameService",
    "PasteEvent",
    "PassResult",
    "PassStatus",
    "Trigger",
    # errors
    "AutoRenameError",
    "SkippableNodeError",
    "ParseError",
    "ConfigError",
    "StoreError",
    "DocumentNotFoundError",
    "SourceMissingError",
    "RenameConflictError",
]
