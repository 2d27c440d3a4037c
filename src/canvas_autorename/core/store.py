"""document store: where canvases and their attachments live.

all paths are vault-relative posix strings ("attachments/a.png"),
the same shape canvas file nodes use.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .errors import (
    DocumentNotFoundError,
    RenameConflictError,
    SourceMissingError,
    StoreError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultFile:
    """handle to a file in the vault."""

    path: str

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)

    @property
    def extension(self) -> str:
        name = self.name
        return name.rsplit(".", 1)[-1] if "." in name else ""

    @property
    def parent(self) -> str:
        """parent directory, '' at the vault root."""
        return posixpath.dirname(self.path)


def normalize_path(path: str) -> str:
    """canonical vault-relative form. rejects paths leaving the vault."""
    cleaned = posixpath.normpath(path.replace("\\", "/")).lstrip("/")
    if cleaned in ("", ".") or cleaned == ".." or cleaned.startswith("../"):
        raise StoreError(f"path outside vault: {path!r}")
    return cleaned


@runtime_checkable
class DocumentStore(Protocol):
    """protocol for document stores (filesystem or in-memory)."""

    def read(self, path: str) -> str:
        """return document text. raises DocumentNotFoundError."""
        ...

    def write(self, path: str, text: str) -> None:
        """overwrite document text."""
        ...

    def resolve(self, path: str) -> Optional[VaultFile]:
        """handle for path, or None if nothing is there."""
        ...

    def rename(self, file: VaultFile, new_path: str) -> VaultFile:
        """move file to new_path, returning the new handle."""
        ...

    def list_files(self, extension: Optional[str] = None) -> list[VaultFile]:
        """every file in the store, optionally filtered by extension."""
        ...


class VaultStore:
    """document store backed by a directory on disk."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _abs(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def read(self, path: str) -> str:
        target = self._abs(path)
        if not target.is_file():
            raise DocumentNotFoundError(f"document not found: {path}")
        try:
            return target.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"cannot read {path}: {e}") from e

    def write(self, path: str, text: str) -> None:
        target = self._abs(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            raise StoreError(f"cannot write {path}: {e}") from e

    def resolve(self, path: str) -> Optional[VaultFile]:
        try:
            target = self._abs(path)
        except StoreError:
            return None
        if not target.is_file():
            return None
        return VaultFile(normalize_path(path))

    def rename(self, file: VaultFile, new_path: str) -> VaultFile:
        source = self._abs(file.path)
        dest = self._abs(new_path)
        if not source.is_file():
            raise SourceMissingError(f"source missing: {file.path}")
        if dest.exists():
            raise RenameConflictError(f"destination exists: {new_path}")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            source.rename(dest)
        except FileNotFoundError as e:
            raise SourceMissingError(f"source missing: {file.path}") from e
        except OSError as e:
            raise StoreError(f"cannot rename {file.path} -> {new_path}: {e}") from e
        logger.debug(f"moved {source} -> {dest}")
        return VaultFile(normalize_path(new_path))

    def list_files(self, extension: Optional[str] = None) -> list[VaultFile]:
        files = []
        for p in sorted(self.root.rglob("*")):
            if not p.is_file():
                continue
            rel = p.relative_to(self.root).as_posix()
            # skip hidden dirs like .obsidian/ and .git/
            if any(part.startswith(".") for part in rel.split("/")[:-1]):
                continue
            vf = VaultFile(rel)
            if extension and vf.extension.lower() != extension.lower():
                continue
            files.append(vf)
        return files


class MemoryStore:
    """in-memory document store for testing and dry runs."""

    def __init__(self, files: Optional[dict[str, str]] = None):
        self.files: dict[str, str] = {
            normalize_path(k): v for k, v in (files or {}).items()
        }
        self.writes: list[tuple[str, str]] = []  # track every write
        self.renames: list[tuple[str, str]] = []  # track every rename

    def read(self, path: str) -> str:
        key = normalize_path(path)
        if key not in self.files:
            raise DocumentNotFoundError(f"document not found: {path}")
        return self.files[key]

    def write(self, path: str, text: str) -> None:
        key = normalize_path(path)
        self.files[key] = text
        self.writes.append((key, text))

    def resolve(self, path: str) -> Optional[VaultFile]:
        try:
            key = normalize_path(path)
        except StoreError:
            return None
        return VaultFile(key) if key in self.files else None

    def rename(self, file: VaultFile, new_path: str) -> VaultFile:
        old = normalize_path(file.path)
        new = normalize_path(new_path)
        if old not in self.files:
            raise SourceMissingError(f"source missing: {file.path}")
        if new in self.files:
            raise RenameConflictError(f"destination exists: {new_path}")
        self.files[new] = self.files.pop(old)
        self.renames.append((old, new))
        return VaultFile(new)

    def list_files(self, extension: Optional[str] = None) -> list[VaultFile]:
        files = [VaultFile(p) for p in sorted(self.files)]
        if extension:
            files = [f for f in files if f.extension.lower() == extension.lower()]
        return files
