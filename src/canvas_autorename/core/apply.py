"""apply a rename plan against a document store.

the plan is never modified and the document is never touched here;
callers turn ApplyResult.files into a new document snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

from .errors import SourceMissingError, StoreError
from .models import RenameEntry
from .store import DocumentStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class ApplyResult:
    """what happened to each entry of a plan."""

    renamed: list[RenameEntry] = field(default_factory=list)
    retried: list[RenameEntry] = field(default_factory=list)
    abandoned: list[tuple[RenameEntry, str]] = field(default_factory=list)

    @property
    def dirty(self) -> bool:
        """document needs writing back."""
        return bool(self.renamed)

    @property
    def files(self) -> dict[int, str]:
        """node list position -> new path, for CanvasDocument.with_files."""
        return {entry.index: entry.new_path for entry in self.renamed}


def rename_entry(store: DocumentStore, entry: RenameEntry) -> None:
    """rename one file.

    raises SourceMissingError if old_path no longer resolves, other
    StoreError subclasses for everything else.
    """
    source = store.resolve(entry.old_path)
    if source is None:
        raise SourceMissingError(f"source missing: {entry.old_path}")
    store.rename(source, entry.new_path)


async def apply_plan(
    store: DocumentStore,
    entries: Iterable[RenameEntry],
    retry_delay: float = 1.0,
    sleep: Sleep = asyncio.sleep,
) -> ApplyResult:
    """rename every entry, retrying missing sources exactly once.

    missing sources are usually a paste that has not hit the disk yet,
    so they get one more try after retry_delay. conflicts and other
    store failures are logged and dropped.
    """
    result = ApplyResult()
    missing: list[RenameEntry] = []

    for entry in entries:
        logger.info(f"renaming {entry.old_path} -> {entry.new_path}")
        try:
            rename_entry(store, entry)
        except SourceMissingError as e:
            logger.warning(f"{e}, retrying in {retry_delay}s")
            missing.append(entry)
            continue
        except StoreError as e:
            logger.error(f"rename failed: {entry.old_path} -> {entry.new_path}: {e}")
            result.abandoned.append((entry, str(e)))
            continue
        result.renamed.append(entry)

    if not missing:
        return result

    await sleep(retry_delay)

    for entry in missing:
        result.retried.append(entry)
        logger.info(f"retrying rename {entry.old_path} -> {entry.new_path}")
        try:
            rename_entry(store, entry)
        except StoreError as e:
            logger.error(f"retry failed, giving up on {entry.old_path}: {e}")
            result.abandoned.append((entry, str(e)))
            continue
        result.renamed.append(entry)

    return result
