"""rename service: timer and paste triggers feeding one serialized queue.

every pass reads the target canvas fresh, plans, applies, and writes
the canvas back at most once. passes never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .apply import ApplyResult, Sleep, apply_plan
from .config import Settings
from .errors import DocumentNotFoundError, ParseError, StoreError
from .models import CanvasDocument
from .planner import RenamePlan, plan_renames
from .store import DocumentStore

logger = logging.getLogger(__name__)


class Trigger(Enum):
    TICK = "tick"       # periodic timer
    PASTE = "paste"     # image pasted into the target canvas
    MANUAL = "manual"   # cli / api request


class PassStatus(Enum):
    IDLE = "idle"               # no target canvas configured
    MISSING = "missing"         # target canvas not found
    PARSE_ERROR = "parse_error"
    ERROR = "error"             # store failed reading or writing the canvas
    EMPTY = "empty"             # no usable image nodes (yet)
    CLEAN = "clean"             # every image already has its grid name
    RENAMED = "renamed"
    FAILED = "failed"           # renames attempted, none succeeded


@dataclass(frozen=True)
class PasteEvent:
    """paste into a canvas, as reported by the editor."""

    document_path: str
    mime_types: tuple[str, ...] = ()

    @property
    def has_image(self) -> bool:
        return any(m.startswith("image/") for m in self.mime_types)


@dataclass(frozen=True)
class PassRequest:
    trigger: Trigger
    attempt: int = 0  # empty-plan retries already spent


@dataclass
class PassResult:
    """outcome of one planning pass."""

    trigger: Trigger
    status: PassStatus
    document_path: str = ""
    plan: RenamePlan = field(default_factory=RenamePlan)
    applied: ApplyResult = field(default_factory=ApplyResult)
    message: str = ""
    finished_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict:
        """serialize to dict for json."""
        return {
            "trigger": self.trigger.value,
            "status": self.status.value,
            "document_path": self.document_path,
            "planned": [e.to_dict() for e in self.plan.entries],
            "skipped": [str(e) for e in self.plan.skipped],
            "renamed": [e.to_dict() for e in self.applied.renamed],
            "abandoned": [
                {**entry.to_dict(), "reason": reason}
                for entry, reason in self.applied.abandoned
            ],
            "message": self.message,
            "finished_at": self.finished_at,
        }


class RenameService:
    """keeps one canvas's image names in line with the grid."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[Settings] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.store = store
        self.settings = settings or Settings()
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._queue: asyncio.Queue[PassRequest] = asyncio.Queue()
        self._worker_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._delayed: set[asyncio.Task] = set()
        self._tick_queued = False
        self.last_result: Optional[PassResult] = None

    @property
    def running(self) -> bool:
        """worker is up; passes queued by ticks and pastes will run."""
        return self._worker_task is not None

    @property
    def watching(self) -> bool:
        """periodic tick is on."""
        return self._tick_task is not None

    def update_settings(self, settings: Settings) -> None:
        """use new settings from the next pass on."""
        self.settings = settings

    # --- lifecycle ---

    async def start(self, tick: bool = True) -> None:
        """start the worker and, unless tick is False, the periodic tick."""
        if self._worker_task is None:
            self._worker_task = asyncio.create_task(self._worker())
        if tick and self._tick_task is None:
            self._tick_task = asyncio.create_task(self._tick_loop())
            logger.info(
                f"watching {self.settings.target_document_path or '(no target)'} "
                f"every {self.settings.poll_interval}s"
            )

    async def stop(self) -> None:
        """stop triggers, let a pass in flight finish, then stop the worker.

        a pass that already renamed files still writes the canvas back.
        requests still queued are dropped.
        """
        await _cancel([self._tick_task, *self._delayed])
        self._tick_task = None
        async with self._lock:
            await _cancel([self._worker_task])
            self._worker_task = None
        # the last pass may have re-armed an empty-paste retry
        await _cancel(list(self._delayed))
        self._delayed.clear()
        self._queue = asyncio.Queue()
        self._tick_queued = False

    async def drain(self) -> None:
        """wait until every queued pass has run."""
        await self._queue.join()

    # --- triggers ---

    async def _tick_loop(self) -> None:
        """background loop for periodic passes."""
        while True:
            await self._sleep(self.settings.poll_interval)
            self.request_tick()

    def request_tick(self) -> None:
        """queue a tick pass unless one is already waiting."""
        if self._tick_queued:
            return
        self._tick_queued = True
        self._queue.put_nowait(PassRequest(Trigger.TICK))

    def handle_paste(self, event: PasteEvent) -> bool:
        """queue a pass for an image pasted into the target canvas.

        returns False when the event is ignored: other document, no
        image on the clipboard, or no worker to run the pass.
        """
        target = self.settings.target_document_path
        if not target or event.document_path.strip("/") != target:
            return False
        if not event.has_image:
            return False
        if not self.running:
            logger.warning("paste ignored, service is not running")
            return False
        self._schedule(self.settings.paste_delay, PassRequest(Trigger.PASTE))
        return True

    def _schedule(self, delay: float, request: PassRequest) -> None:
        task = asyncio.create_task(self._enqueue_later(delay, request))
        self._delayed.add(task)
        task.add_done_callback(self._delayed.discard)

    async def _enqueue_later(self, delay: float, request: PassRequest) -> None:
        await self._sleep(delay)
        self._queue.put_nowait(request)

    async def _worker(self) -> None:
        while True:
            request = await self._queue.get()
            if request.trigger is Trigger.TICK:
                self._tick_queued = False
            try:
                result = await self.run_pass(request.trigger)
                self._after_pass(request, result)
            except Exception:
                # a broken pass must not kill the worker
                logger.exception(f"{request.trigger.value} pass crashed")
            finally:
                self._queue.task_done()

    def _after_pass(self, request: PassRequest, result: PassResult) -> None:
        """re-arm a paste pass that found no images yet, a bounded number of times."""
        if request.trigger is not Trigger.PASTE or result.status is not PassStatus.EMPTY:
            return
        if request.attempt >= self.settings.max_empty_retries:
            logger.info("no image nodes after paste, giving up until next tick")
            return
        logger.debug(f"no image nodes after paste, retry {request.attempt + 1}")
        self._schedule(
            self.settings.retry_delay,
            PassRequest(Trigger.PASTE, attempt=request.attempt + 1),
        )

    # --- passes ---

    def _load(self, path: str) -> CanvasDocument:
        return CanvasDocument.parse(self.store.read(path))

    async def preview(self) -> RenamePlan:
        """plan for the target canvas without renaming anything.

        raises DocumentNotFoundError / ParseError to the caller.
        """
        settings = self.settings
        path = settings.target_document_path
        if not path:
            return RenamePlan()
        async with self._lock:
            document = self._load(path)
        return plan_renames(document.nodes, settings.prefix, path)

    async def run_pass(self, trigger: Trigger = Trigger.MANUAL) -> PassResult:
        """read, plan, apply, write back once."""
        async with self._lock:
            result = await self._run_pass(trigger)
        self.last_result = result
        return result

    async def _run_pass(self, trigger: Trigger) -> PassResult:
        settings = self.settings
        path = settings.target_document_path
        if not path:
            logger.debug("no target canvas configured")
            return PassResult(trigger, PassStatus.IDLE)

        try:
            document = self._load(path)
        except DocumentNotFoundError as e:
            logger.warning(str(e))
            return PassResult(trigger, PassStatus.MISSING, path, message=str(e))
        except ParseError as e:
            logger.error(f"cannot parse {path}: {e}")
            return PassResult(trigger, PassStatus.PARSE_ERROR, path, message=str(e))
        except StoreError as e:
            logger.error(f"cannot read {path}: {e}")
            return PassResult(trigger, PassStatus.ERROR, path, message=str(e))

        plan = plan_renames(document.nodes, settings.prefix, path)
        if plan.qualifying == len(plan.skipped):
            logger.debug(f"no image nodes in {path}")
            return PassResult(trigger, PassStatus.EMPTY, path, plan=plan)
        if not plan.entries:
            return PassResult(trigger, PassStatus.CLEAN, path, plan=plan)

        applied = await apply_plan(self.store, plan.entries, settings.retry_delay, self._sleep)
        if not applied.dirty:
            return PassResult(trigger, PassStatus.FAILED, path, plan=plan, applied=applied)

        try:
            self.store.write(path, document.with_files(applied.files).dumps())
        except StoreError as e:
            logger.error(f"renamed {len(applied.renamed)} file(s) but cannot update {path}: {e}")
            return PassResult(trigger, PassStatus.ERROR, path, plan=plan, applied=applied, message=str(e))

        logger.info(f"updated {path}: {len(applied.renamed)} image(s) renamed")
        return PassResult(trigger, PassStatus.RENAMED, path, plan=plan, applied=applied)


async def _cancel(tasks) -> None:
    """cancel tasks and wait for them to unwind."""
    tasks = [t for t in tasks if t is not None]
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
