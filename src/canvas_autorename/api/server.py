"""fastapi server for canvas autorename.

exposes the rename service over http: paste events from the editor,
on-demand passes, dry-run plans, and the settings form backend.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from ..core.config import (
    Settings,
    get_settings_path,
    load_settings,
    parse_settings,
    save_settings,
)
from ..core.errors import ConfigError, DocumentNotFoundError, ParseError, StoreError
from ..core.service import PasteEvent, RenameService, Trigger
from ..core.store import VaultStore


# --- pydantic models for api ---

class PasteRequest(BaseModel):
    """paste reported by the editor."""
    document_path: str
    mime_types: list[str] = []


class SettingsUpdate(BaseModel):
    """partial settings update; None leaves a value as is."""
    target_document_path: Optional[str] = None
    prefix: Optional[str] = None
    poll_interval: Optional[float] = None
    paste_delay: Optional[float] = None
    retry_delay: Optional[float] = None
    max_empty_retries: Optional[int] = None


class FileResponse(BaseModel):
    """file in the vault."""
    path: str
    extension: str


class PlanEntryResponse(BaseModel):
    index: int
    node_id: str
    old_path: str
    new_path: str


class PlanResponse(BaseModel):
    """dry-run plan."""
    document_path: str
    qualifying: int
    entries: list[PlanEntryResponse]
    skipped: list[str]


# --- app state ---

class AppState:
    """shared application state: one vault, one settings file, one service."""

    def __init__(self, vault: Optional[Path] = None, watch: bool = True):
        self.vault = Path(vault or Path.cwd())
        self.store = VaultStore(self.vault)
        self.settings_path = get_settings_path(self.vault)
        self.watch = watch
        self._service: Optional[RenameService] = None

    @property
    def service(self) -> RenameService:
        # built lazily so settings load after the vault is configured
        if self._service is None:
            self._service = RenameService(self.store, load_settings(self.settings_path))
        return self._service

    @property
    def settings(self) -> Settings:
        return self.service.settings

    def update_settings(self, update: SettingsUpdate) -> Settings:
        """merge, validate, persist, and push to the service.

        raises ConfigError on invalid values.
        """
        data = self.settings.model_dump()
        data.update(update.model_dump(exclude_none=True))
        settings = parse_settings(data)
        save_settings(settings, self.settings_path)
        self.service.update_settings(settings)
        return settings


state = AppState(watch=False)


# --- lifespan ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup: the worker always runs, the timer only when watching
    await state.service.start(tick=state.watch)
    yield
    # shutdown: stop the timer and any pending retries
    await state.service.stop()


# --- app ---

app = FastAPI(
    title="canvas autorename api",
    description="rename canvas images after their grid position",
    version="0.1.0",
    lifespan=lifespan,
)


# --- endpoints ---

@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/status")
async def status():
    service = state.service
    return {
        "vault": str(state.vault),
        "running": service.running,
        "watching": service.watching,
        "settings": state.settings.to_dict(),
        "last_result": service.last_result.to_dict() if service.last_result else None,
    }


@app.get("/settings")
async def get_settings():
    return state.settings.to_dict()


@app.put("/settings")
async def put_settings(req: SettingsUpdate):
    try:
        settings = state.update_settings(req)
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return settings.to_dict()


@app.get("/files", response_model=list[FileResponse])
async def list_files(extension: Optional[str] = Query(None)):
    """vault files, e.g. ?extension=canvas for the target picker."""
    return [
        FileResponse(path=f.path, extension=f.extension)
        for f in state.store.list_files(extension)
    ]


@app.get("/plan", response_model=PlanResponse)
async def get_plan():
    target = state.settings.target_document_path
    if not target:
        raise HTTPException(status_code=409, detail="no target canvas configured")
    try:
        plan = await state.service.preview()
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return PlanResponse(
        document_path=target,
        qualifying=plan.qualifying,
        entries=[PlanEntryResponse(**e.to_dict()) for e in plan.entries],
        skipped=[str(e) for e in plan.skipped],
    )


@app.post("/run")
async def run_pass():
    result = await state.service.run_pass(Trigger.MANUAL)
    return result.to_dict()


@app.post("/paste")
async def paste(req: PasteRequest):
    event = PasteEvent(document_path=req.document_path, mime_types=tuple(req.mime_types))
    accepted = state.service.handle_paste(event)
    return {"accepted": accepted}


# --- entrypoint ---

def serve(vault: Path, host: str = "127.0.0.1", port: int = 8000, watch: bool = True) -> None:
    """run the api server for a vault."""
    import uvicorn

    global state
    state = AppState(vault=vault, watch=watch)
    uvicorn.run(app, host=host, port=port)
