"""canvas autorename: settings form.

pick the target canvas and the filename prefix, preview the renames.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Input, Select, Static

from .core.config import (
    DEFAULT_PREFIX,
    Settings,
    get_settings_path,
    load_settings,
    parse_settings,
    save_settings,
)
from .core.errors import ConfigError, DocumentNotFoundError, ParseError
from .core.models import CanvasDocument
from .core.planner import plan_renames
from .core.store import VaultStore


class SettingsApp(App):
    """settings form for one vault."""

    TITLE = "canvas autorename"

    CSS = """
    #form {
        height: auto;
        padding: 1;
        border: solid $primary;
        margin: 1;
    }

    .label {
        margin-top: 1;
        text-style: bold;
    }

    .desc {
        color: $text-muted;
    }

    #buttons {
        height: auto;
        margin-top: 1;
    }

    #buttons Button {
        margin: 0 1 0 0;
    }

    #preview {
        padding: 1;
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "quit"),
        Binding("ctrl+s", "save", "save"),
        Binding("p", "preview", "preview"),
    ]

    def __init__(self, vault: Path):
        super().__init__()
        self.vault = Path(vault)
        self.store = VaultStore(self.vault)
        self.settings_path = get_settings_path(self.vault)
        self.last_preview = ""
        self._load_error: Optional[str] = None
        try:
            self.current_settings = load_settings(self.settings_path)
        except ConfigError as e:
            self.current_settings = Settings()
            self._load_error = str(e)

    def compose(self) -> ComposeResult:
        """compose the form."""
        yield Header()

        canvases = [f.path for f in self.store.list_files("canvas")]
        select_kwargs = {}
        if self.current_settings.target_document_path in canvases:
            select_kwargs["value"] = self.current_settings.target_document_path

        with Vertical(id="form"):
            yield Static("target canvas", classes="label")
            yield Static("canvas whose images get renamed", classes="desc")
            yield Select(
                [(path, path) for path in canvases],
                prompt="pick a canvas",
                allow_blank=True,
                id="target",
                **select_kwargs,
            )

            yield Static("filename prefix", classes="label")
            yield Static(f'prefix for renamed images (e.g. "{DEFAULT_PREFIX}")', classes="desc")
            yield Input(
                value=self.current_settings.prefix,
                placeholder="enter a prefix",
                id="prefix",
            )

            with Horizontal(id="buttons"):
                yield Button("save", id="save", variant="primary")
                yield Button("preview", id="preview-button")

        yield Static("", id="preview", markup=False)
        yield Footer()

    def on_mount(self) -> None:
        """surface a broken settings file instead of silently replacing it."""
        if self._load_error:
            self.notify(f"settings file ignored: {self._load_error}", severity="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save":
            self.action_save()
        elif event.button.id == "preview-button":
            self.action_preview()

    def _form_settings(self) -> Settings:
        """settings as currently entered. raises ConfigError."""
        target = self.query_one("#target", Select).value
        prefix = self.query_one("#prefix", Input).value
        data = self.current_settings.model_dump()
        data["target_document_path"] = target if isinstance(target, str) else ""
        data["prefix"] = prefix
        return parse_settings(data)

    def action_save(self) -> None:
        """validate and persist the form."""
        try:
            settings = self._form_settings()
            save_settings(settings, self.settings_path)
        except (ConfigError, OSError) as e:
            self.notify(f"save failed: {e}", severity="error")
            return
        self.current_settings = settings
        # an empty prefix falls back to the default
        self.query_one("#prefix", Input).value = settings.prefix
        self.notify(f"saved to {self.settings_path}")

    def action_preview(self) -> None:
        """show what the next pass would rename."""
        try:
            self.last_preview = render_preview(self.store, self._form_settings())
        except ConfigError as e:
            self.last_preview = str(e)
        self.query_one("#preview", Static).update(self.last_preview)


def render_preview(store: VaultStore, settings: Settings) -> str:
    """plain-text dry run of the next pass."""
    path = settings.target_document_path
    if not path:
        return "no target canvas selected"
    try:
        document = CanvasDocument.parse(store.read(path))
    except (DocumentNotFoundError, ParseError) as e:
        return f"cannot read {path}: {e}"

    plan = plan_renames(document.nodes, settings.prefix, path)
    lines = [f"{plan.qualifying} image(s), {len(plan)} to rename"]
    lines.extend(f"  {e.old_path} -> {e.new_path}" for e in plan.entries)
    lines.extend(f"  skipped: {e}" for e in plan.skipped)
    return "\n".join(lines)


def run(vault: Optional[str] = None) -> None:
    """run the settings form."""
    app = SettingsApp(Path(vault) if vault else Path.cwd())
    app.run()
