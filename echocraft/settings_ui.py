from __future__ import annotations

from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, Footer, Header, Input, Label, Select, Static

from . import config as config_mod
from .config import ConfigError
from .models import Settings
from .storage import Storage


class SettingsApp(App):
    CSS = """
    Screen {
        align: center middle;
    }

    #settings-container {
        width: 80;
        height: auto;
        border: solid $primary;
        background: $surface;
        padding: 1 2;
    }

    .section-title {
        text-style: bold;
        color: $accent;
        margin: 1 0;
    }

    .field-row {
        height: 3;
        margin: 0 0 0 2;
    }

    .field-label {
        width: 20;
        content-align: left middle;
    }

    .field-input {
        width: 40;
    }

    #button-container {
        height: 3;
        margin: 1 0 0 0;
        align: center middle;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "save", "Save"),
        Binding("escape", "cancel", "Cancel"),
        Binding("ctrl+c", "quit", "Quit"),
    ]

    def __init__(self, storage: Optional[Storage] = None) -> None:
        super().__init__()
        self.storage = storage or Storage()
        self.settings = config_mod.load_settings(self.storage)

    def compose(self) -> ComposeResult:
        yield Header()

        with Container(id="settings-container"):
            yield Static("echocraft Settings", classes="section-title")

            yield Static("Recording", classes="section-title")
            with Horizontal(classes="field-row"):
                yield Label("Hotkey:", classes="field-label")
                yield Input(value=self.settings.hotkey, placeholder="F9", id="hotkey", classes="field-input")

            yield Static("Model", classes="section-title")
            with Horizontal(classes="field-row"):
                yield Label("AI model:", classes="field-label")
                yield Select(
                    options=[(model.name, model.id) for model in self.settings.models],
                    value=self.settings.selected_model,
                    id="selected_model",
                    allow_blank=False,
                )

            for model in self.settings.models:
                with Horizontal(classes="field-row"):
                    yield Label(f"{model.name} key:", classes="field-label")
                    yield Input(
                        value=model.api_key or "",
                        placeholder=f"API key for {model.name}",
                        password=True,
                        id=f"key-{model.id}",
                        classes="field-input",
                    )

            yield Static("Scene", classes="section-title")
            with Horizontal(classes="field-row"):
                yield Label("Polish scene:", classes="field-label")
                yield Select(
                    options=[(scene.name, scene.id) for scene in self.settings.scenes],
                    value=self.settings.selected_scene,
                    id="selected_scene",
                    allow_blank=False,
                )

            with Horizontal(id="button-container"):
                yield Button("Save", variant="primary", id="save-button")
                yield Button("Cancel", variant="default", id="cancel-button")

        yield Footer()

    def action_save(self) -> None:
        self.save_settings()

    def action_cancel(self) -> None:
        self.exit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-button":
            self.save_settings()
        elif event.button.id == "cancel-button":
            self.exit()

    def collect(self) -> Settings:
        settings = self.settings
        settings = config_mod.set_hotkey(settings, self.query_one("#hotkey", Input).value or "F9")
        settings = config_mod.select_model(settings, str(self.query_one("#selected_model", Select).value))
        settings = config_mod.select_scene(settings, str(self.query_one("#selected_scene", Select).value))
        for model in self.settings.models:
            credential = self.query_one(f"#key-{model.id}", Input).value
            settings = config_mod.set_credential(settings, model.id, credential)
        return settings

    def save_settings(self) -> None:
        try:
            self.settings = self.collect()
        except ConfigError as exc:
            self.notify(f"Failed to save settings: {exc}", severity="error")
            return
        config_mod.save_settings(self.storage, self.settings)
        self.notify("Settings saved.", severity="information")
        self.exit()


def show_settings_ui() -> None:
    app = SettingsApp()
    app.run()
