"""Command line interface for the echocraft application."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import typer

from . import __version__
from . import config as config_mod
from .config import ConfigError
from .models import Settings
from .polisher import PolishSession, SessionBusyError
from .providers import PolishCancelled
from .storage import Storage, StorageError

app = typer.Typer(add_completion=False, help="Polish dictated text with a remote LLM.")
scene_app = typer.Typer(help="Manage polish scenes.")
model_app = typer.Typer(help="Manage LLM providers.")
app.add_typer(scene_app, name="scene")
app.add_typer(model_app, name="model")


def _open_storage() -> Storage:
    try:
        return Storage()
    except StorageError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def _load() -> tuple[Storage, Settings]:
    storage = _open_storage()
    return storage, config_mod.load_settings(storage)


def _edit(update: Callable[[Settings], Settings]) -> Settings:
    storage, settings = _load()
    try:
        settings = update(settings)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    config_mod.save_settings(storage, settings)
    return settings


def _mask(credential: Optional[str]) -> str:
    if not credential:
        return "-"
    if len(credential) <= 8:
        return "****"
    return f"{credential[:3]}...{credential[-4:]}"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if version:
        typer.echo(f"echocraft v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command()
def polish(
    text: Optional[str] = typer.Argument(None, help="Text to polish. Read from stdin when omitted."),
    scene: Optional[str] = typer.Option(None, "--scene", "-s", help="Use this scene for this call only."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Use this model for this call only."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also write the polished text to a file."),
    show_original: bool = typer.Option(False, "--show-original", help="Print the original text first."),
) -> None:
    """Polish dictated text with the selected scene and model."""

    if text is None:
        text = sys.stdin.read()
    text = text.strip()
    if not text:
        typer.secho("Nothing to polish.", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    storage, settings = _load()
    if scene is not None and settings.find_scene(scene) is None:
        typer.secho(f"Unknown scene: {scene}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if model is not None and settings.find_model(model) is None:
        typer.secho(f"Unknown model: {model}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    session = PolishSession(settings, storage=storage)
    try:
        pair = session.submit(text, scene_id=scene, model_id=model)
    except (SessionBusyError, PolishCancelled) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    if show_original:
        typer.secho("Original:\n" + pair.original, fg=typer.colors.BLUE)
        typer.echo("")
    typer.echo(pair.polished)

    if output is not None:
        output.write_text(pair.polished + "\n", encoding="utf-8")
        typer.secho(f"\nSaved polished text to {output}.", fg=typer.colors.BLUE)


@app.command()
def scenes() -> None:
    """List polish scenes."""

    _, settings = _load()
    header = f"   {'ID':<24}  {'Name':<30}"
    typer.echo(header)
    typer.echo("-" * len(header))
    for scene in settings.scenes:
        marker = "*" if scene.id == settings.selected_scene else " "
        typer.echo(f"{marker}  {scene.id:<24}  {scene.name:<30}")


@scene_app.command("show")
def scene_show(scene_id: str = typer.Argument(..., help="Scene identifier.")) -> None:
    """Show a scene's prompt."""

    _, settings = _load()
    scene = settings.find_scene(scene_id)
    if scene is None:
        typer.secho(f"Unknown scene: {scene_id}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.secho(f"{scene.name} ({scene.id})", fg=typer.colors.BLUE)
    typer.echo(scene.prompt)


@scene_app.command("add")
def scene_add(
    name: str = typer.Option(config_mod.CUSTOM_SCENE_NAME, "--name", help="Display name."),
    prompt: str = typer.Option(config_mod.CUSTOM_SCENE_PROMPT, "--prompt", help="Template placed before the text."),
    select: bool = typer.Option(False, "--select", help="Select the new scene."),
) -> None:
    """Add a custom scene."""

    created = {}

    def update(settings: Settings) -> Settings:
        settings, scene = config_mod.add_custom_scene(settings, name=name, prompt=prompt)
        created["scene"] = scene
        return config_mod.select_scene(settings, scene.id) if select else settings

    _edit(update)
    typer.secho(f"Scene {created['scene'].id} added.", fg=typer.colors.BLUE)


@scene_app.command("edit")
def scene_edit(
    scene_id: str = typer.Argument(..., help="Scene identifier."),
    name: Optional[str] = typer.Option(None, "--name", help="New display name."),
    prompt: Optional[str] = typer.Option(None, "--prompt", help="New prompt template."),
) -> None:
    """Rename a scene or replace its prompt."""

    if name is None and prompt is None:
        typer.secho("Nothing to change. Pass --name and/or --prompt.", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    _edit(lambda settings: config_mod.update_scene(settings, scene_id, name=name, prompt=prompt))
    typer.secho(f"Scene {scene_id} updated.", fg=typer.colors.BLUE)


@scene_app.command("delete")
def scene_delete(scene_id: str = typer.Argument(..., help="Scene identifier.")) -> None:
    """Delete a scene. The last remaining scene cannot be deleted."""

    settings = _edit(lambda current: config_mod.delete_scene(current, scene_id))
    typer.secho(f"Scene {scene_id} deleted. Selected scene: {settings.selected_scene}", fg=typer.colors.BLUE)


@scene_app.command("select")
def scene_select(scene_id: str = typer.Argument(..., help="Scene identifier.")) -> None:
    """Select the scene used for polishing."""

    _edit(lambda settings: config_mod.select_scene(settings, scene_id))
    typer.secho(f"Scene {scene_id} selected.", fg=typer.colors.BLUE)


@app.command()
def models() -> None:
    """List LLM providers."""

    _, settings = _load()
    header = f"   {'ID':<10}  {'Name':<20}  {'API key':<12}"
    typer.echo(header)
    typer.echo("-" * len(header))
    for model in settings.models:
        marker = "*" if model.id == settings.selected_model else " "
        typer.echo(f"{marker}  {model.id:<10}  {model.name:<20}  {_mask(model.api_key):<12}")


@model_app.command("select")
def model_select(model_id: str = typer.Argument(..., help="Model identifier.")) -> None:
    """Select the provider used for polishing."""

    _edit(lambda settings: config_mod.select_model(settings, model_id))
    typer.secho(f"Model {model_id} selected.", fg=typer.colors.BLUE)


@app.command()
def key(
    model_id: str = typer.Argument(..., help="Model identifier."),
    credential: str = typer.Option(
        "",
        "--credential",
        help="API key for the provider. Leave empty to clear it.",
        prompt=True,
        hide_input=True,
    ),
) -> None:
    """Store the API key for a provider."""

    settings = _edit(lambda current: config_mod.set_credential(current, model_id, credential))
    model = settings.find_model(model_id)
    state = "stored" if model is not None and model.api_key else "cleared"
    typer.secho(f"API key for {model_id} {state}.", fg=typer.colors.BLUE)


@app.command()
def config(
    hotkey: Optional[str] = typer.Option(None, help="Hotkey that starts and stops recording."),
    show: bool = typer.Option(False, "--show", help="Display the stored settings."),
) -> None:
    """Update or inspect settings."""

    if show or hotkey is None:
        _, settings = _load()
        payload = config_mod.settings_to_dict(settings)
        for entry in payload["models"]:
            if "apiKey" in entry:
                entry["apiKey"] = _mask(entry["apiKey"])
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    _edit(lambda settings: config_mod.set_hotkey(settings, hotkey))
    typer.secho("Configuration updated.", fg=typer.colors.BLUE)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8765, help="Port to listen on."),
) -> None:  # pragma: no cover - starts a server
    """Run the HTTP API."""

    import uvicorn

    uvicorn.run("echocraft.api:app", host=host, port=port, log_level="info")


@app.command()
def setup() -> None:
    """Run the interactive setup wizard."""

    from .onboarding import run_onboarding

    try:
        run_onboarding()
    except Exception as exc:
        typer.secho(f"Setup failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def settings() -> None:  # pragma: no cover - interactive
    """Open the interactive settings editor."""

    from .settings_ui import show_settings_ui

    try:
        show_settings_ui()
    except Exception as exc:
        typer.secho(f"Settings UI failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":  # pragma: no cover
    app()
