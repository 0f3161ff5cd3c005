from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from . import config as config_mod
from .models import Settings
from .storage import Storage


def run_onboarding(storage: Optional[Storage] = None, console: Optional[Console] = None) -> Settings:
    console = console or Console()
    storage = storage or Storage()
    settings = config_mod.load_settings(storage)

    console.clear()

    welcome_text = Text()
    welcome_text.append("Welcome to echocraft!\n\n", style="bold cyan")
    welcome_text.append("Dictate, then let an LLM polish the transcript for you.\n", style="dim")
    console.print(Panel(welcome_text, border_style="cyan", expand=False))
    console.print()

    console.print("[bold]AI Model[/bold]")
    console.print()
    model_choices = []
    for index, model in enumerate(settings.models, start=1):
        console.print(f"  {index}. {model.name}")
        model_choices.append(str(index))
    console.print()

    current_model = next(
        (str(i) for i, model in enumerate(settings.models, start=1) if model.id == settings.selected_model),
        "1",
    )
    model_choice = Prompt.ask("Select option", choices=model_choices, default=current_model, console=console)
    model = settings.models[int(model_choice) - 1]
    settings = config_mod.select_model(settings, model.id)

    console.print()
    console.print(f"Enter your {model.name} API key (leave empty to keep the current one):")
    api_key = Prompt.ask("API Key", password=True, default="", show_default=False, console=console)
    if api_key:
        settings = config_mod.set_credential(settings, model.id, api_key)

    console.print()
    console.print("[bold]Polish Scene[/bold]")
    console.print()
    scene_choices = []
    for index, scene in enumerate(settings.scenes, start=1):
        console.print(f"  {index}. {scene.name}")
        scene_choices.append(str(index))
    console.print()

    current_scene = next(
        (str(i) for i, scene in enumerate(settings.scenes, start=1) if scene.id == settings.selected_scene),
        "1",
    )
    scene_choice = Prompt.ask("Select option", choices=scene_choices, default=current_scene, console=console)
    settings = config_mod.select_scene(settings, settings.scenes[int(scene_choice) - 1].id)

    console.print()
    console.print("[bold green]Setup Complete![/bold green]")
    console.print()

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="cyan")
    summary.add_column()
    summary.add_row("Hotkey:", settings.hotkey)
    summary.add_row("Model:", model.name)
    summary.add_row("API key:", "configured" if settings.find_model(model.id).has_credential else "missing")
    summary.add_row("Scene:", settings.active_scene.name)
    console.print(Panel(summary, title="Your Configuration", border_style="green"))
    console.print()

    if Confirm.ask("Save this configuration?", default=True, console=console):
        config_mod.save_settings(storage, settings)
        console.print("[green]Configuration saved.[/green]")
        console.print()
        console.print("[bold]To polish some text, run:[/bold]")
        console.print("  [cyan]echocraft polish \"<text>\"[/cyan]")
        console.print()
    else:
        console.print("[yellow]Configuration not saved. Run 'echocraft setup' to try again.[/yellow]")
    return settings
