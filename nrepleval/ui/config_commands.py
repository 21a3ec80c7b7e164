"""
Configuration inspection commands.

Lazy-loaded only when the settings command is used, so Rich stays out of
the eval path.
"""

import os

from rich.console import Console
from rich.table import Table

from nrepleval.core.configs import (
    CONFIG_PATH,
    ENV_FILE,
    ENV_KEYS,
    get_client_config,
    load_raw_config,
)

console = Console()


def handle_config(action: str) -> None:
    """
    Route to appropriate config action.

    Args:
        action: One of 'show' or 'path'
    """
    actions = {
        "show": show_config,
        "path": show_path,
    }

    if action not in actions:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Available actions: show, path")
        raise SystemExit(2)

    actions[action]()


def show_path() -> None:
    console.print(str(CONFIG_PATH))


def show_config() -> None:
    """Display the resolved client configuration."""
    raw = load_raw_config()
    try:
        config = get_client_config(raw)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise SystemExit(2)

    env_overrides = {key for env_key, key in ENV_KEYS.items() if os.environ.get(env_key)}

    table = Table(title="nrepleval configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_column("Source", style="dim")

    for name, value in vars(config).items():
        if name in env_overrides:
            source = "environment"
        elif name in raw:
            source = "config file / .env"
        else:
            source = "default"
        table.add_row(name, "unbounded" if value is None else str(value), source)

    console.print(table)
    console.print(f"Config file: {CONFIG_PATH} ({'found' if CONFIG_PATH.exists() else 'missing'})")
    console.print(f".env file:   {ENV_FILE.resolve()} ({'found' if ENV_FILE.exists() else 'missing'})")
