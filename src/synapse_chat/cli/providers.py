"""Factory functions for CLI.

Centralizes creation of settings, storage, client and orchestrator
instances from the environment. Hides configuration details from
command implementations.
"""

from rich.console import Console

from ..config import Settings, load_settings
from ..generation import ChatOrchestrator
from ..llm import CompletionClient, create_llm_provider
from ..logging_config import configure_logging
from ..persistence import create_storage
from ..sessions import SessionStore

# Default console for output
_console = Console()


def get_settings(console: Console | None = None, **overrides) -> Settings:
    """Load settings, exiting with a message if they are invalid.

    Args:
        console: Optional Rich console for output
        **overrides: Values taken from CLI options (None means unset)

    Raises:
        SystemExit: If the configuration is invalid
    """
    import typer

    con = console or _console
    try:
        return load_settings(**overrides)
    except ValueError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def setup_logging(settings: Settings, console: bool = True) -> None:
    """Configure the package logger from settings.

    The TUI passes ``console=False``: its log panel replaces stderr output.
    """
    configure_logging(settings.log_level, log_file=settings.log_file, console=console)


def get_client(settings: Settings, console: Console | None = None) -> CompletionClient:
    """Create the completion client for the configured provider.

    Raises:
        SystemExit: If the provider is misconfigured (e.g. openai without a key)
    """
    import typer

    con = console or _console
    try:
        provider = create_llm_provider(settings.provider, **settings.provider_config())
    except (TypeError, ValueError) as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    return CompletionClient(provider)


def get_store(settings: Settings) -> SessionStore:
    """Open the session store over the configured storage backend."""
    storage = create_storage(settings.storage, **settings.storage_config())
    return SessionStore.open(storage, default_model=settings.default_model)


def get_orchestrator(store: SessionStore, client: CompletionClient) -> ChatOrchestrator:
    return ChatOrchestrator(store, client)
