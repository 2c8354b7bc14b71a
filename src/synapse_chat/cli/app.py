"""Main CLI application using Typer."""
import asyncio

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..llm import merge_default_model
from ..persistence import create_storage
from ..sessions import ChatSession, MessageRole, SessionStore, StateRepository
from .providers import get_client, get_orchestrator, get_settings, get_store, setup_logging

# Create Typer app
app = typer.Typer(
    name="synapse",
    help="Multi-session streaming chat client for OpenAI-compatible endpoints",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

EXIT_WORDS = ("exit", "quit", "q")

REPL_HELP = """\
[bold]/new[/]            start a new chat
[bold]/regen[/]          regenerate the last reply
[bold]/model NAME[/]     switch this chat's model
[bold]/system TEXT[/]    set the system instruction (empty clears it)
[bold]/stream[/]         toggle streaming for this chat
[bold]/help[/]           show this help
[bold]exit[/]            leave"""


def _find_session(store: SessionStore, prefix: str) -> ChatSession:
    """Resolve a session by id or unique id prefix, exiting on failure."""
    matches = [s for s in store.sessions if s.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        console.print(f"[red]Error: no session matches '{prefix}'[/red]")
    else:
        console.print(f"[red]Error: '{prefix}' is ambiguous ({len(matches)} sessions)[/red]")
    raise typer.Exit(code=1)


class _ReplyPrinter:
    """Store listener that echoes a session's newest assistant text.

    Only the part not yet printed is written, so a streamed reply appears
    chunk by chunk and a buffered one appears at once.
    """

    def __init__(self, store: SessionStore, session_id: str):
        self._session_id = session_id
        self._message_id: str | None = None
        self._printed = 0
        session = store.get(session_id)
        if session and session.messages:
            self._message_id = session.messages[-1].id
            self._printed = len(session.messages[-1].content)

    @property
    def printed_anything(self) -> bool:
        return self._printed > 0

    def __call__(self, store: SessionStore) -> None:
        session = store.get(self._session_id)
        if session is None or not session.messages:
            return
        last = session.messages[-1]
        if last.role is not MessageRole.ASSISTANT:
            return
        if last.id != self._message_id:
            self._message_id = last.id
            self._printed = 0
            console.print("[bold green]Assistant:[/bold green] ", end="")
        delta = last.content[self._printed:]
        if delta:
            console.print(delta, end="", markup=False, highlight=False)
            self._printed = len(last.content)


@app.command()
def chat(
    session: str | None = typer.Option(
        None,
        "--session",
        "-s",
        help="Resume the session with this id (or id prefix)"
    ),
    new: bool = typer.Option(
        False,
        "--new",
        "-n",
        help="Start a new session"
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model for this chat"
    ),
    storage: str | None = typer.Option(
        None,
        "--storage",
        help="Storage backend: 'file' (persistent) or 'memory' (session-only)"
    ),
):
    """Interactive console chat with streamed replies."""
    settings = get_settings(console, storage=storage)
    setup_logging(settings)

    async def _chat():
        client = get_client(settings, console)
        store = get_store(settings)
        orchestrator = get_orchestrator(store, client)

        if new:
            current = store.create_session(model)
        elif session:
            current = _find_session(store, session)
            store.set_current(current.id)
        else:
            current = store.ensure_current()
        if model and not new:
            store.set_model(current.id, model)

        console.print(f"[bold cyan]Synapse Chat[/bold cyan] [dim]({current.title})[/dim]")
        console.print("[dim]Type '/help' for commands, 'exit' to leave[/dim]\n")

        async def _run(action, *args):
            session_id = store.current_id
            printer = _ReplyPrinter(store, session_id)
            unsubscribe = store.subscribe(printer)
            try:
                result = await action(*args, session_id=session_id)
            finally:
                unsubscribe()
            if printer.printed_anything:
                console.print()
            if result is None:
                console.print("[yellow]Nothing to do.[/yellow]")
            elif result.error:
                console.print(f"[red]Error: {result.error}[/red]")
            console.print()

        try:
            while True:
                try:
                    user_input = await asyncio.to_thread(
                        console.input, "[bold yellow]You:[/bold yellow] "
                    )
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                text = user_input.strip()
                if not text:
                    continue
                if text.lower() in EXIT_WORDS:
                    console.print("[dim]Goodbye![/dim]")
                    break

                command, _, argument = text.partition(" ")
                if command == "/help":
                    console.print(REPL_HELP)
                elif command == "/new":
                    created = store.create_session(model)
                    console.print(f"[dim]New chat {created.id[:8]}[/dim]")
                elif command == "/regen":
                    await _run(orchestrator.regenerate)
                elif command == "/model" and argument.strip():
                    store.set_model(store.current_id, argument.strip())
                    console.print(f"[dim]Model: {argument.strip()}[/dim]")
                elif command == "/system":
                    store.set_system_instruction(store.current_id, argument.strip())
                    console.print("[dim]System instruction updated[/dim]")
                elif command == "/stream":
                    toggled = store.toggle_streaming(store.current_id)
                    if toggled is not None:
                        mode = "on" if toggled.streaming_enabled else "off"
                        console.print(f"[dim]Streaming {mode}[/dim]")
                elif command.startswith("/"):
                    console.print(f"[yellow]Unknown command: {command}[/yellow]")
                else:
                    await _run(orchestrator.send, text)
        finally:
            await orchestrator.join_background_tasks()
            await client.close()

    asyncio.run(_chat())


@app.command(name="tui")
def tui_command(
    storage: str | None = typer.Option(
        None,
        "--storage",
        help="Storage backend: 'file' (persistent) or 'memory' (session-only)"
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
):
    """Launch interactive TUI chat interface."""
    settings = get_settings(console, storage=storage, log_level=log_level)
    setup_logging(settings, console=False)

    async def _tui():
        from ..ui import run_textual_tui

        client = get_client(settings, console)
        store = get_store(settings)
        await run_textual_tui(
            orchestrator=get_orchestrator(store, client),
            client=client,
            log_level=log_level,
        )
        console.print("\n[dim]Goodbye![/dim]")

    try:
        asyncio.run(_tui())
    except KeyboardInterrupt:
        pass


@app.command()
def models():
    """List the models the endpoint offers."""
    settings = get_settings(console)
    setup_logging(settings)

    async def _models():
        client = get_client(settings, console)
        try:
            names = merge_default_model(await client.fetch_models(), settings.default_model)
        finally:
            await client.close()

        table = Table(title="Available Models")
        table.add_column("Model", style="cyan")
        table.add_column("", style="green")
        for name in names:
            table.add_row(name, "default" if name == settings.default_model else "")
        console.print(table)

    asyncio.run(_models())


@app.command()
def sessions():
    """List saved chat sessions, newest first."""
    settings = get_settings(console)
    setup_logging(settings)
    store = get_store(settings)

    table = Table(title="Chat Sessions")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Messages", justify="right")
    table.add_column("Model", style="magenta")
    table.add_column("Created", style="dim")
    for s in store.sessions:
        table.add_row(
            s.id[:8],
            s.title,
            str(len(s.messages)),
            store.model_for(s),
            s.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def show(
    session: str = typer.Argument(..., help="Session id (or id prefix)"),
):
    """Print one session's conversation."""
    settings = get_settings(console)
    setup_logging(settings)
    found = _find_session(get_store(settings), session)

    if found.system_instruction:
        console.print(Panel(found.system_instruction, title="System", border_style="yellow"))
    for message in found.messages:
        if message.role is MessageRole.USER:
            title, style = "You", "green"
        else:
            title, style = f"Assistant ({message.model or 'unknown'})", "magenta"
        body = message.content or "[dim](empty)[/dim]"
        if message.images:
            body += f"\n[dim]{len(message.images)} image(s) attached[/dim]"
        console.print(Panel(body, title=title, border_style=style, title_align="left"))


@app.command()
def delete(
    session: str = typer.Argument(..., help="Session id (or id prefix)"),
):
    """Delete one chat session."""
    settings = get_settings(console)
    setup_logging(settings)
    store = get_store(settings)
    found = _find_session(store, session)
    store.delete_session(found.id)
    console.print(f"[green]Deleted '{found.title}'.[/green]")


@app.command()
def clear(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    )
):
    """Delete all saved sessions and preferences."""
    if not yes:
        console.print("[yellow]WARNING: This will delete all saved chats![/yellow]")
        confirm = typer.confirm("Are you sure you want to continue?")
        if not confirm:
            console.print("[dim]Aborted.[/dim]")
            return

    settings = get_settings(console)
    setup_logging(settings)
    StateRepository(create_storage(settings.storage, **settings.storage_config())).clear()
    console.print("[green]All chats cleared.[/green]")


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
