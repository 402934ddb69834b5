"""Main CLI application using Typer."""
import asyncio
import contextlib
import logging
import signal

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..conversation import ConversationReducer, Role
from ..errors import OllachatError, describe_error
from ..protocol import OllamaMessage
from .display import ConsoleListener
from .providers import get_config, get_controller, get_store

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="ollachat",
    help="Streaming chat client for a local Ollama server",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def main_options(
    log_level: str = typer.Option(
        "warning",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error"
    )
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


@app.command()
def models():
    """List the models installed on the Ollama server."""
    async def _models():
        async with get_controller(get_config()) as controller:
            try:
                names = await controller.fetch_model_list()
            except OllachatError as e:
                console.print(f"[red]Error: {describe_error(e)}[/red]")
                raise typer.Exit(code=1)

        if not names:
            console.print("[yellow]No models installed.[/yellow]")
            return

        table = Table(show_header=True)
        table.add_column("#", style="dim", width=4)
        table.add_column("Model", style="bold cyan")
        for i, name in enumerate(names, 1):
            table.add_row(str(i), name)
        console.print(table)

    asyncio.run(_models())


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Message to send"),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model to use (default: OLLACHAT_DEFAULT_MODEL or the first installed)"
    )
):
    """Send a single message and print the reply."""
    async def _ask():
        config = get_config(model)
        async with get_controller(config) as controller:
            try:
                model_name = config.default_model_name
                if not model_name:
                    installed = await controller.fetch_model_list()
                    model_name = installed[0] if installed else ""
                reply = await controller.send_single_message(
                    model_name,
                    [OllamaMessage(role=Role.USER.value, content=prompt)]
                )
            except OllachatError as e:
                console.print(f"[red]Error: {describe_error(e)}[/red]")
                raise typer.Exit(code=1)

        console.print(reply, markup=False, highlight=False)

    asyncio.run(_ask())


@app.command()
def chat(
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model to use (default: OLLACHAT_DEFAULT_MODEL or the first installed)"
    ),
    store: str = typer.Option(
        "memory",
        "--store",
        "-s",
        help="Conversation store: memory or sqlite"
    ),
    db_path: str | None = typer.Option(
        None,
        "--db-path",
        help="SQLite database path (with --store sqlite)"
    ),
    thread_id: str | None = typer.Option(
        None,
        "--thread",
        "-t",
        help="Resume an existing thread (with --store sqlite)"
    )
):
    """Interactive streaming chat.

    Press Ctrl+C while a reply is streaming to stop it.
    """
    async def _chat():
        config = get_config(model)
        conversations = get_store(store, db_path)
        controller = get_controller(config)

        try:
            await conversations.connect()

            try:
                installed = await controller.fetch_model_list()
            except OllachatError as e:
                console.print(f"[red]Error: {describe_error(e)}[/red]")
                raise typer.Exit(code=1)

            thread = None
            if thread_id:
                thread = await conversations.get_thread(thread_id)
                if thread is None:
                    console.print(f"[red]Error: Unknown thread {thread_id}[/red]")
                    raise typer.Exit(code=1)
            if thread is None:
                thread = await conversations.create_thread()

            reducer = ConversationReducer(
                conversations,
                controller,
                thread,
                listener=ConsoleListener(console),
                available_models=installed,
            )
            selected = reducer.ensure_model_selected()
            await conversations.save_thread(thread)

            console.print(f"[bold cyan]ollachat[/bold cyan] [dim]{thread.title} | {selected or 'no model'}[/dim]")
            console.print("[dim]Commands: /retry, /title, /exit[/dim]\n")

            for message in await reducer.messages():
                speaker = "[bold yellow]You:[/bold yellow]" if message.is_user else "[bold green]Assistant:[/bold green]"
                console.print(f"{speaker} {message.content}", highlight=False)

            loop = asyncio.get_running_loop()
            while True:
                if reducer.title_task is not None and not reducer.title_task.done():
                    await reducer.title_task

                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                command = user_input.strip().lower()
                if not command:
                    continue
                if command in ("/exit", "exit", "quit", "q"):
                    console.print("[dim]Goodbye![/dim]")
                    break
                if command == "/title":
                    console.print(f"[dim]Title: {reducer.thread.title}[/dim]")
                    continue

                if command == "/retry":
                    messages = await reducer.messages()
                    last_reply = next((m for m in reversed(messages) if not m.is_user), None)
                    if last_reply is None:
                        console.print("[dim]Nothing to retry.[/dim]")
                        continue
                    turn = reducer.retry(last_reply.id)
                else:
                    turn = reducer.submit(user_input)

                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(signal.SIGINT, reducer.cancel)
                try:
                    await turn
                finally:
                    with contextlib.suppress(NotImplementedError):
                        loop.remove_signal_handler(signal.SIGINT)

        finally:
            await controller.close()
            await conversations.disconnect()

    asyncio.run(_chat())


@app.command()
def threads(
    db_path: str | None = typer.Option(
        None,
        "--db-path",
        help="SQLite database path"
    )
):
    """List conversation threads stored in SQLite."""
    async def _threads():
        conversations = get_store("sqlite", db_path)
        try:
            await conversations.connect()
            stored = await conversations.list_threads()
        finally:
            await conversations.disconnect()

        if not stored:
            console.print("[dim]No threads yet.[/dim]")
            return

        table = Table(show_header=True)
        table.add_column("Thread", style="dim")
        table.add_column("Title", style="bold cyan")
        table.add_column("Model")
        table.add_column("Created")
        for thread in stored:
            table.add_row(
                thread.id,
                thread.title,
                thread.selected_model or "-",
                thread.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)

    asyncio.run(_threads())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
