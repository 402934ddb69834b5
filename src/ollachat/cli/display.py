"""Terminal rendering of conversation updates.

Hides how transcript notifications become console output.
"""

from rich.console import Console

from ..conversation import ChatMessage, ConversationListener


class ConsoleListener(ConversationListener):
    """Prints streamed replies to a Rich console as they arrive."""

    def __init__(self, console: Console) -> None:
        self.console = console
        self._streaming_id: str | None = None

    def on_message_appended(self, message: ChatMessage) -> None:
        if message.is_user:
            return
        self._streaming_id = message.id
        self.console.print("[bold green]Assistant:[/bold green] ", end="")

    def on_message_updated(self, message: ChatMessage, delta: str) -> None:
        if message.id == self._streaming_id:
            self.console.print(delta, end="", markup=False, highlight=False)

    def on_message_deleted(self, message_id: str) -> None:
        if message_id == self._streaming_id:
            self.console.print("[dim](discarded)[/dim]")
            self._streaming_id = None

    def on_thinking_changed(self, thinking: bool) -> None:
        if not thinking and self._streaming_id is not None:
            self.console.print()
            self._streaming_id = None

    def on_title_changed(self, title: str) -> None:
        self.console.print(f"[dim]Title: {title}[/dim]")

    def on_error(self, message: str) -> None:
        self.console.print()
        self.console.print(f"[red]Error: {message}[/red]")
