"""EduBot Chat CLI - terminal front end for the tutoring gateway.

A rich TUI that streams replies through the completion orchestrator and
renders them live as markdown.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.style import Style

from .chat import CompletionOrchestrator, ConversationBusyError, ConversationSnapshot
from .config import Settings, get_settings
from .gateway import GatewayClient
from .logging_settings import configure_logging, parse_logging_settings
from .notifications import Notice

# Styles
ASSISTANT_STYLE = Style(color="bright_green")
ERROR_STYLE = Style(color="red", bold=True)
INFO_STYLE = Style(color="cyan")


class ConsoleNotifier:
    """Show failure notices as red lines, the terminal version of a toast."""

    def __init__(self, console: Console):
        self._console = console

    def notify(self, notice: Notice) -> None:
        self._console.print(notice.message, style=ERROR_STYLE, markup=False)


class TutorChat:
    """Terminal chat client driving a :class:`CompletionOrchestrator`."""

    def __init__(self, settings: Settings, console: Optional[Console] = None):
        self.console = console or Console()
        self.running = True
        self._client = GatewayClient(settings)
        self.orchestrator = CompletionOrchestrator(
            self._client,
            notifier=ConsoleNotifier(self.console),
            image_word_threshold=settings.image_word_threshold,
        )
        self._live: Optional[Live] = None
        self.orchestrator.conversation.subscribe(self._render)

    def _render(self, snapshot: ConversationSnapshot) -> None:
        if self._live is None or not snapshot.messages:
            return
        latest = snapshot.messages[-1]
        if latest.role == "assistant":
            self._live.update(Markdown(latest.content, style=ASSISTANT_STYLE))

    def _show_help(self) -> None:
        """Show available commands."""
        help_text = """
[bold]Commands:[/bold]
  /help              Show this help message
  /clear             Start a new conversation
  /quit, /exit       Exit the chat

[bold]Shortcuts:[/bold]
  Ctrl+C             Exit the chat, dropping any reply in progress
  Ctrl+D             Exit the chat
"""
        self.console.print(
            Panel(help_text.strip(), title="EduBot Help", border_style="blue")
        )

    def _handle_command(self, cmd: str) -> bool:
        """Handle slash commands. Returns True if handled."""
        command = cmd.strip().split(maxsplit=1)[0].lower()

        if command == "/help":
            self._show_help()
            return True
        if command == "/clear":
            try:
                self.orchestrator.conversation.clear()
            except ConversationBusyError as exc:
                self.console.print(str(exc), style=ERROR_STYLE, markup=False)
            else:
                self.console.print("Conversation cleared.", style=INFO_STYLE)
            return True
        if command in ("/quit", "/exit"):
            self.running = False
            return True
        return False

    async def _ask(self, message: str) -> None:
        with Live(console=self.console, refresh_per_second=10) as live:
            self._live = live
            try:
                turn = await self.orchestrator.send_message(message)
            finally:
                self._live = None

        if turn is None:
            return
        reply = turn.assistant_message
        if reply is not None and reply.image_url:
            self.console.print(f"[dim]Illustration: {reply.image_url}[/dim]")

    async def run(self) -> None:
        """Main chat loop."""
        self.console.print(
            "[bold]EduBot[/bold] - Type /help for commands, Ctrl+D to exit",
            style=INFO_STYLE,
        )
        self.console.print()

        try:
            while self.running:
                try:
                    user_input = Prompt.ask("[bold blue]You[/bold blue]")
                    if not user_input.strip():
                        continue

                    if user_input.startswith("/") and self._handle_command(user_input):
                        continue

                    self.console.print()
                    await self._ask(user_input)
                    self.console.print()

                except EOFError:
                    self.console.print("\n[dim]Goodbye![/dim]")
                    break
        finally:
            await self._client.aclose()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="EduBot Chat - terminal tutor client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  edubot-chat                               Connect to localhost:8000
  edubot-chat --gateway http://pi:8000      Connect to a remote relay

Environment Variables:
  EDUBOT_GATEWAY_URL    Default gateway URL
""",
    )
    parser.add_argument(
        "--gateway",
        "-g",
        default=None,
        help="Gateway base URL (default: $EDUBOT_GATEWAY_URL or http://localhost:8000)",
    )
    args = parser.parse_args()

    settings = get_settings()
    if args.gateway:
        settings = settings.model_copy(update={"gateway_url": args.gateway})

    configure_logging(parse_logging_settings(settings.logging_settings_path))

    chat = TutorChat(settings)
    try:
        asyncio.run(chat.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
