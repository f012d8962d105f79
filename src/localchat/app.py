"""LocalChat TUI application: chat with the local model, watch API traffic."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer, Vertical
from textual.widgets import Footer, Header, Input, Static

from localchat.config import LocalChatConfig
from localchat.inference.context import EngineContext, generation_params
from localchat.model_manager import format_model_info, format_model_list, format_server_status
from localchat.models import ModelRegistry
from localchat.server.notifier import EventKind, TranscriptEvent, TranscriptNotifier
from localchat.server.resolver import find_model
from localchat.server.runner import ServerThread
from localchat.transcript import EntrySource, Transcript
from localchat.ui.commands import ModelSwitchProvider
from localchat.ui.widgets import (
    ApiPromptMessage,
    AssistantMessage,
    HelpMessage,
    HistoryInput,
    SystemMessage,
    ThinkingIndicator,
    UserMessage,
)

logger = logging.getLogger(__name__)


SLASH_COMMANDS = [
    ("/help", "Show available commands"),
    ("/clear", "Clear chat and model context"),
    ("/model", "Show the loaded model"),
    ("/model list", "List installed models"),
    ("/model switch", "Load another installed model"),
    ("/server", "Show completions server status"),
]


class LocalChatApp(App):
    """The LocalChat TUI application."""

    TITLE = "LocalChat"
    SUB_TITLE = "Local model chat + completions server"
    CSS_PATH = Path("ui/styles.tcss")
    COMMANDS = App.COMMANDS | {ModelSwitchProvider}

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True),
        Binding("ctrl+l", "clear_chat", "Clear Chat"),
    ]

    def __init__(
        self,
        context: EngineContext,
        registry: ModelRegistry,
        notifier: TranscriptNotifier,
        config: LocalChatConfig | None = None,
        server: ServerThread | None = None,
        initial_model: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.context = context
        self.registry = registry
        self.notifier = notifier
        self._config = config or LocalChatConfig()
        self.server = server
        self.transcript = Transcript()
        self._initial_model = initial_model
        self._busy = False

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield ScrollableContainer(
            Static("[dim]Welcome to LocalChat. Type a prompt to get started. Use /help for commands.[/]\n"),
            id="conversation",
        )
        with Vertical(id="input-area"):
            yield Static(id="slash-suggestions")
            yield HistoryInput(placeholder="Ask the model anything...", id="user-input")
        yield Footer()

    def on_mount(self) -> None:
        theme = self._config.ui.theme
        if theme in self.available_themes:
            self.theme = theme
        else:
            logger.warning("Unknown theme %r, keeping %s", theme, self.theme)
        # API requests must reach the transcript on this loop.
        self.notifier.attach(asyncio.get_running_loop(), self.record_transcript_event)
        if self.server is not None:
            self.server.on_error = self._server_failed
            self.server.start()
        if self._initial_model:
            self.load_model(self._initial_model)
        self.query_one("#user-input", Input).focus()

    def on_unmount(self) -> None:
        self.notifier.detach()
        if self.server is not None:
            self.server.stop()

    def _server_failed(self, message: str) -> None:
        """Report a dead listener.  Called on the server thread."""
        try:
            self.call_from_thread(
                self.notify, message, title="Completions server", severity="error", timeout=10
            )
        except RuntimeError:
            logger.warning("Completions server failed after the UI closed: %s", message)

    # ── transcript events from the completions server ──────────────────

    def record_transcript_event(self, event: TranscriptEvent) -> None:
        """Mirror an API prompt or response into the conversation.

        Runs on the UI loop; the server thread is blocked until it returns.
        """
        conversation = self.query_one("#conversation", ScrollableContainer)
        match event.kind:
            case EventKind.PROMPT:
                self.transcript.new_prompt_response_pair(
                    event.text, source=EntrySource.SERVER, entry_id=event.entry_id
                )
                conversation.mount(ApiPromptMessage(event.text))
                conversation.mount(ThinkingIndicator(id=f"pending-{event.entry_id}"))
            case EventKind.RESPONSE:
                self.transcript.set_response(event.entry_id, event.text)
                self._remove_pending(event.entry_id)
                conversation.mount(AssistantMessage(event.text))
        conversation.scroll_end()

    def _remove_pending(self, entry_id: str) -> None:
        for indicator in self.query(f"#pending-{entry_id}"):
            indicator.remove()

    # ── input ───────────────────────────────────────────────────────────

    @on(Input.Changed, "#user-input")
    def on_input_changed(self, event: Input.Changed) -> None:
        """Show/hide slash command suggestions as the user types."""
        text = event.value
        suggestions = self.query_one("#slash-suggestions", Static)

        if text.startswith("/") and " " not in text:
            matches = [
                (cmd, desc) for cmd, desc in SLASH_COMMANDS
                if cmd.startswith(text.lower())
            ]
            if matches:
                lines = [f"  [bold cyan]{cmd}[/]  [dim]{desc}[/]" for cmd, desc in matches]
                suggestions.update("\n".join(lines))
                suggestions.display = True
                return

        suggestions.display = False

    @on(Input.Submitted, "#user-input")
    async def on_input_submitted(self, event: Input.Submitted) -> None:
        user_text = event.value.strip()
        self.query_one("#slash-suggestions", Static).display = False
        if not user_text or self._busy:
            return

        input_widget = self.query_one("#user-input", HistoryInput)
        input_widget.add_to_history(user_text)
        input_widget.value = ""

        if user_text.startswith("/"):
            await self._handle_slash_command(user_text)
            return

        self._busy = True
        entry = self.transcript.new_prompt_response_pair(user_text)
        conversation = self.query_one("#conversation", ScrollableContainer)
        conversation.mount(UserMessage(user_text))
        conversation.mount(ThinkingIndicator(id=f"pending-{entry.id}"))
        conversation.scroll_end()
        self.run_chat(entry.id, user_text)

    @work(exclusive=True, thread=False, group="chat")
    async def run_chat(self, entry_id: str, user_text: str) -> None:
        """Generate a chat reply in a background thread."""
        conversation = self.query_one("#conversation", ScrollableContainer)
        try:
            text = await asyncio.to_thread(self._generate_chat, user_text)
            self.transcript.set_response(entry_id, text)
            conversation.mount(AssistantMessage(text))
        except Exception as e:
            logger.exception("Chat generation failed")
            conversation.mount(Static(f"[bold red]Error:[/] {e}"))
        finally:
            self._remove_pending(entry_id)
            conversation.scroll_end()
            self._busy = False
            self.query_one("#user-input", Input).focus()

    def _generate_chat(self, user_text: str) -> str:
        chat = self._config.chat
        params = generation_params(
            self._config.generation,
            max_tokens=chat.max_tokens,
            temperature=chat.temperature,
            top_p=chat.top_p,
        )
        with self.context.claim(self._config.server.engine_timeout) as ctx:
            result = ctx.prompt(
                user_text, params, template=self._config.generation.chat_template
            )
        return result.text.strip()

    # ── slash commands ──────────────────────────────────────────────────

    async def _handle_slash_command(self, text: str) -> None:
        """Parse and dispatch slash commands."""
        parts = text.split(maxsplit=1)
        command = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""
        conversation = self.query_one("#conversation", ScrollableContainer)

        match command:
            case "/help":
                self._show_help(conversation)
            case "/clear":
                self.action_clear_chat()
            case "/model":
                self._handle_model_command(args, conversation)
            case "/server":
                running = self.server is not None and self.server.is_alive()
                error = self.server.error if self.server is not None else None
                conversation.mount(
                    SystemMessage(format_server_status(self._config.server, running, error))
                )
            case _:
                conversation.mount(
                    SystemMessage(f"Unknown command: {command}. Type /help for available commands.")
                )

        conversation.scroll_end()

    def _show_help(self, conversation: ScrollableContainer) -> None:
        lines = ["[bold]Available Commands[/]\n"]
        for cmd, desc in SLASH_COMMANDS:
            lines.append(f"  [bold cyan]{cmd:<16}[/] {desc}")
        lines.append("\n[dim]Prompts sent to the completions API also appear here.[/]")
        conversation.mount(HelpMessage("\n".join(lines)))

    def _handle_model_command(self, args: str, conversation: ScrollableContainer) -> None:
        """Dispatch /model subcommands."""
        parts = args.split(maxsplit=1)
        subcmd = parts[0].lower() if parts else ""
        subargs = parts[1].strip() if len(parts) > 1 else ""

        match subcmd:
            case "":
                conversation.mount(SystemMessage(
                    format_model_info(self.context.engine_info(), self.context.model_id)
                ))
            case "list":
                conversation.mount(SystemMessage(
                    format_model_list(self.registry, self.context.model_id)
                ))
            case "switch":
                if not subargs:
                    conversation.mount(SystemMessage("Usage: /model switch <model-id>"))
                else:
                    self.load_model(subargs)
            case _:
                conversation.mount(SystemMessage(
                    "Unknown subcommand. Usage:\n"
                    "  /model              show loaded model\n"
                    "  /model list         list installed models\n"
                    "  /model switch <id>  load another model"
                ))

    @work(exclusive=True, thread=False, group="model")
    async def load_model(self, model_id: str) -> None:
        """Load an installed model into the shared engine context."""
        conversation = self.query_one("#conversation", ScrollableContainer)
        info = find_model(self.registry, model_id)
        if info is None:
            conversation.mount(SystemMessage(
                f"[red]Model '{model_id}' is not installed.[/] Use /model list."
            ))
            return

        conversation.mount(SystemMessage(f"Loading {model_id}..."))

        def _load() -> bool:
            with self.context.claim(self._config.server.engine_timeout) as ctx:
                return ctx.ensure_loaded(model_id, info.path)

        try:
            loaded = await asyncio.to_thread(_load)
        except Exception as e:
            logger.exception("Failed to load %s", model_id)
            conversation.mount(SystemMessage(f"[red]Failed to load model: {e}[/]"))
            return
        if loaded:
            conversation.mount(SystemMessage(
                f"Loaded [bold]{model_id}[/]\n[dim]Conversation history cleared.[/]"
            ))
        else:
            conversation.mount(SystemMessage(f"{model_id} is already loaded."))
        conversation.scroll_end()

    @work(exclusive=True, thread=False, group="clear")
    async def _reset_engine_context(self) -> None:
        def _reset() -> None:
            with self.context.claim(self._config.server.engine_timeout) as ctx:
                ctx.reset_context()

        await asyncio.to_thread(_reset)

    def action_clear_chat(self) -> None:
        """Clear the conversation and the engine history."""
        conversation = self.query_one("#conversation", ScrollableContainer)
        conversation.remove_children()
        conversation.mount(Static("[dim]Chat cleared. Type a new prompt.[/]\n"))
        self.transcript.clear()
        self._reset_engine_context()
