"""Main Textual TUI application.

Renders the session store and routes user actions to the chat
orchestrator. The store is the only source of truth: every widget is
re-synced from it after each change, so the view can never diverge
from persisted state.
"""

import asyncio
import contextlib
import logging

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Header

from ..generation import ChatOrchestrator, GenerationResult
from ..llm.client import CompletionClient, merge_default_model
from ..logging_config import PACKAGE_LOGGER
from ..sessions import MessageRole, SessionStore
from .attachments import encode_image_file
from .config import NOTIFY_TIMEOUT, LogLevel
from .screens import ConfirmationScreen, TextPromptScreen
from .styles import APP_CSS
from .themes import THEME_BY_PREFERENCE, THEMES
from .widgets import (
    ChatInputBar,
    ChatView,
    ErrorNotice,
    LogPanel,
    LogPanelHandler,
    MessageCard,
    SessionList,
    SettingsPanel,
    copy_text,
)

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 5.0


class SynapseApp(App):
    """Textual TUI for multi-session chat."""

    CSS = APP_CSS
    TITLE = "Synapse"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+n", "new_chat", "New Chat", priority=True),
        Binding("f2", "rename_chat", "Rename"),
        Binding("f3", "edit_last", "Edit Last"),
        Binding("f5", "regenerate", "Regenerate"),
        Binding("f6", "copy_last_response", "Copy Reply"),
        Binding("f8", "delete_chat", "Delete"),
        Binding("ctrl+t", "toggle_theme", "Theme", priority=True),
        Binding("f12", "toggle_log", "Log"),
        Binding("escape", "dismiss_error", "Dismiss", show=False),
    ]

    def __init__(
        self,
        orchestrator: ChatOrchestrator,
        client: CompletionClient,
        log_level: str | None = None,
    ) -> None:
        super().__init__()
        self._orchestrator = orchestrator
        self._store: SessionStore = orchestrator.store
        self._client = client
        self._log_level = log_level
        self._models: list[str] = []
        self._unsubscribe = None
        self._refresh_scheduled = False
        self._log_handler: LogPanelHandler | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="main"):
            yield SessionList(id="session-list")
            with Vertical(id="chat-column"):
                yield ChatView(id="chat-view")
                yield ErrorNotice(id="error-notice")
                yield ChatInputBar(id="chat-input-bar")
            yield SettingsPanel(id="settings-panel")
        yield LogPanel(id="log-panel")
        yield Footer()

    def on_mount(self) -> None:
        for theme in THEMES:
            self.register_theme(theme)
        self.theme = THEME_BY_PREFERENCE[self._store.theme]

        log_panel = self.query_one("#log-panel", LogPanel)
        if self._log_level is not None:
            log_panel.log_level = LogLevel.from_string(self._log_level)
            log_panel.toggle()
        self._log_handler = LogPanelHandler(log_panel)
        logging.getLogger(PACKAGE_LOGGER).addHandler(self._log_handler)

        self._unsubscribe = self._store.subscribe(self._on_store_changed)
        self._schedule_refresh()
        self._load_models()
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._log_handler is not None:
            logging.getLogger(PACKAGE_LOGGER).removeHandler(self._log_handler)
            self._log_handler = None

    # ------------------------------------------------------------------
    # Store -> view
    # ------------------------------------------------------------------

    def _on_store_changed(self, store: SessionStore) -> None:
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        """Coalesce store notifications into one re-render per idle tick."""
        if self._refresh_scheduled:
            return
        self._refresh_scheduled = True
        self.call_later(self._refresh_view)

    async def _refresh_view(self) -> None:
        self._refresh_scheduled = False
        store = self._store
        session = store.current
        generating = {s.id for s in store.sessions if self._orchestrator.is_generating(s.id)}

        await self.query_one("#session-list", SessionList).sync(
            store.sessions, store.current_id, generating
        )
        await self.query_one("#chat-view", ChatView).sync(session)
        self.query_one("#settings-panel", SettingsPanel).sync(
            session, self._models, store.default_model
        )
        self.query_one("#chat-input-bar", ChatInputBar).set_busy(
            session is not None and session.id in generating
        )

        theme = THEME_BY_PREFERENCE[store.theme]
        if self.theme != theme:
            self.theme = theme
        if session is not None:
            self.sub_title = f"{store.model_for(session)} | {'streaming' if session.streaming_enabled else 'buffered'}"

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    @work(exclusive=True, group="models")
    async def _load_models(self) -> None:
        models = await self._client.fetch_models()
        self._models = merge_default_model(models, self._store.default_model)
        logger.info("Loaded %d model(s)", len(self._models))
        self._schedule_refresh()

    @work(group="generation")
    async def _send(self, text: str, images: list[str]) -> None:
        result = await self._orchestrator.send(text, images)
        self._handle_result(result, "Send ignored: a reply is still generating")

    @work(group="generation")
    async def _edit(self, message_id: str, content: str) -> None:
        result = await self._orchestrator.edit_message(message_id, content)
        self._handle_result(result, "Edit ignored")

    @work(group="generation")
    async def _regenerate(self) -> None:
        result = await self._orchestrator.regenerate()
        self._handle_result(result, "Nothing to regenerate")

    def _handle_result(self, result: GenerationResult | None, ignored: str) -> None:
        self._schedule_refresh()
        if result is None:
            self.notify(ignored, severity="warning", timeout=NOTIFY_TIMEOUT)
            return
        if result.error is None:
            return
        if result.session_id == self._store.current_id:
            self.query_one("#error-notice", ErrorNotice).show_error(result.error)
        else:
            self.notify(f"A background chat failed: {result.error}", severity="error")

    # ------------------------------------------------------------------
    # Widget messages
    # ------------------------------------------------------------------

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        self.query_one("#error-notice", ErrorNotice).dismiss()
        self._send(event.text, event.images)

    def on_chat_input_bar_attach_requested(self, event: ChatInputBar.AttachRequested) -> None:
        def attach(path: str | None) -> None:
            if not path or not path.strip():
                return
            try:
                payload = encode_image_file(path.strip())
            except (OSError, ValueError) as e:
                self.notify(str(e), severity="error", timeout=NOTIFY_TIMEOUT)
                return
            name = path.strip().rsplit("/", 1)[-1]
            self.query_one("#chat-input-bar", ChatInputBar).add_attachment(name, payload)

        self.push_screen(
            TextPromptScreen("Attach image", placeholder="Path to an image file"),
            attach,
        )

    def on_session_list_session_chosen(self, event: SessionList.SessionChosen) -> None:
        if event.session_id in self._store and event.session_id != self._store.current_id:
            self._store.set_current(event.session_id)
            self.query_one("#error-notice", ErrorNotice).dismiss()

    def on_message_card_edit_requested(self, event: MessageCard.EditRequested) -> None:
        self._prompt_edit(event.message_id, event.content)

    def on_settings_panel_model_changed(self, event: SettingsPanel.ModelChanged) -> None:
        if self._store.current_id is not None:
            self._store.set_model(self._store.current_id, event.model)

    def on_settings_panel_streaming_changed(self, event: SettingsPanel.StreamingChanged) -> None:
        session = self._store.current
        if session is not None and session.streaming_enabled != event.enabled:
            self._store.toggle_streaming(session.id)

    def on_settings_panel_instruction_changed(self, event: SettingsPanel.InstructionChanged) -> None:
        if self._store.current_id is not None:
            self._store.set_system_instruction(self._store.current_id, event.text)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def action_new_chat(self) -> None:
        self._store.create_session()
        self.query_one("#error-notice", ErrorNotice).dismiss()
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def action_delete_chat(self) -> None:
        session = self._store.current
        if session is None:
            return

        def delete(confirmed: bool | None) -> None:
            if confirmed:
                self._store.delete_session(session.id)
                self.notify("Chat deleted", timeout=NOTIFY_TIMEOUT)

        self.push_screen(ConfirmationScreen(f'Delete "{session.title}"?'), delete)

    def action_rename_chat(self) -> None:
        session = self._store.current
        if session is None:
            return

        def rename(title: str | None) -> None:
            if title is not None:
                self._store.rename_session(session.id, title)

        self.push_screen(TextPromptScreen("Rename chat", initial=session.title), rename)

    def action_edit_last(self) -> None:
        session = self._store.current
        if session is None:
            return
        for message in reversed(session.messages):
            if message.role is MessageRole.USER:
                self._prompt_edit(message.id, message.content)
                return
        self.notify("No message to edit", severity="warning", timeout=NOTIFY_TIMEOUT)

    def _prompt_edit(self, message_id: str, content: str) -> None:
        def edit(text: str | None) -> None:
            if text is not None:
                self._edit(message_id, text)

        self.push_screen(
            TextPromptScreen("Edit message (Ctrl+S saves)", initial=content, multiline=True),
            edit,
        )

    def action_regenerate(self) -> None:
        self._regenerate()

    def action_copy_last_response(self) -> None:
        response = self.query_one("#chat-view", ChatView).last_response()
        if response:
            copy_text(self, response, "Response")
        else:
            self.notify("No response to copy", severity="warning", timeout=NOTIFY_TIMEOUT)

    def action_toggle_theme(self) -> None:
        self._store.toggle_theme()

    def action_toggle_log(self) -> None:
        shown = self.query_one("#log-panel", LogPanel).toggle()
        self.notify(f"Log panel {'shown' if shown else 'hidden'}", timeout=NOTIFY_TIMEOUT)

    def action_dismiss_error(self) -> None:
        self.query_one("#error-notice", ErrorNotice).dismiss()


async def run_textual_tui(
    orchestrator: ChatOrchestrator,
    client: CompletionClient,
    log_level: str | None = None,
) -> None:
    """Run the Textual TUI.

    Args:
        orchestrator: Chat orchestrator bound to the session store
        client: Completion client (closed on exit)
        log_level: Log level for the panel (debug/info/warning/error), None to hide
    """
    app = SynapseApp(orchestrator=orchestrator, client=client, log_level=log_level)
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(orchestrator.join_background_tasks(), SHUTDOWN_TIMEOUT)
        await client.close()
