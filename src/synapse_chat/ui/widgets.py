"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Sidebar rendering and selection
- Incremental chat rendering while a reply streams in
- Input history and image attachments
- Per-session settings controls
- Log rendering from the stdlib logging tree
"""

import logging
import threading
from datetime import datetime

import pyperclip
from rich.text import Text
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click
from textual.message import Message as TextualMessage
from textual.widgets import (
    Button,
    Label,
    ListItem,
    ListView,
    Markdown,
    RichLog,
    Select,
    Static,
    Switch,
    TextArea,
)

from ..llm.client import merge_default_model
from ..sessions.models import ChatSession, Message, MessageRole
from .config import (
    ERROR_NOTICE_MAX_LENGTH,
    INPUT_HISTORY_MAX_SIZE,
    LOG_MAX_MESSAGE_LENGTH,
    LOG_TIMESTAMP_FORMAT,
    NOTIFY_TIMEOUT,
    SESSION_TITLE_MAX_LENGTH,
    LogLevel,
)

EMPTY_CHAT_TEXT = "Start a conversation. Ctrl+J sends, Attach adds an image."
PENDING_TEXT = "_Thinking..._"


def copy_text(app, text: str, what: str) -> None:
    """Copy ``text`` to the system clipboard, falling back to OSC 52."""
    try:
        pyperclip.copy(text)
        app.notify(f"{what} copied", timeout=NOTIFY_TIMEOUT)
    except pyperclip.PyperclipException:
        app.copy_to_clipboard(text)
        app.notify(f"{what} copied (terminal)", timeout=NOTIFY_TIMEOUT)


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


class SessionList(ListView):
    """Sidebar listing every session, newest first."""

    BORDER_TITLE = "Chats"

    class SessionChosen(TextualMessage):
        """Posted when the user picks a session in the sidebar."""

        def __init__(self, session_id: str) -> None:
            super().__init__()
            self.session_id = session_id

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._signature: tuple = ()

    async def sync(
        self,
        sessions: list[ChatSession],
        current_id: str | None,
        generating: set[str],
    ) -> None:
        """Re-render the list if titles, order, selection or activity changed."""
        signature = tuple(
            (s.id, s.title, s.id == current_id, s.id in generating) for s in sessions
        )
        if signature == self._signature:
            return
        self._signature = signature

        await self.clear()
        items = []
        for session in sessions:
            item = ListItem(
                Label(_truncate(session.title, SESSION_TITLE_MAX_LENGTH), markup=False),
                name=session.id,
            )
            item.set_class(session.id == current_id, "-current")
            item.set_class(session.id in generating, "-generating")
            items.append(item)
        await self.extend(items)

        ids = [s.id for s in sessions]
        if current_id in ids:
            self.index = ids.index(current_id)
        self.border_subtitle = f"{len(sessions)}"

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        event.stop()
        if event.item is not None and event.item.name:
            self.post_message(self.SessionChosen(event.item.name))


class MessageCard(Vertical):
    """One rendered chat message.

    Focus a card and press ``c`` to copy it; ``e`` on a user message
    opens it for editing.
    """

    can_focus = True

    BINDINGS = [
        Binding("c", "copy", "Copy", show=False),
        Binding("e", "edit", "Edit", show=False),
    ]

    class EditRequested(TextualMessage):
        """Posted when the user asks to edit a user message."""

        def __init__(self, message_id: str, content: str) -> None:
            super().__init__()
            self.message_id = message_id
            self.content = content

    def __init__(self, message: Message) -> None:
        role_class = "user-message" if message.role is MessageRole.USER else "assistant-message"
        super().__init__(classes=f"chat-message {role_class}")
        self._message = message

    @property
    def message(self) -> Message:
        return self._message

    def compose(self):
        yield Static(self._header_text(), classes="message-header")
        yield Markdown(self._body_text(), classes="message-content")

    def on_mount(self) -> None:
        self.set_class(self._message.is_streaming, "-streaming")

    def _header_text(self) -> Text:
        message = self._message
        if message.role is MessageRole.USER:
            header = Text("> You")
        else:
            header = Text("< Assistant")
            if message.model:
                header.append(f" · {message.model}", style="dim")
        if message.images:
            count = len(message.images)
            header.append(f"  [{count} image{'s' if count != 1 else ''}]", style="italic")
        if message.is_streaming:
            header.append("  streaming…", style="italic")
        return header

    def _body_text(self) -> str:
        if self._message.is_streaming and not self._message.content:
            return PENDING_TEXT
        return self._message.content

    async def refresh_from(self, message: Message) -> None:
        """Show the latest version of this message."""
        if message == self._message:
            return
        self._message = message
        self.query_one(".message-header", Static).update(self._header_text())
        await self.query_one(Markdown).update(self._body_text())
        self.set_class(message.is_streaming, "-streaming")

    def action_copy(self) -> None:
        if self._message.content:
            copy_text(self.app, self._message.content, "Message")

    def action_edit(self) -> None:
        if self._message.role is MessageRole.USER and not self._message.is_streaming:
            self.post_message(self.EditRequested(self._message.id, self._message.content))

    def on_click(self, event: Click) -> None:
        event.stop()
        self.focus()


class ChatView(VerticalScroll):
    """Scrollable conversation for the current session.

    Rendering is incremental: while a reply streams in only the changed
    cards are updated, and appended messages are mounted at the end.
    """

    BORDER_TITLE = "Chat"
    ALLOW_MAXIMIZE = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._session_id: str | None = None
        self._cards: dict[str, MessageCard] = {}

    async def sync(self, session: ChatSession | None) -> None:
        messages = list(session.messages) if session else []
        session_id = session.id if session else None
        ids = [m.id for m in messages]
        shown = list(self._cards)

        if session_id != self._session_id or ids[: len(shown)] != shown or (not ids and not shown):
            await self._rebuild(session_id, messages)
        else:
            for message in messages[: len(shown)]:
                await self._cards[message.id].refresh_from(message)
            fresh = messages[len(shown):]
            if fresh:
                if not shown:
                    await self.remove_children()
                cards = [MessageCard(m) for m in fresh]
                self._cards.update((card.message.id, card) for card in cards)
                await self.mount_all(cards)

        self.border_title = session.title if session else "Chat"
        self.border_subtitle = f"{len(messages)} messages"
        self.scroll_end(animate=False)

    async def _rebuild(self, session_id: str | None, messages: list[Message]) -> None:
        self._session_id = session_id
        await self.remove_children()
        cards = [MessageCard(m) for m in messages]
        self._cards = {card.message.id: card for card in cards}
        if cards:
            await self.mount_all(cards)
        else:
            await self.mount(Static(EMPTY_CHAT_TEXT, classes="empty-chat"))

    def last_response(self) -> str | None:
        """Content of the newest assistant message, if any."""
        for card in reversed(list(self._cards.values())):
            if card.message.role is MessageRole.ASSISTANT and card.message.content:
                return card.message.content
        return None


class ChatInputBar(Vertical):
    """Message entry: attachments line, text area, Attach and Send buttons."""

    class Submitted(TextualMessage):
        """Posted when the user submits a message."""

        def __init__(self, text: str, images: list[str]) -> None:
            super().__init__()
            self.text = text
            self.images = images

    class AttachRequested(TextualMessage):
        """Posted when the user wants to attach an image."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1
        self._attachments: list[tuple[str, str]] = []
        self._busy = False

    def compose(self):
        yield Static("", id="attachments")
        with Horizontal(id="input-row"):
            yield Button("Attach", id="attach-btn").with_tooltip("Attach an image file")
            text_area = TextArea(id="chat-input", show_line_numbers=False)
            text_area.cursor_blink = False
            yield text_area
            yield Button("Send", id="send-btn", variant="success").with_tooltip(
                "Submit message (Ctrl+J)"
            )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.highlight_cursor_line = False
        self._render_attachments()

    @property
    def attachments(self) -> list[str]:
        return [payload for _, payload in self._attachments]

    def add_attachment(self, name: str, payload: str) -> None:
        self._attachments.append((name, payload))
        self._render_attachments()

    def clear_attachments(self) -> None:
        self._attachments.clear()
        self._render_attachments()

    def _render_attachments(self) -> None:
        label = self.query_one("#attachments", Static)
        if not self._attachments:
            label.display = False
            return
        names = ", ".join(name for name, _ in self._attachments)
        label.update(Text(f"Attached: {names} (click to clear)"))
        label.display = True

    def set_busy(self, busy: bool) -> None:
        """Disable sending while the current session is generating."""
        self._busy = busy
        self.query_one("#send-btn", Button).disabled = busy

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "send-btn":
            self._submit()
        elif event.button.id == "attach-btn":
            self.post_message(self.AttachRequested())

    def on_click(self, event: Click) -> None:
        if event.widget is not None and event.widget.id == "attachments":
            self.clear_attachments()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        Terminals don't report modifiers on Enter, so ctrl+j submits.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _cursor_at_start(self) -> bool:
        return self.query_one("#chat-input", TextArea).cursor_location == (0, 0)

    def _cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        if self._busy:
            self.app.notify("Wait for the current reply to finish", severity="warning")
            return

        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        images = self.attachments
        if not value and not images:
            return

        if value and (not self._history or self._history[-1] != value):
            self._history.append(value)
            del self._history[:-INPUT_HISTORY_MAX_SIZE]
        self._history_index = -1
        text_area.text = ""
        self.clear_attachments()
        self.post_message(self.Submitted(value, images))

    def focus_input(self) -> None:
        self.query_one("#chat-input", TextArea).focus()

    def set_text(self, text: str) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.text = text
        text_area.focus()


class SettingsPanel(Vertical):
    """Per-session settings: model, streaming mode, system instruction.

    Widget events are translated into panel messages only when the value
    differs from what the session already holds, so re-syncing from the
    store never echoes back as an edit.
    """

    BORDER_TITLE = "Settings"

    class ModelChanged(TextualMessage):
        def __init__(self, model: str) -> None:
            super().__init__()
            self.model = model

    class StreamingChanged(TextualMessage):
        def __init__(self, enabled: bool) -> None:
            super().__init__()
            self.enabled = enabled

    class InstructionChanged(TextualMessage):
        def __init__(self, text: str) -> None:
            super().__init__()
            self.text = text

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._session_id: str | None = None
        self._model: str | None = None
        self._streaming: bool = True
        self._instruction: str = ""
        self._options: list[str] = []

    def compose(self):
        yield Label("Model", classes="settings-label")
        yield Select([], id="model-select", allow_blank=True, prompt="Loading models…")
        yield Label("Streaming", classes="settings-label")
        with Horizontal(id="streaming-row"):
            yield Switch(value=True, id="streaming-switch")
        yield Label("System instruction", classes="settings-label")
        yield TextArea(id="system-instruction", show_line_numbers=False)

    def sync(self, session: ChatSession | None, models: list[str], default_model: str) -> None:
        if session is None:
            return

        self._model = session.model or default_model
        options = merge_default_model(models, self._model)
        select = self.query_one("#model-select", Select)
        if options != self._options:
            self._options = options
            select.set_options((name, name) for name in options)
        if select.value != self._model:
            select.value = self._model

        self._streaming = session.streaming_enabled
        switch = self.query_one("#streaming-switch", Switch)
        if switch.value != self._streaming:
            switch.value = self._streaming

        if session.id != self._session_id:
            self._session_id = session.id
            self._instruction = session.system_instruction or ""
            self.query_one("#system-instruction", TextArea).text = self._instruction

    def on_select_changed(self, event: Select.Changed) -> None:
        event.stop()
        if event.value is Select.BLANK or event.value == self._model:
            return
        self._model = str(event.value)
        self.post_message(self.ModelChanged(self._model))

    def on_switch_changed(self, event: Switch.Changed) -> None:
        event.stop()
        if event.value == self._streaming:
            return
        self._streaming = event.value
        self.post_message(self.StreamingChanged(event.value))

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        event.stop()
        text = event.text_area.text
        if text == self._instruction:
            return
        self._instruction = text
        self.post_message(self.InstructionChanged(text))


class ErrorNotice(Static):
    """Inline, dismissable error shown above the input bar."""

    def on_mount(self) -> None:
        self.display = False

    def show_error(self, message: str) -> None:
        self.update(Text(f"Error: {_truncate(message, ERROR_NOTICE_MAX_LENGTH)}  (Esc to dismiss)"))
        self.display = True

    def dismiss(self) -> None:
        self.display = False

    def on_click(self, event: Click) -> None:
        event.stop()
        self.dismiss()


class LogPanel(RichLog):
    """Log panel with level filtering.

    Fed from the package logger through ``LogPanelHandler``. Hidden by
    default; shown with --log-level or toggled with F12.
    """

    BORDER_TITLE = "Log"

    LEVEL_COLORS = {
        LogLevel.DEBUG: "dim white",
        LogLevel.INFO: "cyan",
        LogLevel.WARNING: "yellow",
        LogLevel.ERROR: "red",
    }

    def __init__(self, *args, log_level: int = LogLevel.INFO, **kwargs) -> None:
        super().__init__(*args, markup=False, highlight=False, auto_scroll=True, wrap=True, **kwargs)
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        self.display = False

    def write_entry(self, component: str, message: str, level: int = LogLevel.INFO) -> None:
        """Add a log entry if it meets the current level threshold."""
        if level < self._log_level:
            return

        line = Text()
        line.append(datetime.now().strftime(LOG_TIMESTAMP_FORMAT), style="dim")
        line.append(f" {LogLevel.name(level):<7} ", style=self.LEVEL_COLORS.get(
            min(level, LogLevel.ERROR), "white"
        ))
        line.append(f"[{component}] ", style="magenta")
        line.append(_truncate(message, LOG_MAX_MESSAGE_LENGTH))
        self.write(line)

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        self.display = not self.display
        self._update_subtitle()
        return bool(self.display)


class LogPanelHandler(logging.Handler):
    """Mirrors log records into a ``LogPanel``.

    Records may arrive from any thread; they are marshalled onto the
    app's thread before touching the widget.
    """

    def __init__(self, panel: LogPanel, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._panel = panel

    def emit(self, record: logging.LogRecord) -> None:
        try:
            component = record.name.rsplit(".", 1)[-1]
            message = record.getMessage()
            app = self._panel.app
            if app._thread_id != threading.get_ident():
                app.call_from_thread(self._panel.write_entry, component, message, record.levelno)
            else:
                self._panel.write_entry(component, message, record.levelno)
        except Exception:
            self.handleError(record)
