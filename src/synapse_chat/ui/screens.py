"""Modal screens for the TUI.

This module hides the design decisions about:
- Dialog appearance (CSS, layout)
- Keyboard shortcuts for dialogs
- How text prompts and confirmations are presented
"""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static, TextArea

DIALOG_CSS = """
{screen} {{
    align: center middle;
    background: $background 70%;
}}

.dialog {{
    width: 70;
    height: auto;
    max-height: 30;
    border: tall $accent;
    background: $surface;
    padding: 1 2;
}}

.dialog-title {{
    width: 100%;
    text-align: center;
    text-style: bold;
    color: $accent;
    padding: 0 0 1 0;
    border-bottom: solid $border;
    margin-bottom: 1;
}}

.dialog-body {{
    width: 100%;
    height: auto;
    padding: 1 2;
    background: $panel;
    border: round $border;
    margin-bottom: 1;
}}

#prompt-editor {{
    height: 10;
}}

.dialog-buttons {{
    width: 100%;
    height: 3;
    align: center middle;
    margin-top: 1;
}}

.dialog-buttons Button {{
    margin: 0 1;
    min-width: 10;
}}
"""


class TextPromptScreen(ModalScreen[str | None]):
    """Ask the user for a line (or block) of text.

    Dismisses with the entered text, or None when cancelled.

    Args:
        title: Dialog title
        initial: Pre-filled value
        multiline: Use a text area instead of a single-line input
        placeholder: Hint shown in an empty single-line input
    """

    CSS = DIALOG_CSS.format(screen="TextPromptScreen")

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=False),
        Binding("ctrl+s", "save", "Save", show=False),
    ]

    def __init__(
        self,
        title: str,
        initial: str = "",
        multiline: bool = False,
        placeholder: str = "",
    ) -> None:
        super().__init__()
        self._title = title
        self._initial = initial
        self._multiline = multiline
        self._placeholder = placeholder

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Static(self._title, classes="dialog-title", markup=False)
            if self._multiline:
                yield TextArea(self._initial, id="prompt-editor", show_line_numbers=False)
            else:
                yield Input(self._initial, placeholder=self._placeholder, id="prompt-input")
            with Horizontal(classes="dialog-buttons"):
                yield Button("Save", id="btn-save", variant="success")
                yield Button("Cancel", id="btn-cancel", variant="error")

    def on_mount(self) -> None:
        if self._multiline:
            self.query_one("#prompt-editor", TextArea).focus()
        else:
            self.query_one("#prompt-input", Input).focus()

    def _value(self) -> str:
        if self._multiline:
            return self.query_one("#prompt-editor", TextArea).text
        return self.query_one("#prompt-input", Input).value

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.dismiss(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "btn-save":
            self.action_save()
        else:
            self.action_cancel()

    def action_save(self) -> None:
        self.dismiss(self._value())

    def action_cancel(self) -> None:
        self.dismiss(None)


class ConfirmationScreen(ModalScreen[bool]):
    """Yes/no confirmation for destructive actions."""

    CSS = DIALOG_CSS.format(screen="ConfirmationScreen")

    BINDINGS = [
        Binding("y", "answer(True)", "Yes", show=False),
        Binding("n", "answer(False)", "No", show=False),
        Binding("escape", "answer(False)", "Cancel", show=False),
    ]

    def __init__(self, prompt: str, title: str = "Confirmation Required") -> None:
        super().__init__()
        self._prompt = prompt
        self._title = title

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Static(self._title, classes="dialog-title", markup=False)
            yield Static(self._prompt, classes="dialog-body", markup=False)
            with Horizontal(classes="dialog-buttons"):
                yield Button("Yes", id="btn-yes", variant="success")
                yield Button("No", id="btn-no", variant="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.dismiss(event.button.id == "btn-yes")

    def action_answer(self, confirmed: bool) -> None:
        self.dismiss(confirmed)
