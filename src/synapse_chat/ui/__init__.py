"""Terminal UI module for synapse_chat.

Provides a Textual-based TUI over the session store.

Module structure (each module hides a design decision):
- config.py: Constants and log levels
- attachments.py: How image files become message payloads
- widgets.py: Sidebar, chat view, input bar, settings, log panel
- styles.py: CSS styling (layout decisions)
- themes.py: Color palettes for the dark and light preferences
- screens.py: Modal dialogs (text prompts, confirmations)
- app.py: Application orchestration (user interaction flow)
"""

from .app import SynapseApp, run_textual_tui
from .attachments import encode_image_file
from .config import LogLevel
from .widgets import ChatInputBar, ChatView, LogPanel, SessionList, SettingsPanel

__all__ = [
    "ChatInputBar",
    "ChatView",
    "LogLevel",
    "LogPanel",
    "SessionList",
    "SettingsPanel",
    "SynapseApp",
    "encode_image_file",
    "run_textual_tui",
]
